"""Linear step pipeline shared by the bootstrap and setup procedures.

A step is a named callable that returns an :class:`Outcome` (``ok`` or
``warn``) or raises a :class:`~railboot.domain.errors.BootError`. The
driver runs steps in order, logs every result the same way, and stops at
the first fatal one. There are no retries and no branching back.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from railboot.domain.errors import BootError
from railboot.domain.models import StepResult
from railboot.domain.types import StepStatus
from railboot.services.result import ServiceError, ServiceResult
from railboot.services.telemetry import trace_span

log = structlog.get_logger("railboot.pipeline")


@dataclass(frozen=True)
class Outcome:
    """Non-fatal step outcome before it is tagged with the step's identity."""

    status: StepStatus
    message: str
    detail: dict[str, Any] = field(default_factory=dict)


def ok(message: str, **detail: Any) -> Outcome:
    return Outcome(StepStatus.OK, message, detail)


def warn(message: str, **detail: Any) -> Outcome:
    return Outcome(StepStatus.WARN, message, detail)


@dataclass(frozen=True)
class Step:
    name: str
    stage: str
    action: Callable[[], Outcome]


@dataclass
class PipelineRun:
    """Everything a pipeline produced, fatal or not."""

    results: list[StepResult] = field(default_factory=list)
    error: BootError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def stage(self) -> str | None:
        """Stage of the last step that ran."""
        return self.results[-1].stage if self.results else None

    @property
    def warnings(self) -> list[str]:
        return [r.message for r in self.results if r.status is StepStatus.WARN]

    def to_result(self, op: str, **data: Any) -> ServiceResult:
        """Fold the run into a ServiceResult for the CLI."""
        payload: dict[str, Any] = {
            "steps": [r.model_dump(mode="json") for r in self.results],
            "stage": self.stage,
            **data,
        }
        error = None
        if self.error is not None:
            error = ServiceError(
                code=self.error.code,
                message=str(self.error),
                detail={"stage": self.stage},
            )
        return ServiceResult(
            ok=self.ok,
            op=op,
            data=payload,
            warnings=self.warnings,
            error=error,
        )


class Pipeline:
    """Ordered list of steps; halts only on a raised BootError."""

    def __init__(self, steps: list[Step]) -> None:
        self._steps = steps

    @property
    def steps(self) -> list[Step]:
        return list(self._steps)

    def run(self) -> PipelineRun:
        run = PipelineRun()
        for step in self._steps:
            with trace_span(step.name) as span:
                try:
                    outcome = step.action()
                except BootError as exc:
                    result = StepResult(
                        name=step.name,
                        stage=str(step.stage),
                        status=StepStatus.FATAL,
                        message=str(exc),
                        detail={"code": exc.code},
                    )
                    _log_result(result)
                    run.results.append(result)
                    run.error = exc
                    return run
                result = StepResult(
                    name=step.name,
                    stage=str(step.stage),
                    status=outcome.status,
                    message=outcome.message,
                    detail=outcome.detail,
                )
                if span is not None:
                    span.annotate("status", str(result.status))
            _log_result(result)
            run.results.append(result)
        return run


def _log_result(result: StepResult) -> None:
    if result.status is StepStatus.OK:
        log.info(result.message, step=result.name, stage=result.stage)
    elif result.status is StepStatus.WARN:
        log.warning(result.message, step=result.name, stage=result.stage)
    else:
        log.error(result.message, step=result.name, stage=result.stage)
