"""Frozen result models shared by the pipeline driver and the probes."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from railboot.domain.types import ProbeState, StepStatus


class StepResult(BaseModel):
    """Outcome of one named pipeline step.

    Attributes:
        name: Step identifier (e.g. ``"migrate"``).
        stage: Pipeline stage the step belongs to.
        status: ``ok``, ``warn`` or ``fatal``.
        message: Human-readable one-liner for the log and the report.
        detail: Step-specific extras (probe states, commands run, ...).
    """

    model_config = {"frozen": True}

    name: str
    stage: str
    status: StepStatus
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_fatal(self) -> bool:
        return self.status is StepStatus.FATAL


class ProbeResult(BaseModel):
    """Answer from an optional capability probe."""

    model_config = {"frozen": True}

    name: str
    state: ProbeState
    detail: str = ""

    @property
    def present(self) -> bool:
        return self.state is ProbeState.PRESENT
