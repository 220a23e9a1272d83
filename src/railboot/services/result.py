"""ServiceResult and ServiceError — the contract between services and the CLI.

INVARIANT: every service entry point returns ServiceResult. Fatal step
outcomes surface as ``ok=False`` with a populated ``error``; degraded
steps surface in ``warnings`` while ``ok`` stays True.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for service operations.

    Attributes:
        ok: False only when a step was fatal.
        op: Name of the operation (``"start"``, ``"check"``, ``"setup"``).
        data: Operation payload; pipeline runs put their step list here.
        warnings: Messages of degraded steps, in pipeline order.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry spans under ``-v``).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
