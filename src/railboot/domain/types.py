"""Pipeline classification enums.

The bootstrap pipeline is linear: each step belongs to one stage, and a
step either passes, degrades with a warning, or stops the pipeline.
"""

from __future__ import annotations

from enum import StrEnum


class StepStatus(StrEnum):
    """Tagged outcome of a single pipeline step."""

    OK = "ok"
    WARN = "warn"
    FATAL = "fatal"


class BootStage(StrEnum):
    """Ordered states of the deployment bootstrap pipeline."""

    VALIDATING_CONFIG = "validating_config"
    DIAGNOSING_ENVIRONMENT = "diagnosing_environment"
    MIGRATING = "migrating"
    VERIFYING_CONNECTIVITY = "verifying_connectivity"
    HANDING_OFF = "handing_off"


class SetupStage(StrEnum):
    """Stages of the local setup procedure."""

    PREFLIGHT = "preflight"
    PACKAGES = "packages"
    SERVICES = "services"
    PROJECT = "project"


class ProbeState(StrEnum):
    """Tri-state answer from an optional capability probe."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"
