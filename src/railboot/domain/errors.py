"""Exception hierarchy for fatal bootstrap conditions.

Steps raise these to stop the pipeline. Anything that should only
degrade the boot is reported as a ``warn`` step result instead.
"""

from __future__ import annotations


class BootError(Exception):
    """Base class for conditions that abort the pipeline."""

    code = "BOOT_ERROR"


class ConfigError(BootError):
    """Required deployment configuration is missing or empty."""

    code = "CONFIG_ERROR"


class ClientLoadError(BootError):
    """The generated database client failed to load for a fatal reason."""

    code = "CLIENT_LOAD_ERROR"


class MigrationError(BootError):
    """Schema migration failed and no fallback applies."""

    code = "MIGRATION_ERROR"


class SetupError(BootError):
    """A local provisioning step could not complete."""

    code = "SETUP_ERROR"


class HandoffError(BootError):
    """The server executable could not replace the current process."""

    code = "HANDOFF_ERROR"
