"""BaseService — shared foundation for railboot services.

Every service receives the resolved :class:`BootSettings` and a
:class:`CommandRunner`. Tests pass a fake runner; the CLI passes one
rooted at ``settings.project_root``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from railboot.infrastructure.shell import CommandRunner

if TYPE_CHECKING:
    from railboot.config.settings import BootSettings


class BaseService:
    """Base for service-layer classes.

    Usage::

        class SetupService(BaseService):
            def provision(self) -> ServiceResult:
                outcome = self._runner.run(["brew", "update"])
                ...
    """

    def __init__(self, settings: BootSettings, runner: CommandRunner | None = None) -> None:
        self._settings = settings
        self._runner = runner or CommandRunner(cwd=settings.project_root)

    def _path(self, relative: str) -> Path:
        """Resolve a configured path against the project root."""
        return self._settings.project_root / relative
