"""Blocking subprocess runner for external tools.

Every external collaborator (migration CLI, package manager, Homebrew)
is invoked through :class:`CommandRunner` so services can be exercised
with a fake runner in tests. There is no timeout: a hung tool blocks
the caller, as the shell scripts this replaces did.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Shell convention for "command not found".
EXIT_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandOutcome:
    """Exit status and captured output of one command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, stripped."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class CommandRunner:
    """Run external commands relative to a working directory."""

    def __init__(self, cwd: Path | None = None, env: Mapping[str, str] | None = None) -> None:
        self._cwd = cwd
        self._env = dict(env) if env is not None else None

    def which(self, name: str) -> str | None:
        """Resolve *name* on PATH, like ``command -v``."""
        path = None
        if self._env is not None:
            path = self._env.get("PATH")
        return shutil.which(name, path=path)

    def run(self, argv: Sequence[str], *, capture: bool = True) -> CommandOutcome:
        """Run *argv* to completion.

        With ``capture=False`` the child inherits stdout/stderr so long
        tool output (migrations, installs) streams straight to the log.
        A missing executable yields exit code 127 instead of raising.
        """
        args = tuple(argv)
        logger.debug("exec: %s", " ".join(args))
        try:
            proc = subprocess.run(
                args,
                cwd=self._cwd,
                env=self._env,
                capture_output=capture,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            return CommandOutcome(args, EXIT_NOT_FOUND, stderr=str(exc))
        except OSError as exc:
            logger.debug("exec failed: %s", exc)
            return CommandOutcome(args, 126, stderr=str(exc))
        return CommandOutcome(
            args,
            proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
