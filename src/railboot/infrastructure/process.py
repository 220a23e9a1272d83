"""Process-image replacement for the server handoff."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path


def exec_replace(
    argv: Sequence[str],
    env: Mapping[str, str] | None = None,
    *,
    cwd: Path | None = None,
) -> None:
    """Replace the current process with *argv*, searching PATH.

    Inherits file descriptors and (by default) the environment, so the
    server receives signals directly. Only returns by raising
    :class:`OSError` when the executable cannot be started.
    """
    if not argv:
        raise OSError("empty server command")
    if cwd is not None:
        os.chdir(cwd)
    sys.stdout.flush()
    sys.stderr.flush()
    os.execvpe(argv[0], list(argv), dict(env if env is not None else os.environ))
