"""Shared service-layer helper functions."""

from __future__ import annotations

import shlex
from collections.abc import Sequence


def format_argv(argv: Sequence[str]) -> str:
    """Render an argv list as a copy-pasteable shell string."""
    return shlex.join(argv)


def parse_version(raw: str) -> tuple[int, ...] | None:
    """Parse ``v18.17.0`` / ``18.17.0`` into an int tuple.

    Examples:
        >>> parse_version("v18.17.0")
        (18, 17, 0)
        >>> parse_version("20.1")
        (20, 1)
        >>> parse_version("nightly") is None
        True
    """
    text = raw.strip().lstrip("v")
    parts: list[int] = []
    for piece in text.split("."):
        digits = ""
        for ch in piece:
            if not ch.isdigit():
                break
            digits += ch
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts) or None


def version_at_least(current: tuple[int, ...], required: tuple[int, ...]) -> bool:
    """Compare version tuples with missing components read as zero.

    Examples:
        >>> version_at_least((18,), (18, 0, 0))
        True
        >>> version_at_least((16, 20, 2), (18, 0, 0))
        False
    """
    width = max(len(current), len(required))
    padded = current + (0,) * (width - len(current))
    return padded >= required + (0,) * (width - len(required))
