"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from railboot.output.console import (
    create_console,
    get_output,
    label_for_status,
    style_for_status,
)

if TYPE_CHECKING:
    from rich.console import Console

    from railboot.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()
    renderer = _OP_RENDERERS.get(result.op, _render_generic)
    renderer(result, console, verbose=verbose)
    if not result.ok:
        _render_error(result, console)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK/ERROR status line."""
    label = Text("OK", style="boot.ok") if result.ok else Text("ERROR", style="boot.error")
    op = Text(f"  {result.op}", style="boot.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="boot.key")
    style = "boot.command" if key in {"server", "command"} else ""
    console.print(Text.assemble(k, Text(str(value), style=style)))


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 10_000:
        style = "bold red"
    elif duration > 1000:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>10.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _step_table(steps: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    """Build a Rich Table with one row per pipeline step."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Step", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    if verbose:
        table.add_column("Stage", style="boot.stage")
    table.add_column("Details")

    for step in steps:
        status = str(step.get("status", ""))
        style = style_for_status(status)
        row: list[Any] = [
            str(step.get("name", "")),
            Text(label_for_status(status), style=style),
        ]
        if verbose:
            row.append(str(step.get("stage", "")))
        row.append(str(step.get("message", "")))
        table.add_row(*row)

    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="boot.error")
    op = Text(f"  {result.op}", style="boot.op")
    console.print(label, op, Text(" — "), msg)


# ── Pipeline renderers ────────────────────────────────────────────────


def _render_pipeline(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a bootstrap run: status line, step table, server command."""
    if result.ok:
        _status_line(console, result)
    steps = result.data.get("steps", [])
    if steps:
        console.print(_step_table(steps, verbose=verbose))
    if result.ok:
        if result.data.get("variant"):
            _field(console, "variant", result.data["variant"])
        if result.data.get("server"):
            _field(console, "server", result.data["server"])
    if verbose:
        _render_meta(console, result)


def _render_setup(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render setup results followed by the operator's next steps."""
    _render_pipeline(result, console, verbose=verbose)
    next_steps = result.data.get("next_steps") or []
    if next_steps:
        console.print()
        console.print(Text("Next steps:", style="bold"))
        for i, step in enumerate(next_steps, start=1):
            console.print(f"  {i}. {step}")


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    if result.ok:
        _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "start": _render_pipeline,
    "check": _render_pipeline,
    "setup": _render_setup,
    "handoff": _render_generic,
}
