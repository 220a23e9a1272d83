"""Command: boot the deployment and hand off to the server."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from railboot.commands._base import BootCommand

if TYPE_CHECKING:
    from railboot.commands._context import AppContext


@click.command(
    cls=BootCommand,
    examples="""\
  # Railway start command
  railboot start

  # Basic variant: no diagnostics, migration failure aborts the boot
  railboot start --strict

  # Machine-readable boot report, JSON logs for the log collector
  railboot --json --log-json start""",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Skip diagnostics and abort if migration fails (no schema-push fallback).",
)
@click.pass_obj
def start(app: AppContext, strict: bool) -> None:
    """Validate config, migrate, verify, then exec the server."""
    from railboot.infrastructure.shell import EXIT_NOT_FOUND
    from railboot.services.bootstrap import BootstrapService

    svc = BootstrapService(app.settings, app.deploy_environment())
    app.emit(svc.prepare(strict=strict, op="start"))
    failure = svc.handoff()
    if failure is not None:
        app.emit(failure, exit_code=EXIT_NOT_FOUND)
