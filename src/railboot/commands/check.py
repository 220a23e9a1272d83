"""Command: dry-run the boot sequence without starting the server."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from railboot.commands._base import BootCommand

if TYPE_CHECKING:
    from railboot.commands._context import AppContext


@click.command(
    cls=BootCommand,
    examples="""\
  railboot check
  railboot check --strict
  railboot --json check
  railboot -v check""",
)
@click.option("--strict", is_flag=True, help="Check the basic variant's steps only.")
@click.pass_obj
def check(app: AppContext, strict: bool) -> None:
    """Run every boot step up to (not including) the server handoff.

    Migrations are applied for real; only the exec is skipped.
    """
    from railboot.services.bootstrap import BootstrapService

    svc = BootstrapService(app.settings, app.deploy_environment())
    app.emit(svc.prepare(strict=strict, op="check"))
