"""Command: provision a local macOS development environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from railboot.commands._base import BootCommand

if TYPE_CHECKING:
    from railboot.commands._context import AppContext


@click.command(
    cls=BootCommand,
    examples="""\
  railboot setup
  railboot setup --skip-update
  railboot -c ./railboot.toml setup""",
)
@click.option("--skip-update", is_flag=True, help="Do not run 'brew update' first.")
@click.pass_obj
def setup(app: AppContext, skip_update: bool) -> None:
    """Install and start local services via Homebrew, then prepare the project."""
    from railboot.services.setup import SetupService

    app.emit(SetupService(app.settings).provision(skip_update=skip_update))
