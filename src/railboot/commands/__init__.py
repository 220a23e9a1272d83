"""Subcommand modules for railboot.

Provides register_commands() which uses deferred imports so
``railboot --help`` never imports SQLAlchemy or redis.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the standalone commands on the root CLI group."""
    from railboot.commands.check import check
    from railboot.commands.setup import setup
    from railboot.commands.start import start

    cli.add_command(start)
    cli.add_command(check)
    cli.add_command(setup)
