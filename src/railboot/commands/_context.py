"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Configures logging and centralizes result
emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from railboot.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from railboot.config.settings import BootSettings, DeployEnvironment
    from railboot.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: BootSettings) -> None:
        self.settings = settings

        from railboot.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from railboot.services.telemetry import enable_telemetry

            enable_telemetry()

    def deploy_environment(self) -> DeployEnvironment:
        """Read ``DATABASE_URL``/``REDIS_URL`` from the process environment."""
        from railboot.config.settings import DeployEnvironment

        return DeployEnvironment()

    def emit(self, result: ServiceResult, *, exit_code: int = 1) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with *exit_code*.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(exit_code)
