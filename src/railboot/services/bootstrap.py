"""BootstrapService: the deployment boot sequence.

Stages, in order::

    validating_config -> diagnosing_environment -> migrating
        -> verifying_connectivity -> handing_off

Only a missing ``DATABASE_URL``/``REDIS_URL`` is always fatal. The
extended (default) sequence downgrades every later check to a warning,
except a client load failure that names the TLS library. The strict
sequence skips diagnostics and treats a failed migration as fatal.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from railboot.config.logging import flush_logging
from railboot.domain.errors import ClientLoadError, ConfigError, HandoffError, MigrationError
from railboot.domain.models import ProbeResult
from railboot.domain.types import BootStage, ProbeState
from railboot.domain.urls import extract_host, redact_url
from railboot.infrastructure.process import exec_replace
from railboot.services._helpers import format_argv
from railboot.services.base import BaseService
from railboot.services.pipeline import Outcome, Pipeline, Step, ok, warn
from railboot.services.probes import (
    CachePingProbe,
    ClientLoadProbe,
    CommandProbe,
    DatabaseProbe,
    DnsProbe,
    LibraryIndexProbe,
    PathProbe,
)
from railboot.services.result import ServiceError, ServiceResult
from railboot.services.telemetry import traced

if TYPE_CHECKING:
    from railboot.config.settings import BootSettings, DeployEnvironment
    from railboot.infrastructure.shell import CommandRunner

ExecFn = Callable[..., None]

log = structlog.get_logger("railboot.handoff")


class BootstrapService(BaseService):
    """Validates, diagnoses, migrates, verifies, then hands off to the server."""

    def __init__(
        self,
        settings: BootSettings,
        env: DeployEnvironment,
        runner: CommandRunner | None = None,
        *,
        exec_fn: ExecFn | None = None,
        process_env: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(settings, runner)
        self._env = env
        self._exec = exec_fn or exec_replace
        self._process_env = process_env

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def pipeline(self, *, strict: bool = False) -> Pipeline:
        """Build the ordered step list for the requested variant."""
        steps = [Step("validate_config", BootStage.VALIDATING_CONFIG, self._validate_config)]
        diag = self._settings.diagnostics
        diagnosing = BootStage.DIAGNOSING_ENVIRONMENT
        if not strict:
            if diag.tls:
                steps.append(Step("tls_command", diagnosing, self._tls_command))
                steps.append(Step("tls_library", diagnosing, self._tls_library))
            if diag.cache_dns:
                steps.append(Step("cache_dns", diagnosing, self._cache_dns))
            if diag.cache_ping:
                steps.append(Step("cache_ping", diagnosing, self._cache_ping))
            if self._settings.client.enabled:
                steps.append(Step("client_load", diagnosing, self._client_load))
        steps.append(Step("migrate", BootStage.MIGRATING, lambda: self._migrate(strict=strict)))
        if not strict and diag.database:
            steps.append(Step("database", BootStage.VERIFYING_CONNECTIVITY, self._database))
        return Pipeline(steps)

    @traced
    def prepare(self, *, strict: bool = False, op: str = "start") -> ServiceResult:
        """Run every step before the handoff and report the outcome."""
        run = self.pipeline(strict=strict).run()
        return run.to_result(
            op,
            variant="strict" if strict else "extended",
            server=format_argv(self._settings.server.command),
        )

    def handoff(self) -> ServiceResult | None:
        """Replace this process with the server.

        Never returns on success. Returns a failed result when the
        executable cannot be started, and None if a substituted exec
        function comes back.
        """
        argv = list(self._settings.server.command)
        env = self._process_env if self._process_env is not None else os.environ
        self._log_handoff(argv)
        try:
            self._exec(argv, env, cwd=self._settings.project_root)
        except OSError as exc:
            err = HandoffError(f"Could not start server {format_argv(argv)}: {exc}")
            log.error(str(err), stage=BootStage.HANDING_OFF.value)
            return ServiceResult(
                ok=False,
                op="handoff",
                data={"stage": BootStage.HANDING_OFF.value, "server": format_argv(argv)},
                error=ServiceError(code=err.code, message=str(err)),
            )
        return None

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate_config(self) -> Outcome:
        missing = self._env.missing()
        if missing:
            raise ConfigError(
                f"{', '.join(missing)} environment variable"
                f"{'s are' if len(missing) > 1 else ' is'} required"
            )
        return ok(
            "Environment variables validated",
            database_url=redact_url(self._env.database_url),
            redis_url=redact_url(self._env.redis_url),
        )

    def _tls_command(self) -> Outcome:
        diag = self._settings.diagnostics
        result = CommandProbe(self._runner, diag.tls_command).probe()
        if result.present:
            return ok(
                f"{diag.tls_command} command available: {result.detail}",
                probe=_dump(result),
            )
        return warn(f"{diag.tls_command} command not found", probe=_dump(result))

    def _tls_library(self) -> Outcome:
        diag = self._settings.diagnostics
        result = LibraryIndexProbe(
            self._runner, diag.library_index_command, diag.tls_library
        ).probe()
        if result.present:
            return ok(f"{diag.tls_library} shared library found", probe=_dump(result))
        if result.state is ProbeState.UNKNOWN:
            return warn(
                f"Could not check for {diag.tls_library}: {result.detail}",
                probe=_dump(result),
            )
        return warn(f"{diag.tls_library} not found in library index", probe=_dump(result))

    def _cache_dns(self) -> Outcome:
        host = extract_host(self._env.redis_url)
        if host is None:
            return warn("Could not extract hostname from REDIS_URL")
        result = DnsProbe(host).probe()
        if result.present:
            return ok(f"DNS resolution successful for {host}", host=host, probe=_dump(result))
        return warn(
            f"DNS resolution failed for {host}, continuing; "
            "queue clients should use family=0 for dual-stack lookup",
            host=host,
            probe=_dump(result),
        )

    def _cache_ping(self) -> Outcome:
        timeout = self._settings.diagnostics.connect_timeout
        result = CachePingProbe(self._env.redis_url, timeout=timeout).probe()
        if result.present:
            return ok("Cache answered PING", probe=_dump(result))
        return warn(f"Cache PING failed: {result.detail}", probe=_dump(result))

    def _client_load(self) -> Outcome:
        client = self._settings.client
        directory = PathProbe(self._path(client.directory)).probe()
        if not directory.present:
            return warn("Generated client directory not found", probe=_dump(directory))

        result = ClientLoadProbe(self._runner, client.load_command).probe()
        if result.present:
            return ok("Generated client loaded", probe=_dump(result))
        if client.fatal_pattern and client.fatal_pattern in result.detail:
            raise ClientLoadError(
                f"Client load failed on a {client.fatal_pattern} compatibility issue: "
                f"{_tail(result.detail)}"
            )
        return warn(
            f"Client load check failed, continuing: {_tail(result.detail)}",
            probe=_dump(result),
        )

    def _migrate(self, *, strict: bool) -> Outcome:
        migrate = self._settings.migrate
        deploy = self._runner.run(migrate.deploy_command, capture=False)
        if deploy.ok:
            return ok("Database migrations applied", command=format_argv(migrate.deploy_command))

        failed = f"Migration failed with exit code {deploy.returncode}"
        if strict:
            raise MigrationError(failed)
        if not migrate.fallback_to_push:
            return warn(f"{failed}, continuing anyway", deploy_exit=deploy.returncode)

        push = self._runner.run(migrate.push_command, capture=False)
        if push.ok:
            return warn(
                f"{failed}; schema pushed instead",
                deploy_exit=deploy.returncode,
                push_exit=0,
            )
        return warn(
            f"{failed}; schema push also failed with exit code {push.returncode}, "
            "continuing anyway",
            deploy_exit=deploy.returncode,
            push_exit=push.returncode,
        )

    def _database(self) -> Outcome:
        timeout = self._settings.diagnostics.connect_timeout
        result = DatabaseProbe(self._env.database_url, connect_timeout=timeout).probe()
        if result.present:
            return ok("Database connection successful", probe=_dump(result))
        return warn(
            f"Database connection verification failed, continuing: {result.detail}",
            probe=_dump(result),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _log_handoff(argv: Sequence[str]) -> None:
        log.info("Starting server", stage=BootStage.HANDING_OFF.value, command=format_argv(argv))
        flush_logging()


def _dump(result: ProbeResult) -> dict[str, Any]:
    return result.model_dump(mode="json")


def _tail(text: str, limit: int = 200) -> str:
    """Last line of tool output, truncated for a one-line log message."""
    lines = [line for line in text.strip().splitlines() if line.strip()]
    last = lines[-1] if lines else "no output"
    return last if len(last) <= limit else last[: limit - 3] + "..."
