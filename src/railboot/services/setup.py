"""SetupService: local macOS development environment provisioning.

Installs and starts the local stack through Homebrew (database, cache,
tunnel, package manager), prepares the local database, installs the
application's dependencies and generates the database client.

A failed install or a cache that does not answer stops the run; things
the operator can fix later (a stale Node.js, a missing env example) are
reported as warnings.
"""

from __future__ import annotations

import functools
import shutil
import sys
from typing import TYPE_CHECKING

from railboot.domain.errors import SetupError
from railboot.domain.types import SetupStage
from railboot.services._helpers import format_argv, parse_version, version_at_least
from railboot.services.base import BaseService
from railboot.services.pipeline import Outcome, Pipeline, Step, ok, warn
from railboot.services.result import ServiceResult
from railboot.services.telemetry import traced

if TYPE_CHECKING:
    from railboot.config.models import PackageSpec
    from railboot.config.settings import BootSettings
    from railboot.infrastructure.shell import CommandRunner

MANUAL_DEPENDENCIES = ("Node.js 18+", "PostgreSQL 15+", "Redis 7+", "ngrok")
HOMEBREW_URL = "https://brew.sh"


class SetupService(BaseService):
    """Provision the local stack the way the team's macOS setup script did."""

    def __init__(
        self,
        settings: BootSettings,
        runner: CommandRunner | None = None,
        *,
        platform: str | None = None,
    ) -> None:
        super().__init__(settings, runner)
        self._platform = platform or sys.platform

    def pipeline(self, *, skip_update: bool = False) -> Pipeline:
        setup = self._settings.setup
        steps = [
            Step("platform", SetupStage.PREFLIGHT, self._check_platform),
            Step("homebrew", SetupStage.PREFLIGHT, self._check_homebrew),
        ]
        if not skip_update:
            steps.append(Step("brew_update", SetupStage.PREFLIGHT, self._brew_update))
        for pkg in setup.packages:
            action = functools.partial(self._ensure_package, pkg)
            steps.append(Step(f"package:{pkg.formula}", SetupStage.PACKAGES, action))
        steps += [
            Step("node_version", SetupStage.PACKAGES, self._check_node_version),
            Step("database", SetupStage.SERVICES, self._ensure_database),
            Step("cache", SetupStage.SERVICES, self._check_cache),
            Step("dependencies", SetupStage.PROJECT, self._install_dependencies),
            Step("env_file", SetupStage.PROJECT, self._ensure_env_file),
            Step("generate_client", SetupStage.PROJECT, self._generate_client),
            Step("logs_dir", SetupStage.PROJECT, self._ensure_logs_dir),
        ]
        return Pipeline(steps)

    @traced
    def provision(self, *, skip_update: bool = False) -> ServiceResult:
        """Run every setup step; stop at the first fatal one."""
        run = self.pipeline(skip_update=skip_update).run()
        next_steps = self.next_steps() if run.ok else []
        return run.to_result("setup", next_steps=next_steps)

    def next_steps(self) -> list[str]:
        setup = self._settings.setup
        return [
            f"Edit {setup.env_file} with your API keys (OpenAI, Google Cloud, Gmail)",
            "Run database migrations: npm run db:migrate",
            "Start the development server: npm run dev",
            f"In another terminal, start the tunnel for webhooks: ngrok http {setup.tunnel_port}",
            f"Update WEBHOOK_BASE_URL in {setup.env_file} with the ngrok URL",
            "Check service status: brew services list | grep -E '(postgresql|redis)'",
        ]

    # ------------------------------------------------------------------
    # Preflight
    # ------------------------------------------------------------------

    def _check_platform(self) -> Outcome:
        if self._platform != "darwin":
            raise SetupError(
                "This setup is designed for macOS with Homebrew. "
                f"Install manually instead: {', '.join(MANUAL_DEPENDENCIES)}"
            )
        return ok("Running on macOS")

    def _check_homebrew(self) -> Outcome:
        if self._runner.which("brew") is None:
            raise SetupError(f"Homebrew is not installed. Install it first: {HOMEBREW_URL}")
        return ok("Homebrew found")

    def _brew_update(self) -> Outcome:
        self._brew("update")
        return ok("Homebrew updated")

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def _ensure_package(self, pkg: PackageSpec) -> Outcome:
        if self._runner.which(pkg.binary) is None:
            self._brew("install", pkg.formula)
            if pkg.service:
                self._brew("services", "start", pkg.formula)
            return ok(f"Installed {pkg.formula}", installed=True)
        if pkg.service and not self._service_started(pkg.formula):
            self._brew("services", "start", pkg.formula)
            return ok(f"{pkg.formula} found; service started", started=True)
        return ok(f"{pkg.formula} found")

    def _service_started(self, formula: str) -> bool:
        """Whether ``brew services list`` shows *formula* as started.

        Matches on the formula's base name, so ``postgresql@15`` also
        accepts a running ``postgresql@14``.
        """
        outcome = self._runner.run(["brew", "services", "list"])
        if not outcome.ok:
            return False
        base = formula.split("@", 1)[0]
        return any(base in line and "started" in line for line in outcome.stdout.splitlines())

    def _check_node_version(self) -> Outcome:
        minimum = self._settings.setup.min_node_version
        outcome = self._runner.run(["node", "--version"])
        current = parse_version(outcome.stdout) if outcome.ok else None
        required = parse_version(minimum)
        if current is None or required is None:
            return warn("Could not determine the Node.js version")
        found = ".".join(str(part) for part in current)
        if version_at_least(current, required):
            return ok(f"Node.js {found} found", version=found)
        self._brew("install", "node")
        return warn(
            f"Node.js {found} is older than {minimum}; installed the latest release",
            version=found,
        )

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def _ensure_database(self) -> Outcome:
        setup = self._settings.setup
        name = setup.database_name
        created = self._runner.run(["createdb", name]).ok
        probe = self._runner.run(["psql", "-d", name, "-c", "SELECT 1;"])
        if probe.ok:
            verb = "created" if created else "already exists"
            return ok(f"Database {name} {verb}; connection successful", created=created)

        self._runner.run(["createuser", "-s", setup.database_user])
        self._runner.run(["createdb", name])
        return warn(
            f"Database connection failed; ensured user {setup.database_user} "
            f"and database {name}",
            user=setup.database_user,
        )

    def _check_cache(self) -> Outcome:
        if not self._runner.run(["redis-cli", "ping"]).ok:
            raise SetupError(
                "Redis connection failed. Make sure Redis is running: brew services restart redis"
            )
        return ok("Redis connection successful")

    # ------------------------------------------------------------------
    # Project
    # ------------------------------------------------------------------

    def _install_dependencies(self) -> Outcome:
        manager = "pnpm" if self._runner.which("pnpm") is not None else "npm"
        self._require([manager, "install"], capture=False)
        return ok(f"Installed application dependencies with {manager}", manager=manager)

    def _ensure_env_file(self) -> Outcome:
        setup = self._settings.setup
        target = self._path(setup.env_file)
        if target.exists():
            return ok(f"{setup.env_file} present")
        example = self._path(setup.env_example)
        if not example.is_file():
            return warn(f"{setup.env_example} not found; create {setup.env_file} by hand")
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(example, target)
        return warn(f"Created {setup.env_file}; edit it with your API keys before running")

    def _generate_client(self) -> Outcome:
        command = self._settings.setup.generate_command
        self._require(command, capture=False)
        return ok("Generated database client", command=format_argv(command))

    def _ensure_logs_dir(self) -> Outcome:
        logs = self._settings.setup.logs_dir
        self._path(logs).mkdir(parents=True, exist_ok=True)
        return ok(f"{logs}/ ready")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _brew(self, *args: str) -> None:
        self._require(["brew", *args], capture=False)

    def _require(self, argv: list[str], *, capture: bool = True) -> None:
        outcome = self._runner.run(argv, capture=capture)
        if not outcome.ok:
            raise SetupError(f"{format_argv(argv)} failed with exit code {outcome.returncode}")
