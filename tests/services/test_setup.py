"""Tests for SetupService — local macOS provisioning."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from railboot.config.models import PackageSpec, SetupConfig
from railboot.config.settings import BootSettings
from railboot.services.setup import SetupService
from tests.conftest import FakeRunner

SERVICES_LIST = ["brew", "services", "list"]
STARTED = (
    "Name          Status  User  File\n"
    "postgresql@15 started dev   ~/Library/LaunchAgents/homebrew.mxcl.postgresql@15.plist\n"
    "redis         started dev   ~/Library/LaunchAgents/homebrew.mxcl.redis.plist\n"
)


def make_mac_runner(node_version: str = "v20.11.1\n", node_exit: int = 0) -> FakeRunner:
    """Everything except ngrok and pnpm is already installed and running."""
    runner = FakeRunner(available=["brew", "node", "psql", "redis-server"])
    runner.respond(SERVICES_LIST, stdout=STARTED)
    runner.respond(["node", "--version"], returncode=node_exit, stdout=node_version)
    return runner


@pytest.fixture
def mac_runner() -> FakeRunner:
    return make_mac_runner()


@pytest.fixture
def make_service(
    settings: BootSettings, mac_runner: FakeRunner
) -> Callable[..., SetupService]:
    def factory(**overrides: Any) -> SetupService:
        return SetupService(
            overrides.pop("settings", settings),
            overrides.pop("runner", mac_runner),
            platform=overrides.pop("platform", "darwin"),
        )

    return factory


def _steps(result: Any) -> dict[str, dict[str, Any]]:
    return {step["name"]: step for step in result.data["steps"]}


class TestPreflight:
    def test_requires_macos(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        result = make_service(platform="linux").provision()
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "SETUP_ERROR"
        assert "macOS" in result.error.message
        assert "Node.js 18+" in result.error.message
        assert mac_runner.calls == []
        assert result.data["next_steps"] == []

    def test_requires_homebrew(self, make_service: Callable[..., SetupService]) -> None:
        runner = FakeRunner(available=["node"])
        result = make_service(runner=runner).provision()
        assert not result.ok
        assert result.error is not None
        assert "https://brew.sh" in result.error.message
        assert runner.calls == []

    def test_updates_homebrew_by_default(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        make_service().provision()
        assert mac_runner.calls[0] == ("brew", "update")

    def test_skip_update(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        result = make_service().provision(skip_update=True)
        assert mac_runner.ran(["brew", "update"]) == 0
        assert "brew_update" not in _steps(result)

    def test_failed_update_is_fatal(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        mac_runner.respond(["brew", "update"], returncode=1)
        result = make_service().provision()
        assert not result.ok
        assert result.error is not None
        assert result.error.message == "brew update failed with exit code 1"


class TestPackages:
    def test_installs_missing_formulas_only(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        result = make_service().provision(skip_update=True)
        assert result.ok
        assert mac_runner.ran(["brew", "install", "ngrok"]) == 1
        assert mac_runner.ran(["brew", "install", "pnpm"]) == 1
        assert mac_runner.ran(["brew", "install", "node"]) == 0
        assert mac_runner.ran(["brew", "install", "redis"]) == 0
        assert _steps(result)["package:ngrok"]["message"] == "Installed ngrok"
        assert _steps(result)["package:redis"]["message"] == "redis found"

    def test_starts_stopped_service(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        runner = FakeRunner(available=["brew", "node", "psql", "redis-server"])
        runner.respond(SERVICES_LIST, stdout="Name  Status\nredis none\npostgresql@15 started\n")
        result = make_service(runner=runner).provision(skip_update=True)
        assert runner.ran(["brew", "services", "start", "redis"]) == 1
        assert runner.ran(["brew", "services", "start", "postgresql@15"]) == 0
        assert _steps(result)["package:redis"]["detail"] == {"started": True}

    def test_other_postgres_major_counts_as_started(
        self, make_service: Callable[..., SetupService]
    ) -> None:
        runner = FakeRunner(available=["brew", "node", "psql", "redis-server"])
        runner.respond(SERVICES_LIST, stdout="postgresql@14 started\nredis started\n")
        make_service(runner=runner).provision(skip_update=True)
        assert runner.ran(["brew", "services", "start", "postgresql@15"]) == 0

    def test_fresh_service_install_is_started(
        self,
        make_service: Callable[..., SetupService],
        make_settings: Callable[..., BootSettings],
        mac_runner: FakeRunner,
    ) -> None:
        settings = make_settings(
            setup=SetupConfig(packages=[PackageSpec(formula="mysql", binary="mysql", service=True)])
        )
        make_service(settings=settings).provision(skip_update=True)
        assert mac_runner.calls[:2] == [
            ("brew", "install", "mysql"),
            ("brew", "services", "start", "mysql"),
        ]

    def test_failed_install_is_fatal(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        mac_runner.respond(["brew", "install", "ngrok"], returncode=1)
        result = make_service().provision(skip_update=True)
        assert not result.ok
        assert result.data["stage"] == "packages"
        assert "package:pnpm" not in _steps(result)


class TestNodeVersion:
    def test_current(self, make_service: Callable[..., SetupService]) -> None:
        step = _steps(make_service().provision(skip_update=True))["node_version"]
        assert step["status"] == "ok"
        assert step["detail"] == {"version": "20.11.1"}

    def test_outdated_is_upgraded_with_warning(
        self, make_service: Callable[..., SetupService]
    ) -> None:
        runner = make_mac_runner(node_version="v16.20.2\n")
        result = make_service(runner=runner).provision(skip_update=True)
        assert result.ok
        assert runner.ran(["brew", "install", "node"]) == 1
        step = _steps(result)["node_version"]
        assert step["status"] == "warn"
        assert "older than 18.0.0" in step["message"]

    def test_major_only_version_meets_minimum(
        self, make_service: Callable[..., SetupService]
    ) -> None:
        runner = make_mac_runner(node_version="v18\n")
        result = make_service(runner=runner).provision(skip_update=True)
        assert runner.ran(["brew", "install", "node"]) == 0
        assert _steps(result)["node_version"]["status"] == "ok"

    def test_unknown_version_warns(self, make_service: Callable[..., SetupService]) -> None:
        runner = make_mac_runner(node_version="", node_exit=1)
        step = _steps(make_service(runner=runner).provision(skip_update=True))["node_version"]
        assert step["message"] == "Could not determine the Node.js version"


class TestServices:
    def test_database_created(self, make_service: Callable[..., SetupService]) -> None:
        step = _steps(make_service().provision(skip_update=True))["database"]
        assert step["status"] == "ok"
        assert "penny_prototype created" in step["message"]

    def test_database_existing(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        mac_runner.respond(["createdb", "penny_prototype"], returncode=1)
        step = _steps(make_service().provision(skip_update=True))["database"]
        assert "already exists" in step["message"]

    def test_database_connection_failure_creates_user(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        mac_runner.respond(["psql", "-d", "penny_prototype", "-c", "SELECT 1;"], returncode=2)
        result = make_service().provision(skip_update=True)
        assert result.ok
        assert mac_runner.ran(["createuser", "-s", "penny"]) == 1
        assert mac_runner.ran(["createdb", "penny_prototype"]) == 2
        assert _steps(result)["database"]["status"] == "warn"

    def test_cache_must_answer(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        mac_runner.respond(["redis-cli", "ping"], returncode=1)
        result = make_service().provision(skip_update=True)
        assert not result.ok
        assert result.error is not None
        assert "brew services restart redis" in result.error.message
        assert result.data["stage"] == "services"
        assert mac_runner.ran(["npm", "install"]) == 0


class TestProject:
    def test_npm_when_pnpm_missing(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        result = make_service().provision(skip_update=True)
        assert mac_runner.ran(["npm", "install"]) == 1
        assert _steps(result)["dependencies"]["detail"] == {"manager": "npm"}

    def test_pnpm_preferred(self, make_service: Callable[..., SetupService]) -> None:
        runner = FakeRunner(available=["brew", "node", "psql", "redis-server", "ngrok", "pnpm"])
        runner.respond(SERVICES_LIST, stdout=STARTED)
        make_service(runner=runner).provision(skip_update=True)
        assert runner.ran(["pnpm", "install"]) == 1
        assert runner.ran(["npm", "install"]) == 0

    def test_dependency_failure_is_fatal(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        mac_runner.respond(["npm", "install"], returncode=1)
        result = make_service().provision(skip_update=True)
        assert not result.ok
        assert result.error is not None
        assert result.error.message == "npm install failed with exit code 1"

    def test_env_file_copied_from_example(
        self, make_service: Callable[..., SetupService], project_root: Path
    ) -> None:
        example = project_root / "config" / "prototype.env.example"
        example.parent.mkdir()
        example.write_text("OPENAI_API_KEY=\n", encoding="utf-8")
        result = make_service().provision(skip_update=True)
        target = project_root / "config" / "prototype.env"
        assert target.read_text(encoding="utf-8") == "OPENAI_API_KEY=\n"
        assert _steps(result)["env_file"]["status"] == "warn"

    def test_existing_env_file_untouched(
        self, make_service: Callable[..., SetupService], project_root: Path
    ) -> None:
        target = project_root / "config" / "prototype.env"
        target.parent.mkdir()
        target.write_text("OPENAI_API_KEY=sk-live\n", encoding="utf-8")
        (target.parent / "prototype.env.example").write_text("OPENAI_API_KEY=\n")
        result = make_service().provision(skip_update=True)
        assert target.read_text(encoding="utf-8") == "OPENAI_API_KEY=sk-live\n"
        assert _steps(result)["env_file"]["status"] == "ok"

    def test_missing_example_warns(self, make_service: Callable[..., SetupService]) -> None:
        step = _steps(make_service().provision(skip_update=True))["env_file"]
        assert step["status"] == "warn"
        assert "not found" in step["message"]

    def test_generate_failure_is_fatal(
        self, make_service: Callable[..., SetupService], mac_runner: FakeRunner
    ) -> None:
        mac_runner.respond(["npx", "prisma", "generate"], returncode=1)
        result = make_service().provision(skip_update=True)
        assert not result.ok
        assert result.data["stage"] == "project"

    def test_logs_dir_created(
        self, make_service: Callable[..., SetupService], project_root: Path
    ) -> None:
        make_service().provision(skip_update=True)
        assert (project_root / "logs").is_dir()


class TestResult:
    def test_next_steps_on_success(self, make_service: Callable[..., SetupService]) -> None:
        result = make_service().provision(skip_update=True)
        assert result.op == "setup"
        next_steps = result.data["next_steps"]
        assert next_steps[0].startswith("Edit config/prototype.env")
        assert any("ngrok http 3000" in step for step in next_steps)

    def test_step_order(self, make_service: Callable[..., SetupService]) -> None:
        result = make_service().provision()
        assert [s["name"] for s in result.data["steps"]] == [
            "platform",
            "homebrew",
            "brew_update",
            "package:node",
            "package:postgresql@15",
            "package:redis",
            "package:ngrok",
            "package:pnpm",
            "node_version",
            "database",
            "cache",
            "dependencies",
            "env_file",
            "generate_client",
            "logs_dir",
        ]
