"""Fixtures that isolate command tests from the host machine."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest

from tests.conftest import DATABASE_URL, REDIS_URL, FakeRunner


class ExecSpy:
    """Records the server handoff instead of replacing the test process."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.error: OSError | None = None

    def __call__(
        self, argv: list[str], env: Mapping[str, str] | None = None, *, cwd: Path | None = None
    ) -> None:
        self.calls.append(list(argv))
        if self.error is not None:
            raise self.error


@pytest.fixture
def cmd_runner(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    """Every service built by a command gets this runner."""
    runner = FakeRunner(available=["openssl", "brew", "node", "psql", "redis-server"])

    def factory(*args: Any, **kwargs: Any) -> FakeRunner:
        return runner

    monkeypatch.setattr("railboot.services.base.CommandRunner", factory)
    return runner


@pytest.fixture
def exec_spy(monkeypatch: pytest.MonkeyPatch) -> ExecSpy:
    spy = ExecSpy()
    monkeypatch.setattr("railboot.services.bootstrap.exec_replace", spy)
    return spy


@pytest.fixture
def deploy_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", DATABASE_URL)
    monkeypatch.setenv("REDIS_URL", REDIS_URL)


@pytest.fixture
def _isolated_boot(
    project_root: Path,
    cmd_runner: FakeRunner,
    exec_spy: ExecSpy,
    resolvable_dns: list[str],
    reachable_database: list[str],
) -> None:
    """Project dir, fake tools, fake network, no exec."""
