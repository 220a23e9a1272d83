"""Capability probes for the optional boot diagnostics.

Each probe answers one question with a tri-state :class:`ProbeResult`:
``present``, ``absent``, or ``unknown`` when the question could not be
asked (missing index tool, missing database driver). Probes never
raise for the conditions they test; callers decide what a state means.
"""

from __future__ import annotations

import socket
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from redis.exceptions import RedisError
from sqlalchemy.exc import NoSuchModuleError, SQLAlchemyError

from railboot.domain.models import ProbeResult
from railboot.domain.types import ProbeState
from railboot.domain.urls import sqlalchemy_url
from railboot.infrastructure import cache, database, network
from railboot.infrastructure.shell import EXIT_NOT_FOUND, CommandRunner


class Probe(ABC):
    """One optional capability check."""

    name: str = "probe"

    @abstractmethod
    def probe(self) -> ProbeResult: ...

    def _result(self, state: ProbeState, detail: str = "") -> ProbeResult:
        return ProbeResult(name=self.name, state=state, detail=detail)


class CommandProbe(Probe):
    """Is *command* on PATH? Records its version line when it is."""

    def __init__(
        self,
        runner: CommandRunner,
        command: str,
        version_args: Sequence[str] = ("version",),
    ) -> None:
        self.name = f"command:{command}"
        self._runner = runner
        self._command = command
        self._version_args = tuple(version_args)

    def probe(self) -> ProbeResult:
        if self._runner.which(self._command) is None:
            return self._result(ProbeState.ABSENT, f"{self._command} not found on PATH")
        outcome = self._runner.run([self._command, *self._version_args])
        version = outcome.stdout.strip().splitlines()[0] if outcome.stdout.strip() else ""
        return self._result(ProbeState.PRESENT, version)


class LibraryIndexProbe(Probe):
    """Is *library* listed in the dynamic-linker cache (``ldconfig -p``)?"""

    def __init__(self, runner: CommandRunner, index_command: Sequence[str], library: str) -> None:
        self.name = f"library:{library}"
        self._runner = runner
        self._index_command = list(index_command)
        self._library = library

    def probe(self) -> ProbeResult:
        outcome = self._runner.run(self._index_command)
        if outcome.returncode == EXIT_NOT_FOUND:
            return self._result(ProbeState.UNKNOWN, f"{self._index_command[0]} unavailable")
        if not outcome.ok:
            return self._result(ProbeState.UNKNOWN, outcome.output)
        for line in outcome.stdout.splitlines():
            if self._library in line:
                return self._result(ProbeState.PRESENT, line.strip())
        return self._result(ProbeState.ABSENT, f"{self._library} not in library index")


class DnsProbe(Probe):
    """Does *host* resolve over either address family?"""

    def __init__(self, host: str) -> None:
        self.name = f"dns:{host}"
        self._host = host

    def probe(self) -> ProbeResult:
        try:
            addresses = network.resolve_host(self._host)
        except (socket.gaierror, UnicodeError) as exc:
            return self._result(ProbeState.ABSENT, str(exc))
        return self._result(ProbeState.PRESENT, ", ".join(addresses))


class PathProbe(Probe):
    """Does a directory exist?"""

    def __init__(self, path: Path) -> None:
        self.name = f"path:{path.name}"
        self._path = path

    def probe(self) -> ProbeResult:
        if self._path.is_dir():
            return self._result(ProbeState.PRESENT, str(self._path))
        return self._result(ProbeState.ABSENT, f"{self._path} not found")


class ClientLoadProbe(Probe):
    """Can the generated client module be loaded in a throwaway subprocess?"""

    name = "client_load"

    def __init__(self, runner: CommandRunner, load_command: Sequence[str]) -> None:
        self._runner = runner
        self._load_command = list(load_command)

    def probe(self) -> ProbeResult:
        outcome = self._runner.run(self._load_command)
        if outcome.returncode == EXIT_NOT_FOUND:
            return self._result(ProbeState.UNKNOWN, outcome.output)
        if outcome.ok:
            return self._result(ProbeState.PRESENT)
        return self._result(ProbeState.ABSENT, outcome.output)


class DatabaseProbe(Probe):
    """Can a connection to the database be opened and used?"""

    name = "database"

    def __init__(self, url: str, *, connect_timeout: int | None = None) -> None:
        self._url = sqlalchemy_url(url)
        self._connect_timeout = connect_timeout

    def probe(self) -> ProbeResult:
        try:
            dialect = database.verify_connection(
                self._url, connect_timeout=self._connect_timeout
            )
        except (NoSuchModuleError, ImportError) as exc:
            return self._result(ProbeState.UNKNOWN, f"driver unavailable: {exc}")
        except (SQLAlchemyError, ValueError, OSError) as exc:
            return self._result(ProbeState.ABSENT, _first_line(exc))
        return self._result(ProbeState.PRESENT, dialect)


class CachePingProbe(Probe):
    """Does the cache answer ``PING``?"""

    name = "cache_ping"

    def __init__(self, url: str, *, timeout: int | None = None) -> None:
        self._url = url
        self._timeout = timeout

    def probe(self) -> ProbeResult:
        try:
            answered = cache.ping(self._url, timeout=self._timeout)
        except (RedisError, ValueError, OSError) as exc:
            return self._result(ProbeState.ABSENT, _first_line(exc))
        if not answered:
            return self._result(ProbeState.ABSENT, "no PONG")
        return self._result(ProbeState.PRESENT, "PONG")


def _first_line(exc: BaseException) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__
