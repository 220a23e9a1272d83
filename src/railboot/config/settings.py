"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``RAILBOOT_*`` prefix
  3. TOML file    — ``railboot.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

The deployment connection strings (``DATABASE_URL``, ``REDIS_URL``) are
not railboot settings: they belong to the platform and are read
unprefixed by :class:`DeployEnvironment`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsError

from railboot.config.discovery import find_config
from railboot.config.models import (
    ClientConfig,
    DiagnosticsConfig,
    MigrateConfig,
    ServerConfig,
    SetupConfig,
)

REQUIRED_ENV_VARS = ("DATABASE_URL", "REDIS_URL")


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``railboot.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class BootSettings(BaseSettings):
    """Unified settings for the railboot CLI.

    Stored on the :class:`~railboot.commands._context.AppContext` created
    by the root CLI group.

    Attributes:
        project_root: Directory commands run in (parent of
            ``railboot.toml``, or CWD if no config found).
        config_path: Resolved config file, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "RAILBOOT_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    migrate: MigrateConfig = Field(default_factory=MigrateConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    setup: SetupConfig = Field(default_factory=SetupConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> BootSettings:
        """Construct settings from CLI invocation.

        Discovers ``railboot.toml`` via walk-up (or explicit *config_path*),
        resolves *project_root* from the config file's parent directory,
        and merges CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(project_root)

        resolved_root = project_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                project_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        except (SettingsError, ValidationError) as exc:
            raise click.ClickException(f"Invalid railboot settings: {exc}") from exc
        finally:
            _tls.toml_path = None


class DeployEnvironment(BaseSettings):
    """Connection strings injected by the hosting platform.

    Read once at startup. Empty and unset are treated the same.
    """

    model_config = {"frozen": True, "extra": "ignore"}

    database_url: str = ""
    redis_url: str = ""

    def missing(self) -> list[str]:
        """Names of required variables that are unset or blank, in check order."""
        values = {"DATABASE_URL": self.database_url, "REDIS_URL": self.redis_url}
        return [name for name in REQUIRED_ENV_VARS if not values[name].strip()]
