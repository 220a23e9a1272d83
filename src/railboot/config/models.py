"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, railboot.toml only contains
overrides. A stock Railway deploy of the Node service needs no file.

Command fields accept either an argv list or a shell-style string::

    [migrate]
    deploy_command = "npx prisma migrate deploy"
    push_command = ["npx", "prisma", "db", "push", "--accept-data-loss"]
"""

from __future__ import annotations

import json
import shlex
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field
from pydantic_settings import NoDecode


def _split_command(value: Any) -> Any:
    """Accept an argv list, a JSON array string, or a shell-style string."""
    if isinstance(value, str):
        if value.lstrip().startswith("["):
            return json.loads(value)
        return shlex.split(value)
    return value


# NoDecode: RAILBOOT_* env values reach the validator as raw strings.
Command = Annotated[list[str], NoDecode, BeforeValidator(_split_command)]


# --- railboot.toml sections ---


class MigrateConfig(BaseModel):
    """[migrate] section."""

    model_config = {"frozen": True}

    deploy_command: Command = Field(
        default_factory=lambda: ["npx", "prisma", "migrate", "deploy"]
    )
    push_command: Command = Field(
        default_factory=lambda: ["npx", "prisma", "db", "push", "--accept-data-loss"]
    )
    fallback_to_push: bool = True


class ServerConfig(BaseModel):
    """[server] section."""

    model_config = {"frozen": True}

    command: Command = Field(default_factory=lambda: ["node", "dist/server.js"])


class ClientConfig(BaseModel):
    """[client] section: the generated ORM client."""

    model_config = {"frozen": True}

    enabled: bool = True
    directory: str = "node_modules/.prisma/client"
    load_command: Command = Field(
        default_factory=lambda: [
            "node",
            "-e",
            "const { PrismaClient } = require('@prisma/client');",
        ]
    )
    fatal_pattern: str = "libssl"


class DiagnosticsConfig(BaseModel):
    """[diagnostics] section."""

    model_config = {"frozen": True}

    tls: bool = True
    tls_command: str = "openssl"
    tls_library: str = "libssl.so"
    library_index_command: Command = Field(default_factory=lambda: ["ldconfig", "-p"])
    cache_dns: bool = True
    cache_ping: bool = False
    database: bool = True
    connect_timeout: int | None = None


class PackageSpec(BaseModel):
    """One Homebrew formula the setup command ensures."""

    model_config = {"frozen": True}

    formula: str
    binary: str
    service: bool = False


def _default_packages() -> list[PackageSpec]:
    return [
        PackageSpec(formula="node", binary="node"),
        PackageSpec(formula="postgresql@15", binary="psql", service=True),
        PackageSpec(formula="redis", binary="redis-server", service=True),
        PackageSpec(formula="ngrok", binary="ngrok"),
        PackageSpec(formula="pnpm", binary="pnpm"),
    ]


class SetupConfig(BaseModel):
    """[setup] section: local macOS provisioning."""

    model_config = {"frozen": True}

    packages: list[PackageSpec] = Field(default_factory=_default_packages)
    min_node_version: str = "18.0.0"
    database_name: str = "penny_prototype"
    database_user: str = "penny"
    env_file: str = "config/prototype.env"
    env_example: str = "config/prototype.env.example"
    logs_dir: str = "logs"
    generate_command: Command = Field(default_factory=lambda: ["npx", "prisma", "generate"])
    tunnel_port: int = 3000
