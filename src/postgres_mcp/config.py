from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlsplit

import yaml

from .errors import ConfigError


@dataclass
class DatabaseConfig:
    url: str
    schema: str = "public"
    ssl: str | None = None
    pool_min_size: int = 1
    pool_max_size: int = 10


@dataclass
class ServerConfig:
    environment: str = "default"
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class ObservabilityConfig:
    log_level: str = "info"


@dataclass
class AppConfig:
    database: DatabaseConfig
    server: ServerConfig
    observability: ObservabilityConfig


_ENV_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

_DATABASE_SCHEMES = {"postgres", "postgresql"}

_SSL_MODES = {"disable", "allow", "prefer", "require", "verify-ca", "verify-full"}

_TRANSPORTS = {"stdio", "http"}


def _resolve_env(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):

        def _lookup(match: re.Match[str]) -> str:
            key = match.group(1)
            if key not in env:
                raise ConfigError(f"Environment variable {key} is required but not set")
            return env[key]

        return _ENV_RE.sub(_lookup, value)
    if isinstance(value, list):
        return [_resolve_env(v, env) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v, env) for k, v in value.items()}
    return value


def _section(raw: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section {name} must be a mapping")
    return dict(value)


def _positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc
    if number <= 0:
        raise ConfigError(f"{field_name} must be greater than 0")
    return number


def _validate_database_url(url: str | None) -> str:
    if not url:
        raise ConfigError("A database URL is required")
    parts = urlsplit(url)
    if parts.scheme not in _DATABASE_SCHEMES:
        raise ConfigError(f"Unsupported database URL scheme: {parts.scheme or '<none>'}")
    try:
        parts.port
    except ValueError as exc:
        raise ConfigError(f"Invalid port in database URL: {exc}") from exc
    return url


def build_config(
    raw: Mapping[str, Any],
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
) -> AppConfig:
    """Build an AppConfig from a raw mapping.

    ``overrides`` is keyed by section name; ``None`` values are ignored so
    that unset command-line flags fall through to the file.
    """
    env = os.environ if env is None else env
    sections: dict[str, dict[str, Any]] = {}
    for name in ("database", "server", "observability"):
        given = {k: v for k, v in (overrides or {}).get(name, {}).items() if v is not None}
        # overridden keys never consult the environment
        from_file = {k: v for k, v in _section(raw, name).items() if k not in given}
        sections[name] = {**_resolve_env(from_file, env), **given}

    database_raw = sections["database"]
    server_raw = sections["server"]
    observability_raw = sections["observability"]

    # unset leaves sslmode to the URL and the PG* environment
    ssl_mode = database_raw.get("ssl")
    if ssl_mode is not None:
        ssl_mode = str(ssl_mode).lower()
        if ssl_mode not in _SSL_MODES:
            raise ConfigError(f"Unsupported ssl mode: {ssl_mode}")

    database = DatabaseConfig(
        url=_validate_database_url(database_raw.get("url")),
        schema=str(database_raw.get("schema", "public")),
        ssl=ssl_mode,
        pool_min_size=_positive_int(database_raw.get("pool_min_size", 1), "pool_min_size"),
        pool_max_size=_positive_int(database_raw.get("pool_max_size", 10), "pool_max_size"),
    )
    if database.pool_min_size > database.pool_max_size:
        raise ConfigError("pool_min_size cannot exceed pool_max_size")
    if not database.schema:
        raise ConfigError("Catalog schema cannot be empty")

    server = ServerConfig(
        environment=str(server_raw.get("environment") or "default"),
        transport=str(server_raw.get("transport", "stdio")).lower(),
        host=str(server_raw.get("host", "0.0.0.0")),
        port=_positive_int(server_raw.get("port", 8000), "port"),
    )
    if server.transport not in _TRANSPORTS:
        raise ConfigError(f"Unsupported transport: {server.transport}")
    if server.port > 65535:
        raise ConfigError("port must be at most 65535")

    observability = ObservabilityConfig(
        log_level=str(observability_raw.get("log_level", "info")),
    )

    return AppConfig(database=database, server=server, observability=observability)


def load_config(
    path: str | Path,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
) -> AppConfig:
    raw = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a mapping")
    return build_config(raw, env, overrides)
