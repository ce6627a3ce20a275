"""
Service settings, read from environment variables.

`load_settings()` is called once by `create_app`; the resulting frozen
`Settings` is carried on the application context. Defaults target a local
CockroachDB (port 26257, database `pavedroad`).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import quote

from . import db


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name, "")
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class Settings:
    # Database
    database_url: str = ""
    db_username: str = "root"
    db_password: str = ""
    db_name: str = "pavedroad"
    db_host: str = "127.0.0.1"
    db_port: int = 26257
    db_sslmode: str = "disable"
    db_schema: str = "acme"
    db_pool_min: int = 1
    db_pool_max: int = 5
    db_command_timeout: float = 30

    # HTTP
    http_host: str = "127.0.0.1"
    http_port: int = 8082
    http_shutdown_timeout: int = 15
    http_read_timeout: int = 60
    http_write_timeout: float = 60
    log_path: str = "logs/films.log"
    log_level: str = "INFO"

    # Addressing
    api_version: str = "/api/v1"
    namespace_segment: str = "namespace"
    default_namespace: str = "pavedroad.io"
    list_sentinel: str = "LIST"
    resource_types: tuple[str, ...] = field(default=("films",))

    # PUT against an identifier that was never allocated: reject (404) or create.
    put_creates_missing: bool = False

    def dsn(self) -> tuple[str, str | None]:
        """
        Return (dsn, ssl_mode) for asyncpg.

        DATABASE_URL wins when set; otherwise the DSN is built from parts.
        """
        if self.database_url:
            url, sslmode = db.split_sslmode(self.database_url)
            return url, sslmode or self.db_sslmode

        credentials = quote(self.db_username, safe="")
        if self.db_password:
            credentials += ":" + quote(self.db_password, safe="")
        url = f"postgresql://{credentials}@{self.db_host}:{self.db_port}/{self.db_name}"
        return url, self.db_sslmode


def load_settings() -> Settings:
    return Settings(
        database_url=os.environ.get("DATABASE_URL", "").strip(),
        db_username=_env_str("DB_USERNAME", "root"),
        db_password=os.environ.get("DB_PASSWORD", ""),
        db_name=_env_str("DB_NAME", "pavedroad"),
        db_host=_env_str("DB_IP", "127.0.0.1"),
        db_port=_env_int("DB_PORT", 26257),
        db_sslmode=_env_str("DB_SSLMODE", "disable"),
        db_schema=_env_str("DB_SCHEMA", "acme"),
        db_pool_min=_env_int("DB_POOL_MIN", 1),
        db_pool_max=_env_int("DB_POOL_MAX", 5),
        db_command_timeout=_env_float("DB_COMMAND_TIMEOUT", 30),
        http_host=_env_str("HTTP_IP", "127.0.0.1"),
        http_port=_env_int("HTTP_PORT", 8082),
        http_shutdown_timeout=_env_int("HTTP_SHUTDOWN_TIMEOUT", 15),
        http_read_timeout=_env_int("HTTP_READ_TIMEOUT", 60),
        http_write_timeout=_env_float("HTTP_WRITE_TIMEOUT", 60),
        log_path=_env_str("HTTP_LOG", "logs/films.log"),
        log_level=_env_str("LOG_LEVEL", "INFO"),
        api_version="/" + _env_str("API_VERSION", "/api/v1").strip("/"),
        default_namespace=_env_str("DEFAULT_NAMESPACE", "pavedroad.io"),
        resource_types=_env_list("RESOURCE_TYPES", ("films",)),
        put_creates_missing=_env_bool("PUT_CREATES_MISSING", False),
    )
