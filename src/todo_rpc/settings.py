from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/todos.db'
    - DB_POOL_SIZE: maximum number of pooled sqlite connections (default: 5)
    - DB_INIT_RETRIES: schema initialization attempts before giving up (default: 5)
    - DB_INIT_DELAY_SECONDS: delay between schema initialization attempts (default: 3)
    - JWT_SECRET: key used to sign bearer tokens; a random per-process key when unset
    - TOKEN_EXPIRES_SECONDS: lifetime of issued tokens (default: 3600)
    - SEED_DEFAULT_USER: 'false' to skip creating the default user (default: true)
    - DEFAULT_USERNAME / DEFAULT_PASSWORD: credentials of the seeded user
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name (default: INFO)
    """

    sqlite_db_path: str
    db_pool_size: int
    db_init_retries: int
    db_init_delay_seconds: float
    jwt_secret: str
    jwt_secret_generated: bool
    token_expires_seconds: int
    seed_default_user: bool
    default_username: str
    default_password: str
    cors_allow_origins: List[str]
    log_level: str
    service_name: str = "todo-rpc"
    service_description: str = "JSON-RPC 2.0 service for managing a persisted list of todo items."


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    secret = os.getenv("JWT_SECRET") or ""
    generated = not secret
    if generated:
        secret = secrets.token_urlsafe(32)

    return Settings(
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todos.db").strip(),
        db_pool_size=_parse_int(_get_env("DB_POOL_SIZE", "5"), 5, minimum=1),
        db_init_retries=_parse_int(_get_env("DB_INIT_RETRIES", "5"), 5, minimum=1),
        db_init_delay_seconds=_parse_float(_get_env("DB_INIT_DELAY_SECONDS", "3"), 3.0),
        jwt_secret=secret,
        jwt_secret_generated=generated,
        token_expires_seconds=_parse_int(_get_env("TOKEN_EXPIRES_SECONDS", "3600"), 3600, minimum=1),
        seed_default_user=_parse_bool(_get_env("SEED_DEFAULT_USER", "true"), True),
        default_username=_get_env("DEFAULT_USERNAME", "testuser").strip(),
        default_password=_get_env("DEFAULT_PASSWORD", "password123"),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
