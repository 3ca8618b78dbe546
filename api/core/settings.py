"""
Process settings read from the environment.

Settings are resolved once at startup (`Settings.from_env()`) and handed to
the app factory. Nothing else in the codebase reads `os.environ`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

BACKENDS = ("postgres", "memory")
TRACE_EXPORTERS = ("none", "console")


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


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


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_command_timeout_s: float = 30.0

    persons_backend: str = "postgres"
    persons_table: str = "users"

    # No default secret: an empty value is reported as a misconfiguration.
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_leeway_s: int = 0
    auth_query_param: str = "jwt"
    auth_cookie_name: str = "jwt"

    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "persons-api"
    trace_exporter: str = "none"

    def __post_init__(self) -> None:
        if self.persons_backend not in BACKENDS:
            raise ValueError(
                f"PERSONS_BACKEND must be one of {', '.join(BACKENDS)}; got {self.persons_backend!r}."
            )
        if self.trace_exporter not in TRACE_EXPORTERS:
            raise ValueError(
                f"TRACE_EXPORTER must be one of {', '.join(TRACE_EXPORTERS)}; got {self.trace_exporter!r}."
            )

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", "").strip(),
            db_pool_min_size=_env_int("DB_POOL_MIN_SIZE", 1),
            db_pool_max_size=_env_int("DB_POOL_MAX_SIZE", 5),
            db_command_timeout_s=_env_float("DB_COMMAND_TIMEOUT_S", 30.0),
            persons_backend=_env_str("PERSONS_BACKEND", "postgres").lower(),
            persons_table=_env_str("PERSONS_TABLE", "users"),
            jwt_secret=os.environ.get("JWT_SECRET", "").strip(),
            jwt_algorithm=_env_str("JWT_ALG", "HS256"),
            jwt_leeway_s=_env_int("JWT_LEEWAY_S", 0),
            auth_query_param=_env_str("AUTH_QUERY_PARAM", "jwt"),
            auth_cookie_name=_env_str("AUTH_COOKIE_NAME", "jwt"),
            log_level=_env_str("LOG_LEVEL", "INFO"),
            log_format=_env_str("LOG_FORMAT", "json").lower(),
            service_name=_env_str("OTEL_SERVICE_NAME", "persons-api"),
            trace_exporter=_env_str("TRACE_EXPORTER", "none").lower(),
        )
