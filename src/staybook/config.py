"""Runtime settings loaded from the environment.

All values are read once per call to get_settings(); nothing is cached so tests
can patch os.environ freely.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppRole = Literal["public", "admin"]

DEFAULT_CONNECT_TIMEOUT_SECONDS = 5
DEFAULT_STATEMENT_TIMEOUT_MS = 5000


@dataclass(frozen=True)
class OidcSettings:
    """OIDC verification settings. All None means auth is not configured."""

    issuer: str | None = None
    audience: str | None = None
    jwks_url: str | None = None
    authorized_parties: tuple[str, ...] = ()

    @property
    def configured(self) -> bool:
        return bool(self.issuer and self.audience and self.jwks_url)


@dataclass(frozen=True)
class Settings:
    """Process settings.

    Attributes:
        database_url: libpq DSN or postgres:// URL.
        db_password: Password injected when database_url carries none.
        connect_timeout_seconds: Upper bound for opening a DB connection.
        statement_timeout_ms: Upper bound for a single SQL statement.
        app_role: Which route groups to mount.
        log_level: Level name for staybook loggers.
        oidc: Token verification settings.
    """

    database_url: str | None = None
    db_password: str | None = None
    connect_timeout_seconds: int = DEFAULT_CONNECT_TIMEOUT_SECONDS
    statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS
    app_role: AppRole = "public"
    log_level: str = "INFO"
    oidc: OidcSettings = field(default_factory=OidcSettings)


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _log_level_env() -> str:
    level = os.environ.get("LOG_LEVEL", "").strip().upper() or "INFO"
    if level not in LOG_LEVELS:
        raise RuntimeError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {level!r}")
    return level


def _parse_parties(raw: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def get_settings() -> Settings:
    """Build Settings from the current environment.

    Raises:
        RuntimeError: If a numeric variable is malformed, or APP_ROLE or
            LOG_LEVEL is unknown.
    """
    role = os.environ.get("APP_ROLE", "public").strip() or "public"
    if role not in ("public", "admin"):
        raise RuntimeError(f"APP_ROLE must be 'public' or 'admin', got {role!r}")

    return Settings(
        database_url=os.environ.get("DATABASE_URL") or None,
        db_password=os.environ.get("DB_PASSWORD") or None,
        connect_timeout_seconds=_int_env(
            "DB_CONNECT_TIMEOUT_SECONDS", DEFAULT_CONNECT_TIMEOUT_SECONDS
        ),
        statement_timeout_ms=_int_env(
            "DB_STATEMENT_TIMEOUT_MS", DEFAULT_STATEMENT_TIMEOUT_MS
        ),
        app_role=role,  # type: ignore[arg-type]
        log_level=_log_level_env(),
        oidc=OidcSettings(
            issuer=os.environ.get("OIDC_ISSUER") or None,
            audience=os.environ.get("OIDC_AUDIENCE") or None,
            jwks_url=os.environ.get("OIDC_JWKS_URL") or None,
            authorized_parties=_parse_parties(
                os.environ.get("OIDC_AUTHORIZED_PARTIES", "")
            ),
        ),
    )
