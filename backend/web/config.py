"""
Configuration and startup security checks for roster.

Why: Read every environment variable in one place, with explicit defaults, and
refuse to start production with obviously insecure settings while keeping
local development permissive.

Permissions: The caller needs no special privileges. Functions here only read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os

DEV_JWT_SECRET = "dev-secret-change-me"
ALLOWED_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


@dataclass(frozen=True)
class Settings:
    environment: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_issuer: str | None = None
    seed_students: tuple[str, ...] = field(default_factory=tuple)
    log_level: int = logging.INFO

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.environment)


def _parse_seed(raw: str) -> tuple[str, ...]:
    items = [part.strip() for part in (raw or "").split(",")]
    # Keep first occurrence order, drop empties/duplicates
    return tuple(dict.fromkeys(i for i in items if i))


def _parse_log_level(raw: str) -> int:
    name = (raw or "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"ROSTER_LOG_LEVEL must be a logging level name, got: {raw!r}")
    return level


def load_settings() -> Settings:
    """Parse and validate configuration from environment variables.

    Behavior:
        - `ROSTER_ENV` selects dev/test/prod (default: dev).
        - `JWT_SECRET` signs access tokens; dev falls back to a placeholder.
        - `JWT_ALGORITHM` must be one of HS256/HS384/HS512.
        - `ROSTER_SEED_STUDENTS` lists student ids registered at startup.
    """
    env = (os.getenv("ROSTER_ENV") or "dev").strip().lower()
    algorithm = (os.getenv("JWT_ALGORITHM") or "HS256").strip().upper()
    if algorithm not in ALLOWED_JWT_ALGORITHMS:
        raise ValueError(f"JWT_ALGORITHM must be one of {', '.join(ALLOWED_JWT_ALGORITHMS)}")
    issuer = (os.getenv("JWT_ISSUER") or "").strip() or None
    return Settings(
        environment=env,
        jwt_secret=(os.getenv("JWT_SECRET") or "").strip() or DEV_JWT_SECRET,
        jwt_algorithm=algorithm,
        jwt_issuer=issuer,
        seed_students=_parse_seed(os.getenv("ROSTER_SEED_STUDENTS", "")),
        log_level=_parse_log_level(os.getenv("ROSTER_LOG_LEVEL", "INFO")),
    )


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/staging only):
    - JWT_SECRET must be set, not the dev placeholder, and at least 32 chars.
    - Seeding students from the environment is a dev convenience only.
    """
    env = os.getenv("ROSTER_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    secret = (os.getenv("JWT_SECRET", "") or "").strip()
    if not secret or secret == DEV_JWT_SECRET or secret.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: JWT_SECRET is unset or a placeholder in production."
        )
    if len(secret) < 32:
        raise SystemExit(
            "Refusing to start: JWT_SECRET must be at least 32 characters in production."
        )

    if (os.getenv("ROSTER_SEED_STUDENTS", "") or "").strip():
        raise SystemExit(
            "Refusing to start: ROSTER_SEED_STUDENTS must be empty in production/staging."
        )
