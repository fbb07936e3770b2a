"""Runtime settings — read once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///github_cache.sqlite"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Pipeline tunables and service wiring."""

    github_api_key: str | None = None
    database_url: str = DEFAULT_DATABASE_URL
    cache_ttl_hours: float = 200.0
    max_users: int = 1000
    concurrency: int = 30
    batch_delay: float = 1.0
    rate_limit_delay: float = 15.0
    rate_limit_max_retries: int = 25
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def cache_ttl_ms(self) -> int:
        return int(self.cache_ttl_hours * 3600 * 1000)

    @classmethod
    def from_env(cls) -> Settings:
        cors = os.environ.get("STARLENS_CORS_ORIGINS", "http://localhost:3000")
        return cls(
            github_api_key=os.environ.get("GITHUB_API_KEY") or None,
            database_url=os.environ.get("STARLENS_DATABASE_URL", DEFAULT_DATABASE_URL),
            cache_ttl_hours=_env_float("STARLENS_CACHE_TTL_HOURS", 200.0),
            max_users=_env_int("STARLENS_MAX_USERS", 1000),
            concurrency=_env_int("STARLENS_CONCURRENCY", 30),
            batch_delay=_env_float("STARLENS_BATCH_DELAY_SECONDS", 1.0),
            rate_limit_delay=_env_float("STARLENS_RATE_LIMIT_DELAY_SECONDS", 15.0),
            rate_limit_max_retries=_env_int("STARLENS_RATE_LIMIT_MAX_RETRIES", 25),
            cors_origins=tuple(o.strip() for o in cors.split(",") if o.strip()),
        )
