"""CacheService — durable, time-gated key-value cache with two namespaces.

The service owns its session factory and is constructed once at process
start (API lifespan or CLI command); callers receive it explicitly. There is
no close step of its own: the engine behind the factory is disposed by
whoever created it.

Freshness is the only expiry rule: an entry is returned while
``now - timestamp < ttl_ms``. Stale rows are left in place until the next
write for the same key overwrites them.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from starlens.dao.base import BaseDAO
from starlens.dao.cache_dao import RepoCacheDAO, UserCacheDAO

log = structlog.get_logger("starlens.cache")


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheService:
    """Repository-result and user-profile cache backed by SQL tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl_ms: int,
        *,
        repo_dao: RepoCacheDAO | None = None,
        user_dao: UserCacheDAO | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._session_factory = session_factory
        self._ttl_ms = ttl_ms
        self._repo_dao = repo_dao or RepoCacheDAO()
        self._user_dao = user_dao or UserCacheDAO()
        self._clock = clock

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    # ── repo namespace ────────────────────────────────────────────────────

    async def get_repo(self, repo_id: str) -> dict[str, Any] | None:
        """Return the cached analysis result for ``owner/repo`` if fresh."""
        return await self._get(self._repo_dao, repo_id)

    async def put_repo(self, repo_id: str, payload: dict[str, Any]) -> None:
        await self._put(self._repo_dao, repo_id, payload)

    # ── user namespace ────────────────────────────────────────────────────

    async def get_user(self, login: str) -> dict[str, Any] | None:
        """Return the cached profile for *login* if fresh."""
        return await self._get(self._user_dao, login)

    async def put_user(self, login: str, payload: dict[str, Any]) -> None:
        await self._put(self._user_dao, login, payload)

    # ── internal ──────────────────────────────────────────────────────────

    def is_fresh(self, timestamp: int) -> bool:
        return self._clock() - timestamp < self._ttl_ms

    async def _get(self, dao: BaseDAO, key: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            row = await dao.get_by_key(session, key)
        if row is None:
            return None
        if not self.is_fresh(row.timestamp):
            log.debug("cache.stale", table=dao.model.__tablename__, key=key)
            return None
        return json.loads(row.data)

    async def _put(self, dao: BaseDAO, key: str, payload: dict[str, Any]) -> None:
        data = json.dumps(payload)
        async with self._session_factory() as session:
            async with session.begin():
                await dao.upsert(session, key, data, self._clock())
