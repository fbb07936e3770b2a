"""Batch scheduler — bounded-concurrency enrichment with inter-batch pacing."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import structlog

from starlens.engines.ranker.concurrency import gather_or_cancel
from starlens.engines.ranker.models import InfluencerProfile

log = structlog.get_logger("starlens.engine")

DEFAULT_CONCURRENCY = 30
DEFAULT_BATCH_DELAY = 1.0  # seconds

EnrichFn = Callable[[str], Awaitable[InfluencerProfile | None]]
BatchCallback = Callable[[int, int, int], Awaitable[None]]


def select_candidates(
    stargazers: Sequence[dict],
    forks: Sequence[dict],
    max_users: int,
) -> list[str]:
    """Deduplicate stargazer and fork-owner logins, first seen first, capped at *max_users*.

    Entries without a login (deleted accounts come back as ``null``) are skipped.
    """
    logins: dict[str, None] = {}
    for user in stargazers:
        login = (user or {}).get("login")
        if login:
            logins.setdefault(login, None)
    for fork in forks:
        login = ((fork or {}).get("owner") or {}).get("login")
        if login:
            logins.setdefault(login, None)
    return list(logins)[:max_users]


class BatchScheduler:
    """Enrich logins in fixed-size concurrent groups, one group at a time."""

    def __init__(
        self,
        enrich: EnrichFn,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._enrich = enrich
        self._concurrency = concurrency
        self._batch_delay = batch_delay
        self._sleep = sleep

    async def rank(
        self,
        logins: Sequence[str],
        on_batch: BatchCallback | None = None,
    ) -> list[InfluencerProfile]:
        """Enrich every login and return the profiles sorted by score, highest first.

        ``on_batch(start, end, total)`` is awaited before each group starts.
        Users whose enrichment returns None are dropped. Ties keep encounter
        order.
        """
        total = len(logins)
        batch_count = -(-total // self._concurrency)
        profiles: list[InfluencerProfile] = []

        for start in range(0, total, self._concurrency):
            batch = logins[start : start + self._concurrency]
            end = start + len(batch)
            log.info(
                "scheduler.batch",
                batch=start // self._concurrency + 1,
                batches=batch_count,
                users=len(batch),
            )
            if on_batch is not None:
                await on_batch(start, end, total)

            results = await gather_or_cancel(*(self._enrich(login) for login in batch))
            profiles.extend(p for p in results if p is not None)

            if end < total and self._batch_delay > 0:
                await self._sleep(self._batch_delay)

        profiles.sort(key=lambda p: p.score, reverse=True)
        return profiles
