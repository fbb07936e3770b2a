"""Analysis pipeline — orchestrates collection, enrichment and ranking as a progress stream.

:meth:`AnalysisPipeline.stream` is an async generator. It yields
:class:`ProgressEvent` records in emission order and ends with exactly one
terminal value: an :class:`AnalysisResult` on success, or a
:class:`ProgressEvent` at progress 100 carrying the error message.

The work runs in a producer task that pushes into a queue, so rate-limit
events raised deep inside concurrent enrichment reach the consumer while a
batch is still in flight. When the consumer stops iterating (the HTTP
client went away) the producer is cancelled and no further batches start.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable

import httpx
import structlog

from starlens.core.config import Settings
from starlens.engines.ranker.concurrency import gather_or_cancel
from starlens.engines.ranker.enricher import UserEnricher
from starlens.engines.ranker.fetcher import RateLimitedFetcher, RetryPolicy
from starlens.engines.ranker.github_client import GitHubClient
from starlens.engines.ranker.models import (
    AnalysisResult,
    ProgressEvent,
    RepositorySummary,
    RepositoryTarget,
)
from starlens.engines.ranker.paginator import collect_endpoint
from starlens.engines.ranker.scheduler import BatchScheduler, select_candidates
from starlens.services import NotFoundError, ValidationError
from starlens.services.cache_service import CacheService

log = structlog.get_logger("starlens.engine")

StreamItem = ProgressEvent | AnalysisResult

_DONE = object()

# Progress bands: 0–30 repository and candidate collection, 30–90 batches, 100 done.
_BATCH_PROGRESS_START = 30
_BATCH_PROGRESS_SPAN = 60


def batch_progress(start: int, total: int) -> float:
    if total <= 0:
        return _BATCH_PROGRESS_START
    return _BATCH_PROGRESS_START + (start / total) * _BATCH_PROGRESS_SPAN


class AnalysisPipeline:
    """Rank a repository's stargazers and forkers, reporting progress as it goes."""

    def __init__(
        self,
        cache: CacheService,
        *,
        default_api_key: str | None = None,
        max_users: int = 1000,
        concurrency: int = 30,
        batch_delay: float = 1.0,
        retry_policy: RetryPolicy | None = None,
        client_factory: Callable[[str], GitHubClient] | None = None,
    ) -> None:
        self._cache = cache
        self._default_api_key = default_api_key
        self._max_users = max_users
        self._concurrency = concurrency
        self._batch_delay = batch_delay
        self._retry_policy = retry_policy or RetryPolicy()
        self._client_factory = client_factory or GitHubClient

    @classmethod
    def from_settings(cls, cache: CacheService, settings: Settings) -> AnalysisPipeline:
        return cls(
            cache,
            default_api_key=settings.github_api_key,
            max_users=settings.max_users,
            concurrency=settings.concurrency,
            batch_delay=settings.batch_delay,
            retry_policy=RetryPolicy(
                max_attempts=settings.rate_limit_max_retries,
                fixed_delay=settings.rate_limit_delay,
            ),
        )

    async def stream(
        self, repo_url: str | None, api_key: str | None = None
    ) -> AsyncIterator[StreamItem]:
        """Yield progress events, then one terminal result or error event."""
        queue: asyncio.Queue[object] = asyncio.Queue()
        producer = asyncio.create_task(
            self._produce(queue, repo_url, api_key), name="starlens-analysis"
        )
        finished = False
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    finished = True
                    break
                yield item  # type: ignore[misc]
        finally:
            if not finished and not producer.done():
                log.info("pipeline.consumer_disconnected", repo_url=repo_url)
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    # ── internal ───────────────────────────────────────────────────────────

    async def _produce(
        self, queue: asyncio.Queue[object], repo_url: str | None, api_key: str | None
    ) -> None:
        async def emit(item: StreamItem) -> None:
            await queue.put(item)

        try:
            await self._run(emit, repo_url, api_key)
        except ValidationError as exc:
            log.info("pipeline.invalid_request", error=str(exc))
            await emit(ProgressEvent(str(exc), 100))
        except NotFoundError as exc:
            log.info("pipeline.not_found", error=str(exc))
            await emit(ProgressEvent(f"Error: {exc}", 100))
        except Exception as exc:
            log.exception("pipeline.failed", repo_url=repo_url)
            await emit(ProgressEvent(f"Error: {exc}", 100))
        finally:
            queue.put_nowait(_DONE)

    async def _run(
        self,
        emit: Callable[[StreamItem], Awaitable[None]],
        repo_url: str | None,
        api_key: str | None,
    ) -> None:
        token = api_key or self._default_api_key
        if not token:
            raise ValidationError("GitHub API key is required")
        if not repo_url or not repo_url.strip():
            raise ValidationError("Repository URL is required")
        try:
            target = RepositoryTarget.from_url(repo_url)
        except ValueError:
            raise ValidationError("Invalid repository URL") from None

        cache_key = target.full_name
        cached = await self._cache.get_repo(cache_key)
        if cached is not None:
            log.info("pipeline.cache_hit", repo=cache_key)
            await emit(ProgressEvent("Retrieving cached result", 50))
            result = AnalysisResult.from_dict(cached)
            await emit(ProgressEvent("Analysis complete (cached)", 100))
            await emit(result)
            return

        log.info("pipeline.start", repo=cache_key)
        async with self._client_factory(token) as client:
            fetcher = RateLimitedFetcher(self._retry_policy, on_rate_limit=emit)

            await emit(ProgressEvent("Fetching repository information", 10))
            try:
                repo_data = await fetcher.attempt(
                    lambda: client.get(f"/repos/{target.owner}/{target.name}")
                )
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 404:
                    raise NotFoundError(f"Repository {cache_key} not found") from exc
                raise
            summary = RepositorySummary.from_github(repo_data)
            log.info("pipeline.repo_info", repo=cache_key, stars=summary.star_count)

            await emit(ProgressEvent("Fetching stargazers and forks", 20))
            stargazers, forks = await gather_or_cancel(
                collect_endpoint(
                    fetcher, client, f"/repos/{target.owner}/{target.name}/stargazers"
                ),
                collect_endpoint(fetcher, client, f"/repos/{target.owner}/{target.name}/forks"),
            )
            candidates = select_candidates(stargazers, forks, self._max_users)
            log.info(
                "pipeline.candidates",
                repo=cache_key,
                stargazers=len(stargazers),
                forks=len(forks),
                candidates=len(candidates),
            )

            enricher = UserEnricher(client, fetcher, self._cache)
            scheduler = BatchScheduler(
                enricher.enrich,
                concurrency=self._concurrency,
                batch_delay=self._batch_delay,
                sleep=self._retry_policy.sleep,
            )

            async def on_batch(start: int, end: int, total: int) -> None:
                await emit(
                    ProgressEvent(
                        f"Processing users {start + 1} to {end}", batch_progress(start, total)
                    )
                )

            influencers = await scheduler.rank(candidates, on_batch=on_batch)

        result = AnalysisResult(repo_info=summary, influencers=tuple(influencers))
        await self._cache.put_repo(cache_key, result.to_dict())
        log.info("pipeline.complete", repo=cache_key, influencers=len(influencers))
        await emit(ProgressEvent("Analysis complete", 100))
        await emit(result)
