"""Rate-limited fetcher — fixed-delay retry of upstream calls on rate limits."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from starlens.engines.ranker.github_client import RateLimitError
from starlens.engines.ranker.models import RATE_LIMIT_PROGRESS, ProgressEvent

log = structlog.get_logger("starlens.engine")

T = TypeVar("T")

ProgressCallback = Callable[[ProgressEvent], Awaitable[None]]

DEFAULT_MAX_ATTEMPTS = 25
DEFAULT_RATE_LIMIT_DELAY = 15.0  # seconds


class RateLimitExhaustedError(Exception):
    """Raised when an operation is still rate limited after every allowed attempt."""


def is_rate_limit_error(exc: BaseException) -> bool:
    return isinstance(exc, RateLimitError)


@dataclass(frozen=True)
class RetryPolicy:
    """How the fetcher reacts to failures.

    The delay is fixed on purpose; reset headers sent by the upstream are
    not consulted.
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    fixed_delay: float = DEFAULT_RATE_LIMIT_DELAY
    is_retryable: Callable[[BaseException], bool] = is_rate_limit_error
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.fixed_delay < 0:
            raise ValueError("fixed_delay must not be negative")


class RateLimitedFetcher:
    """Run upstream operations, waiting out rate limits per a :class:`RetryPolicy`."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        on_rate_limit: ProgressCallback | None = None,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._on_rate_limit = on_rate_limit

    async def attempt(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()`` until it succeeds.

        Retryable failures are followed by a rate-limit progress event and a
        fixed sleep. Anything else propagates unchanged.

        Raises :class:`RateLimitExhaustedError` after ``max_attempts``
        retryable failures.
        """
        policy = self._policy
        for attempt in range(policy.max_attempts):
            try:
                return await operation()
            except Exception as exc:
                if not policy.is_retryable(exc):
                    raise
                log.warning(
                    "fetcher.rate_limited",
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    wait_seconds=policy.fixed_delay,
                    error=str(exc),
                )
                if self._on_rate_limit is not None:
                    await self._on_rate_limit(
                        ProgressEvent(
                            f"Rate limit reached. Waiting for {policy.fixed_delay:g} seconds...",
                            RATE_LIMIT_PROGRESS,
                        )
                    )
                await policy.sleep(policy.fixed_delay)
        raise RateLimitExhaustedError("Max retries reached for rate limit")
