"""Async GitHub API client with page-at-a-time listing and rate-limit detection.

The client never waits out a rate limit itself: a 403/429 rate-limit response
is raised as :class:`RateLimitError` so the caller's retry policy decides what
to do. Transient 5xx responses and timeouts are retried here with a short
exponential backoff.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import httpx
import structlog

from starlens.engines.ranker.models import PageResult

log = structlog.get_logger("starlens.engine")

GITHUB_API_URL = "https://api.github.com"

_NEXT_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="next"')

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds


class RateLimitError(Exception):
    """Raised when GitHub rejects a request because a rate limit is exhausted."""

    def __init__(self, status_code: int, message: str = "API rate limit exceeded") -> None:
        self.status_code = status_code
        super().__init__(f"{status_code}: {message}")


class GitHubClient:
    """Thin async wrapper around the GitHub REST API."""

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = GITHUB_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "starlens",
        }
        if token:
            headers["Authorization"] = f"token {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=30.0,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Single-resource GET, returns parsed JSON."""
        response = await self._request_with_retry(path, params)
        return response.json()

    async def get_page(
        self, url: str, params: dict[str, Any] | None = None
    ) -> PageResult[dict[str, Any]]:
        """Fetch one page of a listing endpoint.

        *url* is either an API path (first page) or the absolute ``next``
        URL returned by a previous call, which already carries its query
        string. The result's ``next_cursor`` is the following page's URL,
        or None once GitHub stops sending a ``rel="next"`` link.
        """
        response = await self._request_with_retry(url, params)
        data = response.json()
        items = data if isinstance(data, list) else [data]
        return PageResult(
            items=items,
            next_cursor=self._parse_next_link(response.headers.get("Link", "")),
        )

    # ── internal ───────────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET with exponential backoff on 5xx and timeout errors."""
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await self._client.get(url, params=params)

                if self._is_rate_limited(resp):
                    log.warning(
                        "github.rate_limit",
                        url=url,
                        status=resp.status_code,
                        remaining=resp.headers.get("X-RateLimit-Remaining"),
                    )
                    raise RateLimitError(resp.status_code, self._error_message(resp))

                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp

                log.warning(
                    "github.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code}", request=resp.request, response=resp
                )
            except httpx.TimeoutException as exc:
                log.warning(
                    "github.timeout",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = exc

            if attempt < _MAX_RETRIES - 1:
                delay = _RETRY_BASE_DELAY * (2**attempt)
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    @classmethod
    def _is_rate_limited(cls, response: httpx.Response) -> bool:
        """Check whether a response signals an exhausted (primary or secondary) rate limit."""
        if response.status_code == 429:
            return True
        if response.status_code != 403:
            return False
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None and remaining.strip() == "0":
            return True
        if "Retry-After" in response.headers:
            return True
        return "rate limit" in cls._error_message(response).lower()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or ""
        if isinstance(body, dict):
            return str(body.get("message", ""))
        return ""

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        """Extract the ``next`` URL from a GitHub ``Link`` header."""
        match = _NEXT_LINK_RE.search(link_header)
        return match.group(1) if match else None
