"""Test doubles for starlens — use in unit and integration tests.

Usage::

    from starlens.testing import FakeGitHub, add_user

    resources = {}
    add_user(resources, "alice", followers=10, stars=[5, 3])
    github = FakeGitHub(resources=resources)
    pipeline = AnalysisPipeline(cache, client_factory=lambda token: github)
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import httpx

from starlens.engines.ranker.models import PageResult


class Clock:
    """Settable epoch-millis clock for cache freshness tests."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


class ParkedSleep:
    """Never wakes up on its own; counts how many sleepers were cancelled."""

    def __init__(self) -> None:
        self.started = 0
        self.cancelled = 0

    async def __call__(self, delay: float) -> None:
        self.started += 1
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            raise


def not_found(path: str) -> httpx.HTTPStatusError:
    """Build the error GitHubClient raises for a 404."""
    request = httpx.Request("GET", f"https://api.github.com{path}")
    response = httpx.Response(404, request=request, json={"message": "Not Found"})
    return httpx.HTTPStatusError(
        f"Client error '404 Not Found' for url '{request.url}'",
        request=request,
        response=response,
    )


class FakeGitHub:
    """In-memory stand-in for GitHubClient.

    Parameters
    ----------
    resources:
        Maps a path to the JSON returned by ``get``. Unknown paths raise a 404.
    pages:
        Maps a listing path to its pages. Cursors look like ``{path}?page={n}``.
    failures:
        Maps a call key (a path, or ``"{path}#page{n}"`` for listings) to
        exceptions raised, in order, before the call succeeds.
    """

    def __init__(
        self,
        resources: dict[str, Any] | None = None,
        pages: dict[str, list[list[Any]]] | None = None,
        failures: dict[str, Iterable[BaseException]] | None = None,
    ) -> None:
        self.resources = resources or {}
        self.pages = pages or {}
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.calls: list[str] = []
        self.closed = False

    async def __aenter__(self) -> FakeGitHub:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.closed = True

    def _maybe_fail(self, key: str) -> None:
        pending = self.failures.get(key)
        if pending:
            raise pending.pop(0)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        self.calls.append(path)
        self._maybe_fail(path)
        if path not in self.resources:
            raise not_found(path)
        return self.resources[path]

    async def get_page(self, url: str, params: dict[str, Any] | None = None) -> PageResult[Any]:
        path, _, page = url.partition("?page=")
        number = int(page) if page else 1
        key = f"{path}#page{number}"
        self.calls.append(key)
        self._maybe_fail(key)
        pages = self.pages.get(path, [[]])
        next_cursor = f"{path}?page={number + 1}" if number < len(pages) else None
        return PageResult(items=list(pages[number - 1]), next_cursor=next_cursor)


def github_user(login: str, *, followers: int = 0, repos: int = 0, gists: int = 0) -> dict:
    """A ``GET /users/{login}`` payload with only the fields enrichment reads."""
    return {
        "login": login,
        "name": login.title(),
        "avatar_url": f"https://avatars.example/{login}",
        "bio": None,
        "company": None,
        "location": None,
        "followers": followers,
        "following": 1,
        "public_repos": repos,
        "public_gists": gists,
    }


def add_user(
    resources: dict[str, Any],
    login: str,
    *,
    followers: int = 0,
    stars: Iterable[int] = (),
    events: int = 0,
    repos: int = 0,
    gists: int = 0,
) -> None:
    """Register the three enrichment endpoints for *login*."""
    resources[f"/users/{login}"] = github_user(
        login, followers=followers, repos=repos, gists=gists
    )
    resources[f"/users/{login}/repos"] = [{"stargazers_count": s} for s in stars]
    resources[f"/users/{login}/events/public"] = [{"type": "PushEvent"}] * events
