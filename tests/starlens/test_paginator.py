"""Tests for the pagination collector."""

from __future__ import annotations

import pytest

from starlens.engines.ranker.fetcher import RateLimitedFetcher, RetryPolicy
from starlens.engines.ranker.github_client import RateLimitError
from starlens.engines.ranker.models import PageResult
from starlens.engines.ranker.paginator import collect_all, collect_endpoint
from starlens.testing import FakeGitHub

STARGAZERS = "/repos/octocat/Hello-World/stargazers"


class TestCollectAll:
    @pytest.mark.anyio
    async def test_single_page(self, fake_sleep):
        async def fetch_page(cursor):
            assert cursor is None
            return PageResult(items=[1, 2, 3])

        fetcher = RateLimitedFetcher(RetryPolicy(sleep=fake_sleep))
        assert await collect_all(fetcher, fetch_page) == [1, 2, 3]

    @pytest.mark.anyio
    async def test_follows_cursor_until_exhausted(self, fake_sleep):
        pages = {None: PageResult([1, 2], "c2"), "c2": PageResult([3], "c3"), "c3": PageResult([4])}
        seen = []

        async def fetch_page(cursor):
            seen.append(cursor)
            return pages[cursor]

        fetcher = RateLimitedFetcher(RetryPolicy(sleep=fake_sleep))
        assert await collect_all(fetcher, fetch_page) == [1, 2, 3, 4]
        assert seen == [None, "c2", "c3"]

    @pytest.mark.anyio
    async def test_many_pages_no_upper_bound(self, fake_sleep):
        async def fetch_page(cursor):
            n = int(cursor or 0)
            return PageResult([n], str(n + 1) if n < 249 else None)

        fetcher = RateLimitedFetcher(RetryPolicy(sleep=fake_sleep))
        assert await collect_all(fetcher, fetch_page) == list(range(250))

    @pytest.mark.anyio
    async def test_empty_listing(self, fake_sleep):
        async def fetch_page(cursor):
            return PageResult([])

        fetcher = RateLimitedFetcher(RetryPolicy(sleep=fake_sleep))
        assert await collect_all(fetcher, fetch_page) == []


class TestCollectEndpoint:
    @pytest.mark.anyio
    async def test_rate_limit_on_second_page_resumes(self, fake_sleep):
        """A rate limit on page 2 retries page 2 only: no loss, no duplicates."""
        github = FakeGitHub(
            pages={STARGAZERS: [[{"login": "alice"}, {"login": "bob"}], [{"login": "carol"}]]},
            failures={f"{STARGAZERS}#page2": [RateLimitError(403)]},
        )
        events = []

        async def on_rate_limit(event):
            events.append(event)

        fetcher = RateLimitedFetcher(
            RetryPolicy(fixed_delay=15, sleep=fake_sleep), on_rate_limit=on_rate_limit
        )
        items = await collect_endpoint(fetcher, github, STARGAZERS)

        assert [i["login"] for i in items] == ["alice", "bob", "carol"]
        assert github.calls == [
            f"{STARGAZERS}#page1",
            f"{STARGAZERS}#page2",
            f"{STARGAZERS}#page2",
        ]
        assert fake_sleep.calls == [15]
        assert len(events) == 1 and events[0].progress == -1
