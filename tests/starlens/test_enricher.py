"""Tests for user enrichment and scoring."""

from __future__ import annotations

import asyncio
import json

import pytest

from starlens.engines.ranker.enricher import (
    ScoreWeights,
    UserEnricher,
    build_profile,
    compute_score,
)
from starlens.engines.ranker.fetcher import RateLimitedFetcher, RetryPolicy
from starlens.engines.ranker.github_client import RateLimitError
from starlens.testing import FakeGitHub, ParkedSleep, add_user, github_user


class TestScore:
    def test_weights(self):
        assert compute_score(10, 5, 20, 30) == pytest.approx(10 * 2.5 + 5 * 2.0 + 2.0 + 3.0)

    def test_zero(self):
        assert compute_score(0, 0, 0, 0) == 0

    @pytest.mark.parametrize("stars", [0, 1, 7, 1000])
    def test_monotonic_in_stars(self, stars):
        assert compute_score(stars + 1, 3, 4, 5) > compute_score(stars, 3, 4, 5)

    def test_custom_weights(self):
        weights = ScoreWeights(stars=1, followers=0, contributions=0, recent_activity=0)
        assert compute_score(4, 100, 100, 100, weights) == 4


class TestBuildProfile:
    def test_derived_fields(self):
        user = github_user("alice", followers=12, repos=3, gists=2)
        repos = [{"stargazers_count": 5}, {"stargazers_count": 7}, {"stargazers_count": 0}]
        events = [{}] * 4
        profile = build_profile("alice", user, repos, events)

        assert profile.stars_earned == 12
        assert profile.contributions == 5
        assert profile.recent_activity == 4
        assert profile.followers == 12
        assert profile.score == compute_score(12, 12, 5, 4)

    def test_name_falls_back_to_login(self):
        user = github_user("bob")
        user["name"] = None
        assert build_profile("bob", user, [], []).name == "bob"

    def test_wire_keys(self):
        profile = build_profile("carol", github_user("carol"), [], [])
        assert list(profile.to_dict()) == [
            "login",
            "name",
            "avatarUrl",
            "bio",
            "company",
            "location",
            "starsEarned",
            "followers",
            "following",
            "contributions",
            "recentActivity",
            "score",
        ]


@pytest.mark.anyio
class TestUserEnricher:
    def _enricher(self, github, cache, fake_sleep, **policy):
        fetcher = RateLimitedFetcher(RetryPolicy(sleep=fake_sleep, **policy))
        return UserEnricher(github, fetcher, cache)

    async def test_fetches_and_caches(self, cache, fake_sleep):
        resources = {}
        add_user(resources, "alice", followers=10, stars=[3, 4], events=2, repos=5, gists=1)
        github = FakeGitHub(resources=resources)

        profile = await self._enricher(github, cache, fake_sleep).enrich("alice")

        assert profile.login == "alice"
        assert profile.stars_earned == 7
        assert profile.contributions == 6
        assert profile.recent_activity == 2
        assert sorted(github.calls) == [
            "/users/alice",
            "/users/alice/events/public",
            "/users/alice/repos",
        ]
        assert await cache.get_user("alice") == profile.to_dict()

    async def test_cache_hit_skips_fetching(self, cache, fake_sleep):
        resources = {}
        add_user(resources, "alice", followers=10)
        github = FakeGitHub(resources=resources)
        enricher = self._enricher(github, cache, fake_sleep)

        first = await enricher.enrich("alice")
        calls_after_first = list(github.calls)
        second = await enricher.enrich("alice")

        assert github.calls == calls_after_first
        assert json.dumps(second.to_dict()) == json.dumps(first.to_dict())

    async def test_stale_cache_refetches(self, cache, clock, fake_sleep):
        resources = {}
        add_user(resources, "alice", followers=1)
        github = FakeGitHub(resources=resources)
        enricher = self._enricher(github, cache, fake_sleep)

        await enricher.enrich("alice")
        clock.now += cache.ttl_ms
        resources["/users/alice"]["followers"] = 50
        profile = await enricher.enrich("alice")

        assert profile.followers == 50
        assert github.calls.count("/users/alice") == 2

    async def test_deleted_user_returns_none(self, cache, fake_sleep):
        github = FakeGitHub()
        assert await self._enricher(github, cache, fake_sleep).enrich("ghost-user") is None
        assert await cache.get_user("ghost-user") is None

    async def test_rate_limit_is_retried(self, cache, fake_sleep):
        resources = {}
        add_user(resources, "alice", stars=[1])
        github = FakeGitHub(
            resources=resources, failures={"/users/alice/repos": [RateLimitError(429)]}
        )
        profile = await self._enricher(github, cache, fake_sleep, fixed_delay=15).enrich("alice")
        assert profile is not None
        assert fake_sleep.calls == [15]

    async def test_rate_limit_exhausted_returns_none(self, cache, fake_sleep):
        resources = {}
        add_user(resources, "alice")
        github = FakeGitHub(
            resources=resources,
            failures={"/users/alice/events/public": [RateLimitError(403)] * 5},
        )
        enricher = self._enricher(github, cache, fake_sleep, max_attempts=2)
        assert await enricher.enrich("alice") is None

    async def test_failed_fetch_cancels_sibling_fetches(self, cache):
        resources = {}
        add_user(resources, "x")
        del resources["/users/x"]
        github = FakeGitHub(
            resources=resources,
            failures={"/users/x/repos": [RateLimitError(429)] * 5},
        )
        sleep = ParkedSleep()
        enricher = UserEnricher(github, RateLimitedFetcher(RetryPolicy(sleep=sleep)), cache)

        assert await enricher.enrich("x") is None

        # the rate-limited repos fetch was waiting to retry; it must not outlive enrich()
        assert sleep.started == 1
        assert sleep.cancelled == 1
        await asyncio.sleep(0.05)
        assert github.calls.count("/users/x/repos") == 1
