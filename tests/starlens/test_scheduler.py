"""Tests for candidate selection and the batch scheduler."""

from __future__ import annotations

import asyncio

import pytest

from starlens.engines.ranker.models import InfluencerProfile
from starlens.engines.ranker.scheduler import BatchScheduler, select_candidates


def _profile(login: str, score: float) -> InfluencerProfile:
    return InfluencerProfile(
        login=login,
        name=login,
        avatar_url=None,
        bio=None,
        company=None,
        location=None,
        stars_earned=0,
        followers=0,
        following=0,
        contributions=0,
        recent_activity=0,
        score=score,
    )


class TestSelectCandidates:
    def test_dedupes_across_sources(self):
        stargazers = [{"login": "alice"}, {"login": "bob"}, {"login": "carol"}]
        forks = [{"owner": {"login": "alice"}}]
        assert select_candidates(stargazers, forks, 1000) == ["alice", "bob", "carol"]

    def test_first_seen_order(self):
        stargazers = [{"login": "b"}, {"login": "a"}, {"login": "b"}]
        forks = [{"owner": {"login": "c"}}, {"owner": {"login": "a"}}]
        assert select_candidates(stargazers, forks, 10) == ["b", "a", "c"]

    def test_truncated_to_max(self):
        stargazers = [{"login": f"u{i}"} for i in range(50)]
        forks = [{"owner": {"login": f"f{i}"}} for i in range(50)]
        result = select_candidates(stargazers, forks, 60)
        assert len(result) == 60
        assert len(set(result)) == 60
        assert result[:50] == [f"u{i}" for i in range(50)]

    def test_skips_missing_logins(self):
        stargazers = [None, {"login": None}, {"login": "alice"}]
        forks = [{"owner": None}, {}]
        assert select_candidates(stargazers, forks, 10) == ["alice"]


@pytest.mark.anyio
class TestBatchScheduler:
    async def test_sorted_by_score_desc(self, fake_sleep):
        scores = {"a": 1.0, "b": 5.0, "c": 3.0}

        async def enrich(login):
            return _profile(login, scores[login])

        scheduler = BatchScheduler(enrich, concurrency=2, sleep=fake_sleep)
        ranked = await scheduler.rank(["a", "b", "c"])
        assert [p.login for p in ranked] == ["b", "c", "a"]

    async def test_ties_keep_encounter_order(self, fake_sleep):
        async def enrich(login):
            return _profile(login, 1.0)

        scheduler = BatchScheduler(enrich, concurrency=2, sleep=fake_sleep)
        ranked = await scheduler.rank(["x", "y", "z", "w"])
        assert [p.login for p in ranked] == ["x", "y", "z", "w"]

    async def test_drops_failed_users(self, fake_sleep):
        async def enrich(login):
            return None if login == "ghost-user" else _profile(login, 1.0)

        scheduler = BatchScheduler(enrich, concurrency=10, sleep=fake_sleep)
        ranked = await scheduler.rank(["alice", "ghost-user", "bob"])
        assert [p.login for p in ranked] == ["alice", "bob"]

    async def test_concurrency_never_exceeds_limit(self, fake_sleep):
        in_flight = 0
        peak = 0

        async def enrich(login):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            in_flight -= 1
            return _profile(login, 0.0)

        scheduler = BatchScheduler(enrich, concurrency=7, sleep=fake_sleep)
        ranked = await scheduler.rank([f"u{i}" for i in range(40)])
        assert len(ranked) == 40
        assert peak == 7

    async def test_batches_are_sequential(self, fake_sleep):
        order: list[str] = []

        async def enrich(login):
            order.append(f"start:{login}")
            await asyncio.sleep(0)
            order.append(f"end:{login}")
            return _profile(login, 0.0)

        scheduler = BatchScheduler(enrich, concurrency=2, sleep=fake_sleep)
        await scheduler.rank(["a", "b", "c"])
        assert order.index("start:c") > order.index("end:a")
        assert order.index("start:c") > order.index("end:b")

    async def test_pacing_between_batches_only(self, fake_sleep):
        async def enrich(login):
            return _profile(login, 0.0)

        scheduler = BatchScheduler(enrich, concurrency=3, batch_delay=1.0, sleep=fake_sleep)
        await scheduler.rank([f"u{i}" for i in range(7)])
        assert fake_sleep.calls == [1.0, 1.0]

    async def test_on_batch_callback(self, fake_sleep):
        seen = []

        async def enrich(login):
            return _profile(login, 0.0)

        async def on_batch(start, end, total):
            seen.append((start, end, total))

        scheduler = BatchScheduler(enrich, concurrency=30, sleep=fake_sleep)
        await scheduler.rank([f"u{i}" for i in range(65)], on_batch=on_batch)
        assert seen == [(0, 30, 65), (30, 60, 65), (60, 65, 65)]

    async def test_empty(self, fake_sleep):
        async def enrich(login):
            raise AssertionError("not called")

        scheduler = BatchScheduler(enrich, sleep=fake_sleep)
        assert await scheduler.rank([]) == []
        assert fake_sleep.calls == []

    async def test_failure_cancels_rest_of_batch(self, fake_sleep):
        cancelled: list[str] = []

        async def enrich(login):
            if login == "boom":
                raise RuntimeError("cache unavailable")
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.append(login)
                raise

        scheduler = BatchScheduler(enrich, concurrency=3, sleep=fake_sleep)
        with pytest.raises(RuntimeError, match="cache unavailable"):
            await scheduler.rank(["a", "boom", "b", "c"])
        assert sorted(cancelled) == ["a", "b"]
        assert fake_sleep.calls == []

    def test_rejects_zero_concurrency(self):
        async def enrich(login):
            return None

        with pytest.raises(ValueError):
            BatchScheduler(enrich, concurrency=0)
