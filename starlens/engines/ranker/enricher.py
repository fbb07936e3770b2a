"""User enrichment — fetch a candidate's public activity and score it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from starlens.engines.ranker.concurrency import gather_or_cancel
from starlens.engines.ranker.fetcher import RateLimitedFetcher
from starlens.engines.ranker.github_client import GitHubClient
from starlens.engines.ranker.models import InfluencerProfile
from starlens.services.cache_service import CacheService

log = structlog.get_logger("starlens.engine")

# Only the first page of repositories and events is read. Users with more
# repositories than this are undercounted; the weights are calibrated to it.
PAGE_SIZE = 100


@dataclass(frozen=True)
class ScoreWeights:
    stars: float = 2.5
    followers: float = 2.0
    contributions: float = 0.1
    recent_activity: float = 0.1


DEFAULT_WEIGHTS = ScoreWeights()


def compute_score(
    stars_earned: int,
    followers: int,
    contributions: int,
    recent_activity: int,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    return (
        stars_earned * weights.stars
        + followers * weights.followers
        + contributions * weights.contributions
        + recent_activity * weights.recent_activity
    )


def build_profile(
    login: str,
    user: dict[str, Any],
    repos: list[dict[str, Any]],
    events: list[Any],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> InfluencerProfile:
    """Derive an :class:`InfluencerProfile` from raw GitHub payloads."""
    stars_earned = sum(repo.get("stargazers_count") or 0 for repo in repos)
    followers = user.get("followers") or 0
    contributions = (user.get("public_repos") or 0) + (user.get("public_gists") or 0)
    recent_activity = len(events)
    return InfluencerProfile(
        login=login,
        name=user.get("name") or login,
        avatar_url=user.get("avatar_url"),
        bio=user.get("bio"),
        company=user.get("company"),
        location=user.get("location"),
        stars_earned=stars_earned,
        followers=followers,
        following=user.get("following") or 0,
        contributions=contributions,
        recent_activity=recent_activity,
        score=compute_score(stars_earned, followers, contributions, recent_activity, weights),
    )


class UserEnricher:
    """Produce scored profiles, preferring fresh cache entries over API calls."""

    def __init__(
        self,
        client: GitHubClient,
        fetcher: RateLimitedFetcher,
        cache: CacheService,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self._client = client
        self._fetcher = fetcher
        self._cache = cache
        self._weights = weights

    async def enrich(self, login: str) -> InfluencerProfile | None:
        """Return the profile for *login*, or None if it cannot be fetched.

        A failed user is logged and skipped; it never aborts the batch.
        """
        cached = await self._cache.get_user(login)
        if cached is not None:
            log.debug("enricher.cache_hit", login=login)
            return InfluencerProfile.from_dict(cached)

        try:
            user, repos, events = await gather_or_cancel(
                self._fetcher.attempt(lambda: self._client.get(f"/users/{login}")),
                self._fetcher.attempt(
                    lambda: self._client.get(
                        f"/users/{login}/repos",
                        {"sort": "stars", "direction": "desc", "per_page": PAGE_SIZE},
                    )
                ),
                self._fetcher.attempt(
                    lambda: self._client.get(
                        f"/users/{login}/events/public", {"per_page": PAGE_SIZE}
                    )
                ),
            )
        except Exception as exc:
            log.warning("enricher.failed", login=login, error=f"{type(exc).__name__}: {exc}")
            return None

        profile = build_profile(login, user, repos, events, self._weights)
        log.debug(
            "enricher.done",
            login=login,
            stars=profile.stars_earned,
            contributions=profile.contributions,
            recent_activity=profile.recent_activity,
        )
        await self._cache.put_user(login, profile.to_dict())
        return profile
