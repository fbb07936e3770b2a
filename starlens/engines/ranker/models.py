"""Data models for the ranking engine.

Pure data structures — no DB or HTTP dependencies. Wire dictionaries use the
camelCase keys the NDJSON consumers expect.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from starlens.core.github import parse_repo_url

T = TypeVar("T")

# Progress value that means "waiting on a rate limit, no forward progress".
RATE_LIMIT_PROGRESS = -1


@dataclass(frozen=True)
class RepositoryTarget:
    owner: str
    name: str

    @classmethod
    def from_url(cls, repo_url: str) -> RepositoryTarget:
        """Parse ``.../{owner}/{repo}``. Raises ValueError if either part is missing."""
        owner, name = parse_repo_url(repo_url)
        return cls(owner=owner, name=name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class RepositorySummary:
    """Snapshot of repository metrics at analysis time."""

    name: str
    description: str | None
    star_count: int
    fork_count: int

    @classmethod
    def from_github(cls, data: dict[str, Any]) -> RepositorySummary:
        return cls(
            name=data["name"],
            description=data.get("description"),
            star_count=data.get("stargazers_count", 0),
            fork_count=data.get("forks_count", 0),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepositorySummary:
        return cls(
            name=data["name"],
            description=data.get("description"),
            star_count=data["starCount"],
            fork_count=data["forkCount"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "starCount": self.star_count,
            "forkCount": self.fork_count,
        }


@dataclass(frozen=True)
class InfluencerProfile:
    """An enriched candidate user with its influence score."""

    login: str
    name: str
    avatar_url: str | None
    bio: str | None
    company: str | None
    location: str | None
    stars_earned: int
    followers: int
    following: int
    contributions: int
    recent_activity: int
    score: float

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InfluencerProfile:
        return cls(
            login=data["login"],
            name=data["name"],
            avatar_url=data.get("avatarUrl"),
            bio=data.get("bio"),
            company=data.get("company"),
            location=data.get("location"),
            stars_earned=data["starsEarned"],
            followers=data["followers"],
            following=data["following"],
            contributions=data["contributions"],
            recent_activity=data["recentActivity"],
            score=data["score"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "login": self.login,
            "name": self.name,
            "avatarUrl": self.avatar_url,
            "bio": self.bio,
            "company": self.company,
            "location": self.location,
            "starsEarned": self.stars_earned,
            "followers": self.followers,
            "following": self.following,
            "contributions": self.contributions,
            "recentActivity": self.recent_activity,
            "score": self.score,
        }


@dataclass(frozen=True)
class ProgressEvent:
    status: str
    progress: float

    @property
    def is_rate_limited(self) -> bool:
        return self.progress == RATE_LIMIT_PROGRESS

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status, "progress": self.progress}


@dataclass(frozen=True)
class AnalysisResult:
    """Terminal success record: repository summary plus ranked influencers."""

    repo_info: RepositorySummary
    influencers: tuple[InfluencerProfile, ...]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisResult:
        return cls(
            repo_info=RepositorySummary.from_dict(data["repoInfo"]),
            influencers=tuple(InfluencerProfile.from_dict(p) for p in data["influencers"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "repoInfo": self.repo_info.to_dict(),
            "influencers": [p.to_dict() for p in self.influencers],
        }


@dataclass(frozen=True)
class PageResult(Generic[T]):
    """One page of a paginated listing; ``next_cursor`` is None on the last page."""

    items: list[T]
    next_cursor: str | None = None
