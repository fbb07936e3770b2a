"""Influencer ranking engine — GitHub collection, enrichment and scoring without HTTP routing."""

from starlens.engines.ranker.enricher import ScoreWeights, UserEnricher, build_profile, compute_score
from starlens.engines.ranker.fetcher import (
    RateLimitedFetcher,
    RateLimitExhaustedError,
    RetryPolicy,
)
from starlens.engines.ranker.github_client import GitHubClient, RateLimitError
from starlens.engines.ranker.models import (
    RATE_LIMIT_PROGRESS,
    AnalysisResult,
    InfluencerProfile,
    PageResult,
    ProgressEvent,
    RepositorySummary,
    RepositoryTarget,
)
from starlens.engines.ranker.paginator import collect_all, collect_endpoint
from starlens.engines.ranker.pipeline import AnalysisPipeline
from starlens.engines.ranker.scheduler import BatchScheduler, select_candidates

__all__ = [
    "RATE_LIMIT_PROGRESS",
    "AnalysisPipeline",
    "AnalysisResult",
    "BatchScheduler",
    "GitHubClient",
    "InfluencerProfile",
    "PageResult",
    "ProgressEvent",
    "RateLimitError",
    "RateLimitExhaustedError",
    "RateLimitedFetcher",
    "RepositorySummary",
    "RepositoryTarget",
    "RetryPolicy",
    "ScoreWeights",
    "UserEnricher",
    "build_profile",
    "collect_all",
    "collect_endpoint",
    "compute_score",
    "select_candidates",
]
