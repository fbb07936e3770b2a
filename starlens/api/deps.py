"""Dependency injection — settings, cache and pipeline singletons."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from starlens.core.config import Settings
from starlens.core.database import create_engine, create_schema, create_session_factory
from starlens.engines.ranker.pipeline import AnalysisPipeline
from starlens.services.cache_service import CacheService

# ---------------------------------------------------------------------------
# Engine / pipeline (initialised by app lifespan)
# ---------------------------------------------------------------------------
_settings: Settings | None = None
_engine: AsyncEngine | None = None
_pipeline: AnalysisPipeline | None = None


def get_settings() -> Settings:
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


async def init_pipeline(settings: Settings) -> AnalysisPipeline:
    """Open the cache database, create tables, and build the pipeline. Called once at startup."""
    global _engine, _pipeline  # noqa: PLW0603
    _engine = create_engine(settings.database_url)
    await create_schema(_engine)
    cache = CacheService(create_session_factory(_engine), settings.cache_ttl_ms)
    _pipeline = AnalysisPipeline.from_settings(cache, settings)
    return _pipeline


async def dispose_engine() -> None:
    """Dispose the async engine, closing all pooled connections."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def set_pipeline(pipeline: AnalysisPipeline | None) -> None:
    """Override the pipeline (for testing)."""
    global _pipeline  # noqa: PLW0603
    _pipeline = pipeline


def get_pipeline() -> AnalysisPipeline:
    if _pipeline is None:
        raise RuntimeError("call init_pipeline() before handling requests")
    return _pipeline
