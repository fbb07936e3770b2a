"""CLI entry point: starlens.

Subcommands:
    starlens analyze https://github.com/owner/repo   # Print the NDJSON progress stream
    starlens serve --port 8000                       # Run the HTTP API
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import replace

import click
from dotenv import load_dotenv

from starlens.core.config import Settings
from starlens.core.database import create_engine, create_schema, create_session_factory
from starlens.core.logging import setup_logging
from starlens.engines.ranker.models import AnalysisResult
from starlens.engines.ranker.pipeline import AnalysisPipeline
from starlens.services.cache_service import CacheService


async def _analyze(settings: Settings, repo_url: str, api_key: str | None) -> bool:
    """Run one analysis, echoing every record. Returns True if a result was produced."""
    engine = create_engine(settings.database_url)
    try:
        await create_schema(engine)
        cache = CacheService(create_session_factory(engine), settings.cache_ttl_ms)
        pipeline = AnalysisPipeline.from_settings(cache, settings)
        succeeded = False
        async for item in pipeline.stream(repo_url, api_key):
            click.echo(json.dumps(item.to_dict()))
            succeeded = isinstance(item, AnalysisResult)
        return succeeded
    finally:
        await engine.dispose()


@click.group()
def main() -> None:
    """StarLens: rank a repository's stargazers and forkers by influence."""
    load_dotenv()
    setup_logging()


@main.command()
@click.argument("repo_url")
@click.option("--api-key", envvar="GITHUB_API_KEY", default=None, help="GitHub API token")
@click.option("--db-url", default=None, help="Cache database URL (SQLAlchemy async)")
@click.option("--max-users", type=int, default=None, help="Cap on candidate users")
def analyze(repo_url: str, api_key: str | None, db_url: str | None, max_users: int | None) -> None:
    """Analyze REPO_URL and print newline-delimited JSON records to stdout."""
    settings = Settings.from_env()
    overrides: dict = {}
    if db_url:
        overrides["database_url"] = db_url
    if max_users is not None:
        overrides["max_users"] = max_users
    if overrides:
        settings = replace(settings, **overrides)

    succeeded = asyncio.run(_analyze(settings, repo_url, api_key))
    if not succeeded:
        sys.exit(1)


@main.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", type=int, default=8000, help="Bind port")
def serve(host: str, port: int) -> None:
    """Run the HTTP API under uvicorn."""
    import uvicorn

    uvicorn.run("starlens.api:create_app", factory=True, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
