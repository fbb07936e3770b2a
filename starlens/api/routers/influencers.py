"""Influencers router — NDJSON progress stream for one repository analysis."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Header
from fastapi.responses import StreamingResponse

from starlens.api.deps import get_pipeline
from starlens.api.schemas.influencer import AnalyzeRequest
from starlens.engines.ranker.pipeline import AnalysisPipeline, StreamItem

router = APIRouter()

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def encode_record(item: StreamItem) -> str:
    """Serialize one stream item as a newline-terminated JSON line."""
    return json.dumps(item.to_dict()) + "\n"


async def _ndjson(items: AsyncIterator[StreamItem]) -> AsyncIterator[str]:
    async for item in items:
        yield encode_record(item)


@router.post("/github-influencers")
async def analyze_influencers(
    body: AnalyzeRequest,
    x_github_api_key: str | None = Header(None, alias="X-GitHub-Api-Key"),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    return StreamingResponse(
        _ndjson(pipeline.stream(body.repo_url, x_github_api_key)),
        media_type=NDJSON_MEDIA_TYPE,
    )
