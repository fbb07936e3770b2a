"""Influencer analysis request schema."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AnalyzeRequest(BaseModel):
    """Body of ``POST /api/github-influencers``.

    A missing URL is not rejected here; the stream reports it as its
    terminal record.
    """

    model_config = ConfigDict(populate_by_name=True)

    repo_url: str | None = Field(default=None, alias="repoUrl")
