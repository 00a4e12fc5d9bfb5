from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UploadMeta(BaseModel):
    """Upload provenance: which game the records belong to and which tool produced them."""

    game: str = Field(min_length=1)
    service: str = Field(min_length=1)

    model_config = ConfigDict(extra="allow")


class ScoreUploadEnvelope(BaseModel):
    """Canonical upload request body. `scores` is one record or a list of records."""

    meta: UploadMeta
    scores: dict[str, Any] | list[dict[str, Any]]

    model_config = ConfigDict(extra="allow")

    def records(self) -> list[dict[str, Any]]:
        return list(self.scores) if isinstance(self.scores, list) else [self.scores]


class ScoreUploadResponse(BaseModel):
    message: str = "Score upload processed successfully"
    game: str
    service: str
    scoreCount: int
    skippedCount: int
    totalProcessed: int
