"""Embedding call results and usage accounting records."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingBatch(BaseModel):
    """Vectors for one embedding request, in input order."""

    model_config = ConfigDict(frozen=True)

    vectors: list[list[float]] = Field(default_factory=list)
    token_usage: int = Field(default=0, ge=0, description="Tokens billed for the request.")


class UsageRecord(BaseModel):
    """One row of model usage telemetry (written fire-and-forget)."""

    model_config = ConfigDict(frozen=True)

    model: str
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    request_type: str = "embedding"
    document_id: str | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
