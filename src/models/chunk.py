"""Chunk data models for the ingestion pipeline.

Defines Pydantic v2 models for chunk metadata, chunker output, and the
persisted chunk row.  All models use frozen config so a chunk produced by a
chunker can never be mutated on its way to the chunk store.

``ChunkMetadata`` is a closed discriminated union keyed on ``type``: every
structural chunker constructs exactly one variant, and anything reading
metadata back from storage goes through :func:`parse_chunk_metadata` so an
unknown ``type`` fails validation instead of flowing on as a loose dict.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ChunkMetaType(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Discriminants of :data:`ChunkMetadata`, one per producing chunker."""

    PDF = "PDF"
    DOCX = "DOCX"
    XLSX = "XLSX"
    CSV = "CSV"
    TXT = "TXT"
    JSON = "JSON"
    IMAGE = "IMAGE"
    SLACK = "SLACK"


# ---------------------------------------------------------------------------
# SplitOptions - the token budget every chunker works within.
# ---------------------------------------------------------------------------
class SplitOptions(BaseModel):
    """Token limits for a chunking run.

    ``overlap_tokens >= max_tokens`` is a caller error (the overlap would
    swallow whole chunks); :meth:`src.config.settings.Settings.chunking_options`
    rejects it at startup.
    """

    model_config = ConfigDict(frozen=True)

    max_tokens: int = Field(gt=0, description="Upper bound on tokens per chunk.")
    overlap_tokens: int = Field(default=0, ge=0, description="Tokens repeated from the previous chunk.")
    min_tokens: int = Field(default=0, ge=0, description="Chunks below this are merged or dropped.")


# ---------------------------------------------------------------------------
# ChunkMetadata variants - upload types (location within a file).
# ---------------------------------------------------------------------------
class PdfChunkMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["PDF"] = "PDF"
    pages: list[int] = Field(description="Sorted, distinct 1-based page numbers the chunk touches.")


class DocxChunkMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["DOCX"] = "DOCX"
    pages: list[int] = Field(description="Sorted, distinct 1-based page numbers the chunk touches.")


class XlsxChunkMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["XLSX"] = "XLSX"
    sheet: str
    row: int = Field(description="Row number at which this chunk's rows begin.")
    columns: list[str] = Field(default_factory=list, description="Header columns of the sheet.")


class CsvChunkMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["CSV"] = "CSV"
    row: int = Field(description="Row number at which this chunk's rows begin.")
    columns: list[str] = Field(default_factory=list, description="Header columns of the file.")


class TxtChunkMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["TXT"] = "TXT"


class JsonChunkMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["JSON"] = "JSON"


class ImageChunkMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["IMAGE"] = "IMAGE"


# ---------------------------------------------------------------------------
# ChunkMetadata variants - integration types (location within an external system).
# ---------------------------------------------------------------------------
class SlackChunkMeta(BaseModel):
    """Metadata for a window of Slack messages from one channel.

    Slack declares author collection: messages group by channel regardless
    of who wrote them, and every author merged into the chunk is kept in
    ``authors`` (deduplicated, first-seen order).
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["SLACK"] = "SLACK"
    channel_id: str
    authors: list[str] = Field(default_factory=list)

    def with_authors(self, other: SlackChunkMeta) -> SlackChunkMeta:
        """Return a copy whose author set also contains *other*'s authors."""
        merged = list(self.authors)
        for author in other.authors:
            if author not in merged:
                merged.append(author)
        return self.model_copy(update={"authors": merged})


ChunkMetadata = Annotated[
    Union[
        PdfChunkMeta,
        DocxChunkMeta,
        XlsxChunkMeta,
        CsvChunkMeta,
        TxtChunkMeta,
        JsonChunkMeta,
        ImageChunkMeta,
        SlackChunkMeta,
    ],
    Field(discriminator="type"),
]

_CHUNK_METADATA_ADAPTER: TypeAdapter[ChunkMetadata] = TypeAdapter(ChunkMetadata)


def parse_chunk_metadata(raw: dict | str | bytes) -> ChunkMetadata:
    """Validate stored metadata (a dict or JSON text) back into its variant.

    Raises
    ------
    pydantic.ValidationError
        If ``type`` is missing or unknown, or the variant's fields are malformed.
    """
    if isinstance(raw, (str, bytes)):
        return _CHUNK_METADATA_ADAPTER.validate_json(raw)
    return _CHUNK_METADATA_ADAPTER.validate_python(raw)


def dump_chunk_metadata(meta: ChunkMetadata) -> str:
    """Serialise metadata to the JSON stored alongside a chunk."""
    return _CHUNK_METADATA_ADAPTER.dump_json(meta).decode("utf-8")


# ---------------------------------------------------------------------------
# ChunkDraft - chunker output, before embedding.
# ---------------------------------------------------------------------------
class ChunkDraft(BaseModel):
    """A chunk produced by a structural chunker, not yet embedded or indexed."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: ChunkMetadata
    source_url: str = ""


# ---------------------------------------------------------------------------
# ChunkRecord - the persisted chunk row.
# ---------------------------------------------------------------------------
class ChunkRecord(BaseModel):
    """A chunk as written to the chunk store after its batch was embedded.

    ``chunk_index`` is zero-based and contiguous per document at write time;
    append-only runs continue from the previous maximum plus one.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for this chunk.")
    document_id: str
    collection_id: str | None = None
    content: str
    chunk_index: int = Field(ge=0)
    metadata: ChunkMetadata
    source_url: str = ""
    embedding: list[float] = Field(default_factory=list)
