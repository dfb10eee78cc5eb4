"""Document, job payload, and ingestion result models.

The chunk store owns ``Document`` rows; the ingestion service is the only
writer of ``status`` (see DocumentIngestionService).  ``ProcessDocumentJob``
is the payload a job queue delivers to ``process_document``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.models.content import SyncedMessage


# ---------------------------------------------------------------------------
# DocumentStatus - the ingestion state machine.
# ---------------------------------------------------------------------------
class DocumentStatus(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Lifecycle of an ingested document.

        UPLOADED → PROCESSING → READY
                        └────→ FAILED

    Append-only runs skip PROCESSING: the document keeps serving reads
    from its existing chunks while new ones are added.
    """

    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    READY = "READY"
    FAILED = "FAILED"


class Document(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    mime_type: str
    storage_path: str = ""
    collection_id: str | None = None
    status: DocumentStatus = DocumentStatus.UPLOADED
    page_count: int | None = None
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


# ---------------------------------------------------------------------------
# ProcessDocumentJob - the job payload.
# ---------------------------------------------------------------------------
class ProcessDocumentJob(BaseModel):
    """Input to :meth:`DocumentIngestionService.process_document`.

    Content is resolved by priority: ``messages`` > ``content`` >
    image captioning (``image/*`` mime) > format extraction of
    ``storage_path`` keyed by ``mime_type``.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    storage_path: str = ""
    mime_type: str
    collection_id: str | None = None
    # Pre-extracted text, used by integration sources to skip file extraction.
    content: str | None = None
    # Structured messages; takes precedence over ``content``.
    messages: list[SyncedMessage] | None = None
    # Source URL for every chunk; defaults to the dashboard preview link.
    source_url: str | None = None
    # Add chunks after the existing ones instead of replacing them.
    append_only: bool = False


class IngestionResult(BaseModel):
    """Summary of one ``process_document`` run."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    status: DocumentStatus
    chunks_written: int = Field(default=0, ge=0)
    chunk_index_offset: int = Field(default=0, ge=0)
    page_count: int | None = None
    batches: int = Field(default=0, ge=0)
    elapsed_seconds: float = Field(default=0.0, ge=0.0)
    append_only: bool = False


# ---------------------------------------------------------------------------
# Supported uploads - mime type → source type.
# ---------------------------------------------------------------------------
class SourceType(str, Enum):  # noqa: UP042
    PDF = "PDF"
    DOCX = "DOCX"
    XLSX = "XLSX"
    CSV = "CSV"
    TXT = "TXT"
    JSON = "JSON"
    IMAGE = "IMAGE"


SUPPORTED_MIME_TYPES: dict[str, SourceType] = {
    "application/pdf": SourceType.PDF,
    "text/csv": SourceType.CSV,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": SourceType.DOCX,
    "application/msword": SourceType.DOCX,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": SourceType.XLSX,
    "application/vnd.ms-excel": SourceType.XLSX,
    "text/plain": SourceType.TXT,
    "application/json": SourceType.JSON,
    "image/png": SourceType.IMAGE,
    "image/jpeg": SourceType.IMAGE,
    "image/webp": SourceType.IMAGE,
    "image/gif": SourceType.IMAGE,
}


def source_type_for(mime_type: str) -> SourceType | None:
    """Return the source type for *mime_type*, or ``None`` if unsupported."""
    return SUPPORTED_MIME_TYPES.get(mime_type.split(";", 1)[0].strip().lower())


def preview_url(frontend_url: str, document_id: str) -> str:
    """Return the dashboard link used as the default chunk source URL."""
    return f"{frontend_url.rstrip('/')}/dashboard/sources?preview={document_id}"
