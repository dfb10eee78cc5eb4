"""Ingestion domain models - re-exports all public model classes.

Other parts of the codebase import from ``src.models`` rather than the
individual submodules:
    - chunk.py      - Chunk metadata union, chunker output, persisted chunk rows
    - content.py    - Extraction output (the ``RawContent`` union)
    - document.py   - Document lifecycle, job payload, supported mime table
    - embedding.py  - Embedding results and usage telemetry
    - pipeline.py   - Phases reported to progress listeners

If you add a new public model class, add it to ``__all__`` too.
"""

from __future__ import annotations

from src.models.chunk import (
    ChunkDraft,
    ChunkMetadata,
    ChunkMetaType,
    ChunkRecord,
    CsvChunkMeta,
    DocxChunkMeta,
    ImageChunkMeta,
    JsonChunkMeta,
    PdfChunkMeta,
    SlackChunkMeta,
    SplitOptions,
    TxtChunkMeta,
    XlsxChunkMeta,
    dump_chunk_metadata,
    parse_chunk_metadata,
)
from src.models.content import (
    MessagesContent,
    PagesContent,
    PageText,
    RawContent,
    RowsContent,
    SheetData,
    SheetRow,
    SheetsContent,
    SyncedMessage,
    TextContent,
)
from src.models.document import (
    SUPPORTED_MIME_TYPES,
    Document,
    DocumentStatus,
    IngestionResult,
    ProcessDocumentJob,
    SourceType,
    preview_url,
    source_type_for,
)
from src.models.embedding import EmbeddingBatch, UsageRecord
from src.models.pipeline import IngestionPhase

__all__ = [
    # chunk
    "ChunkDraft",
    "ChunkMetaType",
    "ChunkMetadata",
    "ChunkRecord",
    "CsvChunkMeta",
    "DocxChunkMeta",
    "ImageChunkMeta",
    "JsonChunkMeta",
    "PdfChunkMeta",
    "SlackChunkMeta",
    "SplitOptions",
    "TxtChunkMeta",
    "XlsxChunkMeta",
    "dump_chunk_metadata",
    "parse_chunk_metadata",
    # content
    "MessagesContent",
    "PageText",
    "PagesContent",
    "RawContent",
    "RowsContent",
    "SheetData",
    "SheetRow",
    "SheetsContent",
    "SyncedMessage",
    "TextContent",
    # document
    "SUPPORTED_MIME_TYPES",
    "Document",
    "DocumentStatus",
    "IngestionResult",
    "ProcessDocumentJob",
    "SourceType",
    "preview_url",
    "source_type_for",
    # embedding
    "EmbeddingBatch",
    "UsageRecord",
    # pipeline
    "IngestionPhase",
]
