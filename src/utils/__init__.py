"""Utility modules for the ingestion worker.

Available utility modules (re-exported here for convenience):

- **errors** -- Exception hierarchy rooted at IngestError; content errors
  are terminal for a document, collaborator errors are retried.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production, plus the
  per-document context binding used by the ingestion service.
"""

# -- Ingestion exception hierarchy -----------------------------------------
from src.utils.errors import (
    CaptioningError,
    ChunkingError,
    ConfigurationError,
    ContentError,
    EmbeddingError,
    EmptyContentError,
    ExtractionError,
    IngestError,
    StorageError,
    UnsupportedMimeTypeError,
)

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, document_context, get_logger

__all__ = [
    "CaptioningError",
    "ChunkingError",
    "ConfigurationError",
    "ContentError",
    "EmbeddingError",
    "EmptyContentError",
    "ExtractionError",
    "IngestError",
    "StorageError",
    "UnsupportedMimeTypeError",
    "configure_logging",
    "document_context",
    "get_logger",
]
