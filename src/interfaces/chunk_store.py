"""Abstract base class for the document and chunk store.

The store holds two kinds of rows: documents (with their ingestion status)
and the chunks derived from them.  Only the ingestion service writes
document status; chunk rows for one document are written only by the worker
that owns that document, so implementations need no locking beyond the
delete-then-insert ordering the ingestion service already guarantees.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.chunk import ChunkRecord
from src.models.document import Document, DocumentStatus


# Concrete implementation: SQLiteChunkStore (src/providers/chunk_store/)
class IChunkStore(ABC):
    """Contract for persisting documents and their chunks."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables if they do not exist. Safe to call repeatedly."""

    @abstractmethod
    async def upsert_document(self, document: Document) -> None:
        """Insert *document* or replace the stored row with the same id."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document, or ``None`` if it is unknown."""

    @abstractmethod
    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        page_count: int | None = None,
    ) -> None:
        """Set a document's status, and its page count when one is given.

        Raises
        ------
        src.utils.errors.StorageError
            If the document does not exist or the write fails.
        """

    @abstractmethod
    async def delete_chunks(self, document_id: str) -> int:
        """Delete every chunk of *document_id*; return the number removed."""

    @abstractmethod
    async def max_chunk_index(self, document_id: str) -> int | None:
        """Return the highest stored ``chunk_index``, or ``None`` without chunks."""

    @abstractmethod
    async def insert_chunks(self, rows: list[ChunkRecord]) -> int:
        """Persist *rows* durably as one unit; return the number inserted.

        Each call must be committed before returning so that a crash after
        N calls leaves exactly N batches stored.
        """

    @abstractmethod
    async def list_chunks(self, document_id: str) -> list[ChunkRecord]:
        """Return a document's chunks ordered by ``chunk_index``."""
