"""SQLite-backed document and chunk store.

Persists documents and their embedded chunks to a local SQLite database at
``data/chunks.db``.  Uses ``aiosqlite`` for async I/O.  Chunk metadata and
embedding vectors are stored as JSON text; metadata is validated back into
its :data:`~src.models.chunk.ChunkMetadata` variant on read.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.chunk_store import IChunkStore
from src.models.chunk import ChunkRecord, dump_chunk_metadata, parse_chunk_metadata
from src.models.document import Document, DocumentStatus
from src.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/chunks.db")

_CREATE_DOCUMENTS_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id             TEXT PRIMARY KEY,
    mime_type      TEXT NOT NULL,
    storage_path   TEXT NOT NULL DEFAULT '',
    collection_id  TEXT,
    status         TEXT NOT NULL,
    page_count     INTEGER,
    updated_at     TEXT NOT NULL
);
"""

_CREATE_CHUNKS_SQL = """\
CREATE TABLE IF NOT EXISTS chunks (
    id             TEXT PRIMARY KEY,
    document_id    TEXT NOT NULL,
    collection_id  TEXT,
    content        TEXT NOT NULL,
    chunk_index    INTEGER NOT NULL,
    metadata       TEXT NOT NULL,
    source_url     TEXT NOT NULL DEFAULT '',
    embedding      TEXT NOT NULL,
    created_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id, chunk_index);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_collection ON chunks(collection_id);",
]

_UPSERT_DOCUMENT_SQL = """\
INSERT INTO documents (id, mime_type, storage_path, collection_id, status, page_count, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET mime_type     = excluded.mime_type,
              storage_path  = excluded.storage_path,
              collection_id = excluded.collection_id,
              status        = excluded.status,
              page_count    = excluded.page_count,
              updated_at    = excluded.updated_at;
"""

_SELECT_DOCUMENT_SQL = """\
SELECT id, mime_type, storage_path, collection_id, status, page_count, updated_at
FROM documents
WHERE id = ?;
"""

_INSERT_CHUNK_SQL = """\
INSERT INTO chunks (id, document_id, collection_id, content, chunk_index, metadata, source_url, embedding)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_CHUNKS_SQL = """\
SELECT id, document_id, collection_id, content, chunk_index, metadata, source_url, embedding
FROM chunks
WHERE document_id = ?
ORDER BY chunk_index;
"""


def _utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()  # noqa: UP017


class SQLiteChunkStore(IChunkStore):
    """SQLite persistence for documents and chunks.

    Every write opens its own connection and commits before returning, so
    each :meth:`insert_chunks` call is durable on its own.
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the documents and chunks tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_DOCUMENTS_SQL)
                await db.execute(_CREATE_CHUNKS_SQL)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(f"Cannot initialise chunk database: {exc}", self.get_provider_name()) from exc
        logger.info("chunk_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def upsert_document(self, document: Document) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _UPSERT_DOCUMENT_SQL,
                    (
                        document.id,
                        document.mime_type,
                        document.storage_path,
                        document.collection_id,
                        document.status.value,
                        document.page_count,
                        document.updated_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(f"Cannot save document {document.id}: {exc}", self.get_provider_name()) from exc

    async def get_document(self, document_id: str) -> Document | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_DOCUMENT_SQL, (document_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return Document(
            id=row["id"],
            mime_type=row["mime_type"],
            storage_path=row["storage_path"],
            collection_id=row["collection_id"],
            status=DocumentStatus(row["status"]),
            page_count=row["page_count"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        page_count: int | None = None,
    ) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                if page_count is None:
                    cursor = await db.execute(
                        "UPDATE documents SET status = ?, updated_at = ? WHERE id = ?",
                        (status.value, _utc_now(), document_id),
                    )
                else:
                    cursor = await db.execute(
                        "UPDATE documents SET status = ?, page_count = ?, updated_at = ? WHERE id = ?",
                        (status.value, page_count, _utc_now(), document_id),
                    )
                await db.commit()
                updated = cursor.rowcount
        except aiosqlite.Error as exc:
            raise StorageError(
                f"Cannot update status of {document_id}: {exc}", self.get_provider_name()
            ) from exc

        if updated == 0:
            raise StorageError(f"Unknown document: {document_id}", self.get_provider_name())
        logger.info("document_status_updated", document_id=document_id, status=status.value)

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def delete_chunks(self, document_id: str) -> int:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
                await db.commit()
                return cursor.rowcount
        except aiosqlite.Error as exc:
            raise StorageError(
                f"Cannot delete chunks of {document_id}: {exc}", self.get_provider_name()
            ) from exc

    async def max_chunk_index(self, document_id: str) -> int | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT MAX(chunk_index) FROM chunks WHERE document_id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        return None if row is None or row[0] is None else int(row[0])

    async def insert_chunks(self, rows: list[ChunkRecord]) -> int:
        if not rows:
            return 0
        values = [
            (
                row.id,
                row.document_id,
                row.collection_id,
                row.content,
                row.chunk_index,
                dump_chunk_metadata(row.metadata),
                row.source_url,
                json.dumps(row.embedding),
            )
            for row in rows
        ]
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.executemany(_INSERT_CHUNK_SQL, values)
                await db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(f"Cannot insert chunks: {exc}", self.get_provider_name()) from exc
        return len(rows)

    async def list_chunks(self, document_id: str) -> list[ChunkRecord]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_CHUNKS_SQL, (document_id,))
            rows = await cursor.fetchall()
        return [
            ChunkRecord(
                id=row["id"],
                document_id=row["document_id"],
                collection_id=row["collection_id"],
                content=row["content"],
                chunk_index=row["chunk_index"],
                metadata=parse_chunk_metadata(row["metadata"]),
                source_url=row["source_url"],
                embedding=json.loads(row["embedding"]),
            )
            for row in rows
        ]

    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
        return "sqlite_chunk_store"
