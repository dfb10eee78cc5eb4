"""SQLite-backed model usage recorder.

Appends one row per embedding (or vision) call to ``data/usage.db``.  The
ingestion service calls :meth:`record` on a detached task, so errors here
are logged by the caller and never fail a job.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.usage_recorder import IUsageRecorder
from src.models.embedding import UsageRecord

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/usage.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS usage_logs (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    model          TEXT    NOT NULL,
    input_tokens   INTEGER NOT NULL,
    output_tokens  INTEGER NOT NULL,
    request_type   TEXT    NOT NULL,
    document_id    TEXT,
    created_at     TEXT    NOT NULL
);
"""

_INSERT_SQL = """\
INSERT INTO usage_logs (model, input_tokens, output_tokens, request_type, document_id, created_at)
VALUES (?, ?, ?, ?, ?, ?);
"""


class SQLiteUsageRecorder(IUsageRecorder):
    """SQLite persistence for usage records."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the usage_logs table if it doesn't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()
        logger.info("usage_db_initialized", path=str(self._db_path))

    async def record(self, usage: UsageRecord) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _INSERT_SQL,
                (
                    usage.model,
                    usage.input_tokens,
                    usage.output_tokens,
                    usage.request_type,
                    usage.document_id,
                    usage.created_at.isoformat(),
                ),
            )
            await db.commit()

    async def total_tokens(self, document_id: str | None = None) -> int:
        """Return summed input + output tokens, optionally for one document."""
        query = "SELECT COALESCE(SUM(input_tokens + output_tokens), 0) FROM usage_logs"
        params: tuple = ()
        if document_id is not None:
            query += " WHERE document_id = ?"
            params = (document_id,)
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(query, params)
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
