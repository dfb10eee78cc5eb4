"""Ingestion run phases, as reported to progress listeners.

Document *status* (``DocumentStatus``) is what the chunk store persists; the
phase is the finer-grained, in-memory view of where a running job is.
"""

from __future__ import annotations

from enum import Enum


class IngestionPhase(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Phases of one ``process_document`` run, in order.

        QUEUED → EXTRACTING → CHUNKING → EMBEDDING → COMPLETED
                                                  └→ FAILED (from any phase)
    """

    QUEUED = "QUEUED"           # Accepted, not started
    EXTRACTING = "EXTRACTING"   # Resolving RawContent (messages, text, caption, parser)
    CHUNKING = "CHUNKING"       # Structural chunker running
    EMBEDDING = "EMBEDDING"     # Batches being embedded and persisted
    COMPLETED = "COMPLETED"     # Document READY
    FAILED = "FAILED"           # Document FAILED
