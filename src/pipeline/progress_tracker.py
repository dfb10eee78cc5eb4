"""Ingestion progress tracking with callback-based listener notification.

Tracks the current phase and batch progress of each document being ingested
and broadcasts updates to registered listener callbacks.  Listeners are
keyed by document ID so concurrent jobs never see each other's updates.

# ─── HOW PROGRESS TRACKING WORKS ──────────────────────────────────────
#
#   IngestionService ──update()──→ ProgressTracker ──callback()──→ CLI printer
#                                                  ──→ (any other listener)
#
#   - Progress for the EMBEDDING phase is batches_done / total_batches * 100,
#     capped at 100, so it only ever moves forward within a run.
#   - Listener errors are caught and logged; a broken listener never fails
#     the ingestion job.
#   - Both sync and async callbacks are supported.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from src.models.pipeline import IngestionPhase
from src.utils.logging import get_logger


@dataclass
class _DocumentProgress:
    """Internal snapshot of a single document's progress."""

    phase: IngestionPhase = IngestionPhase.QUEUED
    progress: float = 0.0
    message: str = ""


class ProgressTracker:
    """Tracks and broadcasts ingestion progress via callbacks.

    Callbacks receive ``(document_id, phase, progress, message)`` and may
    be plain functions or coroutines.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, _DocumentProgress] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        document_id: str,
        phase: IngestionPhase,
        progress: float,
        message: str = "",
    ) -> None:
        """Record a progress update and notify the document's listeners.

        Parameters
        ----------
        document_id:
            The document being ingested.
        phase:
            The current ingestion phase.
        progress:
            Completion percentage, clamped to 0.0 – 100.0.
        message:
            Human-readable status message.
        """
        progress = max(0.0, min(100.0, progress))
        self._statuses[document_id] = _DocumentProgress(phase=phase, progress=progress, message=message)

        self._logger.debug(
            "progress_update",
            document_id=document_id,
            phase=phase.value,
            progress=round(progress, 1),
        )
        await self._notify_listeners(document_id, phase, progress, message)

    async def report_batch(self, document_id: str, batches_done: int, total_batches: int) -> None:
        """Publish EMBEDDING progress after a batch has been persisted."""
        percent = 100.0 if total_batches <= 0 else batches_done / total_batches * 100
        await self.update(
            document_id,
            IngestionPhase.EMBEDDING,
            min(100.0, percent),
            f"Stored batch {batches_done}/{total_batches}",
        )

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register *callback* for updates about *document_id*."""
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)
        if not listeners:
            self._listeners.pop(document_id, None)

    def get_status(self, document_id: str) -> dict:
        """Return the latest ``phase``, ``progress`` and ``message`` for a document.

        Untracked documents report ``QUEUED`` at 0 %.
        """
        status = self._statuses.get(document_id, _DocumentProgress())
        return {
            "phase": status.phase.value,
            "progress": status.progress,
            "message": status.message,
        }

    def clear(self, document_id: str) -> None:
        """Forget a finished document's snapshot (listeners are kept)."""
        self._statuses.pop(document_id, None)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(
        self,
        document_id: str,
        phase: IngestionPhase,
        progress: float,
        message: str,
    ) -> None:
        for callback in list(self._listeners.get(document_id, [])):
            try:
                result = callback(document_id, phase, progress, message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
