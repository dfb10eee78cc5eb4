"""Abstract base class for model-usage telemetry sinks."""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.embedding import UsageRecord


# Concrete implementation: SQLiteUsageRecorder (src/providers/usage/)
class IUsageRecorder(ABC):
    """Contract for recording token usage of model calls.

    Recording is fire-and-forget from the ingestion service's point of view:
    callers schedule :meth:`record` on a detached task and only log failures.
    """

    @abstractmethod
    async def record(self, usage: UsageRecord) -> None:
        """Persist one usage record."""
