"""Unit tests for ProgressTracker."""

from __future__ import annotations

import pytest

from src.models.pipeline import IngestionPhase
from src.pipeline.progress_tracker import ProgressTracker


class TestProgressTracker:
    @pytest.fixture()
    def tracker(self) -> ProgressTracker:
        return ProgressTracker()

    def test_untracked_document_is_queued(self, tracker: ProgressTracker) -> None:
        assert tracker.get_status("d1") == {"phase": "QUEUED", "progress": 0.0, "message": ""}

    @pytest.mark.asyncio
    async def test_update_is_recorded_and_clamped(self, tracker: ProgressTracker) -> None:
        await tracker.update("d1", IngestionPhase.CHUNKING, 150.0, "splitting")

        assert tracker.get_status("d1") == {"phase": "CHUNKING", "progress": 100.0, "message": "splitting"}

    @pytest.mark.asyncio
    async def test_report_batch_percentages(self, tracker: ProgressTracker) -> None:
        await tracker.report_batch("d1", 1, 4)
        assert tracker.get_status("d1")["progress"] == 25.0
        assert tracker.get_status("d1")["phase"] == "EMBEDDING"

        await tracker.report_batch("d1", 0, 0)
        assert tracker.get_status("d1")["progress"] == 100.0

    @pytest.mark.asyncio
    async def test_listeners_only_see_their_document(self, tracker: ProgressTracker) -> None:
        seen: list[tuple] = []

        async def listener(document_id, phase, progress, message) -> None:
            seen.append((document_id, phase, progress))

        tracker.register_listener("d1", listener)
        await tracker.update("d1", IngestionPhase.EXTRACTING, 0.0)
        await tracker.update("d2", IngestionPhase.EXTRACTING, 0.0)

        assert seen == [("d1", IngestionPhase.EXTRACTING, 0.0)]

    @pytest.mark.asyncio
    async def test_broken_listener_does_not_raise(self, tracker: ProgressTracker) -> None:
        calls: list[str] = []

        def broken(*_args) -> None:
            raise RuntimeError("listener bug")

        def healthy(document_id, *_args) -> None:
            calls.append(document_id)

        tracker.register_listener("d1", broken)
        tracker.register_listener("d1", healthy)
        await tracker.update("d1", IngestionPhase.COMPLETED, 100.0)

        assert calls == ["d1"]

    @pytest.mark.asyncio
    async def test_unregister_and_clear(self, tracker: ProgressTracker) -> None:
        calls: list[str] = []

        def listener(document_id, *_args) -> None:
            calls.append(document_id)

        tracker.register_listener("d1", listener)
        tracker.register_listener("d1", listener)
        tracker.unregister_listener("d1", listener)
        await tracker.update("d1", IngestionPhase.FAILED, 0.0)
        tracker.clear("d1")

        assert calls == []
        assert tracker.get_status("d1")["phase"] == "QUEUED"
