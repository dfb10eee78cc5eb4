"""Integration tests for DocumentIngestionService with in-memory collaborators.

Covers the document status machine, idempotent reprocessing, append-only
runs, per-batch persistence, progress reporting and usage logging.
"""

from __future__ import annotations

import asyncio
import io

import openpyxl
import pytest

from conftest import (
    FakeEmbeddingProvider,
    FakeFileStorage,
    InMemoryChunkStore,
    RecordingUsageRecorder,
)
from src.models.chunk import (
    CsvChunkMeta,
    ImageChunkMeta,
    JsonChunkMeta,
    SlackChunkMeta,
    TxtChunkMeta,
    XlsxChunkMeta,
)
from src.models.content import SyncedMessage
from src.models.document import Document, DocumentStatus, ProcessDocumentJob
from src.models.pipeline import IngestionPhase
from src.pipeline.progress_tracker import ProgressTracker
from src.services.ingestion.chunker import StructuralChunker
from src.services.ingestion.extraction import ContentExtractor
from src.services.ingestion.ingestion_service import DocumentIngestionService
from src.utils.errors import EmbeddingError, EmptyContentError, UnsupportedMimeTypeError

_LONG_TEXT = "abcd " * 500  # 2500 tokens with the character tokenizer -> 3 chunks


def _register(store: InMemoryChunkStore, document_id: str = "d1", mime: str = "text/plain") -> None:
    store.documents[document_id] = Document(
        id=document_id,
        mime_type=mime,
        storage_path=f"{document_id}/upload",
        status=DocumentStatus.UPLOADED,
    )


def _job(document_id: str = "d1", mime: str = "text/plain", **overrides) -> ProcessDocumentJob:
    return ProcessDocumentJob(
        document_id=document_id,
        storage_path=f"{document_id}/upload",
        mime_type=mime,
        collection_id="col-1",
        **overrides,
    )


# ======================================================================
# Full runs
# ======================================================================


class TestProcessDocument:
    @pytest.mark.asyncio
    async def test_text_upload_end_to_end(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
    ) -> None:
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()

        result = await ingestion_service.process_document(_job())

        assert result.status is DocumentStatus.READY
        assert result.chunks_written == 3
        assert result.batches == 2
        assert chunk_store.status_history == [("d1", DocumentStatus.PROCESSING), ("d1", DocumentStatus.READY)]

        chunks = await chunk_store.list_chunks("d1")
        assert [chunk.chunk_index for chunk in chunks] == [0, 1, 2]
        assert all(chunk.metadata == TxtChunkMeta() for chunk in chunks)
        assert all(chunk.collection_id == "col-1" for chunk in chunks)
        assert all(chunk.source_url == "http://app.test/dashboard/sources?preview=d1" for chunk in chunks)
        assert all(len(chunk.embedding) == 3 for chunk in chunks)
        assert chunk_store.documents["d1"].page_count == 3

    @pytest.mark.asyncio
    async def test_csv_upload_page_count_is_row_count(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
    ) -> None:
        _register(chunk_store, mime="text/csv")
        file_storage.files["d1/upload"] = b"city,pop\nOslo,700000\nBergen,285000\n"

        result = await ingestion_service.process_document(_job(mime="text/csv"))

        chunks = await chunk_store.list_chunks("d1")
        assert result.page_count == 3
        assert chunks[0].metadata == CsvChunkMeta(row=1, columns=["city", "pop"])

    @pytest.mark.asyncio
    async def test_json_upload_gets_json_metadata(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
    ) -> None:
        _register(chunk_store, mime="application/json")
        file_storage.files["d1/upload"] = ('{"items": [' + ", ".join(['"entry"'] * 20) + "]}").encode()

        await ingestion_service.process_document(_job(mime="application/json"))

        chunks = await chunk_store.list_chunks("d1")
        assert [chunk.metadata for chunk in chunks] == [JsonChunkMeta()]

    @pytest.mark.asyncio
    async def test_image_upload_is_captioned_then_chunked(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
    ) -> None:
        _register(chunk_store, mime="image/png")
        file_storage.files["d1/upload"] = b"\x89PNG\r\n\x1a\n"

        await ingestion_service.process_document(_job(mime="image/png"))

        (chunk,) = await chunk_store.list_chunks("d1")
        assert chunk.metadata == ImageChunkMeta()
        assert "bar chart" in chunk.content

    @pytest.mark.asyncio
    async def test_pre_extracted_content_skips_storage(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
    ) -> None:
        _register(chunk_store, mime="application/pdf")

        result = await ingestion_service.process_document(
            _job(mime="application/pdf", content="Synced page body " * 10, source_url="https://wiki.test/p/1")
        )

        (chunk,) = await chunk_store.list_chunks("d1")
        assert result.chunks_written == 1
        assert chunk.metadata == TxtChunkMeta()
        assert chunk.source_url == "https://wiki.test/p/1"

    @pytest.mark.asyncio
    async def test_messages_take_priority_over_content(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
    ) -> None:
        _register(chunk_store)
        messages = [
            SyncedMessage(
                content=f"standup note {i} " * 4,
                grouping_context=SlackChunkMeta(channel_id="C1", authors=[f"user{i}"]),
            )
            for i in range(3)
        ]
        messages.append(
            SyncedMessage(content="   ", grouping_context=SlackChunkMeta(channel_id="C1", authors=["ghost"]))
        )

        await ingestion_service.process_document(_job(content="ignored", messages=messages))

        (chunk,) = await chunk_store.list_chunks("d1")
        assert chunk.metadata == SlackChunkMeta(channel_id="C1", authors=["user0", "user1", "user2"])
        assert "ignored" not in chunk.content

    @pytest.mark.asyncio
    async def test_xlsx_sheets_carry_sheet_metadata(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
    ) -> None:
        workbook = openpyxl.Workbook()
        worksheet = workbook.active
        worksheet.title = "Budget"
        for row in (["item", "cost"], ["laptops", 12000], ["licences", 3400]):
            worksheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)

        mime = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        _register(chunk_store, mime=mime)
        file_storage.files["d1/upload"] = buffer.getvalue()

        result = await ingestion_service.process_document(_job(mime=mime))

        (chunk,) = await chunk_store.list_chunks("d1")
        assert chunk.metadata == XlsxChunkMeta(sheet="Budget", row=1, columns=["item", "cost"])
        assert result.page_count == 3


# ======================================================================
# Idempotency and append-only runs
# ======================================================================


class TestReprocessing:
    @pytest.mark.asyncio
    async def test_reprocessing_replaces_chunks(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
    ) -> None:
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()

        await ingestion_service.process_document(_job())
        first = await chunk_store.list_chunks("d1")
        await ingestion_service.process_document(_job())
        second = await chunk_store.list_chunks("d1")

        assert [c.content for c in first] == [c.content for c in second]
        assert [c.chunk_index for c in second] == [0, 1, 2]
        assert {c.id for c in first}.isdisjoint({c.id for c in second})

    @pytest.mark.asyncio
    async def test_append_continues_after_max_index(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
    ) -> None:
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()
        await ingestion_service.process_document(_job())
        original = await chunk_store.list_chunks("d1")
        chunk_store.status_history.clear()

        result = await ingestion_service.process_document(
            _job(content="New thread reply that arrived after the first sync, with the agreed follow-up actions.", append_only=True)
        )

        chunks = await chunk_store.list_chunks("d1")
        assert result.chunk_index_offset == 3
        assert [c.chunk_index for c in chunks] == [0, 1, 2, 3]
        assert chunks[:3] == original
        assert [(c.id, c.content, c.metadata, c.embedding) for c in chunks[:3]] == [
            (c.id, c.content, c.metadata, c.embedding) for c in original
        ]
        assert chunks[-1].content.startswith("New thread reply")
        # Append runs never pass through PROCESSING.
        assert chunk_store.status_history == [("d1", DocumentStatus.READY)]

    @pytest.mark.asyncio
    async def test_append_to_document_without_chunks_starts_at_zero(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
    ) -> None:
        _register(chunk_store)

        result = await ingestion_service.process_document(
            _job(content="First synced message for this channel, posted before any earlier history existed.", append_only=True)
        )

        assert result.chunk_index_offset == 0


# ======================================================================
# Failures
# ======================================================================


class TestFailures:
    @pytest.mark.asyncio
    async def test_blank_upload_marks_document_failed(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
        progress_tracker: ProgressTracker,
    ) -> None:
        _register(chunk_store)
        file_storage.files["d1/upload"] = b"  \n\n  "

        with pytest.raises(EmptyContentError):
            await ingestion_service.process_document(_job())

        assert chunk_store.documents["d1"].status is DocumentStatus.FAILED
        assert progress_tracker.get_status("d1")["phase"] == IngestionPhase.FAILED.value

    @pytest.mark.asyncio
    async def test_unsupported_mime_marks_document_failed(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
    ) -> None:
        _register(chunk_store, mime="application/zip")

        with pytest.raises(UnsupportedMimeTypeError):
            await ingestion_service.process_document(_job(mime="application/zip"))

        assert chunk_store.documents["d1"].status is DocumentStatus.FAILED

    @pytest.mark.asyncio
    async def test_failed_append_run_still_marks_failed(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
    ) -> None:
        _register(chunk_store, mime="application/zip")

        with pytest.raises(UnsupportedMimeTypeError):
            await ingestion_service.process_document(_job(mime="application/zip", append_only=True))

        assert chunk_store.status_history == [("d1", DocumentStatus.FAILED)]

    @pytest.mark.asyncio
    async def test_embedding_failure_keeps_earlier_batches(
        self,
        chunk_store: InMemoryChunkStore,
        extractor: ContentExtractor,
        chunker: StructuralChunker,
        file_storage: FakeFileStorage,
    ) -> None:
        service = DocumentIngestionService(
            chunk_store=chunk_store,
            embedding_provider=FakeEmbeddingProvider(fail_on_calls={2}),
            extractor=extractor,
            chunker=chunker,
            embedding_batch_size=1,
        )
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()

        with pytest.raises(EmbeddingError):
            await service.process_document(_job())

        assert chunk_store.insert_calls == 1
        assert [c.chunk_index for c in await chunk_store.list_chunks("d1")] == [0]
        assert chunk_store.documents["d1"].status is DocumentStatus.FAILED

    @pytest.mark.asyncio
    async def test_retry_after_partial_failure_starts_clean(
        self,
        chunk_store: InMemoryChunkStore,
        extractor: ContentExtractor,
        chunker: StructuralChunker,
        file_storage: FakeFileStorage,
    ) -> None:
        service = DocumentIngestionService(
            chunk_store=chunk_store,
            embedding_provider=FakeEmbeddingProvider(fail_on_calls={2}),
            extractor=extractor,
            chunker=chunker,
            embedding_batch_size=1,
        )
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()

        with pytest.raises(EmbeddingError):
            await service.process_document(_job())
        result = await service.process_document(_job())

        assert result.status is DocumentStatus.READY
        assert [c.chunk_index for c in await chunk_store.list_chunks("d1")] == [0, 1, 2]

    def test_batch_size_must_be_positive(
        self,
        chunk_store: InMemoryChunkStore,
        extractor: ContentExtractor,
        chunker: StructuralChunker,
    ) -> None:
        with pytest.raises(ValueError):
            DocumentIngestionService(
                chunk_store=chunk_store,
                embedding_provider=FakeEmbeddingProvider(),
                extractor=extractor,
                chunker=chunker,
                embedding_batch_size=0,
            )


# ======================================================================
# Side channels
# ======================================================================


class TestSideChannels:
    @pytest.mark.asyncio
    async def test_progress_reported_per_batch(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
        progress_tracker: ProgressTracker,
    ) -> None:
        seen: list[tuple[IngestionPhase, float]] = []
        progress_tracker.register_listener("d1", lambda _id, phase, progress, _msg: seen.append((phase, progress)))
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()

        await ingestion_service.process_document(_job())

        assert seen == [
            (IngestionPhase.EXTRACTING, 0.0),
            (IngestionPhase.CHUNKING, 0.0),
            (IngestionPhase.EMBEDDING, 50.0),
            (IngestionPhase.EMBEDDING, 100.0),
            (IngestionPhase.COMPLETED, 100.0),
        ]

    @pytest.mark.asyncio
    async def test_usage_recorded_per_batch(
        self,
        ingestion_service: DocumentIngestionService,
        chunk_store: InMemoryChunkStore,
        file_storage: FakeFileStorage,
        usage_recorder: RecordingUsageRecorder,
    ) -> None:
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()

        await ingestion_service.process_document(_job())
        await ingestion_service.drain_usage()

        assert len(usage_recorder.records) == 2
        assert {record.model for record in usage_recorder.records} == {"fake-embedding"}
        assert all(record.document_id == "d1" for record in usage_recorder.records)

    @pytest.mark.asyncio
    async def test_usage_failure_never_fails_the_job(
        self,
        chunk_store: InMemoryChunkStore,
        extractor: ContentExtractor,
        chunker: StructuralChunker,
        file_storage: FakeFileStorage,
    ) -> None:
        service = DocumentIngestionService(
            chunk_store=chunk_store,
            embedding_provider=FakeEmbeddingProvider(),
            extractor=extractor,
            chunker=chunker,
            usage_recorder=RecordingUsageRecorder(fail=True),
        )
        _register(chunk_store)
        file_storage.files["d1/upload"] = _LONG_TEXT.encode()

        result = await service.process_document(_job())
        await service.drain_usage()
        await asyncio.sleep(0)

        assert result.status is DocumentStatus.READY
