"""Orchestrator for document ingestion: extract → chunk → embed → store.

The :class:`DocumentIngestionService` implements the **Orchestrator
pattern**: it coordinates the extractor, the structural chunker, the
embedding provider and the chunk store without any of them knowing about
each other.  It is also the only component that changes a document's
status:

    UPLOADED → PROCESSING → READY
                    └────→ FAILED   (any error after the run starts; re-raised)

Append-only runs skip PROCESSING because the document keeps serving reads
from its existing chunks while new ones are added.

Re-running a job is safe.  A full run deletes every existing chunk before
writing, and chunks are written batch by batch, so a crash after N batches
leaves N batches stored and the retry starts again from an empty set.
"""

from __future__ import annotations

import asyncio
import math
import time
import uuid
from typing import TYPE_CHECKING

import structlog
from typing_extensions import assert_never

from src.models.chunk import (
    ChunkDraft,
    ChunkMetadata,
    ChunkRecord,
    ImageChunkMeta,
    JsonChunkMeta,
    TxtChunkMeta,
)
from src.models.content import (
    MessagesContent,
    PagesContent,
    RawContent,
    RowsContent,
    SheetsContent,
    TextContent,
)
from src.models.document import (
    DocumentStatus,
    IngestionResult,
    ProcessDocumentJob,
    SourceType,
    preview_url,
    source_type_for,
)
from src.models.embedding import UsageRecord
from src.models.pipeline import IngestionPhase
from src.utils.errors import EmbeddingError, EmptyContentError
from src.utils.logging import document_context

if TYPE_CHECKING:
    # Interfaces are only needed for annotations.
    from src.interfaces.chunk_store import IChunkStore
    from src.interfaces.embedding_provider import IEmbeddingProvider
    from src.interfaces.usage_recorder import IUsageRecorder
    from src.pipeline.progress_tracker import ProgressTracker
    from src.services.ingestion.chunker import StructuralChunker
    from src.services.ingestion.extraction import ContentExtractor

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_EMBEDDING_BATCH_SIZE = 100


class DocumentIngestionService:
    """Runs one ingestion job per call to :meth:`process_document`.

    Parameters
    ----------
    chunk_store:
        Document status and chunk persistence.
    embedding_provider:
        Embeds each batch of chunk texts.
    extractor:
        Turns stored uploads into ``RawContent``.
    chunker:
        Structural chunkers sharing the deployment's token budget.
    progress_tracker:
        Receives phase and batch progress; optional.
    usage_recorder:
        Receives embedding token usage, fire-and-forget; optional.
    embedding_batch_size:
        Chunks per embedding request (and per store insert).
    frontend_url:
        Base of the default preview link used as the chunks' source URL.
    """

    def __init__(
        self,
        chunk_store: IChunkStore,
        embedding_provider: IEmbeddingProvider,
        extractor: ContentExtractor,
        chunker: StructuralChunker,
        progress_tracker: ProgressTracker | None = None,
        usage_recorder: IUsageRecorder | None = None,
        embedding_batch_size: int = DEFAULT_EMBEDDING_BATCH_SIZE,
        frontend_url: str = "http://localhost:5173",
    ) -> None:
        if embedding_batch_size <= 0:
            raise ValueError(f"embedding_batch_size must be positive, got {embedding_batch_size}")
        self._store = chunk_store
        self._embedding_provider = embedding_provider
        self._extractor = extractor
        self._chunker = chunker
        self._progress = progress_tracker
        self._usage_recorder = usage_recorder
        self._batch_size = embedding_batch_size
        self._frontend_url = frontend_url
        # Detached usage-logging tasks, held so they are not garbage collected.
        self._usage_tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_document(self, job: ProcessDocumentJob) -> IngestionResult:
        """Ingest one document end to end.

        Returns
        -------
        IngestionResult
            Chunk and batch counts of the completed run.

        Raises
        ------
        Exception
            Whatever failed, after the document has been marked FAILED.
        """
        start = time.monotonic()
        source_url = job.source_url or preview_url(self._frontend_url, job.document_id)

        with document_context(job.document_id, append_only=job.append_only):
            logger.info("document_processing_started", mime_type=job.mime_type)
            try:
                if not job.append_only:
                    await self._store.update_status(job.document_id, DocumentStatus.PROCESSING)

                await self._report(job.document_id, IngestionPhase.EXTRACTING, 0.0)
                raw, text_metadata = await self._resolve_content(job)
                if not raw.text.strip():
                    raise EmptyContentError()

                await self._report(job.document_id, IngestionPhase.CHUNKING, 0.0)
                drafts = self._chunk_raw_content(raw, text_metadata, job.mime_type, source_url)
                logger.info("document_chunked", kind=raw.kind, chunks=len(drafts))

                if job.append_only:
                    max_index = await self._store.max_chunk_index(job.document_id)
                    offset = 0 if max_index is None else max_index + 1
                else:
                    removed = await self._store.delete_chunks(job.document_id)
                    offset = 0
                    if removed:
                        logger.info("stale_chunks_deleted", chunks=removed)

                batches = await self._embed_and_store(job, drafts, offset)

                page_count = self._page_count(raw, offset + len(drafts))
                await self._store.update_status(job.document_id, DocumentStatus.READY, page_count=page_count)
                await self._report(job.document_id, IngestionPhase.COMPLETED, 100.0)
            except Exception as exc:
                logger.error(
                    "document_processing_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                await self._mark_failed(job.document_id)
                raise

            elapsed = time.monotonic() - start
            logger.info(
                "document_processing_complete",
                chunks=len(drafts),
                chunk_index_offset=offset,
                batches=batches,
                page_count=page_count,
                elapsed_seconds=round(elapsed, 3),
            )
            return IngestionResult(
                document_id=job.document_id,
                status=DocumentStatus.READY,
                chunks_written=len(drafts),
                chunk_index_offset=offset,
                page_count=page_count,
                batches=batches,
                elapsed_seconds=elapsed,
                append_only=job.append_only,
            )

    async def drain_usage(self) -> None:
        """Wait for outstanding usage-logging tasks (used at shutdown)."""
        if self._usage_tasks:
            await asyncio.gather(*list(self._usage_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Content resolution
    # ------------------------------------------------------------------

    async def _resolve_content(self, job: ProcessDocumentJob) -> tuple[RawContent, ChunkMetadata]:
        """Pick the content source by priority.

        Returns the content and the metadata to use should it be flat text.
        Priority: messages > pre-extracted text > image caption > parser.
        """
        if job.messages is not None:
            messages = [message for message in job.messages if message.content.strip()]
            return MessagesContent(messages=messages), TxtChunkMeta()

        if job.content:
            return TextContent(body=job.content), TxtChunkMeta()

        source_type = source_type_for(job.mime_type)
        if source_type is SourceType.IMAGE:
            caption = await self._extractor.caption_image(job.storage_path)
            return TextContent(body=caption.as_text()), ImageChunkMeta()

        raw = await self._extractor.extract(job.storage_path, job.mime_type)
        if source_type is SourceType.JSON:
            return raw, JsonChunkMeta()
        return raw, TxtChunkMeta()

    def _chunk_raw_content(
        self,
        raw: RawContent,
        text_metadata: ChunkMetadata,
        mime_type: str,
        source_url: str,
    ) -> list[ChunkDraft]:
        """Dispatch to the chunker for *raw*'s variant; every variant has exactly one."""
        if isinstance(raw, PagesContent):
            word_document = source_type_for(mime_type) is SourceType.DOCX
            return self._chunker.chunk_pages(raw.pages, source_url, word_document=word_document)
        if isinstance(raw, SheetsContent):
            return self._chunker.chunk_sheets(raw.sheets, source_url)
        if isinstance(raw, RowsContent):
            return self._chunker.chunk_csv_rows(raw.rows, raw.columns, source_url)
        if isinstance(raw, TextContent):
            return self._chunker.chunk_text(raw.body, text_metadata, source_url)
        if isinstance(raw, MessagesContent):
            return self._chunker.group_messages(raw.messages, default_source_url=source_url)
        assert_never(raw)

    @staticmethod
    def _page_count(raw: RawContent, total_chunks: int) -> int:
        if isinstance(raw, PagesContent):
            return len(raw.pages)
        if isinstance(raw, SheetsContent):
            return sum(len(sheet.rows) for sheet in raw.sheets)
        if isinstance(raw, RowsContent):
            return len(raw.rows)
        return total_chunks

    # ------------------------------------------------------------------
    # Embed + store
    # ------------------------------------------------------------------

    async def _embed_and_store(
        self,
        job: ProcessDocumentJob,
        drafts: list[ChunkDraft],
        offset: int,
    ) -> int:
        """Embed and persist *drafts* one batch at a time; return the batch count."""
        total_batches = math.ceil(len(drafts) / self._batch_size)

        for batch_number, batch_start in enumerate(range(0, len(drafts), self._batch_size), start=1):
            batch = drafts[batch_start:batch_start + self._batch_size]
            result = await self._embedding_provider.embed_batch([draft.content for draft in batch])
            if len(result.vectors) != len(batch):
                raise EmbeddingError(
                    message=f"Expected {len(batch)} vectors, got {len(result.vectors)}",
                    provider_name=self._embedding_provider.get_provider_name(),
                )

            self._record_usage(
                UsageRecord(
                    model=self._embedding_provider.get_provider_name(),
                    input_tokens=result.token_usage,
                    request_type="embedding",
                    document_id=job.document_id,
                )
            )

            rows = [
                ChunkRecord(
                    id=str(uuid.uuid4()),
                    document_id=job.document_id,
                    collection_id=job.collection_id,
                    content=draft.content,
                    chunk_index=offset + batch_start + i,
                    metadata=draft.metadata,
                    source_url=draft.source_url,
                    embedding=vector,
                )
                for i, (draft, vector) in enumerate(zip(batch, result.vectors))
            ]
            await self._store.insert_chunks(rows)
            logger.debug(
                "chunk_batch_stored",
                batch=batch_number,
                total_batches=total_batches,
                chunks=len(rows),
                tokens=result.token_usage,
            )

            if self._progress is not None:
                await self._progress.report_batch(job.document_id, batch_number, total_batches)

        return total_batches

    # ------------------------------------------------------------------
    # Side channels
    # ------------------------------------------------------------------

    def _record_usage(self, usage: UsageRecord) -> None:
        """Schedule *usage* on a detached task; its outcome never reaches the job."""
        if self._usage_recorder is None:
            return
        task = asyncio.create_task(self._usage_recorder.record(usage))
        self._usage_tasks.add(task)
        task.add_done_callback(self._on_usage_recorded)

    def _on_usage_recorded(self, task: asyncio.Task[None]) -> None:
        self._usage_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("usage_logging_failed", error=str(exc), error_type=type(exc).__name__)

    async def _report(self, document_id: str, phase: IngestionPhase, progress: float) -> None:
        if self._progress is not None:
            await self._progress.update(document_id, phase, progress)

    async def _mark_failed(self, document_id: str) -> None:
        """Set FAILED; a failure here is logged so the original error propagates."""
        try:
            await self._store.update_status(document_id, DocumentStatus.FAILED)
        except Exception as exc:
            logger.error("failed_status_write_failed", error=str(exc))
        await self._report(document_id, IngestionPhase.FAILED, 0.0)
