"""In-process job runner for document ingestion jobs.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# Stands in for a job queue in front of DocumentIngestionService:
#
#   - At most ``concurrency`` documents are processed at once
#     (asyncio.Semaphore).  The slot is held per attempt, so a job waiting
#     out its backoff does not block another document.
#   - Each document gets ``max_attempts`` attempts with exponential backoff
#     (tenacity): ``backoff_ms``, then twice that, and so on.
#   - Content errors (unsupported mime, blank text), extraction errors and
#     chunker contract violations are terminal and never retried.
#   - Retrying a whole document is safe because each full run starts by
#     deleting the document's existing chunks.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.models.document import IngestionResult, ProcessDocumentJob
from src.utils.errors import ChunkingError, ContentError, ExtractionError

if TYPE_CHECKING:
    from src.pipeline.progress_tracker import ProgressTracker
    from src.services.ingestion.ingestion_service import DocumentIngestionService

logger = structlog.get_logger(logger_name=__name__)

# Failures that another attempt cannot fix.
TERMINAL_ERRORS: tuple[type[BaseException], ...] = (ContentError, ExtractionError, ChunkingError)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "ingestion_job_retrying",
        attempt=retry_state.attempt_number,
        error=str(exc) if exc else None,
        sleep_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
    )


class IngestionJobRunner:
    """Runs ingestion jobs with bounded concurrency and per-document retries.

    Parameters
    ----------
    service:
        The ingestion service whose ``process_document`` each job calls.
    concurrency:
        Maximum number of documents processed at the same time.
    max_attempts:
        Total attempts per document, including the first.
    backoff_ms:
        Delay before the first retry; doubles for every further retry.
    progress_tracker:
        When given, a document's progress snapshot is dropped once its
        job has finished, successfully or not.
    """

    def __init__(
        self,
        service: DocumentIngestionService,
        concurrency: int = 25,
        max_attempts: int = 3,
        backoff_ms: int = 1000,
        progress_tracker: ProgressTracker | None = None,
    ) -> None:
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        if max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")
        self._service = service
        self._semaphore = asyncio.Semaphore(concurrency)
        self._max_attempts = max_attempts
        self._backoff_seconds = max(0, backoff_ms) / 1000
        self._progress = progress_tracker

    async def submit(self, job: ProcessDocumentJob) -> IngestionResult:
        """Process *job*, retrying transient failures.

        Raises
        ------
        Exception
            The last attempt's error once attempts are exhausted, or a
            terminal error immediately.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_seconds),
            retry=retry_if_not_exception_type(TERMINAL_ERRORS),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    async with self._semaphore:
                        logger.info(
                            "ingestion_job_attempt",
                            document_id=job.document_id,
                            attempt=attempt.retry_state.attempt_number,
                        )
                        result = await self._service.process_document(job)
        finally:
            if self._progress is not None:
                self._progress.clear(job.document_id)
        return result

    async def run_all(self, jobs: list[ProcessDocumentJob]) -> list[IngestionResult | BaseException]:
        """Run *jobs* concurrently; failures are returned in place of results."""
        results = await asyncio.gather(
            *(self.submit(job) for job in jobs),
            return_exceptions=True,
        )
        failed = sum(1 for result in results if isinstance(result, BaseException))
        logger.info("ingestion_jobs_finished", total=len(jobs), failed=failed)
        return results
