"""Document ingestion worker wiring.

Builds every provider and service from :class:`Settings` and connects them
through their interfaces.  Used by the CLI (``python -m src.cli.ingest``)
and by anything embedding the pipeline in a larger process.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.config.settings import Settings
from src.interfaces.chunk_store import IChunkStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.tokenizer import ITokenizer
from src.pipeline.job_runner import IngestionJobRunner
from src.pipeline.progress_tracker import ProgressTracker
from src.providers.chunk_store.sqlite_chunk_store import SQLiteChunkStore
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.storage.local_file_storage import LocalFileStorage
from src.providers.usage.sqlite_usage_recorder import SQLiteUsageRecorder
from src.providers.vision.openai_vision_captioner import OpenAIVisionCaptioner
from src.services.ingestion.chunker import StructuralChunker
from src.services.ingestion.extraction import ContentExtractor
from src.services.ingestion.ingestion_service import DocumentIngestionService
from src.services.ingestion.text_splitter import RecursiveTextSplitter
from src.services.ingestion.tokenizer import TiktokenTokenizer
from src.utils.errors import ConfigurationError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def _require_openai_key(app_settings: Settings) -> None:
    # The OpenAI client raises on an empty key at construction time.
    if not app_settings.openai_api_key:
        raise ConfigurationError(
            "OPENAI_API_KEY is not set; it is required for embeddings and image captions",
            provider_name="openai",
        )


def _build_all(
    app_settings: Settings,
    embedding_provider: IEmbeddingProvider | None = None,
    chunk_store: IChunkStore | None = None,
    tokenizer: ITokenizer | None = None,
) -> dict[str, Any]:
    """Construct every component; returns them keyed by role.

    *embedding_provider*, *chunk_store* and *tokenizer* replace the
    configured defaults when given (used by tests and by hosts with their
    own backends).
    """
    options = app_settings.chunking_options()
    _require_openai_key(app_settings)

    if tokenizer is None:
        tokenizer = TiktokenTokenizer(app_settings.tokenizer_encoding)
    splitter = RecursiveTextSplitter(tokenizer)
    chunker = StructuralChunker(splitter, options)

    file_storage = LocalFileStorage(app_settings.storage_base_dir)
    captioner = OpenAIVisionCaptioner(settings=app_settings)
    extractor = ContentExtractor(file_storage, captioner)

    if embedding_provider is None:
        embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)
    if chunk_store is None:
        chunk_store = SQLiteChunkStore(app_settings.chunk_db_path)
    usage_recorder = SQLiteUsageRecorder(app_settings.usage_db_path)
    progress_tracker = ProgressTracker()

    service = DocumentIngestionService(
        chunk_store=chunk_store,
        embedding_provider=embedding_provider,
        extractor=extractor,
        chunker=chunker,
        progress_tracker=progress_tracker,
        usage_recorder=usage_recorder,
        embedding_batch_size=app_settings.embedding_batch_size,
        frontend_url=app_settings.frontend_url,
    )
    runner = IngestionJobRunner(
        service,
        concurrency=app_settings.worker_concurrency,
        max_attempts=app_settings.job_max_attempts,
        backoff_ms=app_settings.job_backoff_delay_ms,
        progress_tracker=progress_tracker,
    )

    _logger.info(
        "ingestion_components_built",
        embedding=embedding_provider.get_provider_name(),
        tokenizer=app_settings.tokenizer_encoding,
        max_tokens=options.max_tokens,
        overlap_tokens=options.overlap_tokens,
        min_tokens=options.min_tokens,
    )
    return {
        "settings": app_settings,
        "tokenizer": tokenizer,
        "chunker": chunker,
        "file_storage": file_storage,
        "extractor": extractor,
        "embedding_provider": embedding_provider,
        "chunk_store": chunk_store,
        "usage_recorder": usage_recorder,
        "progress_tracker": progress_tracker,
        "service": service,
        "runner": runner,
    }


def build_pipeline(
    custom_settings: Settings | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
    chunk_store: IChunkStore | None = None,
    tokenizer: ITokenizer | None = None,
) -> dict[str, Any]:
    """Build the ingestion pipeline from *custom_settings* or the environment.

    Raises
    ------
    ConfigurationError
        If the chunking budget is invalid or no embedding credentials are
        configured (and no *embedding_provider* was passed).
    """
    return _build_all(custom_settings or Settings(), embedding_provider, chunk_store, tokenizer)


async def initialize_stores(components: dict[str, Any]) -> None:
    """Create database tables for the chunk store and usage recorder."""
    await components["chunk_store"].initialize()
    await components["usage_recorder"].initialize()
