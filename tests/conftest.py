"""Shared pytest fixtures for the ingestion test suite.

Most tests size text with :class:`CharTokenizer` (one token per character)
so expected chunk boundaries can be worked out by hand.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.interfaces.chunk_store import IChunkStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.file_storage import IFileStorage
from src.interfaces.image_captioner import IImageCaptioner, ImageCaption
from src.interfaces.tokenizer import ITokenizer
from src.interfaces.usage_recorder import IUsageRecorder
from src.models.chunk import ChunkRecord, SplitOptions
from src.models.document import Document, DocumentStatus
from src.models.embedding import EmbeddingBatch, UsageRecord
from src.pipeline.progress_tracker import ProgressTracker
from src.services.ingestion.chunker import StructuralChunker
from src.services.ingestion.extraction import ContentExtractor
from src.services.ingestion.ingestion_service import DocumentIngestionService
from src.services.ingestion.text_splitter import RecursiveTextSplitter
from src.utils.errors import EmbeddingError, StorageError

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class CharTokenizer(ITokenizer):
    """One token per character; encode/decode round-trips exactly."""

    def encode(self, text: str) -> list[int]:
        return [ord(c) for c in text]

    def decode(self, tokens: list[int]) -> str:
        return "".join(chr(t) for t in tokens)

    def count(self, text: str) -> int:
        return len(text)


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic 3-dim vectors; fails the first ``fail_times`` calls
    (or the call numbers listed in ``fail_on_calls``)."""

    def __init__(self, fail_times: int = 0, fail_on_calls: set[int] | None = None) -> None:
        self.calls: list[list[str]] = []
        self._fail_times = fail_times
        self._fail_on_calls = fail_on_calls or set()

    async def embed_batch(self, texts: list[str]) -> EmbeddingBatch:
        self.calls.append(list(texts))
        call_number = len(self.calls)
        if call_number <= self._fail_times or call_number in self._fail_on_calls:
            raise EmbeddingError("rate limited", provider_name="fake")
        return EmbeddingBatch(
            vectors=[[float(len(text)), 1.0, 0.0] for text in texts],
            token_usage=sum(len(text) for text in texts),
        )

    def get_dimension(self) -> int:
        return 3

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return True


class InMemoryChunkStore(IChunkStore):
    """Dict-backed chunk store that records every status write."""

    def __init__(self) -> None:
        self.documents: dict[str, Document] = {}
        self.chunks: dict[str, list[ChunkRecord]] = {}
        self.status_history: list[tuple[str, DocumentStatus]] = []
        self.insert_calls = 0

    async def initialize(self) -> None:
        return None

    async def upsert_document(self, document: Document) -> None:
        self.documents[document.id] = document

    async def get_document(self, document_id: str) -> Document | None:
        return self.documents.get(document_id)

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        page_count: int | None = None,
    ) -> None:
        document = self.documents.get(document_id)
        if document is None:
            raise StorageError(f"Unknown document: {document_id}", "memory")
        update: dict = {"status": status}
        if page_count is not None:
            update["page_count"] = page_count
        self.documents[document_id] = document.model_copy(update=update)
        self.status_history.append((document_id, status))

    async def delete_chunks(self, document_id: str) -> int:
        return len(self.chunks.pop(document_id, []))

    async def max_chunk_index(self, document_id: str) -> int | None:
        rows = self.chunks.get(document_id, [])
        return max((row.chunk_index for row in rows), default=None)

    async def insert_chunks(self, rows: list[ChunkRecord]) -> int:
        self.insert_calls += 1
        for row in rows:
            self.chunks.setdefault(row.document_id, []).append(row)
        return len(rows)

    async def list_chunks(self, document_id: str) -> list[ChunkRecord]:
        return sorted(self.chunks.get(document_id, []), key=lambda row: row.chunk_index)


class FakeFileStorage(IFileStorage):
    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files: dict[str, bytes] = dict(files or {})

    async def get(self, path: str) -> bytes:
        if path not in self.files:
            raise StorageError(f"Cannot read {path}", "memory")
        return self.files[path]

    async def put(self, path: str, data: bytes, content_type: str | None = None) -> None:
        self.files[path] = data

    async def delete(self, path: str) -> None:
        self.files.pop(path, None)

    async def exists(self, path: str) -> bool:
        return path in self.files


class FakeCaptioner(IImageCaptioner):
    def __init__(self, caption: ImageCaption | None = None) -> None:
        self.caption_result = caption or ImageCaption(
            description="A bar chart of quarterly revenue.",
            tags=["chart", "finance"],
            visible_text="Q1 Q2 Q3 Q4",
        )
        self.calls = 0

    async def caption(self, image_bytes: bytes) -> ImageCaption:
        self.calls += 1
        return self.caption_result

    def get_provider_name(self) -> str:
        return "fake-vision"


class RecordingUsageRecorder(IUsageRecorder):
    def __init__(self, fail: bool = False) -> None:
        self.records: list[UsageRecord] = []
        self._fail = fail

    async def record(self, usage: UsageRecord) -> None:
        if self._fail:
            raise RuntimeError("usage database is down")
        self.records.append(usage)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tokenizer() -> CharTokenizer:
    return CharTokenizer()


@pytest.fixture
def splitter(tokenizer: CharTokenizer) -> RecursiveTextSplitter:
    return RecursiveTextSplitter(tokenizer)


@pytest.fixture
def split_options() -> SplitOptions:
    return SplitOptions(max_tokens=1000, overlap_tokens=200, min_tokens=50)


@pytest.fixture
def chunker(splitter: RecursiveTextSplitter, split_options: SplitOptions) -> StructuralChunker:
    return StructuralChunker(splitter, split_options)


@pytest.fixture
def chunk_store() -> InMemoryChunkStore:
    return InMemoryChunkStore()


@pytest.fixture
def file_storage() -> FakeFileStorage:
    return FakeFileStorage()


@pytest.fixture
def captioner() -> FakeCaptioner:
    return FakeCaptioner()


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def usage_recorder() -> RecordingUsageRecorder:
    return RecordingUsageRecorder()


@pytest.fixture
def progress_tracker() -> ProgressTracker:
    return ProgressTracker()


@pytest.fixture
def extractor(file_storage: FakeFileStorage, captioner: FakeCaptioner) -> ContentExtractor:
    return ContentExtractor(file_storage, captioner)


@pytest.fixture
def ingestion_service(
    chunk_store: InMemoryChunkStore,
    embedding_provider: FakeEmbeddingProvider,
    extractor: ContentExtractor,
    chunker: StructuralChunker,
    progress_tracker: ProgressTracker,
    usage_recorder: RecordingUsageRecorder,
) -> DocumentIngestionService:
    return DocumentIngestionService(
        chunk_store=chunk_store,
        embedding_provider=embedding_provider,
        extractor=extractor,
        chunker=chunker,
        progress_tracker=progress_tracker,
        usage_recorder=usage_recorder,
        embedding_batch_size=2,
        frontend_url="http://app.test",
    )
