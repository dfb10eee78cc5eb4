"""Public interface definitions for the ingestion pipeline's collaborators.

Every external service (embedding API, vision model, blob storage, chunk
database, usage telemetry) is reached only through the abstract base classes
in this package.  Concrete adapters live in ``src/providers/`` and are wired
together in ``src/main.py``; tests inject in-memory fakes instead.

CONCRETE PROVIDER MAP:
    Interface            →  Concrete implementation
    ──────────────────────────────────────────────────────────────
    ITokenizer           →  TiktokenTokenizer (src/services/ingestion/)
    IEmbeddingProvider   →  OpenAIEmbeddingProvider
    IImageCaptioner      →  OpenAIVisionCaptioner
    IFileStorage         →  LocalFileStorage
    IChunkStore          →  SQLiteChunkStore
    IUsageRecorder       →  SQLiteUsageRecorder
"""

from src.interfaces.chunk_store import IChunkStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.file_storage import IFileStorage
from src.interfaces.image_captioner import IImageCaptioner, ImageCaption
from src.interfaces.tokenizer import ITokenizer
from src.interfaces.usage_recorder import IUsageRecorder

__all__ = [
    "IChunkStore",
    "IEmbeddingProvider",
    "IFileStorage",
    "IImageCaptioner",
    "ITokenizer",
    "IUsageRecorder",
    "ImageCaption",
]
