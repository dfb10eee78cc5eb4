"""Abstract base class for text-embedding service providers.

Defines the contract for turning a batch of chunk texts into vectors.
The ingestion service calls :meth:`IEmbeddingProvider.embed_batch` once per
chunk batch and never retries at the batch level: a failure fails the whole
document run, and the job runner decides whether to re-attempt.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.embedding import EmbeddingBatch


# Concrete implementation: OpenAIEmbeddingProvider (src/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline."""

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> EmbeddingBatch:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Chunk contents, at most ``embedding_batch_size`` of them.

        Returns
        -------
        EmbeddingBatch
            ``vectors`` positionally aligned with *texts* (each of length
            :meth:`get_dimension`) and the ``token_usage`` billed for the call.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the embedding API call fails (quota, timeout, network).
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-text-embedding-3-small"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
