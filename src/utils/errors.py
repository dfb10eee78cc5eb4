"""Custom exception hierarchy for the document ingestion service.

All application exceptions inherit from :class:`IngestError`, which
carries an optional ``provider_name`` so error handlers can identify which
external collaborator (e.g. "openai", "sqlite", "local_storage") caused the
failure.

The hierarchy is organized by how the job runner should react:

    IngestError  (base -- catch-all for any ingestion error)
    +-- ContentError              (terminal: retrying cannot help)
    |   +-- UnsupportedMimeTypeError
    |   +-- EmptyContentError
    +-- ExtractionError           (corrupt or unreadable upload)
    +-- EmbeddingError            (transient: embedding API failure)
    +-- StorageError              (transient: blob or chunk store failure)
    +-- CaptioningError           (transient: vision model failure)
    +-- ChunkingError             (contract violation in chunker input)
    +-- ConfigurationError        (startup / invalid settings)

Only :class:`~src.services.ingestion.ingestion_service.DocumentIngestionService`
converts these into document status changes; lower layers just raise.
"""


class IngestError(Exception):
    """Base exception for all ingestion errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected ingestion error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Content errors -- terminal for the document, never retried
# ---------------------------------------------------------------------------

class ContentError(IngestError):
    """Raised when the upload itself cannot produce chunks.

    Mime support is a deploy-time mapping and blank files stay blank, so
    the job runner never retries these.
    """

    def __init__(
        self,
        message: str = "Document content cannot be ingested",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedMimeTypeError(ContentError):
    """Raised when no extraction adapter is registered for a mime type."""

    def __init__(self, mime_type: str, provider_name: str | None = None) -> None:
        self._mime_type = mime_type
        super().__init__(message=f"Unsupported mime type: {mime_type}", provider_name=provider_name)

    @property
    def mime_type(self) -> str:
        return self._mime_type


class EmptyContentError(ContentError):
    """Raised when extraction produced only whitespace."""

    def __init__(
        self,
        message: str = "No text content extracted from file",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(IngestError):
    """Raised when a format extractor cannot parse the stored bytes."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Transient collaborator errors -- retried by the job runner
# ---------------------------------------------------------------------------

class EmbeddingError(IngestError):
    """Raised when an embedding API call fails (quota, timeout, network)."""

    def __init__(
        self,
        message: str = "Embedding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(IngestError):
    """Raised when blob storage or the chunk store cannot be read or written."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CaptioningError(IngestError):
    """Raised when the vision model cannot describe an uploaded image."""

    def __init__(
        self,
        message: str = "Image captioning failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Programming / configuration errors
# ---------------------------------------------------------------------------

class ChunkingError(IngestError):
    """Raised when a chunker receives input that breaks its contract."""

    def __init__(
        self,
        message: str = "Chunker received malformed input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(IngestError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
