"""Abstract base class for blob storage of uploaded files."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalFileStorage (src/providers/storage/)
class IFileStorage(ABC):
    """Contract for reading and writing uploaded file bytes by storage path."""

    @abstractmethod
    async def get(self, path: str) -> bytes:
        """Return the bytes stored at *path*.

        Raises
        ------
        src.utils.errors.StorageError
            If nothing is stored at *path* or it cannot be read.
        """

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """Store *data* at *path*, overwriting any previous content."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the object at *path*. Missing paths are ignored."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Return ``True`` if an object is stored at *path*."""
