"""Local-disk blob storage for uploaded files.

Storage paths are relative keys (``"<document_id>/report.pdf"``) resolved
under a base directory.  Keys that would resolve outside it (``..``
segments, absolute paths) are rejected.  File I/O is blocking, so it runs
in a worker thread.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from src.interfaces.file_storage import IFileStorage
from src.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)


class LocalFileStorage(IFileStorage):
    """Stores uploads as files below *base_dir*."""

    def __init__(self, base_dir: str | Path = "./data/uploads") -> None:
        self._base_dir = Path(base_dir).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self._base_dir / path).resolve()
        if target != self._base_dir and self._base_dir not in target.parents:
            raise StorageError(f"Path escapes storage directory: {path}", self.get_provider_name())
        return target

    async def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as exc:
            raise StorageError(f"Cannot read {path}: {exc}", self.get_provider_name()) from exc

    async def put(self, path: str, data: bytes, content_type: str | None = None) -> None:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StorageError(f"Cannot write {path}: {exc}", self.get_provider_name()) from exc
        logger.info("file_stored", path=path, bytes=len(data), content_type=content_type)

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as exc:
            raise StorageError(f"Cannot delete {path}: {exc}", self.get_provider_name()) from exc

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._resolve(path).is_file)

    def get_provider_name(self) -> str:
        return "local_storage"
