"""Unit tests for LocalFileStorage."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.providers.storage.local_file_storage import LocalFileStorage
from src.utils.errors import StorageError


class TestLocalFileStorage:
    @pytest.mark.asyncio
    async def test_put_get_roundtrip_creates_directories(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(tmp_path)

        await storage.put("doc-1/report.pdf", b"%PDF-1.7", "application/pdf")

        assert (tmp_path / "doc-1" / "report.pdf").is_file()
        assert await storage.get("doc-1/report.pdf") == b"%PDF-1.7"

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(tmp_path)
        await storage.put("a.txt", b"x")

        assert await storage.exists("a.txt") is True
        await storage.delete("a.txt")
        assert await storage.exists("a.txt") is False
        await storage.delete("a.txt")  # missing files are ignored

    @pytest.mark.asyncio
    async def test_missing_file_raises_storage_error(self, tmp_path: Path) -> None:
        with pytest.raises(StorageError):
            await LocalFileStorage(tmp_path).get("nope.bin")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["../escape.txt", "a/../../escape.txt", "/etc/passwd"])
    async def test_paths_outside_base_are_rejected(self, tmp_path: Path, path: str) -> None:
        storage = LocalFileStorage(tmp_path / "uploads")
        with pytest.raises(StorageError):
            await storage.put(path, b"x")
