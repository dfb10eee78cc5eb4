"""Unit tests for ContentExtractor mime dispatch."""

from __future__ import annotations

import pytest

from conftest import FakeCaptioner, FakeFileStorage
from src.models.content import RowsContent, TextContent
from src.services.ingestion.extraction import ContentExtractor
from src.utils.errors import StorageError, UnsupportedMimeTypeError


class TestContentExtractor:
    @pytest.mark.asyncio
    async def test_csv_upload_becomes_rows(self, file_storage: FakeFileStorage, extractor: ContentExtractor) -> None:
        file_storage.files["d1/people.csv"] = b"name,role\nann,admin\n"

        content = await extractor.extract("d1/people.csv", "text/csv")

        assert isinstance(content, RowsContent)
        assert content.columns == ["name", "role"]

    @pytest.mark.asyncio
    async def test_json_upload_is_flat_text(self, file_storage: FakeFileStorage, extractor: ContentExtractor) -> None:
        file_storage.files["d1/data.json"] = b'{"a": 1}'

        content = await extractor.extract("d1/data.json", "application/json; charset=utf-8")

        assert content == TextContent(body='{"a": 1}')

    @pytest.mark.asyncio
    async def test_image_upload_is_captioned(
        self,
        file_storage: FakeFileStorage,
        captioner: FakeCaptioner,
        extractor: ContentExtractor,
    ) -> None:
        file_storage.files["d1/chart.png"] = b"\x89PNG\r\n\x1a\nfake"

        content = await extractor.extract("d1/chart.png", "image/png")

        assert isinstance(content, TextContent)
        assert content.body.startswith("A bar chart of quarterly revenue.")
        assert "Visible text: Q1 Q2 Q3 Q4" in content.body
        assert content.body.endswith("Tags: chart, finance")
        assert captioner.calls == 1

    @pytest.mark.asyncio
    async def test_unsupported_mime_fails_closed(self, extractor: ContentExtractor) -> None:
        with pytest.raises(UnsupportedMimeTypeError) as exc_info:
            await extractor.extract("d1/archive.zip", "application/zip")

        assert exc_info.value.mime_type == "application/zip"

    @pytest.mark.asyncio
    async def test_missing_upload_raises_storage_error(self, extractor: ContentExtractor) -> None:
        with pytest.raises(StorageError):
            await extractor.extract("d1/missing.txt", "text/plain")
