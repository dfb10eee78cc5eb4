"""Content extraction - stored upload bytes to a ``RawContent`` variant.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# ContentExtractor is the one place that knows which parser handles which
# upload format.  Dispatch is a table keyed by SourceType (itself looked up
# from the supported mime table), so an unsupported mime type fails closed
# with UnsupportedMimeTypeError instead of falling through to a default.
#
#   PDF   → PagesContent   via PDFProcessor (PyMuPDF)
#   DOCX  → PagesContent   via DOCXProcessor (python-docx)
#   XLSX  → SheetsContent  via XLSXProcessor (openpyxl)
#   CSV   → RowsContent    via CSVProcessor
#   TXT   → TextContent    via TextProcessor
#   JSON  → TextContent    via TextProcessor
#   IMAGE → TextContent    via the IImageCaptioner (vision model)
#
# Parsers are synchronous, so they run in a worker thread.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from typing import Callable

import structlog

from src.interfaces.file_storage import IFileStorage
from src.interfaces.image_captioner import IImageCaptioner, ImageCaption
from src.models.content import RawContent, TextContent
from src.models.document import SourceType, source_type_for
from src.services.ingestion.source_processors import (
    CSVProcessor,
    DOCXProcessor,
    PDFProcessor,
    TextProcessor,
    XLSXProcessor,
)
from src.utils.errors import UnsupportedMimeTypeError

logger = structlog.get_logger(logger_name=__name__)


class ContentExtractor:
    """Reads an upload from blob storage and parses it by mime type.

    Parameters
    ----------
    file_storage:
        Where uploads are stored.
    captioner:
        Vision model used for image uploads.
    """

    def __init__(self, file_storage: IFileStorage, captioner: IImageCaptioner) -> None:
        self._storage = file_storage
        self._captioner = captioner
        text_processor = TextProcessor()
        self._parsers: dict[SourceType, Callable[[bytes], RawContent]] = {
            SourceType.PDF: PDFProcessor().process,
            SourceType.DOCX: DOCXProcessor().process,
            SourceType.XLSX: XLSXProcessor().process,
            SourceType.CSV: CSVProcessor().process,
            SourceType.TXT: text_processor.process,
            SourceType.JSON: text_processor.process,
        }

    async def extract(self, storage_path: str, mime_type: str) -> RawContent:
        """Return the structured content of the upload at *storage_path*.

        Raises
        ------
        UnsupportedMimeTypeError
            If *mime_type* is not in the supported upload table.
        ExtractionError
            If the bytes cannot be parsed as *mime_type*.
        StorageError
            If the upload cannot be read.
        """
        source_type = source_type_for(mime_type)
        if source_type is None:
            raise UnsupportedMimeTypeError(mime_type)

        if source_type is SourceType.IMAGE:
            caption = await self.caption_image(storage_path)
            return TextContent(body=caption.as_text())

        data = await self._storage.get(storage_path)
        content = await asyncio.to_thread(self._parsers[source_type], data)
        logger.info(
            "content_extracted",
            storage_path=storage_path,
            source_type=source_type.value,
            kind=content.kind,
            chars=len(content.text),
        )
        return content

    async def caption_image(self, storage_path: str) -> ImageCaption:
        """Describe the stored image with the vision model."""
        data = await self._storage.get(storage_path)
        caption = await self._captioner.caption(data)
        logger.info(
            "image_captioned",
            storage_path=storage_path,
            tags=len(caption.tags),
            description_chars=len(caption.description),
        )
        return caption
