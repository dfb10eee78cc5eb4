"""Source processor for PDF uploads.

Reads the PDF with PyMuPDF (fitz) and returns one :class:`PageText` per page
that has an extractable text layer.  Page numbers stay 1-based and keep
their gaps when blank pages are skipped, so chunk page attribution matches
what a reader sees in a viewer.
"""

from __future__ import annotations

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from src.models.content import PagesContent, PageText
from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class PDFProcessor:
    """Extracts page-by-page text from PDF bytes."""

    def process(self, data: bytes) -> PagesContent:
        """Return the text of every non-blank page, each terminated by a newline.

        Raises
        ------
        ExtractionError
            If PyMuPDF cannot open the document.
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(
                message=f"Cannot open PDF: {exc}", provider_name="pymupdf"
            ) from exc

        pages: list[PageText] = []
        try:
            for page_index in range(len(doc)):
                text = doc[page_index].get_text("text").strip()
                if text:
                    pages.append(PageText(page_number=page_index + 1, text=text + "\n"))
            page_total = len(doc)
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", page_total=page_total)
        logger.debug("pdf_pages_extracted", pages=len(pages), page_total=page_total)
        return PagesContent(pages=pages)
