"""Source processor for Word (DOCX) uploads.

python-docx gives access to the document body XML.  Pages are recovered from
the two page-break signals Word leaves in it:

- ``<w:lastRenderedPageBreak/>`` -- where Word last rendered a page break
- ``<w:br w:type="page"/>`` -- an explicit break inserted by the author

Paragraph ends become newlines.  Each page's text is trimmed and terminated
by a newline; pages left blank are skipped but still advance the counter.
"""

from __future__ import annotations

import io

import docx
import structlog
from docx.oxml.ns import qn

from src.models.content import PagesContent, PageText
from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_TEXT = qn("w:t")
_TAB = qn("w:tab")
_BREAK = qn("w:br")
_BREAK_TYPE = qn("w:type")
_RENDERED_BREAK = qn("w:lastRenderedPageBreak")
_PARAGRAPH = qn("w:p")


class DOCXProcessor:
    """Extracts per-page text from DOCX bytes."""

    def process(self, data: bytes) -> PagesContent:
        """Split the document body into pages at Word's page-break markers.

        Raises
        ------
        ExtractionError
            If the bytes are not a readable DOCX package (including legacy
            binary ``.doc`` files).
        """
        try:
            document = docx.Document(io.BytesIO(data))
        except Exception as exc:
            raise ExtractionError(
                message=f"Cannot open Word document: {exc}", provider_name="python-docx"
            ) from exc

        pages: list[PageText] = []
        current: list[str] = []
        page_number = 1

        def flush() -> None:
            text = "".join(current).strip()
            if text:
                pages.append(PageText(page_number=page_number, text=text + "\n"))
            current.clear()

        for paragraph in document.element.body.iter(_PARAGRAPH):
            for node in paragraph.iter():
                if node.tag == _TEXT:
                    current.append(node.text or "")
                elif node.tag == _TAB:
                    current.append("\t")
                elif node.tag == _RENDERED_BREAK or (
                    node.tag == _BREAK and node.get(_BREAK_TYPE) == "page"
                ):
                    flush()
                    page_number += 1
            current.append("\n")
        flush()

        logger.debug("docx_pages_extracted", pages=len(pages), last_page=page_number)
        return PagesContent(pages=pages)
