"""Format-specific source processors.

Each processor turns the raw bytes of one upload format into a
:data:`~src.models.content.RawContent` variant.  They are synchronous (the
parsing libraries are); :class:`~src.services.ingestion.extraction.ContentExtractor`
runs them off the event loop.

- **PDFProcessor**    -- PDF via PyMuPDF, one entry per non-blank page
- **DOCXProcessor**   -- Word documents via python-docx, split on page breaks
- **XLSXProcessor**   -- Workbooks via openpyxl, one entry per worksheet
- **CSVProcessor**    -- CSV header columns plus non-blank rows
- **TextProcessor**   -- Plain text and JSON
"""

from src.services.ingestion.source_processors.docx_processor import DOCXProcessor
from src.services.ingestion.source_processors.pdf_processor import PDFProcessor
from src.services.ingestion.source_processors.spreadsheet_processor import (
    CSVProcessor,
    XLSXProcessor,
    parse_csv_lines,
)
from src.services.ingestion.source_processors.text_processor import TextProcessor

__all__ = [
    "CSVProcessor",
    "DOCXProcessor",
    "PDFProcessor",
    "TextProcessor",
    "XLSXProcessor",
    "parse_csv_lines",
]
