"""Source processors for tabular uploads (XLSX workbooks and CSV files).

Both formats end up as CSV lines.  The first non-blank line is taken as the
header and split on commas into the column list; every non-blank line,
header included, becomes a :class:`SheetRow` numbered by its 1-based line
position.
"""

from __future__ import annotations

import csv
import io

import openpyxl
import structlog

from src.models.content import RowsContent, SheetData, SheetRow, SheetsContent
from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


def parse_csv_lines(lines: list[str]) -> tuple[list[str], list[SheetRow]]:
    """Return ``(columns, rows)`` for CSV *lines*."""
    header = next((line for line in lines if line.strip()), "")
    columns = [column.strip() for column in header.split(",") if column.strip()]
    rows = [
        SheetRow(row_number=index + 1, text=line)
        for index, line in enumerate(lines)
        if line.strip()
    ]
    return columns, rows


def _render_csv_line(values: tuple[object, ...]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="").writerow(
        ["" if value is None else value for value in values]
    )
    return buffer.getvalue()


class CSVProcessor:
    """Parses UTF-8 CSV bytes into header columns and rows."""

    def process(self, data: bytes) -> RowsContent:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ExtractionError(message=f"CSV is not valid UTF-8: {exc}", provider_name="csv") from exc

        columns, rows = parse_csv_lines(text.replace("\r\n", "\n").split("\n"))
        logger.debug("csv_rows_extracted", rows=len(rows), columns=len(columns))
        return RowsContent(columns=columns, rows=rows)


class XLSXProcessor:
    """Renders every worksheet of a workbook to CSV lines via openpyxl."""

    def process(self, data: bytes) -> SheetsContent:
        """Return one :class:`SheetData` per worksheet, in workbook order.

        Raises
        ------
        ExtractionError
            If openpyxl cannot read the workbook (including legacy ``.xls``).
        """
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except Exception as exc:
            raise ExtractionError(
                message=f"Cannot open workbook: {exc}", provider_name="openpyxl"
            ) from exc

        sheets: list[SheetData] = []
        try:
            for worksheet in workbook.worksheets:
                lines = [_render_csv_line(values) for values in worksheet.iter_rows(values_only=True)]
                # Fully empty rows render as bare commas.
                lines = [line if line.strip(", ") else "" for line in lines]
                columns, rows = parse_csv_lines(lines)
                sheets.append(SheetData(sheet_name=worksheet.title, columns=columns, rows=rows))
        finally:
            workbook.close()

        logger.debug(
            "xlsx_sheets_extracted",
            sheets=len(sheets),
            rows=sum(len(sheet.rows) for sheet in sheets),
        )
        return SheetsContent(sheets=sheets)
