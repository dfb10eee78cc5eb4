"""Extraction output models - the shape format adapters hand to chunking.

``RawContent`` is a tagged union keyed on ``kind``.  Exactly one variant is
produced per ingestion run, and the chunker that consumes it is a pure
function of the variant (see ``ingestion_service._chunk_raw_content``).
Every variant exposes ``text``: the full extracted text, used only for the
blank-content check before chunking.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from src.models.chunk import ChunkMetadata


class PageText(BaseModel):
    """Text of one page; page texts concatenate with no overlap between pages."""

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(ge=1)
    text: str


class SheetRow(BaseModel):
    """One non-blank line of a sheet or CSV file, rendered as CSV text."""

    model_config = ConfigDict(frozen=True)

    row_number: int = Field(ge=1)
    text: str


class SheetData(BaseModel):
    model_config = ConfigDict(frozen=True)

    sheet_name: str
    columns: list[str] = Field(default_factory=list)
    rows: list[SheetRow] = Field(default_factory=list)


class SyncedMessage(BaseModel):
    """A message pulled from a synced conversational source.

    ``grouping_context`` is the metadata the message would carry on its own
    (e.g. ``SlackChunkMeta(channel_id="C1", authors=["alice"])``); the
    message-grouping chunker compares contexts to decide where windows end.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    grouping_context: ChunkMetadata
    source_url: str = ""


# ---------------------------------------------------------------------------
# RawContent variants
# ---------------------------------------------------------------------------
class PagesContent(BaseModel):
    """Paged documents (PDF, DOCX) in page order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pages"] = "pages"
    pages: list[PageText] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(page.text for page in self.pages)


class SheetsContent(BaseModel):
    """Workbooks (XLSX/XLS) in sheet order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["sheets"] = "sheets"
    sheets: list[SheetData] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(
            f"--- {sheet.sheet_name} ---\n" + "\n".join(row.text for row in sheet.rows)
            for sheet in self.sheets
        )


class RowsContent(BaseModel):
    """A single CSV table."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["rows"] = "rows"
    columns: list[str] = Field(default_factory=list)
    rows: list[SheetRow] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(row.text for row in self.rows)


class TextContent(BaseModel):
    """Flat text: plain text, JSON, an image caption, or pre-extracted content."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    body: str = ""

    @property
    def text(self) -> str:
        return self.body


class MessagesContent(BaseModel):
    """Messages from a synced conversational source, in arrival order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["messages"] = "messages"
    messages: list[SyncedMessage] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(message.content for message in self.messages)


RawContent = Annotated[
    Union[PagesContent, SheetsContent, RowsContent, TextContent, MessagesContent],
    Field(discriminator="kind"),
]
