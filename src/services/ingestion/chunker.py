"""Structure-aware chunkers built on the recursive text splitter.

Each strategy turns one :data:`~src.models.content.RawContent` shape into
:class:`~src.models.chunk.ChunkDraft` objects and attaches the metadata that
locates every chunk in its source:

- **text** -- plain splitting, one fixed metadata value for every chunk.
- **pages** -- pages are concatenated and split without overlap so segment
  offsets are exact; overlap is added afterwards and each chunk lists the
  pages its content (overlap included) touches.
- **sheets / CSV rows** -- whole rows are accumulated up to the token budget;
  a chunk records the row at which it begins and never spans two sheets.
- **messages** -- consecutive messages sharing a grouping context are packed
  into conversation windows, collecting authors for sources that declare
  author collection (Slack).

None of these raise for inputs that are merely large or small; an atomic row
or message larger than the budget is kept whole (rows) or handed to the
splitter (messages).
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from src.models.chunk import (
    ChunkDraft,
    ChunkMetadata,
    CsvChunkMeta,
    DocxChunkMeta,
    PdfChunkMeta,
    SlackChunkMeta,
    SplitOptions,
    XlsxChunkMeta,
)
from src.models.content import PageText, SheetData, SheetRow, SyncedMessage
from src.services.ingestion.text_splitter import RecursiveTextSplitter
from src.utils.errors import ChunkingError

logger = structlog.get_logger(logger_name=__name__)


def is_same_grouping_context(a: ChunkMetadata, b: ChunkMetadata) -> bool:
    """Return ``True`` if messages with metadata *a* and *b* may share a chunk.

    Types must match.  Author-collecting types (Slack) compare by channel
    only; every other type requires full equality.
    """
    if a.type != b.type:
        return False
    if isinstance(a, SlackChunkMeta) and isinstance(b, SlackChunkMeta):
        return a.channel_id == b.channel_id
    return a == b


def merge_authors(chunk_meta: ChunkMetadata, message_meta: ChunkMetadata) -> ChunkMetadata:
    """Fold *message_meta*'s authors into *chunk_meta* (Slack only)."""
    if isinstance(chunk_meta, SlackChunkMeta) and isinstance(message_meta, SlackChunkMeta):
        return chunk_meta.with_authors(message_meta)
    return chunk_meta


@dataclass
class _PageSpan:
    page_number: int
    start: int
    end: int


class StructuralChunker:
    """Applies the per-shape chunking strategies with one token budget.

    Parameters
    ----------
    splitter:
        The recursive splitter (and, through it, the tokenizer).
    options:
        Token limits shared by every strategy.
    """

    def __init__(self, splitter: RecursiveTextSplitter, options: SplitOptions) -> None:
        self._splitter = splitter
        self._tokenizer = splitter.tokenizer
        self._options = options

    @property
    def options(self) -> SplitOptions:
        return self._options

    # ------------------------------------------------------------------
    # Flat text
    # ------------------------------------------------------------------

    def chunk_text(self, text: str, metadata: ChunkMetadata, source_url: str) -> list[ChunkDraft]:
        """Split flat text; every chunk carries the same *metadata*."""
        return [
            ChunkDraft(content=segment, metadata=metadata, source_url=source_url)
            for segment in self._splitter.split(text, self._options)
        ]

    # ------------------------------------------------------------------
    # Pages (PDF / DOCX)
    # ------------------------------------------------------------------

    def chunk_pages(
        self,
        pages: list[PageText],
        source_url: str,
        word_document: bool = False,
    ) -> list[ChunkDraft]:
        """Split paged text and tag each chunk with the pages it touches.

        Parameters
        ----------
        pages:
            Pages in document order with strictly increasing page numbers.
        source_url:
            URL attached to every chunk.
        word_document:
            Tag chunks as DOCX instead of PDF.

        Raises
        ------
        ChunkingError
            If page numbers repeat or go backwards.
        """
        spans: list[_PageSpan] = []
        offset = 0
        previous_number = 0
        for page in pages:
            if page.page_number <= previous_number:
                raise ChunkingError(
                    f"Page {page.page_number} follows page {previous_number}; "
                    "pages must be in increasing order"
                )
            spans.append(_PageSpan(page.page_number, offset, offset + len(page.text)))
            offset += len(page.text)
            previous_number = page.page_number
        full_text = "".join(page.text for page in pages)

        base_options = self._options.model_copy(update={"overlap_tokens": 0})
        segments = self._splitter.split(full_text, base_options)

        chunks: list[ChunkDraft] = []
        start = 0
        for i, segment in enumerate(segments):
            end = start + len(segment)
            prefix = ""
            if i > 0:
                prefix = self._splitter.overlap_prefix(segments[i - 1], self._options.overlap_tokens)
            content_start = start - len(prefix)

            page_numbers = sorted(
                {span.page_number for span in spans if span.start < end and span.end > content_start}
            )
            metadata: ChunkMetadata = (
                DocxChunkMeta(pages=page_numbers) if word_document else PdfChunkMeta(pages=page_numbers)
            )
            chunks.append(ChunkDraft(content=prefix + segment, metadata=metadata, source_url=source_url))
            start = end

        return chunks

    # ------------------------------------------------------------------
    # Rows (XLSX sheets / CSV)
    # ------------------------------------------------------------------

    def chunk_sheets(self, sheets: list[SheetData], source_url: str) -> list[ChunkDraft]:
        """Accumulate rows per sheet; chunks never cross a sheet boundary."""
        chunks: list[ChunkDraft] = []
        for sheet in sheets:
            for content, start_row in self._accumulate_rows(sheet.rows):
                chunks.append(
                    ChunkDraft(
                        content=content,
                        metadata=XlsxChunkMeta(sheet=sheet.sheet_name, row=start_row, columns=sheet.columns),
                        source_url=source_url,
                    )
                )
        return chunks

    def chunk_csv_rows(
        self,
        rows: list[SheetRow],
        columns: list[str],
        source_url: str,
    ) -> list[ChunkDraft]:
        """Accumulate CSV rows; every chunk carries the header *columns*."""
        return [
            ChunkDraft(
                content=content,
                metadata=CsvChunkMeta(row=start_row, columns=columns),
                source_url=source_url,
            )
            for content, start_row in self._accumulate_rows(rows)
        ]

    def _accumulate_rows(self, rows: list[SheetRow]) -> list[tuple[str, int]]:
        """Pack rows into ``(content, start_row)`` windows within ``max_tokens``.

        Buffer size is the sum of row token counts plus one token per
        newline joiner.  A single row over the budget becomes its own chunk.
        """
        max_tokens = self._options.max_tokens
        windows: list[tuple[str, int]] = []
        lines: list[str] = []
        buffer_tokens = 0
        start_row = rows[0].row_number if rows else 1

        for row in rows:
            row_tokens = self._tokenizer.count(row.text)
            if lines and buffer_tokens + row_tokens > max_tokens:
                windows.append(("\n".join(lines), start_row))
                lines = []
                buffer_tokens = 0
                start_row = row.row_number
            buffer_tokens += row_tokens + (1 if buffer_tokens > 0 else 0)
            lines.append(row.text)

        if lines:
            windows.append(("\n".join(lines), start_row))
        return windows

    # ------------------------------------------------------------------
    # Messages (synced conversational sources)
    # ------------------------------------------------------------------

    def group_messages(
        self,
        messages: list[SyncedMessage],
        default_source_url: str = "",
    ) -> list[ChunkDraft]:
        """Pack consecutive messages into conversation-window chunks.

        A window is flushed before a message that would push it past
        ``max_tokens`` or whose grouping context differs.  A window that
        still exceeds the budget after appending (one oversized message) is
        handed to the splitter.  An undersized trailing window is folded into
        the previous chunk when both share a grouping context and the result
        stays within budget; otherwise it is emitted as is.
        """
        if not messages:
            return []

        max_tokens = self._options.max_tokens
        chunks: list[ChunkDraft] = []
        buffer = ""
        buffer_tokens = 0
        chunk_meta: ChunkMetadata = messages[0].grouping_context
        anchor_url = messages[0].source_url or default_source_url

        for message in messages:
            context_changed = not is_same_grouping_context(chunk_meta, message.grouping_context)
            separator = "\n" if buffer else ""
            candidate_tokens = self._tokenizer.count(separator + message.content)

            if buffer and (context_changed or buffer_tokens + candidate_tokens > max_tokens):
                chunks.append(ChunkDraft(content=buffer, metadata=chunk_meta, source_url=anchor_url))
                buffer = ""
                chunk_meta = message.grouping_context
                anchor_url = message.source_url or default_source_url
            elif not buffer:
                chunk_meta = message.grouping_context
                anchor_url = message.source_url or default_source_url
            else:
                chunk_meta = merge_authors(chunk_meta, message.grouping_context)

            buffer += ("\n" if buffer else "") + message.content
            buffer_tokens = self._tokenizer.count(buffer)

            if buffer_tokens > max_tokens:
                chunks.extend(self.chunk_text(buffer, chunk_meta, anchor_url))
                buffer = ""
                buffer_tokens = 0

        if buffer:
            chunks.append(self._trailing_window(chunks, buffer, buffer_tokens, chunk_meta, anchor_url))

        logger.debug("messages_grouped", messages=len(messages), chunks=len(chunks))
        return chunks

    def _trailing_window(
        self,
        chunks: list[ChunkDraft],
        buffer: str,
        buffer_tokens: int,
        chunk_meta: ChunkMetadata,
        anchor_url: str,
    ) -> ChunkDraft:
        """Return the chunk for the final window, popping the one it merges into.

        An undersized tail from another channel is emitted on its own: folding
        it in would attribute its text to the previous channel's metadata.
        """
        if buffer_tokens < self._options.min_tokens and chunks:
            last = chunks[-1]
            merged_content = last.content + "\n" + buffer
            if (
                is_same_grouping_context(last.metadata, chunk_meta)
                and self._tokenizer.count(merged_content) <= self._options.max_tokens
            ):
                chunks.pop()
                return last.model_copy(
                    update={
                        "content": merged_content,
                        "metadata": merge_authors(last.metadata, chunk_meta),
                    }
                )
        return ChunkDraft(content=buffer, metadata=chunk_meta, source_url=anchor_url)
