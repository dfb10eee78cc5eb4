"""Token-bounded recursive text splitting with merge and overlap passes.

Splitting works down an ordered separator table, from paragraph breaks to
single spaces.  Each level divides the text, keeps the separator attached to
the end of every piece but the last (so concatenating the pieces gives back
the input), and only pieces still over the token budget descend to the next
level.  Text that no separator can reduce is cut by raw token count.

The raw segments are then:

1. **merged** left to right into chunks of at most ``max_tokens``, folding
   undersized buffers into the previous chunk when it has room and never
   discarding non-blank text; and
2. **overlapped**: every chunk after the first is prefixed with the decoded
   last ``overlap_tokens`` tokens of the previous merged chunk.

Stripping those prefixes and concatenating the chunks reproduces the input
exactly (for a round-trip-stable tokenizer).
"""

from __future__ import annotations

import structlog

from src.interfaces.tokenizer import ITokenizer
from src.models.chunk import SplitOptions

logger = structlog.get_logger(logger_name=__name__)

# Paragraphs → lines → sentences → clauses → words.
SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", "? ", "! ", "; ", " ")


class RecursiveTextSplitter:
    """Splits flat text into token-bounded, optionally overlapping chunks.

    Parameters
    ----------
    tokenizer:
        Used for all sizing and for slicing overlap tails.
    separators:
        Ordered separator table, coarsest first.
    """

    def __init__(
        self,
        tokenizer: ITokenizer,
        separators: tuple[str, ...] = SEPARATORS,
    ) -> None:
        self._tokenizer = tokenizer
        self._separators = separators

    @property
    def tokenizer(self) -> ITokenizer:
        return self._tokenizer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str, options: SplitOptions) -> list[str]:
        """Split *text* within the token limits in *options*.

        Returns
        -------
        list[str]
            Chunks in document order.  Blank input, or input that fits in
            one chunk but is below ``min_tokens``, yields ``[]``.
        """
        total = self._tokenizer.count(text)
        if total <= options.max_tokens:
            if text.strip() and total >= options.min_tokens:
                return [text]
            return []

        segments = self._split_recursive(text, options.max_tokens, 0)
        merged = self._merge_segments(segments, options.max_tokens, options.min_tokens)
        chunks = self.apply_overlap(merged, options.overlap_tokens)

        logger.debug(
            "text_split",
            input_tokens=total,
            segments=len(segments),
            chunks=len(chunks),
        )
        return chunks

    def overlap_prefix(self, previous: str, overlap_tokens: int) -> str:
        """Return the decoded last *overlap_tokens* tokens of *previous*."""
        if overlap_tokens <= 0:
            return ""
        tokens = self._tokenizer.encode(previous)
        return self._tokenizer.decode(tokens[max(0, len(tokens) - overlap_tokens):])

    def apply_overlap(self, chunks: list[str], overlap_tokens: int) -> list[str]:
        """Prefix each chunk after the first with the tail of its predecessor.

        The tail is taken from the previous *input* chunk, never from an
        already-prefixed output chunk.
        """
        if overlap_tokens <= 0 or len(chunks) <= 1:
            return list(chunks)
        result = [chunks[0]]
        for previous, current in zip(chunks, chunks[1:]):
            result.append(self.overlap_prefix(previous, overlap_tokens) + current)
        return result

    # ------------------------------------------------------------------
    # Recursive separator descent
    # ------------------------------------------------------------------

    def _split_recursive(self, text: str, max_tokens: int, level: int) -> list[str]:
        if self._tokenizer.count(text) <= max_tokens:
            return [text]

        if level >= len(self._separators):
            return self._hard_split(text, max_tokens)

        separator = self._separators[level]
        parts = text.split(separator)
        if len(parts) <= 1:
            return self._split_recursive(text, max_tokens, level + 1)

        segments: list[str] = []
        last = len(parts) - 1
        for i, part in enumerate(parts):
            piece = part + separator if i < last else part
            if self._tokenizer.count(piece) > max_tokens:
                segments.extend(self._split_recursive(piece, max_tokens, level + 1))
            else:
                segments.append(piece)
        return segments

    def _hard_split(self, text: str, max_tokens: int) -> list[str]:
        tokens = self._tokenizer.encode(text)
        return [
            self._tokenizer.decode(tokens[start:start + max_tokens])
            for start in range(0, len(tokens), max_tokens)
        ]

    # ------------------------------------------------------------------
    # Merge pass
    # ------------------------------------------------------------------

    def _merge_segments(
        self,
        segments: list[str],
        max_tokens: int,
        min_tokens: int,
    ) -> list[str]:
        result: list[str] = []
        buffer = ""
        buffer_tokens = 0

        for segment in segments:
            segment_tokens = self._tokenizer.count(segment)
            if buffer_tokens + segment_tokens <= max_tokens:
                buffer += segment
                buffer_tokens += segment_tokens
                continue
            self._flush(result, buffer, buffer_tokens, max_tokens, min_tokens)
            buffer = segment
            buffer_tokens = segment_tokens

        self._flush(result, buffer, buffer_tokens, max_tokens, min_tokens)
        return result

    def _flush(
        self,
        result: list[str],
        buffer: str,
        buffer_tokens: int,
        max_tokens: int,
        min_tokens: int,
    ) -> None:
        if not buffer:
            return
        if buffer_tokens >= min_tokens:
            result.append(buffer)
        elif result and self._tokenizer.count(result[-1]) + buffer_tokens <= max_tokens:
            result[-1] += buffer
        else:
            result.append(buffer)
