"""tiktoken-backed tokenizer used for every chunk sizing decision.

The encoder is loaded once per encoding name and cached for the life of the
process; loading it reads (and on first use downloads) the BPE ranks file.
"""

from __future__ import annotations

from functools import lru_cache

import structlog
import tiktoken

from src.interfaces.tokenizer import ITokenizer

logger = structlog.get_logger(logger_name=__name__)

# Encoding used by OpenAI's text-embedding-3 family.
DEFAULT_ENCODING = "cl100k_base"


@lru_cache(maxsize=None)
def _get_encoding(name: str) -> tiktoken.Encoding:
    logger.debug("tokenizer_encoding_loaded", encoding=name)
    return tiktoken.get_encoding(name)


class TiktokenTokenizer(ITokenizer):
    """Counts, encodes and decodes text with a fixed tiktoken encoding.

    Parameters
    ----------
    encoding_name:
        A tiktoken encoding name.  Chunk boundaries depend on it, so a
        deployment must not change it without re-ingesting its documents.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING) -> None:
        self._encoding_name = encoding_name

    @property
    def encoding_name(self) -> str:
        return self._encoding_name

    def encode(self, text: str) -> list[int]:
        # Special-token text such as "<|endoftext|>" in user content is plain text.
        return _get_encoding(self._encoding_name).encode(text, disallowed_special=())

    def decode(self, tokens: list[int]) -> str:
        return _get_encoding(self._encoding_name).decode(tokens)

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self.encode(text))
