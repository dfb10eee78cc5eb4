"""Abstract base class for tokenizers.

Tokenizers are used only for sizing decisions and for slicing exact token
suffixes when building chunk overlap.  One encoding is used per deployment:
chunk boundaries produced under one tokenizer are not portable to another.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: TiktokenTokenizer (src/services/ingestion/tokenizer.py)
class ITokenizer(ABC):
    """Contract for text ↔ token-id conversion."""

    @abstractmethod
    def encode(self, text: str) -> list[int]:
        """Convert *text* into token ids."""

    @abstractmethod
    def decode(self, tokens: list[int]) -> str:
        """Convert token ids back into text.

        Must be round-trip stable: ``encode(decode(t))`` decodes to the same
        string as ``decode(t)``.
        """

    @abstractmethod
    def count(self, text: str) -> int:
        """Return the number of tokens in *text*."""
