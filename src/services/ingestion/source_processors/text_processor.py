"""Source processor for plain-text and JSON uploads."""

from __future__ import annotations

from src.models.content import TextContent
from src.utils.errors import ExtractionError


class TextProcessor:
    """Decodes UTF-8 bytes as a single flat text."""

    def process(self, data: bytes) -> TextContent:
        try:
            return TextContent(body=data.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise ExtractionError(message=f"Text is not valid UTF-8: {exc}", provider_name="text") from exc
