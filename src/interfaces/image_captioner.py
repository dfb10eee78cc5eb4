"""Abstract base class for image captioning (vision model) providers.

Uploaded images have no text layer, so the ingestion pipeline asks a vision
model to describe them and embeds that description instead.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class ImageCaption(BaseModel):
    """Structured description of an image returned by a captioner."""

    model_config = ConfigDict(frozen=True)

    description: str = ""
    tags: list[str] = Field(default_factory=list)
    visible_text: str = ""

    def as_text(self) -> str:
        """Render the caption as the text that gets chunked and embedded."""
        parts = [self.description.strip()]
        if self.visible_text.strip():
            parts.append(f"Visible text: {self.visible_text.strip()}")
        if self.tags:
            parts.append(f"Tags: {', '.join(self.tags)}")
        return "\n\n".join(part for part in parts if part)


# Concrete implementation: OpenAIVisionCaptioner (src/providers/vision/)
class IImageCaptioner(ABC):
    """Contract for vision models that describe uploaded images."""

    @abstractmethod
    async def caption(self, image_bytes: bytes) -> ImageCaption:
        """Describe the image encoded in *image_bytes*.

        Raises
        ------
        src.utils.errors.CaptioningError
            If the vision model call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this captioner."""
