"""OpenAI vision adapter that captions uploaded images.

The model is asked for a fixed three-line answer (DESCRIPTION / TAGS / TEXT)
which :func:`parse_image_analysis` turns into an :class:`ImageCaption`.  A
response that ignores the format is kept whole as the description.
"""

from __future__ import annotations

import base64
import re

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.image_captioner import IImageCaptioner, ImageCaption
from src.utils.errors import CaptioningError

logger = structlog.get_logger(logger_name=__name__)

IMAGE_ANALYSIS_PROMPT = """Analyze this image and provide:
1. A detailed description of the image content (2-4 sentences). Include what the image shows, any charts/graphs/diagrams, data presented, and key visual elements.
2. A list of relevant tags (comma-separated, 3-8 tags). Tags should describe the content type, subject matter, and key themes.
3. Any visible text in the image (OCR). If no text is visible, write "None".

Format your response EXACTLY as:
DESCRIPTION: <your description>
TAGS: <tag1, tag2, tag3>
TEXT: <visible text or None>"""

_DESCRIPTION_RE = re.compile(r"DESCRIPTION:\s*(.+?)(?=\nTAGS:)", re.DOTALL)
_TAGS_RE = re.compile(r"TAGS:\s*(.+?)(?=\nTEXT:)", re.DOTALL)
_TEXT_RE = re.compile(r"TEXT:\s*(.+)", re.DOTALL)


def _detect_media_type(image_bytes: bytes) -> str:
    """Detect the MIME type of an image from its magic bytes."""
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return "image/jpeg"


def parse_image_analysis(response: str) -> ImageCaption:
    """Parse the DESCRIPTION / TAGS / TEXT answer into an :class:`ImageCaption`."""
    description_match = _DESCRIPTION_RE.search(response)
    tags_match = _TAGS_RE.search(response)
    text_match = _TEXT_RE.search(response)

    description = description_match.group(1).strip() if description_match else response.strip()
    tags_field = tags_match.group(1).strip() if tags_match else ""
    tags = [tag.strip() for tag in tags_field.split(",") if tag.strip()]
    visible_text = text_match.group(1).strip() if text_match else ""
    if visible_text == "None":
        visible_text = ""

    return ImageCaption(description=description, tags=tags, visible_text=visible_text)


class OpenAIVisionCaptioner(IImageCaptioner):
    """Image captioner backed by an OpenAI-compatible chat completions API."""

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._model = settings.openai_vision_model or "gpt-4o-mini"
        if client is None:
            client_kwargs: dict = {"api_key": settings.openai_api_key}
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)
        self._client = client

    async def caption(self, image_bytes: bytes) -> ImageCaption:
        b64 = base64.b64encode(image_bytes).decode("utf-8")
        media_type = _detect_media_type(image_bytes)
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": IMAGE_ANALYSIS_PROMPT},
                            {
                                "type": "image_url",
                                # data URI format: data:<mime>;base64,<encoded_data>
                                "image_url": {"url": f"data:{media_type};base64,{b64}"},
                            },
                        ],
                    }
                ],
                max_tokens=1000,
            )
        except openai.APIError as exc:
            raise CaptioningError(
                message=f"Vision API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if not content:
            raise CaptioningError(
                message="Vision model returned an empty response",
                provider_name=self.get_provider_name(),
            )

        caption = parse_image_analysis(content)
        logger.info(
            "openai_vision_caption",
            model=self._model,
            tags=len(caption.tags),
            description_chars=len(caption.description),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return caption

    def get_provider_name(self) -> str:
        return f"openai-{self._model}"
