"""Vision-model adapters for describing uploaded images."""

from src.providers.vision.openai_vision_captioner import OpenAIVisionCaptioner

__all__ = ["OpenAIVisionCaptioner"]
