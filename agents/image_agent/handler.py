# agents/image_agent/handler.py

"""Image generation."""
import logging
from typing import Any, Optional, Tuple, Union

from google.genai import types

from orchestrator.client import GenerationClient, to_base64
from orchestrator.config import Settings, settings
from orchestrator.decision import is_high_res_image_model
from orchestrator.errors import NoImageReturnedError
from orchestrator.models import ImageResult

logger = logging.getLogger(__name__)


def first_inline_part(response: Any) -> Optional[Tuple[Union[bytes, str], Optional[str]]]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return inline.data, getattr(inline, "mime_type", None)
    return None


class ImageHandler:
    def __init__(self, client: GenerationClient, config: Settings = settings):
        self.client = client
        self.config = config

    def build_config(self, model: str) -> types.GenerateContentConfig:
        if is_high_res_image_model(model, self.config):
            image_config = types.ImageConfig(
                image_size=self.config.HIGH_RES_IMAGE_SIZE,
                aspect_ratio=self.config.HIGH_RES_ASPECT_RATIO,
            )
        else:
            image_config = types.ImageConfig(aspect_ratio=self.config.DEFAULT_ASPECT_RATIO)
        return types.GenerateContentConfig(image_config=image_config)

    async def execute(self, model: str, prompt: str) -> ImageResult:
        """
        Generate one image and return the first inline image part.

        Raises:
            NoImageReturnedError: If no part carries image data.
        """
        response = await self.client.generate_content(model, prompt, self.build_config(model))
        found = first_inline_part(response)
        if found is None:
            raise NoImageReturnedError("No image data returned from API.")

        data, mime_type = found
        result = ImageResult(
            image_base64=to_base64(data),
            mime_type=mime_type or self.config.DEFAULT_IMAGE_MIME_TYPE,
        )
        logger.info(f"{model} returned a {result.mime_type} image")
        return result
