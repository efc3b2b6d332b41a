"""Image generation through the Gemini image model."""
import base64
import logging
from typing import Any, Optional

from chathub.services.providers import GEMINI_IMAGE_MODEL, create_gemini_client

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"


class ImageGenerationError(RuntimeError):
    """The model answered without image data."""


class ImageService:
    """Generates images; nothing is stored server-side."""

    def __init__(self, gemini_client: Optional[Any] = None):
        self._gemini_client = gemini_client

    @property
    def gemini_client(self) -> Any:
        if self._gemini_client is None:
            self._gemini_client = create_gemini_client()
        return self._gemini_client

    def generate(self, prompt: str) -> str:
        """
        Generate one image for the prompt.

        Returns:
            data URL of the first inline image in the response

        Raises:
            ImageGenerationError: If the response carries no image
        """
        response = self.gemini_client.models.generate_content(
            model=GEMINI_IMAGE_MODEL,
            contents=prompt,
        )

        for candidate in response.candidates or []:
            if candidate.content is None:
                continue
            for part in candidate.content.parts or []:
                if part.inline_data is None or not part.inline_data.data:
                    continue
                data = part.inline_data.data
                if isinstance(data, bytes):
                    data = base64.b64encode(data).decode("ascii")
                mime_type = part.inline_data.mime_type or DEFAULT_IMAGE_MIME
                return f"data:{mime_type};base64,{data}"

        raise ImageGenerationError("No image data in response")
