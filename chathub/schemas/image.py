"""Image generation request/response models."""
from chathub.schemas.base import CamelModel


class ImageRequest(CamelModel):
    prompt: str = ""


class ImageResponse(CamelModel):
    image_url: str
