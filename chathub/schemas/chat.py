"""Chat payload models: content parts, messages, generation settings."""
import base64
import binascii
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, field_validator

from chathub.schemas.base import CamelModel

AIModel = Literal["gpt-5", "gpt-5-mini", "o3-mini", "gemini"]
ReasoningEffort = Literal["low", "medium", "high"]
MessageRole = Literal["user", "assistant"]


class TextPart(CamelModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(CamelModel):
    """Image referenced by URL; uploads arrive as data URLs."""
    type: Literal["image"] = "image"
    url: str
    alt: Optional[str] = None


ContentPart = Annotated[Union[TextPart, ImagePart], Field(discriminator="type")]


class ModelSettings(CamelModel):
    """
    Per-conversation generation settings.

    reasoning_effort is only forwarded to the o3-mini model.
    """
    system_prompt: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    reasoning_effort: Optional[ReasoningEffort] = None


class ChatMessage(CamelModel):
    """One turn of a conversation as stored and as sent by the client."""
    id: Optional[str] = None
    role: MessageRole
    content: list[ContentPart] = Field(default_factory=list)
    model: Optional[AIModel] = None
    timestamp: Optional[datetime] = None

    def text(self) -> str:
        return "\n".join(part.text for part in self.content if isinstance(part, TextPart))


class MessageRequest(CamelModel):
    """JSON carried in the multipart ``data`` field of a message append."""
    content: list[ContentPart] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)

    @field_validator("images")
    @classmethod
    def check_data_urls(cls, images: list[str]) -> list[str]:
        """Inline images must be base64 image data URLs."""
        for image in images:
            header, _, data = image.partition(",")
            if not header.startswith("data:image/") or not header.endswith(";base64") or not data:
                raise ValueError("images must be base64 image data URLs")
            try:
                base64.b64decode(data, validate=True)
            except binascii.Error:
                raise ValueError("images must contain valid base64 data")
        return images


class ChatRequest(MessageRequest):
    """JSON carried in the multipart ``data`` field of POST /api/chat."""
    model: AIModel
    messages: list[ChatMessage] = Field(default_factory=list)
    settings: Optional[ModelSettings] = None
    conversation_id: Optional[str] = None
