"""Conversation request/response models."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from chathub.schemas.base import CamelModel
from chathub.schemas.chat import AIModel, ChatMessage, ModelSettings


class ConversationCreate(CamelModel):
    model: AIModel
    settings: Optional[ModelSettings] = None


class ConversationUpdate(CamelModel):
    """Only title and settings are editable."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    settings: Optional[ModelSettings] = None


class ConversationRead(CamelModel):
    id: str
    title: str
    model: AIModel
    settings: Optional[ModelSettings] = None
    messages: list[ChatMessage]
    created_at: datetime
    updated_at: datetime
