"""Conversation SQLModel definition.

Messages live inside the conversation row as a JSON array, each entry shaped
like ``chathub.schemas.chat.ChatMessage`` (camelCase keys).
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

DEFAULT_TITLE = "New chat"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(SQLModel, table=True):
    """
    Chat conversation owned by exactly one user.

    All queries MUST filter by user_id.
    The messages array is append-only; only title and settings are editable.
    """
    __tablename__ = "conversation"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True, nullable=False)
    title: str = Field(default=DEFAULT_TITLE, max_length=255)
    model: str = Field(max_length=32)
    settings: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    messages: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
