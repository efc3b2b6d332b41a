"""PresetPrompt SQLModel definition."""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

STATUS_ADMIN = "admin"
STATUS_APPROVED = "approved"
STATUS_PENDING = "pending"
STATUS_REJECTED = "rejected"

PUBLISHED_STATUSES = (STATUS_ADMIN, STATUS_APPROVED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PresetPrompt(SQLModel, table=True):
    """
    Saved bundle of model + generation settings + system prompt.

    Status: "admin" for presets created by the admin, "pending" for user
    submissions until the admin moves them to "approved" or "rejected".
    """
    __tablename__ = "preset_prompt"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)
    name: str = Field(max_length=255)
    description: Optional[str] = Field(default=None)
    model: Optional[str] = Field(default=None, max_length=32)
    model_settings: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    status: str = Field(default=STATUS_PENDING, max_length=16, index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
