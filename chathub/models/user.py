"""User SQLModel definition."""
import uuid
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """
    Registered account.

    Admin rights are granted by username match against ADMIN_USERNAME,
    there is no role column.
    """
    __tablename__ = "user"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    username: str = Field(index=True, unique=True, nullable=False, max_length=64)
    password_hash: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=_utcnow)
