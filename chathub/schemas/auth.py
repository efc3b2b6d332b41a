"""Auth payloads."""
from pydantic import BaseModel, Field

from chathub.schemas.base import CamelModel


class Credentials(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=6, max_length=256)


class UserRead(CamelModel):
    id: str
    username: str
    is_admin: bool = False
