"""Preset prompt request/response models."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field

from chathub.schemas.base import CamelModel
from chathub.schemas.chat import AIModel, ModelSettings

PresetStatus = Literal["admin", "approved", "pending", "rejected"]


class PresetCreate(CamelModel):
    # Any client-supplied "status" is dropped: status is derived from the caller
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    model: Optional[AIModel] = None
    model_settings: ModelSettings = Field(default_factory=ModelSettings)


class PresetUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    model: Optional[AIModel] = None
    model_settings: Optional[ModelSettings] = None


class PresetStatusUpdate(CamelModel):
    status: Literal["approved", "rejected"]


class PresetRead(CamelModel):
    id: str
    user_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    model: Optional[AIModel] = None
    model_settings: ModelSettings
    status: PresetStatus
    created_at: datetime
    updated_at: datetime
