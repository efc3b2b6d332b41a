"""Preset prompt storage and moderation.

Status rules:
- created by the admin -> "admin"
- created by anyone else -> "pending", whatever the request says
- "pending" -> "approved" | "rejected" by admin action; no other transitions
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session, select

from chathub.models.preset import (
    PUBLISHED_STATUSES,
    STATUS_ADMIN,
    STATUS_PENDING,
    PresetPrompt,
)
from chathub.schemas.preset import PresetCreate, PresetUpdate

logger = logging.getLogger(__name__)

MODERATION_TARGETS = ("approved", "rejected")


class PresetNotFoundError(ValueError):
    """Preset does not exist."""


class PresetStatusError(ValueError):
    """Requested status transition is not allowed."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def list_published(session: Session) -> list[PresetPrompt]:
    statement = (
        select(PresetPrompt)
        .where(PresetPrompt.status.in_(PUBLISHED_STATUSES))
        .order_by(PresetPrompt.created_at.desc())
    )
    return list(session.exec(statement).all())


def list_by_status(session: Session, status: str) -> list[PresetPrompt]:
    statement = (
        select(PresetPrompt)
        .where(PresetPrompt.status == status)
        .order_by(PresetPrompt.created_at.desc())
    )
    return list(session.exec(statement).all())


def list_for_user(session: Session, user_id: str) -> list[PresetPrompt]:
    statement = (
        select(PresetPrompt)
        .where(PresetPrompt.user_id == user_id)
        .order_by(PresetPrompt.created_at.desc())
    )
    return list(session.exec(statement).all())


def get_preset(session: Session, preset_id: str) -> PresetPrompt:
    preset = session.get(PresetPrompt, preset_id)
    if not preset:
        raise PresetNotFoundError(f"Preset {preset_id} not found")
    return preset


def create_preset(
    session: Session,
    data: PresetCreate,
    user_id: Optional[str],
    is_admin: bool,
) -> PresetPrompt:
    """Create a preset; status is derived from the caller, never from input."""
    preset = PresetPrompt(
        user_id=user_id,
        name=data.name,
        description=data.description,
        model=data.model,
        model_settings=data.model_settings.model_dump(by_alias=True, exclude_none=True),
        status=STATUS_ADMIN if is_admin else STATUS_PENDING,
    )
    session.add(preset)
    session.commit()
    session.refresh(preset)
    logger.info(f"Preset created: id={preset.id}, user={user_id}, status={preset.status}")
    return preset


def update_preset(session: Session, preset_id: str, data: PresetUpdate) -> PresetPrompt:
    preset = get_preset(session, preset_id)
    updates = data.model_dump(exclude_unset=True)
    if updates.get("name"):
        preset.name = updates["name"]
    if "description" in updates:
        preset.description = updates["description"]
    if "model" in updates:
        preset.model = updates["model"]
    if data.model_settings is not None:
        preset.model_settings = data.model_settings.model_dump(by_alias=True, exclude_none=True)
    preset.updated_at = _utcnow()
    session.add(preset)
    session.commit()
    session.refresh(preset)
    return preset


def delete_preset(session: Session, preset_id: str) -> None:
    preset = get_preset(session, preset_id)
    session.delete(preset)
    session.commit()


def set_status(session: Session, preset_id: str, status: str) -> PresetPrompt:
    """
    Moderate a user submission.

    Raises:
        PresetNotFoundError: If preset does not exist
        PresetStatusError: If the preset is not pending or the target is invalid
    """
    if status not in MODERATION_TARGETS:
        raise PresetStatusError(f"Cannot set status to '{status}'")

    preset = get_preset(session, preset_id)
    if preset.status != STATUS_PENDING:
        raise PresetStatusError(
            f"Preset {preset_id} is '{preset.status}', only pending presets can be moderated"
        )

    preset.status = status
    preset.updated_at = _utcnow()
    session.add(preset)
    session.commit()
    session.refresh(preset)
    logger.info(f"Preset moderated: id={preset_id}, status={status}")
    return preset
