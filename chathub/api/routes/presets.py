"""Preset prompt routes.

Provides:
- GET    /api/presets - Published catalog (admin + approved)
- GET    /api/presets/pending - Moderation queue (admin)
- GET    /api/presets/mine - Caller's own submissions
- GET    /api/presets/{id} - Single preset
- POST   /api/presets, /api/presets/user - Create (status from caller)
- PUT    /api/presets/{id} - Edit (admin)
- DELETE /api/presets/{id} - Delete (admin)
- PATCH  /api/presets/{id}/status - Approve / reject a pending preset (admin)
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session

from chathub.core.deps import get_current_user, get_db, is_admin, require_admin
from chathub.models.preset import STATUS_PENDING, PresetPrompt
from chathub.models.user import User
from chathub.schemas.preset import PresetCreate, PresetRead, PresetStatusUpdate, PresetUpdate
from chathub.services import preset_service
from chathub.services.preset_service import PresetNotFoundError, PresetStatusError

router = APIRouter(prefix="/api/presets", tags=["presets"])


def _to_read(preset: PresetPrompt) -> PresetRead:
    return PresetRead.model_validate(preset, from_attributes=True)


def _not_found(e: PresetNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=list[PresetRead])
def list_presets(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> list[PresetRead]:
    return [_to_read(p) for p in preset_service.list_published(session)]


@router.get("/pending", response_model=list[PresetRead])
def list_pending_presets(
    admin: User = Depends(require_admin),
    session: Session = Depends(get_db),
) -> list[PresetRead]:
    return [_to_read(p) for p in preset_service.list_by_status(session, STATUS_PENDING)]


@router.get("/mine", response_model=list[PresetRead])
def list_my_presets(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> list[PresetRead]:
    return [_to_read(p) for p in preset_service.list_for_user(session, user.id)]


@router.get("/{preset_id}", response_model=PresetRead)
def get_preset(
    preset_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> PresetRead:
    try:
        return _to_read(preset_service.get_preset(session, preset_id))
    except PresetNotFoundError as e:
        raise _not_found(e)


@router.post("", response_model=PresetRead, status_code=status.HTTP_201_CREATED)
@router.post("/user", response_model=PresetRead, status_code=status.HTTP_201_CREATED)
def create_preset(
    payload: PresetCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> PresetRead:
    """
    Create a preset.

    The admin's presets are published immediately ("admin"); everyone
    else's go to the moderation queue ("pending").
    """
    preset = preset_service.create_preset(session, payload, user.id, is_admin(user))
    return _to_read(preset)


@router.put("/{preset_id}", response_model=PresetRead)
def update_preset(
    preset_id: str,
    payload: PresetUpdate,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_db),
) -> PresetRead:
    try:
        return _to_read(preset_service.update_preset(session, preset_id, payload))
    except PresetNotFoundError as e:
        raise _not_found(e)


@router.delete("/{preset_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_preset(
    preset_id: str,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_db),
) -> Response:
    try:
        preset_service.delete_preset(session, preset_id)
    except PresetNotFoundError as e:
        raise _not_found(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{preset_id}/status", response_model=PresetRead)
def moderate_preset(
    preset_id: str,
    payload: PresetStatusUpdate,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_db),
) -> PresetRead:
    """
    Approve or reject a pending preset.

    Raises:
        HTTPException: 404 if preset not found
        HTTPException: 409 if the preset is not pending
    """
    try:
        return _to_read(preset_service.set_status(session, preset_id, payload.status))
    except PresetNotFoundError as e:
        raise _not_found(e)
    except PresetStatusError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
