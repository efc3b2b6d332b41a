"""Shared FastAPI dependencies."""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlmodel import Session

from chathub.config import settings
from chathub.core.security import decode_access_token
from chathub.database import get_db
from chathub.models.user import User
from chathub.services.chat_service import ChatService
from chathub.services.image_service import ImageService

__all__ = [
    "get_db",
    "get_current_user",
    "require_admin",
    "is_admin",
    "get_chat_service",
    "get_image_service",
]

# Global service instances (stateless apart from lazily created vendor clients)
chat_service = ChatService()
image_service = ImageService()


def is_admin(user: User) -> bool:
    return user.username == settings.ADMIN_USERNAME


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    session: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the session cookie, or a Bearer header.

    Raises:
        HTTPException: 401 if no valid session
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token and authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1]
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user_id = decode_access_token(token)
    user = session.get(User, user_id) if user_id else None
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def get_chat_service() -> ChatService:
    return chat_service


def get_image_service() -> ImageService:
    return image_service
