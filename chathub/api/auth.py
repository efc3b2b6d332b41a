"""Authentication routes: register, login, logout, current user.

Sessions are signed tokens stored in an HttpOnly cookie.
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from chathub.config import settings
from chathub.core.deps import get_current_user, get_db, is_admin
from chathub.core.security import create_access_token, hash_password, verify_password
from chathub.models.user import User
from chathub.schemas.auth import Credentials, UserRead
from chathub.services.telegram import send_new_user_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _to_read(user: User) -> UserRead:
    return UserRead(id=user.id, username=user.username, is_admin=is_admin(user))


def _set_session_cookie(response: Response, user: User) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=create_access_token(user.id),
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


def get_user_by_username(session: Session, username: str) -> Optional[User]:
    return session.exec(select(User).where(User.username == username)).first()


def create_user(session: Session, username: str, password: str) -> User:
    user = User(username=username, password_hash=hash_password(password))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def ensure_admin_user(session: Session) -> None:
    """Seed the admin account from ADMIN_PASSWORD if it does not exist yet."""
    if not settings.ADMIN_PASSWORD:
        return
    if get_user_by_username(session, settings.ADMIN_USERNAME):
        return
    create_user(session, settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
    logger.info(f"Admin account '{settings.ADMIN_USERNAME}' created")


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(
    credentials: Credentials,
    response: Response,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_db),
) -> UserRead:
    """
    Register a new account and start a session.

    Raises:
        HTTPException: 400 if the username is taken
    """
    if get_user_by_username(session, credentials.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists",
        )

    user = create_user(session, credentials.username, credentials.password)
    _set_session_cookie(response, user)
    background_tasks.add_task(send_new_user_notification, user.username)

    logger.info(f"User registered: user={user.id}")
    return _to_read(user)


@router.post("/login", response_model=UserRead)
def login(
    credentials: Credentials,
    response: Response,
    session: Session = Depends(get_db),
) -> UserRead:
    user = get_user_by_username(session, credentials.username)
    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    _set_session_cookie(response, user)
    return _to_read(user)


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"ok": True}


@router.get("/user", response_model=UserRead)
def current_user(user: User = Depends(get_current_user)) -> UserRead:
    return _to_read(user)
