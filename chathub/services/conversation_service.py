"""Conversation storage: owner-scoped CRUD and append-only messages."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlmodel import Session, select

from chathub.models.conversation import Conversation
from chathub.schemas.chat import ChatMessage, ContentPart, ModelSettings, TextPart

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 50


class ConversationNotFoundError(ValueError):
    """Conversation does not exist or is not owned by the caller."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dump_settings(settings: Optional[ModelSettings]) -> Optional[Dict[str, Any]]:
    if settings is None:
        return None
    return settings.model_dump(by_alias=True, exclude_none=True)


def list_conversations(session: Session, user_id: str) -> list[Conversation]:
    statement = (
        select(Conversation)
        .where(Conversation.user_id == user_id)
        .order_by(Conversation.updated_at.desc())
    )
    return list(session.exec(statement).all())


def conversation_statement(conversation_id: str, user_id: str, for_update: bool = False):
    statement = select(Conversation).where(
        Conversation.id == conversation_id,
        Conversation.user_id == user_id,
    )
    if for_update:
        # Reload a row this session may already hold in its identity map
        statement = statement.with_for_update().execution_options(populate_existing=True)
    return statement


def get_conversation(
    session: Session,
    conversation_id: str,
    user_id: str,
    for_update: bool = False,
) -> Conversation:
    """
    Get a conversation owned by user_id.

    Raises:
        ConversationNotFoundError: If missing or owned by someone else
    """
    statement = conversation_statement(conversation_id, user_id, for_update)
    conversation = session.exec(statement).first()
    if not conversation:
        raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
    return conversation


def create_conversation(
    session: Session,
    user_id: str,
    model: str,
    settings: Optional[ModelSettings] = None,
) -> Conversation:
    conversation = Conversation(
        user_id=user_id,
        model=model,
        settings=_dump_settings(settings),
        messages=[],
    )
    session.add(conversation)
    session.commit()
    session.refresh(conversation)
    logger.info(f"Conversation created: user={user_id}, conversation={conversation.id}, model={model}")
    return conversation


def update_conversation(
    session: Session,
    conversation_id: str,
    user_id: str,
    title: Optional[str] = None,
    settings: Optional[ModelSettings] = None,
) -> Conversation:
    """Rename and/or replace settings. Messages are never touched here."""
    conversation = get_conversation(session, conversation_id, user_id)
    if title:
        conversation.title = title
    if settings is not None:
        conversation.settings = _dump_settings(settings)
    conversation.updated_at = _utcnow()
    session.add(conversation)
    session.commit()
    session.refresh(conversation)
    return conversation


def delete_conversation(session: Session, conversation_id: str, user_id: str) -> bool:
    """
    Delete a conversation owned by user_id.

    Returns:
        True if deleted, False if nothing matched (not an error)
    """
    statement = select(Conversation).where(
        Conversation.id == conversation_id,
        Conversation.user_id == user_id,
    )
    conversation = session.exec(statement).first()
    if not conversation:
        return False
    session.delete(conversation)
    session.commit()
    return True


def add_message(
    session: Session,
    conversation_id: str,
    user_id: str,
    role: str,
    content: list[ContentPart],
    model: Optional[str] = None,
) -> ChatMessage:
    """
    Append a message to a conversation.

    The row is locked (SELECT ... FOR UPDATE) for the read-modify-write of
    the messages array, so concurrent appends are serialized.
    The first user message sets the title to its first 50 characters.
    """
    conversation = get_conversation(session, conversation_id, user_id, for_update=True)

    message = ChatMessage(
        id=str(uuid.uuid4()),
        role=role,
        content=content,
        model=model,
        timestamp=_utcnow(),
    )

    if not conversation.messages and role == "user":
        first_text = next((part for part in content if isinstance(part, TextPart)), None)
        if first_text is not None and first_text.text:
            conversation.title = first_text.text[:TITLE_MAX_LENGTH]

    # JSON columns are not mutation-tracked: assign a new list
    conversation.messages = [
        *conversation.messages,
        message.model_dump(mode="json", by_alias=True, exclude_none=True),
    ]
    conversation.updated_at = _utcnow()
    session.add(conversation)
    session.commit()

    return message


def get_messages(session: Session, conversation_id: str, user_id: str) -> list[ChatMessage]:
    conversation = get_conversation(session, conversation_id, user_id)
    return [ChatMessage.model_validate(raw) for raw in conversation.messages]
