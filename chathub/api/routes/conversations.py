"""Conversation routes.

Provides:
- GET    /api/conversations - List caller's conversations
- POST   /api/conversations - Create conversation
- GET    /api/conversations/{id} - Get conversation with messages
- PATCH  /api/conversations/{id} - Rename / change settings
- DELETE /api/conversations/{id} - Delete (no-op if not owned)
- GET    /api/conversations/{id}/messages - List messages
- POST   /api/conversations/{id}/messages - Append user turn, stream and store reply
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from chathub.api.routes.chat import (
    collect_turn_content,
    enforce_rate_limit,
    event_stream_response,
    parse_request_data,
    persist_reply,
)
from chathub.core.deps import get_chat_service, get_current_user, get_db
from chathub.models.conversation import Conversation
from chathub.models.user import User
from chathub.schemas.chat import ChatMessage, MessageRequest, ModelSettings
from chathub.schemas.conversation import ConversationCreate, ConversationRead, ConversationUpdate
from chathub.services import conversation_service
from chathub.services.chat_service import ChatService, ChatTurn
from chathub.services.conversation_service import ConversationNotFoundError

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


def _to_read(conversation: Conversation) -> ConversationRead:
    return ConversationRead(
        id=conversation.id,
        title=conversation.title,
        model=conversation.model,
        settings=conversation.settings,
        messages=conversation.messages,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
    )


def _not_found(e: ConversationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=list[ConversationRead])
def list_conversations(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> list[ConversationRead]:
    return [_to_read(c) for c in conversation_service.list_conversations(session, user.id)]


@router.post("", response_model=ConversationRead, status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> ConversationRead:
    conversation = conversation_service.create_conversation(
        session, user.id, payload.model, payload.settings
    )
    return _to_read(conversation)


@router.get("/{conversation_id}", response_model=ConversationRead)
def get_conversation(
    conversation_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> ConversationRead:
    try:
        return _to_read(conversation_service.get_conversation(session, conversation_id, user.id))
    except ConversationNotFoundError as e:
        raise _not_found(e)


@router.patch("/{conversation_id}", response_model=ConversationRead)
def update_conversation(
    conversation_id: str,
    payload: ConversationUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> ConversationRead:
    try:
        conversation = conversation_service.update_conversation(
            session,
            conversation_id,
            user.id,
            title=payload.title,
            settings=payload.settings,
        )
    except ConversationNotFoundError as e:
        raise _not_found(e)
    return _to_read(conversation)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_conversation(
    conversation_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> Response:
    """Deletion is scoped to the owner; someone else's id is silently ignored."""
    conversation_service.delete_conversation(session, conversation_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}/messages", response_model=list[ChatMessage])
def list_messages(
    conversation_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
) -> list[ChatMessage]:
    try:
        return conversation_service.get_messages(session, conversation_id, user.id)
    except ConversationNotFoundError as e:
        raise _not_found(e)


@router.post("/{conversation_id}/messages")
def send_message(
    conversation_id: str,
    data: str = Form("{}"),
    files: Optional[list[UploadFile]] = File(None),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
    chat_service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """
    Append a user turn and stream the assistant reply.

    The conversation's stored model, settings and history drive the relay;
    the reply is appended when the stream completes successfully.

    Raises:
        HTTPException: 400 on invalid payload or empty turn
        HTTPException: 404 if conversation not found or not owned
        HTTPException: 429 if rate limit exceeded
    """
    request = parse_request_data(data, MessageRequest)
    content = collect_turn_content(request, files)

    try:
        conversation = conversation_service.get_conversation(session, conversation_id, user.id)
    except ConversationNotFoundError as e:
        raise _not_found(e)

    enforce_rate_limit(chat_service, user)

    history = [ChatMessage.model_validate(raw) for raw in conversation.messages]
    turn = ChatTurn(
        model=conversation.model,
        history=history,
        content=content,
        settings=ModelSettings.model_validate(conversation.settings or {}),
    )

    conversation_service.add_message(
        session, conversation_id, user.id, role="user", content=content
    )

    return event_stream_response(
        chat_service.stream_reply(
            turn,
            on_complete=persist_reply(conversation_id, user.id, turn.model),
            user_id=user.id,
        )
    )
