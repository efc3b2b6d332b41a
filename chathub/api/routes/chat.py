"""Chat relay routes.

Provides:
- POST /api/chat - Stream an assistant reply for a client-supplied history

Both this route and the conversation message route accept multipart form
data: a JSON ``data`` field plus optional ``files`` uploads.
"""
import logging
from typing import Callable, Iterator, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from sqlmodel import Session

from chathub.core.deps import get_chat_service, get_current_user, get_db
from chathub.database import session_scope
from chathub.models.user import User
from chathub.schemas.chat import ChatRequest, ContentPart, MessageRequest, ModelSettings, TextPart
from chathub.services import conversation_service
from chathub.services.attachments import build_turn_content
from chathub.services.chat_service import ChatService, ChatTurn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

RequestT = TypeVar("RequestT", bound=MessageRequest)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def parse_request_data(data: str, model: Type[RequestT]) -> RequestT:
    """
    Validate the JSON ``data`` form field.

    Raises:
        HTTPException: 400 on malformed JSON or invalid fields
    """
    try:
        return model.model_validate_json(data or "{}")
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )


def collect_turn_content(
    request: MessageRequest,
    files: Optional[list[UploadFile]],
) -> list[ContentPart]:
    """
    Merge parts, inline images and uploads into the current turn.

    Raises:
        HTTPException: 400 if the turn ends up empty
    """
    content = build_turn_content(request.content, request.images, files or [])
    if not any(not isinstance(part, TextPart) or part.text.strip() for part in content):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message cannot be empty",
        )
    return content


def enforce_rate_limit(chat_service: ChatService, user: User) -> None:
    if not chat_service.check_rate_limit(user.id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded, try again in a minute",
        )


def persist_reply(conversation_id: str, user_id: str, model: str) -> Callable[[str], None]:
    """
    Completion callback storing the streamed text as an assistant message.

    Runs after the request session is gone, so it opens its own.
    """
    def _store(full_text: str) -> None:
        with session_scope() as session:
            conversation_service.add_message(
                session,
                conversation_id,
                user_id,
                role="assistant",
                content=[TextPart(text=full_text)],
                model=model,
            )
        logger.info(f"Assistant reply stored: user={user_id}, conversation={conversation_id}")

    return _store


def event_stream_response(frames: Iterator[str]) -> StreamingResponse:
    return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/chat")
def chat(
    data: str = Form("{}"),
    files: Optional[list[UploadFile]] = File(None),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_db),
    chat_service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """
    Stream an assistant reply as server-sent events.

    Flow:
    1. Validate the ``data`` JSON and fold attachments into the turn
    2. Check rate limit
    3. If conversationId is given, verify ownership (reply is stored there)
    4. Relay vendor deltas; terminal event is {"done"} or {"error", "partial"}

    Raises:
        HTTPException: 400 on invalid payload or empty turn
        HTTPException: 404 if conversationId is not owned by the caller
        HTTPException: 429 if rate limit exceeded
    """
    request = parse_request_data(data, ChatRequest)
    content = collect_turn_content(request, files)
    enforce_rate_limit(chat_service, user)

    on_complete = None
    if request.conversation_id:
        try:
            conversation_service.get_conversation(session, request.conversation_id, user.id)
        except conversation_service.ConversationNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        on_complete = persist_reply(request.conversation_id, user.id, request.model)

    turn = ChatTurn(
        model=request.model,
        history=request.messages,
        content=content,
        settings=request.settings or ModelSettings(),
    )
    return event_stream_response(
        chat_service.stream_reply(turn, on_complete=on_complete, user_id=user.id)
    )
