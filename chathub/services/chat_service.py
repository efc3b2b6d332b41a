"""Chat relay service.

Handles:
- Rate limiting (per user, per minute)
- Vendor payload assembly (OpenAI chat completions, Gemini generate_content)
- Streaming relay with a web_search tool sub-turn
- SSE framing: content deltas followed by exactly one terminal event
"""
import base64
import json
import logging
import mimetypes
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional

from google.genai import types

from chathub.api.tools.registry import ToolRegistry
from chathub.config import settings
from chathub.schemas.chat import ChatMessage, ContentPart, ModelSettings, TextPart
from chathub.services.providers import (
    DEFAULT_OPENAI_MODEL,
    GEMINI_CHAT_MODEL,
    GEMINI_MODEL,
    OPENAI_MODEL_IDS,
    REASONING_MODEL,
    create_gemini_client,
    create_openai_client,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 1.0
DEFAULT_TOP_P = 1.0
DEFAULT_REASONING_EFFORT = "medium"

RELAY_ERROR_MESSAGE = "Failed to generate response"


class RateLimiter:
    """
    Per-user rate limiting.

    Tracks requests per user per minute; the counter resets on the minute
    boundary. Endpoints run in a threadpool, so updates are locked.
    """

    def __init__(self, max_requests_per_minute: Optional[int] = None):
        self.max_requests = max_requests_per_minute or settings.CHAT_RATE_LIMIT_PER_MINUTE
        # {user_id: (count, minute_timestamp)}
        self._counters: Dict[str, tuple[int, datetime]] = {}
        self._lock = threading.Lock()

    def check_and_increment(self, user_id: str) -> bool:
        """
        Check if user is within rate limit and increment counter.

        Returns:
            True if request allowed, False if rate limit exceeded
        """
        current_minute = datetime.now(timezone.utc).replace(second=0, microsecond=0)

        with self._lock:
            count, minute_timestamp = self._counters.get(user_id, (0, current_minute))
            if minute_timestamp < current_minute:
                count = 0
            if count >= self.max_requests:
                return False
            self._counters[user_id] = (count + 1, current_minute)
            return True


@dataclass
class ChatTurn:
    """Everything the relay needs for one assistant reply."""
    model: str
    history: list[ChatMessage]
    content: list[ContentPart]
    settings: ModelSettings = field(default_factory=ModelSettings)


def sse_event(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def search_notice(query: str) -> str:
    return f'\n\n🔍 Searching the web: "{query}"\n\n'


# --- OpenAI payloads ---------------------------------------------------------

def to_openai_content(parts: list[ContentPart]) -> list[Dict[str, Any]]:
    content = []
    for part in parts:
        if isinstance(part, TextPart):
            content.append({"type": "text", "text": part.text})
        else:
            content.append({"type": "image_url", "image_url": {"url": part.url}})
    return content


def to_openai_messages(turn: ChatTurn) -> list[Dict[str, Any]]:
    """
    Convert a chat turn to the OpenAI message list.

    Assistant turns are flattened to text: the API rejects image parts on
    assistant messages.
    """
    messages: list[Dict[str, Any]] = []

    if turn.settings.system_prompt:
        messages.append({"role": "system", "content": turn.settings.system_prompt})

    for msg in turn.history:
        if msg.role == "assistant":
            messages.append({"role": "assistant", "content": msg.text()})
        else:
            messages.append({"role": "user", "content": to_openai_content(msg.content)})

    messages.append({"role": "user", "content": to_openai_content(turn.content)})
    return messages


def build_openai_params(
    turn: ChatTurn,
    messages: list[Dict[str, Any]],
    tools: Optional[list[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Build chat.completions.create arguments.

    Generation settings are only sent when they differ from the vendor
    defaults; reasoning_effort only for the reasoning model.
    """
    s = turn.settings
    params: Dict[str, Any] = {
        "model": OPENAI_MODEL_IDS.get(turn.model, DEFAULT_OPENAI_MODEL),
        "messages": messages,
        "stream": True,
    }
    if tools:
        params["tools"] = tools
    if s.temperature is not None and s.temperature != DEFAULT_TEMPERATURE:
        params["temperature"] = s.temperature
    if s.max_tokens:
        params["max_completion_tokens"] = s.max_tokens
    if s.top_p is not None and s.top_p != DEFAULT_TOP_P:
        params["top_p"] = s.top_p
    if turn.model == REASONING_MODEL:
        params["reasoning_effort"] = s.reasoning_effort or DEFAULT_REASONING_EFFORT
    return params


def _merge_tool_call_delta(tool_calls: Dict[int, Dict[str, Any]], delta: Any) -> None:
    """Accumulate a streamed tool-call fragment into its slot by index."""
    call = tool_calls.setdefault(
        delta.index,
        {"id": "", "type": "function", "function": {"name": "", "arguments": ""}},
    )
    if delta.id:
        call["id"] = delta.id
    if delta.function is not None:
        if delta.function.name:
            call["function"]["name"] = delta.function.name
        if delta.function.arguments:
            call["function"]["arguments"] += delta.function.arguments


def _search_query(arguments: str) -> Optional[str]:
    try:
        return json.loads(arguments or "{}").get("query")
    except (json.JSONDecodeError, AttributeError):
        return None


# --- Gemini payloads ---------------------------------------------------------

def parse_data_url(url: str) -> Optional[tuple[str, bytes]]:
    """Split a base64 data URL into (mime_type, bytes); None for other URLs."""
    if not url.startswith("data:") or ";base64," not in url:
        return None
    header, data = url.split(",", 1)
    mime_type = header[len("data:"):].split(";")[0] or "application/octet-stream"
    return mime_type, base64.b64decode(data)


def to_gemini_parts(parts: list[ContentPart]) -> list[types.Part]:
    gemini_parts = []
    for part in parts:
        if isinstance(part, TextPart):
            gemini_parts.append(types.Part(text=part.text))
            continue
        inline = parse_data_url(part.url)
        if inline is not None:
            mime_type, data = inline
            gemini_parts.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        else:
            mime_type = mimetypes.guess_type(part.url)[0] or "image/jpeg"
            gemini_parts.append(types.Part.from_uri(file_uri=part.url, mime_type=mime_type))
    return gemini_parts


def to_gemini_contents(turn: ChatTurn) -> list[types.Content]:
    """History is sent as text only; images are forwarded for the current turn."""
    contents = []
    for msg in turn.history:
        text = msg.text()
        if not text:
            continue
        contents.append(types.Content(
            role="user" if msg.role == "user" else "model",
            parts=[types.Part(text=text)],
        ))
    contents.append(types.Content(role="user", parts=to_gemini_parts(turn.content)))
    return contents


def _gemini_schema(schema: Dict[str, Any]) -> types.Schema:
    properties = {
        name: _gemini_schema(prop) for name, prop in schema.get("properties", {}).items()
    }
    return types.Schema(
        type=types.Type(schema["type"].upper()),
        description=schema.get("description"),
        properties=properties or None,
        required=schema.get("required"),
    )


def gemini_function_declarations(registry: ToolRegistry) -> list[types.FunctionDeclaration]:
    return [
        types.FunctionDeclaration(
            name=schema["name"],
            description=schema["description"],
            parameters=_gemini_schema(schema["parameters"]),
        )
        for schema in registry.get_tool_schemas().values()
    ]


def build_gemini_config(
    turn: ChatTurn,
    function_declarations: Optional[list[types.FunctionDeclaration]] = None,
) -> types.GenerateContentConfig:
    s = turn.settings
    config: Dict[str, Any] = {}
    if s.system_prompt:
        config["system_instruction"] = s.system_prompt
    if s.temperature is not None and s.temperature != DEFAULT_TEMPERATURE:
        config["temperature"] = s.temperature
    if s.max_tokens:
        config["max_output_tokens"] = s.max_tokens
    if s.top_p is not None and s.top_p != DEFAULT_TOP_P:
        config["top_p"] = s.top_p
    if function_declarations:
        config["tools"] = [types.Tool(function_declarations=function_declarations)]
    return types.GenerateContentConfig(**config)


def _gemini_chunk_text(chunk: Any) -> str:
    """Text of a streamed chunk, skipping thought and function-call parts."""
    if not chunk.candidates:
        return ""
    content = chunk.candidates[0].content
    if content is None or not content.parts:
        return ""
    return "".join(part.text for part in content.parts if part.text and not part.thought)


# --- Relay -------------------------------------------------------------------

class ChatService:
    """Service layer for chat relay operations."""

    def __init__(
        self,
        openai_client: Optional[Any] = None,
        gemini_client: Optional[Any] = None,
        tool_registry: Optional[ToolRegistry] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self._openai_client = openai_client
        self._gemini_client = gemini_client
        self.tool_registry = tool_registry or ToolRegistry()
        self.rate_limiter = rate_limiter or RateLimiter()

    @property
    def openai_client(self) -> Any:
        if self._openai_client is None:
            self._openai_client = create_openai_client()
        return self._openai_client

    @property
    def gemini_client(self) -> Any:
        if self._gemini_client is None:
            self._gemini_client = create_gemini_client()
        return self._gemini_client

    def check_rate_limit(self, user_id: str) -> bool:
        return self.rate_limiter.check_and_increment(user_id)

    def stream_reply(
        self,
        turn: ChatTurn,
        on_complete: Optional[Callable[[str], None]] = None,
        user_id: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Relay one assistant reply as SSE frames.

        Yields ``{"content"}`` frames, then exactly one terminal frame:
        ``{"done": true}`` on success, or ``{"error", "partial"}`` on any
        failure, where ``partial`` tells whether content was already sent.
        ``on_complete`` receives the full text before ``done`` is sent; a
        failure inside it is reported like a vendor failure.
        """
        emitted: list[str] = []
        try:
            for delta in self.generate(turn):
                if not delta:
                    continue
                emitted.append(delta)
                yield sse_event({"content": delta})

            if on_complete is not None:
                on_complete("".join(emitted))
        except Exception as e:
            logger.error(
                f"Chat relay failed: user={user_id}, model={turn.model}, "
                f"partial={bool(emitted)}: {str(e)}"
            )
            yield sse_event({"error": RELAY_ERROR_MESSAGE, "partial": bool(emitted)})
            return

        logger.info(f"Chat reply streamed: user={user_id}, model={turn.model}, chunks={len(emitted)}")
        yield sse_event({"done": True})

    def generate(self, turn: ChatTurn) -> Iterator[str]:
        """Yield raw text deltas from the vendor selected by the model id."""
        if turn.model == GEMINI_MODEL:
            yield from self._stream_gemini(turn)
        else:
            yield from self._stream_openai(turn)

    def _stream_openai(self, turn: ChatTurn) -> Iterator[str]:
        """
        Stream an OpenAI completion.

        Flow:
        1. Stream with the web_search tool offered, forwarding content
        2. If tool calls were accumulated, execute each one
        3. Append the assistant tool-call message and one tool message per call
        4. Stream a single follow-up completion without tools
        """
        client = self.openai_client
        messages = to_openai_messages(turn)
        params = build_openai_params(turn, messages, tools=self.tool_registry.openai_tools())

        tool_calls: Dict[int, Dict[str, Any]] = {}
        for chunk in client.chat.completions.create(timeout=settings.OPENAI_TIMEOUT, **params):
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            for call_delta in delta.tool_calls or []:
                _merge_tool_call_delta(tool_calls, call_delta)
            if delta.content:
                yield delta.content

        if not tool_calls:
            return

        calls = [tool_calls[index] for index in sorted(tool_calls)]
        messages.append({"role": "assistant", "content": None, "tool_calls": calls})
        for call in calls:
            name = call["function"]["name"]
            arguments = call["function"]["arguments"]
            if name == "web_search":
                yield search_notice(_search_query(arguments) or "")
            result = self.tool_registry.execute(name, arguments)
            messages.append({
                "role": "tool",
                "tool_call_id": call["id"],
                "content": json.dumps(result, ensure_ascii=False),
            })

        follow_up = build_openai_params(turn, messages)
        for chunk in client.chat.completions.create(timeout=settings.OPENAI_TIMEOUT, **follow_up):
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content

    def _stream_gemini(self, turn: ChatTurn) -> Iterator[str]:
        """Stream a Gemini reply; function calls get one follow-up round."""
        client = self.gemini_client
        contents = to_gemini_contents(turn)
        declarations = gemini_function_declarations(self.tool_registry)

        function_calls: list[types.FunctionCall] = []
        stream = client.models.generate_content_stream(
            model=GEMINI_CHAT_MODEL,
            contents=contents,
            config=build_gemini_config(turn, declarations),
        )
        for chunk in stream:
            if chunk.function_calls:
                function_calls.extend(chunk.function_calls)
            text = _gemini_chunk_text(chunk)
            if text:
                yield text

        if not function_calls:
            return

        responses = []
        for call in function_calls:
            args = dict(call.args or {})
            if call.name == "web_search":
                yield search_notice(args.get("query", ""))
            result = self.tool_registry.execute(call.name, args)
            responses.append(types.Part.from_function_response(name=call.name, response=result))

        contents.append(types.Content(
            role="model",
            parts=[types.Part(function_call=call) for call in function_calls],
        ))
        contents.append(types.Content(role="user", parts=responses))

        follow_up = client.models.generate_content_stream(
            model=GEMINI_CHAT_MODEL,
            contents=contents,
            config=build_gemini_config(turn),
        )
        for chunk in follow_up:
            text = _gemini_chunk_text(chunk)
            if text:
                yield text
