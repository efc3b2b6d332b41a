"""Shared fixtures for the test suite: environment, fakes, API base case."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ADMIN_USERNAME"] = "admin"
for _key in (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "TAVILY_API_KEY",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "ADMIN_PASSWORD",
):
    os.environ[_key] = ""

import json  # noqa: E402
import unittest  # noqa: E402
from types import SimpleNamespace  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
from google.genai import types  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from chathub.api.tools.registry import ToolRegistry  # noqa: E402
from chathub.core.deps import get_chat_service, get_image_service  # noqa: E402
from chathub.database import engine, init_db  # noqa: E402
from chathub.main import app  # noqa: E402
from chathub.services.chat_service import ChatService, RateLimiter  # noqa: E402
from chathub.services.image_service import ImageService  # noqa: E402


# --- OpenAI fakes ------------------------------------------------------------

def openai_chunk(content=None, tool_calls=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=SimpleNamespace(content=content, tool_calls=tool_calls))]
    )


def tool_call_delta(index=0, call_id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def failing_stream(chunks, error=None):
    """Stream that yields ``chunks`` and then blows up."""
    yield from chunks
    raise error or RuntimeError("stream broke")


class FakeCompletions:
    def __init__(self, streams):
        self.streams = list(streams)
        self.calls = []

    def create(self, **kwargs):
        # Snapshot messages: the relay keeps appending to the same list
        self.calls.append({**kwargs, "messages": list(kwargs.get("messages", []))})
        stream = self.streams.pop(0)
        if isinstance(stream, Exception):
            raise stream
        return stream


class FakeOpenAI:
    """Mimics ``client.chat.completions.create`` returning scripted streams."""

    def __init__(self, *streams):
        self.chat = SimpleNamespace(completions=FakeCompletions(streams))

    @property
    def calls(self):
        return self.chat.completions.calls

    def script(self, *streams):
        self.chat.completions.streams.extend(streams)


# --- Gemini fakes ------------------------------------------------------------

def gemini_chunk(text=None, function_call=None):
    parts = []
    if text is not None:
        parts.append(types.Part(text=text))
    if function_call is not None:
        parts.append(types.Part(function_call=function_call))
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=parts))]
    )


def gemini_image_response(data=b"\x89PNG", mime_type="image/png"):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(
            role="model",
            parts=[
                types.Part(text="Here you go"),
                types.Part(inline_data=types.Blob(data=data, mime_type=mime_type)),
            ],
        ))]
    )


class FakeGeminiModels:
    def __init__(self):
        self.streams = []
        self.stream_calls = []
        self.images = []
        self.image_calls = []

    def generate_content_stream(self, model, contents, config=None):
        self.stream_calls.append({"model": model, "contents": list(contents), "config": config})
        stream = self.streams.pop(0)
        if isinstance(stream, Exception):
            raise stream
        return stream

    def generate_content(self, model, contents, config=None):
        self.image_calls.append({"model": model, "contents": contents})
        response = self.images.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeGemini:
    """Mimics ``client.models`` of the google-genai SDK."""

    def __init__(self):
        self.models = FakeGeminiModels()


# --- Search fake -------------------------------------------------------------

class FakeSearch:
    def __init__(self, response=None):
        self.queries = []
        self.response = response or {
            "answer": "Paris",
            "results": [
                {"title": "Paris", "url": "https://example.org/paris", "content": "Capital of France", "score": 0.9},
            ],
        }

    def search(self, query, **kwargs):
        self.queries.append((query, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


# --- Helpers -----------------------------------------------------------------

def parse_sse(body: str) -> list[dict]:
    events = []
    for frame in body.split("\n\n"):
        frame = frame.strip()
        if frame.startswith("data: "):
            events.append(json.loads(frame[len("data: "):]))
    return events


def reset_database() -> None:
    SQLModel.metadata.drop_all(engine)
    init_db()


class ApiTestCase(unittest.TestCase):
    """Fresh database, faked vendors and an authenticated client per test."""

    def setUp(self):
        reset_database()
        self.openai = FakeOpenAI()
        self.gemini = FakeGemini()
        self.search = FakeSearch()
        self.chat_service = ChatService(
            openai_client=self.openai,
            gemini_client=self.gemini,
            tool_registry=ToolRegistry(search_client=self.search),
            rate_limiter=RateLimiter(max_requests_per_minute=1000),
        )
        self.image_service = ImageService(gemini_client=self.gemini)
        app.dependency_overrides[get_chat_service] = lambda: self.chat_service
        app.dependency_overrides[get_image_service] = lambda: self.image_service
        self._clients = []
        self.client = self.login_as("alice")

    def tearDown(self):
        app.dependency_overrides.clear()
        for client in self._clients:
            client.close()

    def new_client(self) -> TestClient:
        client = TestClient(app)
        self._clients.append(client)
        return client

    def login_as(self, username: str, password: str = "secret123") -> TestClient:
        """Register ``username`` and return a client holding its session cookie."""
        client = self.new_client()
        response = client.post("/api/register", json={"username": username, "password": password})
        self.assertEqual(response.status_code, 201, response.text)
        return client

    def create_conversation(self, client=None, model="gpt-5", settings=None) -> dict:
        payload = {"model": model}
        if settings is not None:
            payload["settings"] = settings
        response = (client or self.client).post("/api/conversations", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def post_form(self, client, url, payload, files=None):
        return client.post(url, data={"data": json.dumps(payload)}, files=files)
