"""Vendor SDK client factories and model identifiers."""
from google import genai
from openai import OpenAI

from chathub.config import settings

# UI model id -> OpenAI model snapshot
OPENAI_MODEL_IDS = {
    "gpt-5": "gpt-5-2025-08-07",
    "gpt-5-mini": "gpt-5-mini-2025-08-07",
    "o3-mini": "o3-mini-2025-01-31",
}
DEFAULT_OPENAI_MODEL = OPENAI_MODEL_IDS["gpt-5"]

GEMINI_MODEL = "gemini"
GEMINI_CHAT_MODEL = "gemini-2.5-pro"
GEMINI_IMAGE_MODEL = "gemini-2.5-flash-image"

# The only model that accepts reasoning_effort
REASONING_MODEL = "o3-mini"


class ProviderNotConfiguredError(RuntimeError):
    """Raised when a vendor endpoint is used without its API key."""


def create_openai_client() -> OpenAI:
    if not settings.OPENAI_API_KEY:
        raise ProviderNotConfiguredError("OPENAI_API_KEY is not configured")
    return OpenAI(api_key=settings.OPENAI_API_KEY)


def create_gemini_client() -> genai.Client:
    if not settings.GEMINI_API_KEY:
        raise ProviderNotConfiguredError("GEMINI_API_KEY is not configured")
    return genai.Client(api_key=settings.GEMINI_API_KEY)
