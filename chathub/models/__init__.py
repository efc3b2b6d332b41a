"""SQLModel table definitions."""
from chathub.models.conversation import Conversation
from chathub.models.preset import PresetPrompt
from chathub.models.user import User

__all__ = ["Conversation", "PresetPrompt", "User"]
