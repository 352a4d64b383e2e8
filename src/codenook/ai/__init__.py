"""Model-service access: OpenAI-compatible client, prompts and chat."""

from .chat import ChatError, ChatService
from .client import AIClient, ClientSettings

__all__ = ["AIClient", "ClientSettings", "ChatError", "ChatService"]
