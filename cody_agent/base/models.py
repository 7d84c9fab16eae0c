"""Provider-agnostic DTOs shared by the client and the session layer."""

from .models_parts.message import Message, Role, ROLES
from .models_parts.chat_request import ChatRequest

__all__ = ["Message", "Role", "ROLES", "ChatRequest"]
