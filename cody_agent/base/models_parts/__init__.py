"""Model DTO parts (one class per file); import from ``cody_agent.base.models``."""

from .message import Message, Role, ROLES
from .chat_request import ChatRequest

__all__ = ["Message", "Role", "ROLES", "ChatRequest"]
