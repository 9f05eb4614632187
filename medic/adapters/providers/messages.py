"""Conversation translation into chat-API message lists."""

from typing import Any

from medic.core.models import Conversation, Role

_ROLE_NAMES = {
    Role.INSTRUCTION: "system",
    Role.QUERY: "user",
    Role.ASSISTANT: "assistant",
}


def chat_role(role: Any) -> str:
    """Map a conversation role to the chat vocabulary; unknown kinds become 'user'."""
    if not isinstance(role, Role):
        return "user"
    return _ROLE_NAMES[role]


def to_chat_messages(conversation: Conversation) -> list[dict[str, str]]:
    """Translate every conversation entry, preserving order and count."""
    return [
        {"role": chat_role(message.role), "content": message.text}
        for message in conversation
    ]
