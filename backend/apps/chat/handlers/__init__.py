"""Chat handlers."""

from apps.chat.handlers.clear_chat_history import clear_chat_history
from apps.chat.handlers.get_chat_history import get_chat_history
from apps.chat.handlers.stream_response import stream_response

__all__ = [
    "stream_response",
    "get_chat_history",
    "clear_chat_history",
]
