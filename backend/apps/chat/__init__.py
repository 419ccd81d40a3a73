"""Chat module - reading assistant turns and streaming."""

from apps.chat.routes import router

__all__ = ["router"]
