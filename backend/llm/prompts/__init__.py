"""LLM prompts for the reading assistant."""

from llm.prompts.reading_assistant import (
    GENERATION_FALLBACK_MESSAGE,
    READING_ASSISTANT_SYSTEM_PROMPT,
    WELCOME_MESSAGE,
)

__all__ = [
    "READING_ASSISTANT_SYSTEM_PROMPT",
    "WELCOME_MESSAGE",
    "GENERATION_FALLBACK_MESSAGE",
]
