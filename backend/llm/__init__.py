"""LLM module - unified interface for text generation.

Usage:
    from llm import Generator, GenerationError

    generator = Generator()
    async for snapshot in generator.stream(prompt, system):
        print(snapshot)

Structure:
    - base.py: Abstract interface (BaseGenerator)
    - anthropic.py: Claude implementation (AnthropicGenerator)
    - prompts/: Reading assistant instructions and fixed messages
"""

from llm.anthropic import AnthropicGenerator
from llm.base import BaseGenerator, GenerationError
from llm.prompts import (
    GENERATION_FALLBACK_MESSAGE,
    READING_ASSISTANT_SYSTEM_PROMPT,
    WELCOME_MESSAGE,
)

# Default provider - can be swapped by changing this alias
Generator = AnthropicGenerator

__all__ = [
    "BaseGenerator",
    "Generator",
    "GenerationError",
    "AnthropicGenerator",
    "READING_ASSISTANT_SYSTEM_PROMPT",
    "WELCOME_MESSAGE",
    "GENERATION_FALLBACK_MESSAGE",
]
