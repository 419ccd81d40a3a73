"""Base generator interface.

Defines the contract that all text generation providers must implement.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator


class GenerationError(Exception):
    """Raised when text generation fails or times out."""


class BaseGenerator(ABC):
    """Abstract base class for text generators.

    Providers stream growing snapshots of the answer: every yielded value is
    the full text produced so far, not a delta.
    """

    @abstractmethod
    async def stream(
        self,
        prompt: str,
        system: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncGenerator[str, None]:
        """Stream a response.

        Args:
            prompt: Single concatenated user prompt.
            system: System instructions.
            temperature: Sampling temperature (0-1).
            max_tokens: Maximum tokens to generate.

        Yields:
            Cumulative text snapshots.

        Raises:
            GenerationError: If the provider call fails.
        """
