"""
Text Generator Abstract Base Class

Interface for the external text-generation collaborator used by the
advisory assistant. Implementations turn one prompt into one block of
text, or raise TextGenerationError.

Design Pattern: Strategy Pattern
    - MockTextGenerator for development
    - GeminiTextGenerator for staging/production
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class TextGenerationError(Exception):
    """Upstream generation failed (transport, non-2xx, empty answer)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GenerationResult:
    """
    Standardized result from a generation call.

    Attributes:
        text: Generated text
        model: Model that produced it
        response_time_ms: Round-trip time
    """
    text: str
    model: str
    response_time_ms: float = 0.0


class BaseTextGenerator(ABC):
    """Abstract base class for text generators."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the provider (e.g., "mock", "gemini")."""
        pass

    @abstractmethod
    async def generate(self, prompt: str) -> GenerationResult:
        """
        Generate text for a prompt.

        Raises:
            TextGenerationError: on any upstream failure
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the provider is reachable and configured."""
        pass
