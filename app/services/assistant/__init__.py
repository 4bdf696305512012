"""
Text Generator Factory

Single entry point for the text-generation collaborator.

Usage:
    from app.services.assistant import get_text_generator

    generator = get_text_generator()
    result = await generator.generate("Recommend a starter")

Environment Switching:
    - ENV_MODE=development → MockTextGenerator (no API calls)
    - ENV_MODE=staging/production → GeminiTextGenerator
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.assistant.base import (
    BaseTextGenerator,
    GenerationResult,
    TextGenerationError,
)
from app.services.assistant.gemini import GeminiTextGenerator
from app.services.assistant.mock import MockTextGenerator

logger = logging.getLogger(__name__)


@lru_cache()
def get_text_generator() -> BaseTextGenerator:
    """
    Get the configured text generator instance (cached).

    Raises:
        ValueError: If a real provider is selected but no API key is set
    """
    settings = get_settings()

    if settings.use_real_services:
        logger.info(
            f"Text Generation: Using GeminiTextGenerator "
            f"({settings.env_mode.value} mode)"
        )
        return GeminiTextGenerator()

    logger.info("Text Generation: Using MockTextGenerator (development mode)")
    return MockTextGenerator()


def reset_text_generator() -> None:
    """Clear the cached instance; the next call builds a new one."""
    get_text_generator.cache_clear()
    logger.debug("Text generator cache cleared")


__all__ = [
    "get_text_generator",
    "reset_text_generator",
    "BaseTextGenerator",
    "GenerationResult",
    "TextGenerationError",
    "GeminiTextGenerator",
    "MockTextGenerator",
]
