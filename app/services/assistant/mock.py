"""
Mock Text Generator Implementation

Deterministic stand-in for the generation API, used in development mode
(ENV_MODE=development) and in tests:
    - No network calls and no API key
    - Echoes the customer's message so responses are predictable
    - Optional simulated failure rate to exercise the fallback path
"""

import asyncio
import logging
import random
from datetime import datetime

from app.services.assistant.base import (
    BaseTextGenerator,
    GenerationResult,
    TextGenerationError,
)

logger = logging.getLogger(__name__)


class MockTextGenerator(BaseTextGenerator):
    """
    Mock implementation of the text generator.

    Attributes:
        failure_rate: Probability of a simulated upstream failure (0.0-1.0)
        latency: Simulated response time in seconds
    """

    MODEL = "mock-waiter"
    MESSAGE_MARKER = "Customer's message:"

    def __init__(self, failure_rate: float = 0.0, latency: float = 0.0):
        self.failure_rate = failure_rate
        self.latency = latency

        logger.info(
            f"MockTextGenerator initialized "
            f"(failure_rate={failure_rate:.0%}, latency={latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    def _should_fail(self) -> bool:
        return self.failure_rate > 0 and random.random() < self.failure_rate

    async def generate(self, prompt: str) -> GenerationResult:
        start_time = datetime.now()

        if self.latency:
            await asyncio.sleep(self.latency)

        if self._should_fail():
            logger.debug("Mock: simulated generation failure")
            raise TextGenerationError("Simulated upstream failure", status_code=503)

        # Chat prompts end with the customer's message; echo it back
        _, marker, tail = prompt.rpartition(self.MESSAGE_MARKER)
        if marker:
            text = f"[mock] You asked: {tail.strip()}"
        else:
            first_line = prompt.strip().splitlines()[0] if prompt.strip() else ""
            text = f"[mock] {first_line}"

        elapsed = (datetime.now() - start_time).total_seconds() * 1000
        return GenerationResult(text=text, model=self.MODEL, response_time_ms=elapsed)

    async def health_check(self) -> bool:
        return True
