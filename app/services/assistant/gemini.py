"""
Gemini Text Generator Implementation

Production implementation over the Google Generative Language REST API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - GEMINI_API_KEY must be set in environment

API Documentation:
    https://ai.google.dev/api/generate-content
"""

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from app.core.config import get_settings
from app.services.assistant.base import (
    BaseTextGenerator,
    GenerationResult,
    TextGenerationError,
)

logger = logging.getLogger(__name__)


class GeminiTextGenerator(BaseTextGenerator):
    """
    Gemini generateContent client.

    Example:
        >>> generator = GeminiTextGenerator()
        >>> result = await generator.generate("Suggest a dessert")
        >>> print(result.text)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Raises:
            ValueError: If no API key is configured
        """
        settings = get_settings()

        self.api_key = api_key or settings.gemini_api_key
        if not self.api_key:
            raise ValueError(
                "GEMINI_API_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_api_base_url).rstrip("/")
        self.timeout = timeout or settings.ai_timeout_seconds
        self._transport = transport

        logger.info(f"GeminiTextGenerator initialized (model={self.model})")

    @property
    def provider_name(self) -> str:
        return "gemini"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"x-goog-api-key": self.api_key},
        )

    @staticmethod
    def _extract_text(payload: Any) -> str:
        """First candidate's text parts joined; any other shape is a TextGenerationError."""
        if not isinstance(payload, dict):
            raise TextGenerationError("Gemini returned an unexpected payload")

        candidates = payload.get("candidates")
        if not candidates:
            raise TextGenerationError("Gemini returned no candidates")
        if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
            raise TextGenerationError("Gemini returned malformed candidates")

        content = candidates[0].get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list) or not all(isinstance(part, dict) for part in parts):
            raise TextGenerationError("Gemini returned malformed content parts")

        texts = [part.get("text") or "" for part in parts]
        if not all(isinstance(t, str) for t in texts):
            raise TextGenerationError("Gemini returned non-text parts")

        text = "".join(texts).strip()
        if not text:
            raise TextGenerationError("Gemini returned an empty response")
        return text

    async def generate(self, prompt: str) -> GenerationResult:
        start_time = datetime.now()
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

        try:
            async with self._client() as client:
                response = await client.post(f"/models/{self.model}:generateContent", json=body)
        except httpx.HTTPError as e:
            logger.error(f"Gemini transport error: {e}")
            raise TextGenerationError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Gemini API error {response.status_code}: {response.text[:200]}")
            raise TextGenerationError(
                f"Gemini returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TextGenerationError("Gemini returned a non-JSON body") from e

        text = self._extract_text(payload)
        elapsed = (datetime.now() - start_time).total_seconds() * 1000

        logger.debug(f"Gemini generated {len(text)} chars in {elapsed:.0f}ms")
        return GenerationResult(text=text, model=self.model, response_time_ms=elapsed)

    async def health_check(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get(f"/models/{self.model}")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Gemini health check failed: {e}")
            return False
