"""Unit tests for GeminiTextGenerator."""

import json

import httpx
import pytest

from app.services.assistant.base import TextGenerationError
from app.services.assistant.gemini import GeminiTextGenerator


def _generator(handler) -> GeminiTextGenerator:
    return GeminiTextGenerator(
        api_key="test-key",
        model="gemini-test",
        base_url="https://gemini.test/v1beta",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.unit
class TestGeminiTextGenerator:
    """Test suite for the Gemini REST client."""

    def test_requires_api_key(self, monkeypatch) -> None:
        monkeypatch.setattr("app.services.assistant.gemini.get_settings", lambda: _NoKeySettings())
        with pytest.raises(ValueError):
            GeminiTextGenerator()

    @pytest.mark.asyncio
    async def test_generate_success(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"candidates": [{"content": {"parts": [{"text": "Try "}, {"text": "the soup."}]}}]},
            )

        result = await _generator(handler).generate("What should I eat?")

        assert result.text == "Try the soup."
        assert result.model == "gemini-test"
        assert seen["url"] == "https://gemini.test/v1beta/models/gemini-test:generateContent"
        assert seen["key"] == "test-key"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "What should I eat?"

    @pytest.mark.asyncio
    async def test_non_200_raises(self) -> None:
        generator = _generator(lambda request: httpx.Response(429, json={"error": "quota"}))

        with pytest.raises(TextGenerationError) as exc_info:
            await generator.generate("hi")

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_empty_candidates_raise(self) -> None:
        generator = _generator(lambda request: httpx.Response(200, json={"candidates": []}))
        with pytest.raises(TextGenerationError):
            await generator.generate("hi")

    @pytest.mark.asyncio
    async def test_blank_text_raises(self) -> None:
        generator = _generator(
            lambda request: httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "  "}]}}]})
        )
        with pytest.raises(TextGenerationError):
            await generator.generate("hi")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            [],
            "text",
            {"candidates": ["oops"]},
            {"candidates": {"content": {}}},
            {"candidates": [{"content": "oops"}]},
            {"candidates": [{"content": {"parts": "oops"}}]},
            {"candidates": [{"content": {"parts": ["oops"]}}]},
            {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
        ],
    )
    async def test_malformed_payload_raises(self, payload) -> None:
        generator = _generator(lambda request: httpx.Response(200, json=payload))
        with pytest.raises(TextGenerationError):
            await generator.generate("hi")

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self) -> None:
        generator = _generator(lambda request: httpx.Response(200, content=b"<html>busy</html>"))
        with pytest.raises(TextGenerationError):
            await generator.generate("hi")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TextGenerationError):
            await _generator(handler).generate("hi")

    @pytest.mark.asyncio
    async def test_health_check(self) -> None:
        assert await _generator(lambda request: httpx.Response(200, json={})).health_check() is True
        assert await _generator(lambda request: httpx.Response(404, json={})).health_check() is False


class _NoKeySettings:
    gemini_api_key = None
    gemini_model = "gemini-test"
    gemini_api_base_url = "https://gemini.test/v1beta"
    ai_timeout_seconds = 5.0
