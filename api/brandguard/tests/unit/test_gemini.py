"""Unit tests for the Gemini REST client."""

import base64
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from brandguard.core.config import settings
from brandguard.models.exceptions import (
    ContentBlockedException,
    GeminiAuthenticationException,
    GeminiBadRequestException,
    GeminiRateLimitException,
    GeminiTimeoutException,
    GeminiUnavailableException,
)
from brandguard.services import gemini


def _ok(parts, finish_reason="STOP"):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": parts}, "finishReason": finish_reason}]})


@pytest.fixture
def http_post():
    """Patch httpx.AsyncClient used by the Gemini service; yields the `post` mock."""
    with patch("brandguard.services.gemini.httpx.AsyncClient") as mock_client:
        post = AsyncMock()
        instance = MagicMock()
        instance.post = post
        mock_client.return_value.__aenter__.return_value = instance
        mock_client.return_value.__aexit__.return_value = None
        yield post


class TestResponseHelpers:
    """Test cases for response parsing helpers."""

    def test_extract_text_joins_parts(self):
        response = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]}
        assert gemini.extract_text(response) == "Hello world"

    def test_extract_text_without_candidates(self):
        assert gemini.extract_text({}) == ""

    def test_extract_inline_images_camel_case(self):
        data = base64.b64encode(b"png-bytes").decode()
        response = {"candidates": [{"content": {"parts": [
            {"text": "Here you go"},
            {"inlineData": {"mimeType": "image/png", "data": data}},
        ]}}]}
        assert gemini.extract_inline_images(response) == [(b"png-bytes", "image/png")]

    def test_inline_part_encodes_bytes(self):
        part = gemini.inline_part(b"abc", "image/jpeg")
        assert part["inline_data"]["mime_type"] == "image/jpeg"
        assert base64.b64decode(part["inline_data"]["data"]) == b"abc"


class TestGenerateContent:
    """Test cases for generate_content."""

    async def test_success_sends_schema_and_key(self, http_post):
        """Structured calls ask for JSON with the given schema."""
        http_post.return_value = _ok([{"text": '{"ok": true}'}])
        schema = {"type": "OBJECT", "properties": {"ok": {"type": "BOOLEAN"}}}

        result = await gemini.generate_content([gemini.text_part("hi")], response_schema=schema, task="test")

        assert gemini.extract_text(result) == '{"ok": true}'
        args, kwargs = http_post.call_args
        assert args[0].endswith(f"/models/{settings.gemini_model}:generateContent")
        assert kwargs["headers"]["x-goog-api-key"] == "test-key"
        config = kwargs["json"]["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] == schema

    async def test_plain_call_has_no_generation_config(self, http_post):
        http_post.return_value = _ok([{"text": "plain"}])

        await gemini.generate_content([gemini.text_part("hi")])

        assert "generationConfig" not in http_post.call_args.kwargs["json"]

    async def test_missing_api_key(self, http_post):
        with patch.object(settings, "gemini_api_key", None):
            with pytest.raises(GeminiAuthenticationException):
                await gemini.generate_content([gemini.text_part("hi")])
        http_post.assert_not_called()

    async def test_bad_request_is_not_retried(self, http_post):
        http_post.return_value = httpx.Response(400, json={"error": {"message": "Invalid schema"}})

        with pytest.raises(GeminiBadRequestException, match="Invalid schema"):
            await gemini.generate_content([gemini.text_part("hi")])
        assert http_post.call_count == 1

    async def test_auth_error(self, http_post):
        http_post.return_value = httpx.Response(403, json={"error": {"message": "denied"}})

        with pytest.raises(GeminiAuthenticationException):
            await gemini.generate_content([gemini.text_part("hi")])

    async def test_unavailable_is_retried_then_succeeds(self, http_post):
        http_post.side_effect = [
            httpx.Response(503, json={"error": {"message": "overloaded"}}),
            _ok([{"text": "second time lucky"}]),
        ]

        result = await gemini.generate_content([gemini.text_part("hi")])

        assert gemini.extract_text(result) == "second time lucky"
        assert http_post.call_count == 2

    async def test_rate_limit_after_retries(self, http_post):
        http_post.return_value = httpx.Response(429, json={}, headers={"retry-after": "7"})

        with pytest.raises(GeminiRateLimitException) as exc_info:
            await gemini.generate_content([gemini.text_part("hi")])
        assert exc_info.value.details["retry_after_seconds"] == 7
        assert http_post.call_count == settings.gemini_max_attempts

    async def test_server_error_after_retries(self, http_post):
        http_post.return_value = httpx.Response(500, text="boom")

        with pytest.raises(GeminiUnavailableException):
            await gemini.generate_content([gemini.text_part("hi")])

    async def test_timeout(self, http_post):
        http_post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(GeminiTimeoutException):
            await gemini.generate_content([gemini.text_part("hi")])

    async def test_blocked_prompt(self, http_post):
        http_post.return_value = httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

        with pytest.raises(ContentBlockedException) as exc_info:
            await gemini.generate_content([gemini.text_part("hi")])
        assert exc_info.value.reason == "SAFETY"

    async def test_blocked_candidate_without_content(self, http_post):
        http_post.return_value = _ok([], finish_reason="SAFETY")

        with pytest.raises(ContentBlockedException):
            await gemini.generate_content([gemini.text_part("hi")])

    async def test_image_modalities(self, http_post):
        http_post.return_value = _ok([{"inlineData": {"mimeType": "image/png", "data": "aGk="}}])

        await gemini.generate_content(
            [gemini.text_part("fix")], model="image-model", response_modalities=["TEXT", "IMAGE"]
        )

        args, kwargs = http_post.call_args
        assert "/models/image-model:" in args[0]
        assert kwargs["json"]["generationConfig"]["responseModalities"] == ["TEXT", "IMAGE"]
