"""Gemini API integration over the REST `generateContent` endpoint."""

import base64
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..core.config import settings
from ..core.retry import RetryConfig, RetryExhausted, RetryManager
from ..models.exceptions import (
    ContentBlockedException,
    GeminiAuthenticationException,
    GeminiBadRequestException,
    GeminiException,
    GeminiRateLimitException,
    GeminiTimeoutException,
    GeminiUnavailableException,
)

logger = logging.getLogger(__name__)

# finishReason values that mean the candidate was withheld
_BLOCKED_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "RECITATION"}


def _headers() -> Dict[str, str]:
    """Build standard Gemini headers (test-friendly)."""
    return {
        "x-goog-api-key": settings.gemini_api_key or "",
        "Content-Type": "application/json",
    }


def _endpoint(model: str) -> str:
    return f"{settings.gemini_base_url.rstrip('/')}/models/{model}:generateContent"


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def inline_part(data: bytes, mime_type: str) -> Dict[str, Any]:
    return {
        "inline_data": {
            "mime_type": mime_type,
            "data": base64.b64encode(data).decode("ascii"),
        }
    }


def extract_text(response: Dict[str, Any]) -> str:
    """Join the text parts of the first candidate."""
    candidates = response.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


def extract_inline_images(response: Dict[str, Any]) -> List[Tuple[bytes, str]]:
    """Return (bytes, mime_type) for every inline image in the first candidate."""
    images: List[Tuple[bytes, str]] = []
    candidates = response.get("candidates") or []
    if not candidates:
        return images
    for part in (candidates[0].get("content") or {}).get("parts") or []:
        # REST responses use camelCase, requests accept snake_case
        blob = part.get("inlineData") or part.get("inline_data")
        if not blob or not blob.get("data"):
            continue
        mime = blob.get("mimeType") or blob.get("mime_type") or "image/png"
        try:
            images.append((base64.b64decode(blob["data"]), mime))
        except (ValueError, TypeError):
            logger.warning("Skipping undecodable inline image from Gemini")
    return images


def _raise_for_block(response: Dict[str, Any], model: str) -> None:
    feedback = response.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise ContentBlockedException(feedback["blockReason"], model=model)
    candidates = response.get("candidates") or []
    if not candidates:
        raise ContentBlockedException("NO_CANDIDATES", model=model)
    reason = candidates[0].get("finishReason")
    if reason in _BLOCKED_FINISH_REASONS and not extract_text(response) and not extract_inline_images(response):
        raise ContentBlockedException(reason, model=model)


def _error_for_status(response: httpx.Response, model: str) -> GeminiException:
    status = response.status_code
    try:
        message = (response.json().get("error") or {}).get("message") or response.text
    except ValueError:
        message = response.text
    if status in (401, 403):
        return GeminiAuthenticationException(status_code=status)
    if status == 429:
        retry_after = response.headers.get("retry-after")
        return GeminiRateLimitException(
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            model=model,
        )
    if status == 400:
        return GeminiBadRequestException(message[:500], model=model)
    if status >= 500:
        return GeminiUnavailableException(status, model=model)
    return GeminiException(f"Gemini API request failed: {status}", status_code=status, model=model)


def _retry_config() -> RetryConfig:
    return RetryConfig(
        max_attempts=max(1, settings.gemini_max_attempts),
        initial_delay=settings.gemini_backoff_ms / 1000.0,
        retryable_exceptions=(GeminiTimeoutException,),
        retryable_status_codes=[429, 500, 502, 503, 504],
    )


async def generate_content(
    parts: List[Dict[str, Any]],
    response_schema: Optional[Dict[str, Any]] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    timeout: Optional[float] = None,
    response_modalities: Optional[List[str]] = None,
    task: str = "generate",
) -> Dict[str, Any]:
    """Call Gemini once, retrying on transient failures.

    With `response_schema` the model is constrained to JSON output matching
    the schema. Raises a `GeminiException` subclass on failure.
    """
    if not settings.gemini_api_key:
        raise GeminiAuthenticationException()

    model = model or settings.gemini_model
    generation_config: Dict[str, Any] = {}
    if response_schema is not None:
        generation_config["responseMimeType"] = "application/json"
        generation_config["responseSchema"] = response_schema
    if temperature is not None:
        generation_config["temperature"] = temperature
    if response_modalities:
        generation_config["responseModalities"] = response_modalities

    payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
    if generation_config:
        payload["generationConfig"] = generation_config

    timeout_seconds = float(timeout or settings.gemini_timeout)

    async def _do_request() -> Dict[str, Any]:
        logger.debug("Gemini request", extra={"task": task, "model": model})
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await client.post(_endpoint(model), headers=_headers(), json=payload)
        except httpx.TimeoutException:
            raise GeminiTimeoutException(model=model)
        except httpx.TransportError as e:
            logger.warning(f"Gemini transport error: {e}")
            raise GeminiUnavailableException(503, model=model)
        if response.status_code != 200:
            raise _error_for_status(response, model)
        return response.json()

    try:
        result = await RetryManager(_retry_config()).execute_with_retry(
            _do_request, operation_name=f"gemini.{task}"
        )
    except RetryExhausted as e:
        if isinstance(e.last_exception, GeminiException):
            raise e.last_exception
        raise GeminiException(str(e), model=model)

    _raise_for_block(result, model)
    usage = result.get("usageMetadata") or {}
    logger.info(
        f"Gemini call successful for {task} using {model}",
        extra={
            "task": task,
            "model": model,
            "prompt_tokens": usage.get("promptTokenCount"),
            "completion_tokens": usage.get("candidatesTokenCount"),
        },
    )
    return result


async def health_check() -> bool:
    """Check Gemini API reachability and key validity."""
    if not settings.gemini_api_key:
        logger.warning("Gemini API key not configured")
        return False
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(
                f"{settings.gemini_base_url.rstrip('/')}/models",
                headers=_headers(),
                params={"pageSize": 1},
            )
        return response.status_code == 200
    except httpx.HTTPError as e:
        logger.error(f"Gemini health check failed: {e}")
        return False
