"""Async client for the Google Generative Language REST API (text, vision, images)."""

from __future__ import annotations

from collections.abc import Sequence
import logging
import time
from typing import Any, Protocol

import httpx

from .attachments import parse_data_uri
from .exceptions import AttachmentError, GeminiConnectionError, GeminiResponseError
from .message_log import Turn

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_CHAT_MODEL = "gemini-2.0-flash"
DEFAULT_IMAGE_MODEL = "imagen-3.0-generate-002"


class AIServiceClient(Protocol):
    """The three operations the conversation controller depends on."""

    async def generate_text(self, turns: Sequence[Turn]) -> str: ...

    async def analyze_image(self, prompt: str, image: str) -> str: ...

    async def generate_image(self, prompt: str) -> str: ...


def extract_candidate_text(payload: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise GeminiResponseError."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise GeminiResponseError("Response did not contain any candidate text.") from exc
    if not isinstance(text, str) or not text.strip():
        raise GeminiResponseError("Response candidate text was empty.")
    return text


def extract_prediction_image(payload: Any) -> str:
    """Return the first prediction as a ``data:`` URI or raise GeminiResponseError."""
    try:
        prediction = payload["predictions"][0]
        encoded = prediction["bytesBase64Encoded"]
    except (KeyError, IndexError, TypeError) as exc:
        raise GeminiResponseError("Response did not contain an image prediction.") from exc
    if not isinstance(encoded, str) or not encoded:
        raise GeminiResponseError("Image prediction was empty.")
    mime = prediction.get("mimeType") if isinstance(prediction, dict) else None
    return f"data:{mime or 'image/png'};base64,{encoded}"


class GeminiClient:
    """Thin async wrapper over the ``generateContent`` and ``predict`` endpoints.

    Every failure surfaces as a :class:`~firon_chat.exceptions.FironChatError`
    subclass: ``GeminiConnectionError`` when the service is unreachable and
    ``GeminiResponseError`` for error statuses or bodies that lack the expected
    content. Requests are never retried.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        chat_model: str = DEFAULT_CHAT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        timeout: float = 120,
        sample_count: int = 1,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.chat_model = chat_model
        self.image_model = image_model
        self.timeout = timeout
        self.sample_count = max(1, sample_count)
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this instance created it."""
        if self._owns_http_client:
            await self._http.aclose()

    def _endpoint(self, model: str, method: str) -> str:
        return f"{self.base_url}/models/{model}:{method}"

    async def _post(self, url: str, payload: dict[str, Any], operation: str) -> Any:
        started = time.perf_counter()
        LOGGER.info(
            "client.request.start",
            extra={"event": "client.request.start", "operation": operation},
        )
        try:
            response = await self._http.post(
                url,
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as exc:
            LOGGER.warning(
                "client.request.transport_error",
                extra={
                    "event": "client.request.transport_error",
                    "operation": operation,
                    "error_type": type(exc).__name__,
                },
            )
            raise GeminiConnectionError(
                f"Unable to reach the AI service: {exc}"
            ) from exc

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        if response.is_error:
            LOGGER.warning(
                "client.request.http_error",
                extra={
                    "event": "client.request.http_error",
                    "operation": operation,
                    "status_code": response.status_code,
                    "elapsed_ms": elapsed_ms,
                },
            )
            raise GeminiResponseError(
                f"AI service returned HTTP {response.status_code}."
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise GeminiResponseError("AI service returned invalid JSON.") from exc

        LOGGER.info(
            "client.request.complete",
            extra={
                "event": "client.request.complete",
                "operation": operation,
                "status_code": response.status_code,
                "elapsed_ms": elapsed_ms,
            },
        )
        return body

    async def generate_text(self, turns: Sequence[Turn]) -> str:
        """Request a completion for an ordered user/model turn sequence."""
        payload = {
            "contents": [
                {"role": turn.role, "parts": [{"text": turn.text}]} for turn in turns
            ]
        }
        body = await self._post(
            self._endpoint(self.chat_model, "generateContent"),
            payload,
            "generate_text",
        )
        return extract_candidate_text(body)

    async def analyze_image(self, prompt: str, image: str) -> str:
        """Ask about a single image; no conversation history is sent."""
        try:
            mime_type, data = parse_data_uri(image)
        except AttachmentError as exc:
            raise GeminiResponseError(str(exc)) from exc
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {"inlineData": {"mimeType": mime_type, "data": data}},
                    ],
                }
            ]
        }
        body = await self._post(
            self._endpoint(self.chat_model, "generateContent"),
            payload,
            "analyze_image",
        )
        return extract_candidate_text(body)

    async def generate_image(self, prompt: str) -> str:
        """Generate an image for ``prompt`` and return it as a ``data:`` URI."""
        payload = {
            "instances": {"prompt": prompt},
            "parameters": {"sampleCount": self.sample_count},
        }
        body = await self._post(
            self._endpoint(self.image_model, "predict"),
            payload,
            "generate_image",
        )
        return extract_prediction_image(body)
