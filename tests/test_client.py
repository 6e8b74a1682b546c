"""Tests for the Generative Language REST client using httpx.MockTransport."""

from __future__ import annotations

from collections.abc import Callable
import json
import unittest

import httpx

from firon_chat.client import (
    GeminiClient,
    extract_candidate_text,
    extract_prediction_image,
)
from firon_chat.exceptions import GeminiConnectionError, GeminiResponseError
from firon_chat.message_log import Turn

BASE_URL = "https://example.test/v1beta"


def _candidate(text: str) -> dict[str, object]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class _Recorder:
    """Mock transport handler that records requests and replays one response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last_json(self) -> dict[str, object]:
        return json.loads(self.requests[-1].content)


def _client(recorder: _Recorder) -> GeminiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return GeminiClient(
        "secret",
        base_url=BASE_URL + "/",
        chat_model="chat-model",
        image_model="image-model",
        sample_count=2,
        http_client=http,
    )


class GeminiClientTests(unittest.IsolatedAsyncioTestCase):
    """Validate request shapes and error mapping."""

    async def test_generate_text_sends_turns_and_extracts_candidate(self) -> None:
        recorder = _Recorder(lambda _req: httpx.Response(200, json=_candidate("Hi!")))
        client = _client(recorder)

        text = await client.generate_text(
            [Turn("user", "hello"), Turn("model", "hey"), Turn("user", "again")]
        )

        self.assertEqual(text, "Hi!")
        request = recorder.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url.path, "/v1beta/models/chat-model:generateContent")
        self.assertEqual(request.url.params["key"], "secret")
        self.assertEqual(
            recorder.last_json,
            {
                "contents": [
                    {"role": "user", "parts": [{"text": "hello"}]},
                    {"role": "model", "parts": [{"text": "hey"}]},
                    {"role": "user", "parts": [{"text": "again"}]},
                ]
            },
        )

    async def test_analyze_image_sends_inline_data(self) -> None:
        recorder = _Recorder(lambda _req: httpx.Response(200, json=_candidate("A cat.")))
        client = _client(recorder)

        text = await client.analyze_image("What is it?", "data:image/jpeg;base64,QUJD")

        self.assertEqual(text, "A cat.")
        parts = recorder.last_json["contents"][0]["parts"]  # type: ignore[index]
        self.assertEqual(parts[0], {"text": "What is it?"})
        self.assertEqual(
            parts[1], {"inlineData": {"mimeType": "image/jpeg", "data": "QUJD"}}
        )

    async def test_generate_image_returns_data_uri(self) -> None:
        recorder = _Recorder(
            lambda _req: httpx.Response(
                200, json={"predictions": [{"bytesBase64Encoded": "QUJD"}]}
            )
        )
        client = _client(recorder)

        image = await client.generate_image("a red bicycle")

        self.assertEqual(image, "data:image/png;base64,QUJD")
        self.assertEqual(
            recorder.requests[0].url.path, "/v1beta/models/image-model:predict"
        )
        self.assertEqual(
            recorder.last_json,
            {"instances": {"prompt": "a red bicycle"}, "parameters": {"sampleCount": 2}},
        )

    async def test_http_error_status_raises_response_error(self) -> None:
        recorder = _Recorder(lambda _req: httpx.Response(500, json={"error": "x"}))
        client = _client(recorder)
        with self.assertRaises(GeminiResponseError):
            await client.generate_text([Turn("user", "hi")])

    async def test_invalid_json_raises_response_error(self) -> None:
        recorder = _Recorder(lambda _req: httpx.Response(200, content=b"not json"))
        client = _client(recorder)
        with self.assertRaises(GeminiResponseError):
            await client.generate_text([Turn("user", "hi")])

    async def test_empty_candidates_raise_response_error(self) -> None:
        recorder = _Recorder(lambda _req: httpx.Response(200, json={"candidates": []}))
        client = _client(recorder)
        with self.assertRaises(GeminiResponseError):
            await client.generate_text([Turn("user", "hi")])

    async def test_missing_prediction_raises_response_error(self) -> None:
        recorder = _Recorder(lambda _req: httpx.Response(200, json={"predictions": []}))
        client = _client(recorder)
        with self.assertRaises(GeminiResponseError):
            await client.generate_image("anything")

    async def test_transport_error_raises_connection_error(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(_Recorder(fail))
        with self.assertRaises(GeminiConnectionError):
            await client.generate_text([Turn("user", "hi")])

    async def test_aclose_leaves_injected_http_client_open(self) -> None:
        recorder = _Recorder(lambda _req: httpx.Response(200, json=_candidate("ok")))
        http = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        async with GeminiClient("k", http_client=http) as client:
            self.assertEqual(await client.generate_text([Turn("user", "x")]), "ok")
        self.assertFalse(http.is_closed)
        await http.aclose()


class ExtractorTests(unittest.TestCase):
    """Validate payload extraction helpers."""

    def test_candidate_text_rejects_blank_text(self) -> None:
        with self.assertRaises(GeminiResponseError):
            extract_candidate_text(_candidate("   "))

    def test_candidate_text_rejects_non_dict_payload(self) -> None:
        with self.assertRaises(GeminiResponseError):
            extract_candidate_text(["not", "a", "dict"])

    def test_prediction_image_keeps_mime_type(self) -> None:
        payload = {"predictions": [{"bytesBase64Encoded": "QUJD", "mimeType": "image/jpeg"}]}
        self.assertEqual(extract_prediction_image(payload), "data:image/jpeg;base64,QUJD")


if __name__ == "__main__":
    unittest.main()
