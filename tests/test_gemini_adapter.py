from __future__ import annotations

import json

import httpx
import pytest

from termai.core.ai.config import GeminiOptions
from termai.core.ai.exceptions import EmptyPromptError
from termai.core.ai.providers.gemini import DEFAULT_MODEL, GeminiClient, build_chat, map_finish_reason
from termai.core.ai.types import PromptMessage

from helpers import drain, sse_response


def _client(handler) -> GeminiClient:
    options = GeminiClient.apply_defaults(GeminiOptions(api_token="k"))
    return GeminiClient(options, transport=httpx.MockTransport(handler))


def test_prompt_history_split() -> None:
    chat = build_chat(
        [
            PromptMessage(role="system", content="S"),
            PromptMessage(role="user", content="U1"),
            PromptMessage(role="assistant", content="A1"),
            PromptMessage(role="user", content="U2"),
        ]
    )

    assert chat.history == [
        {"role": "user", "parts": [{"text": "S"}]},
        {"role": "user", "parts": [{"text": "U1"}]},
        {"role": "model", "parts": [{"text": "A1"}]},
    ]
    assert chat.message == "U2"


def test_empty_prompt_is_rejected() -> None:
    with pytest.raises(EmptyPromptError):
        build_chat([])


def test_finish_reason_mapping() -> None:
    assert map_finish_reason("STOP") == "stop"
    assert map_finish_reason("MAX_TOKENS") == "length"
    assert map_finish_reason("FINISH_REASON_UNSPECIFIED") == ""
    assert map_finish_reason("SAFETY") == "safety"
    assert map_finish_reason(None) == ""


@pytest.mark.asyncio
async def test_batched_completion_concatenates_parts() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            status_code=200,
            json={
                "candidates": [
                    {
                        "index": 0,
                        "content": {"role": "model", "parts": [{"text": "Hello "}, {"text": "there"}]},
                        "finishReason": "STOP",
                    }
                ]
            },
        )

    packets = await _client(handler).complete([PromptMessage(role="user", content="hi")])

    request = captured[0]
    assert request.url.path == f"/v1beta/models/{DEFAULT_MODEL}:generateContent"
    assert request.headers["x-goog-api-key"] == "k"
    payload = json.loads(request.content)
    assert payload["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
    assert payload["generationConfig"] == {"maxOutputTokens": 1000}

    header, body = packets
    assert header.model == DEFAULT_MODEL
    assert header.created == 0
    assert body.text == "Hello there"
    assert body.finish_reason == "stop"


@pytest.mark.asyncio
async def test_streaming_completion_emits_text_parts() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return sse_response(
            [
                {"candidates": [{"index": 0, "content": {"parts": [{"text": "Use "}]}}]},
                {"candidates": [{"index": 0, "content": {"parts": [{"text": "ls"}]}, "finishReason": "MAX_TOKENS"}]},
            ],
            done=False,
        )

    packets = await drain(await _client(handler).complete_stream([PromptMessage(role="user", content="hi")]))

    assert captured[0].url.path.endswith(":streamGenerateContent")
    assert captured[0].url.params["alt"] == "sse"
    assert packets[0].model == DEFAULT_MODEL
    assert [packet.text for packet in packets[1:]] == ["Use ", "ls"]
    assert packets[-1].finish_reason == "length"
