from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from termai.api.routes.completions import _ndjson_packets, _streaming_response
from termai.core.ai.config import ClientAIConfig, OpenAIOptions
from termai.core.ai.service import AIDispatcher, get_dispatcher
from termai.core.ai.stream import STREAM_DEADLINE_MESSAGE, CompletionStream
from termai.core.ai.types import CompletionPacket, ProviderName
from termai.core.settings import Settings, get_settings

from helpers import sse_response


def _override_openai(client: TestClient, handler) -> None:
    dispatcher = AIDispatcher(transport_overrides={ProviderName.OPENAI: httpx.MockTransport(handler)})
    client.app.dependency_overrides[get_dispatcher] = lambda: dispatcher


def test_health_reports_default_provider(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["data"]["status"] == "ok"
    assert payload["data"]["default_provider"] == "openai"


def test_batched_completion_returns_packets(api_client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["model"] == "gpt-mock"
        return httpx.Response(
            status_code=200,
            json={"model": "gpt-mock", "created": 3, "choices": [{"index": 0, "message": {"content": "pwd"}}]},
        )

    _override_openai(api_client, handler)
    response = api_client.post(
        "/ai/completions",
        json={"prompt": [{"role": "user", "content": "where am I?"}]},
    )

    assert response.status_code == 200
    packets = response.json()["data"]
    assert packets[0]["model"] == "gpt-mock"
    assert packets[1]["text"] == "pwd"


def test_streaming_completion_returns_ndjson(api_client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return sse_response(
            [
                {"model": "gpt-mock", "created": 3, "choices": [{"index": 0, "delta": {"content": "p"}}]},
                {"model": "gpt-mock", "choices": [{"index": 0, "delta": {"content": "wd"}, "finish_reason": "stop"}]},
            ]
        )

    _override_openai(api_client, handler)
    response = api_client.post(
        "/ai/completions",
        json={"prompt": [{"role": "user", "content": "where am I?"}], "streaming": True},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    packets = [json.loads(line) for line in response.text.splitlines() if line]
    assert packets[0] == {"model": "gpt-mock", "created": 3}
    assert "".join(packet.get("text", "") for packet in packets) == "pwd"
    assert packets[-1]["finish_reason"] == "stop"


def test_agent_endpoint_streams_packets(api_client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        messages = json.loads(request.content)["messages"]
        assert messages[0]["role"] == "system"
        return sse_response([{"model": "gpt-mock", "choices": [{"index": 0, "delta": {"content": "ls"}}]}])

    _override_openai(api_client, handler)
    response = api_client.post("/ai/agent", json={"prompt": "list files"})

    assert response.status_code == 200
    packets = [json.loads(line) for line in response.text.splitlines() if line]
    assert packets[-1]["text"] == "ls"


def test_unknown_provider_maps_to_error_code(api_client: TestClient) -> None:
    response = api_client.post(
        "/ai/completions",
        json={"prompt": [{"role": "user", "content": "hi"}], "provider": "claude"},
    )

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["error"]["code"] == "unsupported_provider"


def test_unconfigured_provider_maps_to_error_code(api_client: TestClient) -> None:
    response = api_client.post("/ai/agent", json={"prompt": "hi", "provider": "gemini"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "not_configured"


def test_empty_prompt_maps_to_error_code(api_client: TestClient) -> None:
    response = api_client.post("/ai/completions", json={"prompt": []})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "no_prompt"


def test_vendor_failure_maps_to_provider_error(api_client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=429, json={"error": {"message": "slow down"}})

    _override_openai(api_client, handler)
    response = api_client.post("/ai/completions", json={"prompt": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "provider_error"
    assert "slow down" in error["message"]


def test_cmd_info_prompt_endpoint(api_client: TestClient) -> None:
    response = api_client.post(
        "/ai/cmdinfo/prompt",
        json={"query": "what is this?", "cur_line": "tar xzf a.tgz", "shell": "bash", "os": "darwin"},
    )

    assert response.status_code == 200
    prompt = response.json()["data"]["prompt"]
    assert 'The user is current using the "bash" shell on macos.' in prompt
    assert "tar xzf a.tgz" in prompt
    assert prompt.endswith("The user's question is:\n\nwhat is this?")


def test_invalid_base_url_maps_to_not_configured(api_client: TestClient) -> None:
    settings = Settings(
        ai=ClientAIConfig(default="openai", openai=OpenAIOptions(api_token="k", base_url="http://[::1")),
    )
    api_client.app.dependency_overrides[get_settings] = lambda: settings

    response = api_client.post("/ai/completions", json={"prompt": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "not_configured"


async def _trickle(stream: CompletionStream) -> None:
    while True:
        await stream.send(CompletionPacket(text="."))
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
async def test_ndjson_body_is_bounded_by_stream_deadline() -> None:
    stream = CompletionStream()
    stream.spawn(_trickle)

    lines = [line async for line in _ndjson_packets(stream, packet_timeout=10.0, stream_timeout=0.15)]

    assert json.loads(lines[-1]) == {"finish_reason": "error", "error": STREAM_DEADLINE_MESSAGE}
    assert all(json.loads(line) == {"text": "."} for line in lines[:-1])
    assert stream.closed


@pytest.mark.asyncio
async def test_unread_streaming_body_still_releases_producer() -> None:
    stream = CompletionStream()
    stream.spawn(_trickle)
    response = _streaming_response(stream, Settings())

    assert response.background is not None
    await response.background()

    assert stream.closed
    assert stream._producer is not None and stream._producer.done()


def test_app_lifespan_runs_startup_and_shutdown(caplog: pytest.LogCaptureFixture) -> None:
    from termai.main import create_application

    caplog.set_level(logging.INFO)
    get_dispatcher()
    with TestClient(create_application(Settings())) as client:
        assert client.get("/health").status_code == 200
        assert any(record.msg == "app.startup" for record in caplog.records)

    assert get_dispatcher.cache_info().currsize == 0
