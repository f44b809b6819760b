from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import termai.core.ai.service as service_module
import termai.core.settings as settings_module
from termai.core.settings import Settings
from termai.models.terminal import CommandKey

from helpers import FakeChatBus, FakePtyBuffer, FakeStatusStore


@pytest.fixture()
def command_key() -> CommandKey:
    return CommandKey(screen_id="screen-1", line_id="line-7")


@pytest.fixture()
def fast_settings() -> Settings:
    return Settings(ai_packet_timeout=0.05, ai_stream_timeout=5.0, ai_batch_timeout=1.0)


@pytest.fixture()
def pty() -> FakePtyBuffer:
    return FakePtyBuffer()


@pytest.fixture()
def status_store() -> FakeStatusStore:
    return FakeStatusStore()


@pytest.fixture()
def chat_bus() -> FakeChatBus:
    return FakeChatBus()


@pytest.fixture()
def api_client(monkeypatch) -> TestClient:
    monkeypatch.setenv("APP_AI__DEFAULT", "openai")
    monkeypatch.setenv("APP_AI__OPENAI__API_TOKEN", "test-key")
    monkeypatch.setenv("APP_AI__OPENAI__MODEL", "gpt-mock")
    settings_module.get_settings.cache_clear()
    service_module.get_dispatcher.cache_clear()

    from termai.main import create_application

    application = create_application()
    with TestClient(application) as test_client:
        yield test_client

    settings_module.get_settings.cache_clear()
    service_module.get_dispatcher.cache_clear()
