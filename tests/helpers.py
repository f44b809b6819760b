"""In-memory collaborators and HTTP helpers shared by the test-suite."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

import httpx

from termai.core.ai.config import ProviderOptions
from termai.core.ai.exceptions import AIServiceError
from termai.core.ai.stream import CompletionStream
from termai.core.ai.types import CompletionPacket, PromptMessage
from termai.models.terminal import CmdDoneInfo, CmdInfoChatMessage, CmdStatus, CommandKey


def sse_response(events: Iterable[Any], *, done: bool = True) -> httpx.Response:
    """Build a server-sent-event response body from JSON-able events."""

    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    if done:
        lines.append("data: [DONE]\n\n")
    return httpx.Response(
        status_code=200,
        headers={"content-type": "text/event-stream"},
        content="".join(lines).encode("utf-8"),
    )


async def drain(stream: CompletionStream) -> list[CompletionPacket]:
    async with stream:
        return [packet async for packet in stream]


class FakePtyBuffer:
    def __init__(self, fail_after: int | None = None) -> None:
        self.writes: list[tuple[CommandKey, bytes, int]] = []
        self.fail_after = fail_after

    async def append(self, key: CommandKey, data: bytes, pos: int) -> None:
        if self.fail_after is not None and len(self.writes) >= self.fail_after:
            raise OSError("pty buffer closed")
        self.writes.append((key, data, pos))

    def packets(self) -> list[dict[str, Any]]:
        return [json.loads(data) for _, data, _ in self.writes]


class FakeStatusStore:
    def __init__(self) -> None:
        self.updates: list[tuple[CommandKey, CmdDoneInfo, CmdStatus]] = []

    async def update_cmd_done_info(self, key: CommandKey, done_info: CmdDoneInfo, status: CmdStatus) -> None:
        self.updates.append((key, done_info, status))


class FakeChatBus:
    def __init__(self, fail: bool = False) -> None:
        self.messages: dict[str, list[CmdInfoChatMessage]] = {}
        self.fail = fail
        self.updates: list[CmdInfoChatMessage] = []

    def preload(self, screen_id: str, *messages: CmdInfoChatMessage) -> None:
        self.messages.setdefault(screen_id, []).extend(messages)

    def get_cmd_info_message_count(self, screen_id: str) -> int:
        return len(self.messages.get(screen_id, []))

    async def add_cmd_info_message(self, screen_id: str, message: CmdInfoChatMessage) -> None:
        if self.fail:
            raise OSError("update bus unavailable")
        self.messages.setdefault(screen_id, []).append(message)

    async def update_cmd_info_message(self, screen_id: str, message_id: int, message: CmdInfoChatMessage) -> None:
        if self.fail:
            raise OSError("update bus unavailable")
        self.updates.append(message)
        messages = self.messages[screen_id]
        if not 0 <= message_id < len(messages) or not messages[message_id].is_assistant_response:
            raise KeyError(f"no assistant message {message_id} on {screen_id}")
        messages[message_id] = message


Producer = Callable[[CompletionStream], Awaitable[None]]


class FakeDispatcher:
    """Stands in for the dispatcher with hand-fed packet streams."""

    def __init__(
        self,
        *,
        producer: Producer | None = None,
        packets: Sequence[CompletionPacket] | None = None,
        error: AIServiceError | None = None,
    ) -> None:
        self.producer = producer
        self.packets = list(packets or [])
        self.error = error
        self.streams: list[CompletionStream] = []

    async def complete(
        self, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> list[CompletionPacket]:
        if self.error is not None:
            raise self.error
        return list(self.packets)

    async def complete_stream(
        self, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> CompletionStream:
        if self.error is not None:
            raise self.error
        stream = CompletionStream()
        stream.spawn(self.producer or self._send_packets)
        self.streams.append(stream)
        return stream

    async def _send_packets(self, stream: CompletionStream) -> None:
        for packet in self.packets:
            await stream.send(packet)
