"""Runners that drain AI completions into terminal output and the chat UI."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Awaitable, Sequence

from ..core.ai.config import OpenAIOptions, ProviderOptions
from ..core.ai.exceptions import AIServiceError, PacketTimeoutError, SinkWriteError
from ..core.ai.service import AIDispatcher
from ..core.ai.stream import STREAM_DEADLINE_MESSAGE, CompletionStream, receive_within
from ..core.ai.types import CompletionPacket, PromptMessage, create_error_packet
from ..core.settings import Settings, get_settings
from ..core.terminal import ChatUpdateBus, CommandStatusStore, PtyBuffer
from ..models.terminal import (
    CmdDoneInfo,
    CmdInfoAssistantResponse,
    CmdInfoChatMessage,
    CmdStatus,
    CommandKey,
)

__all__ = ["AICommandRunner", "STREAM_DEADLINE_MESSAGE", "serialize_packet"]

logger = logging.getLogger(__name__)

def serialize_packet(packet: CompletionPacket) -> bytes:
    """Frame a packet for the PTY buffer: one JSON document per line."""

    return (packet.to_wire() + "\n").encode("utf-8")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _PtyRun:
    key: CommandKey
    output_pos: int = 0
    had_error: bool = False
    started: float = field(default_factory=time.monotonic)
    status: CmdStatus = CmdStatus.RUNNING


@dataclass
class _ChatRun:
    key: CommandKey
    message: CmdInfoChatMessage
    added: bool = False


class AICommandRunner:
    """Execute AI completions on behalf of terminal commands.

    The PTY runners always finalise the command exactly once, including on
    timeouts, write failures, cancellation and unexpected exceptions. The chat
    runner only publishes assistant-message updates.
    """

    def __init__(
        self,
        dispatcher: AIDispatcher,
        pty: PtyBuffer,
        status_store: CommandStatusStore,
        chat_bus: ChatUpdateBus,
        settings: Settings | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._pty = pty
        self._status_store = status_store
        self._chat_bus = chat_bus
        self._settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def packet_timeout(self, options: ProviderOptions | None) -> float:
        if isinstance(options, OpenAIOptions) and options.timeout_ms > 0:
            return options.timeout_ms / 1000
        return self._settings.ai_packet_timeout

    async def run_to_pty(
        self, key: CommandKey, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> CmdStatus:
        """Run a batched completion and write its packets to the command's PTY."""

        run = _PtyRun(key)
        try:
            await self._guard_pty(run, self._batched_to_pty(run, options, prompt))
        finally:
            await self._finalize(run)
        return run.status

    async def run_stream_to_pty(
        self, key: CommandKey, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> CmdStatus:
        """Stream a completion into the command's PTY packet by packet."""

        run = _PtyRun(key)
        # The stream is released only after the command has been finalised.
        async with AsyncExitStack() as resources:
            try:
                await self._guard_pty(run, self._stream_to_pty(run, resources, options, prompt))
            finally:
                await self._finalize(run)
        return run.status

    async def run_to_chat_bus(
        self,
        key: CommandKey,
        options: ProviderOptions | None,
        prompt: Sequence[PromptMessage],
        cur_line: str = "",
    ) -> CmdInfoChatMessage:
        """Stream a completion into a single assistant message on the chat bus."""

        logger.info(
            "ai.chat.start",
            extra={"screen_id": key.screen_id, "line_id": key.line_id, "cur_line": cur_line},
        )
        # The message id is reserved before the adapter starts.
        run = _ChatRun(
            key,
            CmdInfoChatMessage(
                message_id=self._chat_bus.get_cmd_info_message_count(key.screen_id),
                is_assistant_response=True,
                assistant_response=CmdInfoAssistantResponse(),
            ),
        )
        async with AsyncExitStack() as resources:
            try:
                await self._stream_to_chat(run, resources, options, prompt)
            except SinkWriteError as exc:
                logger.error("error writing response to update bus for %s: %s", key, exc)
            except Exception as exc:
                logger.exception("panic in AI chat completion for %s", key)
                run.message.assistant_response.error = f"panic: {exc}"
                try:
                    await self._publish_chat(run)
                except SinkWriteError as write_exc:
                    logger.error("error writing panic to update bus for %s: %s", key, write_exc)
        return run.message

    # ------------------------------------------------------------------
    # PTY sink
    # ------------------------------------------------------------------
    async def _guard_pty(self, run: _PtyRun, body: Awaitable[None]) -> None:
        try:
            await body
        except SinkWriteError as exc:
            run.had_error = True
            logger.error("error writing response to ptybuffer for %s: %s", run.key, exc)
        except asyncio.CancelledError:
            run.had_error = True
            raise
        except Exception as exc:
            run.had_error = True
            logger.exception("panic in AI completion for %s", run.key)
            await self._write_error(run, f"panic: {exc}")

    async def _batched_to_pty(
        self, run: _PtyRun, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> None:
        try:
            packets = await asyncio.wait_for(
                self._dispatcher.complete(options, prompt),
                timeout=self._settings.ai_batch_timeout,
            )
        except AIServiceError as exc:
            await self._write_error(run, f"error calling AI API: {exc}")
            return
        except asyncio.TimeoutError:
            await self._write_error(run, "error calling AI API: timeout waiting for server response")
            return

        for packet in packets:
            if packet.error:
                run.had_error = True
            await self._write_packet(run, packet)

    async def _stream_to_pty(
        self,
        run: _PtyRun,
        resources: AsyncExitStack,
        options: ProviderOptions | None,
        prompt: Sequence[PromptMessage],
    ) -> None:
        deadline = asyncio.get_running_loop().time() + self._settings.ai_stream_timeout
        try:
            stream = await self._open_stream(options, prompt)
        except AIServiceError as exc:
            await self._write_error(run, f"error calling AI API: {exc}")
            return
        await resources.enter_async_context(stream)

        packet_timeout = self.packet_timeout(options)
        while True:
            try:
                packet = await receive_within(stream, packet_timeout, deadline)
            except PacketTimeoutError as exc:
                run.had_error = True
                logger.warning("ai.stream.timeout", extra={"command": str(run.key), "error": str(exc)})
                await self._write_packet(run, create_error_packet(str(exc)))
                return
            if packet is None:
                return
            if packet.error:
                run.had_error = True
            await self._write_packet(run, packet)

    async def _write_packet(self, run: _PtyRun, packet: CompletionPacket) -> None:
        data = serialize_packet(packet)
        try:
            await self._pty.append(run.key, data, run.output_pos)
        except Exception as exc:
            raise SinkWriteError(str(exc)) from exc
        run.output_pos += len(data)

    async def _write_error(self, run: _PtyRun, message: str) -> None:
        run.had_error = True
        try:
            await self._write_packet(run, create_error_packet(message))
        except SinkWriteError as exc:
            logger.error("error writing error to ptybuffer for %s: %s", run.key, exc)

    async def _finalize(self, run: _PtyRun) -> None:
        duration_ms = max(0, int((time.monotonic() - run.started) * 1000))
        run.status = CmdStatus.ERROR if run.had_error else CmdStatus.DONE
        done_info = CmdDoneInfo(
            ts=_now_ms(),
            exit_code=1 if run.had_error else 0,
            duration_ms=duration_ms,
        )
        try:
            await self._status_store.update_cmd_done_info(run.key, done_info, run.status)
        except Exception:
            logger.exception("error updating cmd done info for %s", run.key)

    # ------------------------------------------------------------------
    # Chat sink
    # ------------------------------------------------------------------
    async def _stream_to_chat(
        self,
        run: _ChatRun,
        resources: AsyncExitStack,
        options: ProviderOptions | None,
        prompt: Sequence[PromptMessage],
    ) -> None:
        response = run.message.assistant_response
        deadline = asyncio.get_running_loop().time() + self._settings.ai_stream_timeout
        try:
            stream = await self._open_stream(options, prompt)
        except AIServiceError as exc:
            response.error = f"Error calling AI API: {exc}"
            await self._publish_chat(run)
            return
        await resources.enter_async_context(stream)
        await self._publish_chat(run)

        packet_timeout = self.packet_timeout(options)
        while True:
            try:
                packet = await receive_within(stream, packet_timeout, deadline)
            except PacketTimeoutError as exc:
                response.error = str(exc)
                await self._publish_chat(run)
                return
            if packet is None:
                return
            if packet.index != 0:
                continue
            if packet.error:
                response.error = packet.error
            if packet.model:
                response.model = packet.model
                response.created = packet.created
            if packet.finish_reason:
                response.finish_reason = packet.finish_reason
            response.message += packet.text
            await self._publish_chat(run)

    async def _publish_chat(self, run: _ChatRun) -> None:
        """Send AddNew on first publication and Update afterwards."""

        snapshot = run.message.model_copy(deep=True)
        screen_id = run.key.screen_id
        try:
            if run.added:
                await self._chat_bus.update_cmd_info_message(screen_id, snapshot.message_id, snapshot)
            else:
                await self._chat_bus.add_cmd_info_message(screen_id, snapshot)
        except Exception as exc:
            raise SinkWriteError(str(exc)) from exc
        run.added = True

    # ------------------------------------------------------------------
    # Shared stream handling
    # ------------------------------------------------------------------
    async def _open_stream(
        self, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> CompletionStream:
        try:
            return await asyncio.wait_for(
                self._dispatcher.complete_stream(options, prompt),
                timeout=self._settings.ai_stream_timeout,
            )
        except asyncio.TimeoutError:
            raise PacketTimeoutError() from None
