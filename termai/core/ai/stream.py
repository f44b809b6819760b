"""Bounded packet channel shared by streaming adapters and their consumers."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from .exceptions import PacketTimeoutError
from .types import CompletionPacket

logger = logging.getLogger(__name__)

DEFAULT_STREAM_CHAN_SIZE = 10
STREAM_DEADLINE_MESSAGE = "timeout waiting for completion stream"

Producer = Callable[["CompletionStream"], Awaitable[None]]


class CompletionStream:
    """Single-producer, single-consumer channel of :class:`CompletionPacket`.

    The producer task is spawned through :meth:`spawn` and the channel is closed
    once, when that task finishes, whatever way it exits. Consumers read with
    :meth:`receive` (``None`` once closed and drained) or ``async for`` and
    should hold the stream with ``async with`` so :meth:`aclose` stops the
    producer when they leave early.
    """

    def __init__(self, maxsize: int = DEFAULT_STREAM_CHAN_SIZE) -> None:
        self._queue: asyncio.Queue[CompletionPacket | None] = asyncio.Queue(maxsize)
        self._closed = False
        self._producer: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def spawn(self, producer: Producer) -> None:
        """Run *producer* as the task that owns and closes this stream."""

        if self._producer is not None:
            raise RuntimeError("completion stream already has a producer")

        async def _run() -> None:
            try:
                await producer(self)
            finally:
                self.close()

        self._producer = asyncio.get_running_loop().create_task(_run())

    async def send(self, packet: CompletionPacket) -> None:
        if self._closed:
            raise RuntimeError("send on closed completion stream")
        await self._queue.put(packet)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # receive() reports closure once the buffered packets are drained
            pass

    async def receive(self) -> CompletionPacket | None:
        """Return the next packet, or ``None`` when the stream is closed."""

        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    async def aclose(self) -> None:
        """Stop the producer (if still running) and close the stream."""

        task = self._producer
        if task is not None and not task.done():
            task.cancel()
        if task is not None:
            results = await asyncio.gather(task, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("completion stream producer failed", exc_info=result)
        self.close()

    async def __aenter__(self) -> "CompletionStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __aiter__(self) -> "CompletionStream":
        return self

    async def __anext__(self) -> CompletionPacket:
        packet = await self.receive()
        if packet is None:
            raise StopAsyncIteration
        return packet


async def receive_within(
    stream: CompletionStream, packet_timeout: float, deadline: float
) -> CompletionPacket | None:
    """Receive the next packet, bounded by the packet timer and the loop-time *deadline*.

    Raises :class:`PacketTimeoutError`; its message tells which bound fired.
    """

    remaining = deadline - asyncio.get_running_loop().time()
    if remaining <= 0:
        raise PacketTimeoutError(STREAM_DEADLINE_MESSAGE)
    timeout = min(packet_timeout, remaining)
    try:
        return await asyncio.wait_for(stream.receive(), timeout=timeout)
    except asyncio.TimeoutError:
        if timeout < packet_timeout:
            raise PacketTimeoutError(STREAM_DEADLINE_MESSAGE) from None
        raise PacketTimeoutError() from None


__all__ = ("CompletionStream", "DEFAULT_STREAM_CHAN_SIZE", "STREAM_DEADLINE_MESSAGE", "receive_within")
