"""Interfaces of the terminal collaborators the AI command runner writes to."""

from __future__ import annotations

from typing import Protocol

from ..models.terminal import (
    CmdDoneInfo,
    CmdInfoAssistantResponse,
    CmdInfoChatMessage,
    CmdStatus,
    CommandKey,
)


class PtyBuffer(Protocol):
    """Terminal output buffer addressed by command key."""

    async def append(self, key: CommandKey, data: bytes, pos: int) -> None:
        """Write *data* at byte offset *pos* of the command's output."""


class CommandStatusStore(Protocol):
    """Owner of command status records."""

    async def update_cmd_done_info(self, key: CommandKey, done_info: CmdDoneInfo, status: CmdStatus) -> None:
        """Persist the final status of a command and notify its screen."""


class ChatUpdateBus(Protocol):
    """Structured update channel for the cmd-info chat UI."""

    def get_cmd_info_message_count(self, screen_id: str) -> int:
        ...

    async def add_cmd_info_message(self, screen_id: str, message: CmdInfoChatMessage) -> None:
        ...

    async def update_cmd_info_message(
        self, screen_id: str, message_id: int, message: CmdInfoChatMessage
    ) -> None:
        ...


__all__ = (
    "ChatUpdateBus",
    "CmdDoneInfo",
    "CmdInfoAssistantResponse",
    "CmdInfoChatMessage",
    "CmdStatus",
    "CommandKey",
    "CommandStatusStore",
    "PtyBuffer",
)
