"""Models exchanged with the terminal PTY buffer, command store and chat bus."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CommandKey(BaseModel):
    """Identity of a terminal command line within a screen."""

    model_config = ConfigDict(frozen=True)

    screen_id: str = Field(..., description="Screen owning the command")
    line_id: str = Field(..., description="Line within the screen")

    def __str__(self) -> str:
        return f"{self.screen_id}/{self.line_id}"


class CmdStatus(str, Enum):
    """Lifecycle status of a terminal command."""

    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


class CmdDoneInfo(BaseModel):
    """Completion record emitted once per command."""

    ts: int = Field(..., description="Completion time in unix milliseconds")
    exit_code: int = Field(..., description="0 on success, 1 when an error was observed")
    duration_ms: int = Field(..., ge=0, description="Wall-clock run time in milliseconds")


class CmdInfoAssistantResponse(BaseModel):
    """Assistant reply accumulated from streamed packets."""

    model: str = ""
    created: int = 0
    finish_reason: str = ""
    message: str = ""
    error: str = ""


class CmdInfoChatMessage(BaseModel):
    """One entry of the cmd-info chat shown beside a terminal screen."""

    message_id: int = 0
    is_assistant_response: bool = False
    assistant_response: CmdInfoAssistantResponse | None = None
    user_query: str = ""
    user_engineered_query: str = ""


__all__ = (
    "CmdDoneInfo",
    "CmdInfoAssistantResponse",
    "CmdInfoChatMessage",
    "CmdStatus",
    "CommandKey",
)
