"""Shared Pydantic models used across the application."""

from .common import ErrorCode, ErrorDetail, ResponseEnvelope
from .terminal import (
    CmdDoneInfo,
    CmdInfoAssistantResponse,
    CmdInfoChatMessage,
    CmdStatus,
    CommandKey,
)

__all__ = (
    "ErrorCode",
    "ErrorDetail",
    "ResponseEnvelope",
    "CmdDoneInfo",
    "CmdInfoAssistantResponse",
    "CmdInfoChatMessage",
    "CmdStatus",
    "CommandKey",
)
