"""Common types for AI provider adapters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal, Sequence

from pydantic import BaseModel

if TYPE_CHECKING:
    from .stream import CompletionStream


class ProviderName(str, Enum):
    """Supported AI provider identifiers."""

    OPENAI = "openai"
    GEMINI = "gemini"
    AZURE = "azure"


class AIMode(str, Enum):
    """Dispatcher entry points."""

    AGENT = "agent"
    THREAD = "thread"


MessageRole = Literal["system", "user", "assistant"]


@dataclass(slots=True, frozen=True)
class PromptMessage:
    """A single message in a prompt exchange."""

    role: MessageRole
    content: str


Prompt = Sequence[PromptMessage]


class CompletionUsage(BaseModel):
    """Token usage reported with a batched completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionPacket(BaseModel):
    """Uniform chunk emitted by every provider adapter.

    A completion is a header packet (``model``/``created``), zero or more body
    packets per choice ``index``, a terminal packet carrying ``finish_reason``
    and optionally an error packet that ends the sequence.
    """

    index: int = 0
    model: str = ""
    created: int = 0
    text: str = ""
    finish_reason: str = ""
    error: str = ""
    usage: CompletionUsage | None = None

    @property
    def is_header(self) -> bool:
        return bool(self.model)

    @property
    def is_error(self) -> bool:
        return bool(self.error)

    def to_wire(self) -> str:
        """Serialise the packet, omitting empty fields."""

        return self.model_dump_json(exclude_defaults=True)


def make_packet() -> CompletionPacket:
    return CompletionPacket()


def create_error_packet(message: str) -> CompletionPacket:
    return CompletionPacket(finish_reason="error", error=message)


def create_text_packet(text: str) -> CompletionPacket:
    return CompletionPacket(text=text)


@dataclass(slots=True)
class AIRequest:
    """High level request descriptor for the dispatcher."""

    mode: AIMode
    prompt: Sequence[PromptMessage]
    streaming: bool = False
    provider: str | None = None


@dataclass(slots=True)
class AIResponse:
    """Dispatcher result; exactly one of ``packets`` or ``stream`` is set."""

    packets: list[CompletionPacket] | None = None
    stream: CompletionStream | None = None


__all__ = (
    "AIMode",
    "AIRequest",
    "AIResponse",
    "CompletionPacket",
    "CompletionUsage",
    "MessageRole",
    "Prompt",
    "PromptMessage",
    "ProviderName",
    "create_error_packet",
    "create_text_packet",
    "make_packet",
)
