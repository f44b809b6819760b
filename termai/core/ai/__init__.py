"""AI provider adapters and dispatch exports."""

from __future__ import annotations

from .config import AzureOpenAIOptions, ClientAIConfig, GeminiOptions, OpenAIOptions, ProviderOptions
from .exceptions import (
    AIProviderError,
    AIServiceError,
    EmptyPromptError,
    ProviderConfigurationError,
    UnsupportedProviderError,
)
from .stream import CompletionStream
from .types import AIRequest, AIResponse, CompletionPacket, PromptMessage, ProviderName

__all__ = (
    "AIProviderError",
    "AIRequest",
    "AIResponse",
    "AIServiceError",
    "AzureOpenAIOptions",
    "ClientAIConfig",
    "CompletionPacket",
    "CompletionStream",
    "EmptyPromptError",
    "GeminiOptions",
    "OpenAIOptions",
    "PromptMessage",
    "ProviderConfigurationError",
    "ProviderName",
    "ProviderOptions",
    "UnsupportedProviderError",
)
