"""Custom exceptions for AI completion dispatch."""

from __future__ import annotations


class AIServiceError(RuntimeError):
    """Base exception for AI service failures."""


class ProviderConfigurationError(AIServiceError):
    """Raised when a provider or its options are not configured for use."""


class UnsupportedProviderError(ProviderConfigurationError):
    """Raised for a provider tag with no registered adapter."""


class EmptyPromptError(AIServiceError):
    """Raised when a provider requires at least one prompt message."""


class AIProviderError(AIServiceError):
    """Raised when a provider adapter encounters a request/response issue."""


class ProviderTransportError(AIProviderError):
    """Network failure talking to the vendor before any packet was produced."""


class ProviderResponseError(AIProviderError):
    """The vendor answered with an error before the stream started."""


class StreamFailureError(AIProviderError):
    """Failure after the stream opened; surfaced as an error packet."""


class PacketTimeoutError(AIServiceError):
    """No packet arrived within the per-packet deadline."""

    def __init__(self, message: str = "timeout waiting for server response") -> None:
        super().__init__(message)


class SinkWriteError(AIServiceError):
    """Writing to the PTY buffer or update bus failed."""


__all__ = (
    "AIProviderError",
    "AIServiceError",
    "EmptyPromptError",
    "PacketTimeoutError",
    "ProviderConfigurationError",
    "ProviderResponseError",
    "ProviderTransportError",
    "SinkWriteError",
    "StreamFailureError",
    "UnsupportedProviderError",
)
