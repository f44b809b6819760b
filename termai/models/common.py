"""Response envelope shared by the HTTP endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Machine readable error codes returned by the AI endpoints."""

    NOT_CONFIGURED = "not_configured"
    UNSUPPORTED_PROVIDER = "unsupported_provider"
    NO_PROMPT = "no_prompt"
    PROVIDER_ERROR = "provider_error"


class ErrorDetail(BaseModel):
    """Error payload carried by a failed response."""

    code: str = Field(..., description="Machine readable error code")
    message: str = Field(..., description="Human readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Optional extended error context")


class ResponseEnvelope(BaseModel, Generic[T]):
    """Wrapper around every non-streaming API response."""

    success: bool = Field(True, description="Whether the request succeeded")
    data: T | None = Field(default=None, description="Payload of a successful response")
    error: ErrorDetail | None = Field(default=None, description="Error payload when success is False")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Time the envelope was generated",
    )

    @classmethod
    def success_payload(cls, data: T | None = None) -> "ResponseEnvelope[T]":
        return cls(success=True, data=data)

    @classmethod
    def error_payload(
        cls, code: ErrorCode | str, message: str, details: dict[str, Any] | None = None
    ) -> "ResponseEnvelope[Any]":
        """Wrap an error; enum codes are stored by value."""

        if isinstance(code, ErrorCode):
            code = code.value
        return cls(
            success=False,
            data=None,
            error=ErrorDetail(code=code, message=message, details=details),
        )


__all__ = ("ErrorCode", "ErrorDetail", "ResponseEnvelope")
