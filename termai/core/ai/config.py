"""Configuration models for AI provider adapters."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ProviderConfigurationError, UnsupportedProviderError
from .types import ProviderName

DEFAULT_MAX_TOKENS = 1000


class OpenAIOptions(BaseModel):
    """Options for the OpenAI chat completions backend."""

    model_config = ConfigDict(validate_assignment=True)

    provider: Literal["openai"] = "openai"
    model: str = Field(default="", description="Model identifier; empty selects the adapter default")
    max_tokens: int = Field(default=0, ge=0, description="Completion token cap; 0 selects the default")
    timeout_ms: int = Field(default=0, ge=0, description="Per-packet stream timeout override in milliseconds")
    api_token: str = Field(default="", description="API key used for authentication")
    base_url: str | None = Field(default=None, description="Optional API base URL override")


class AzureOpenAIOptions(BaseModel):
    """Options for an Azure OpenAI deployment."""

    model_config = ConfigDict(validate_assignment=True)

    provider: Literal["azure"] = "azure"
    base_url: str = Field(
        default="",
        description="Resource endpoint, optionally suffixed with ?api-version=<version>",
    )
    deployment_name: str = Field(default="", description="Deployment used as the model identifier")
    api_token: str = Field(default="", description="API key used for authentication")


class GeminiOptions(BaseModel):
    """Options for the Google Gemini backend."""

    model_config = ConfigDict(validate_assignment=True)

    provider: Literal["gemini"] = "gemini"
    model: str = Field(default="", description="Model identifier; empty selects the adapter default")
    max_tokens: int = Field(default=0, ge=0, description="Output token cap; 0 selects the default")
    api_token: str = Field(default="", description="API key used for authentication")


ProviderOptions = Annotated[
    Union[OpenAIOptions, AzureOpenAIOptions, GeminiOptions],
    Field(discriminator="provider"),
]


class ClientAIConfig(BaseModel):
    """Client level AI configuration: a default provider plus per-provider options."""

    default: str = Field(default="", description="Provider tag used when a request names none")
    openai: OpenAIOptions | None = None
    azure: AzureOpenAIOptions | None = None
    gemini: GeminiOptions | None = None

    def options_for(self, provider: ProviderName) -> ProviderOptions:
        """Return the options record for *provider* or raise if absent."""

        match provider:
            case ProviderName.OPENAI:
                options = self.openai
            case ProviderName.AZURE:
                options = self.azure
            case ProviderName.GEMINI:
                options = self.gemini
            case _:
                raise UnsupportedProviderError(f"unsupported AI provider: {provider}")
        if options is None:
            raise ProviderConfigurationError(f"{provider.value} options not configured")
        return options


__all__ = (
    "AzureOpenAIOptions",
    "ClientAIConfig",
    "DEFAULT_MAX_TOKENS",
    "GeminiOptions",
    "OpenAIOptions",
    "ProviderOptions",
)
