"""Azure OpenAI provider adapter."""

from __future__ import annotations

import httpx

from ..config import DEFAULT_MAX_TOKENS, AzureOpenAIOptions
from ..exceptions import ProviderConfigurationError
from .base import DEFAULT_REQUEST_TIMEOUT, BaseAIClient
from .openai import OpenAIClient

DEFAULT_API_VERSION = "2024-06-01"

_API_VERSION_MARKER = "?api-version="


def parse_azure_endpoint(base_url: str) -> tuple[str, str]:
    """Split ``https://host/path[?api-version=X]`` into endpoint and API version."""

    endpoint = base_url
    api_version = DEFAULT_API_VERSION
    index = endpoint.find(_API_VERSION_MARKER)
    if index != -1:
        api_version = endpoint[index + len(_API_VERSION_MARKER):] or DEFAULT_API_VERSION
        endpoint = endpoint[:index]
    return endpoint.rstrip("/"), api_version


class AzureOpenAIClient(OpenAIClient):
    """Adapter for Azure OpenAI deployments.

    Same wire shape as OpenAI, but addressed by deployment with the API
    version supplied as a query parameter.
    """

    name = "azure"

    def __init__(
        self,
        options: AzureOpenAIOptions | None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        if options is None:
            raise ProviderConfigurationError("no azure openai options found")
        self.endpoint, self.api_version = parse_azure_endpoint(options.base_url)
        BaseAIClient.__init__(
            self,
            options,
            base_url=self.endpoint,
            default_headers={
                "Content-Type": "application/json",
                "api-key": options.api_token,
            },
            transport=transport,
            timeout=timeout,
        )

    @classmethod
    def apply_defaults(cls, options: AzureOpenAIOptions) -> AzureOpenAIOptions:
        return options.model_copy()

    @classmethod
    def validate_options(cls, options: AzureOpenAIOptions) -> None:
        if not options.base_url:
            raise ProviderConfigurationError("no azure openai endpoint specified")
        super().validate_options(options)
        if not options.deployment_name:
            raise ProviderConfigurationError("no deployment name specified")

    @property
    def model_name(self) -> str:
        return self.options.deployment_name

    @property
    def max_tokens(self) -> int:
        return DEFAULT_MAX_TOKENS

    def _endpoint(self, *, stream: bool) -> str:
        return f"/openai/deployments/{self.options.deployment_name}/chat/completions"

    def _request_params(self, *, stream: bool) -> dict[str, str]:
        return {"api-version": self.api_version}


__all__ = ("AzureOpenAIClient", "DEFAULT_API_VERSION", "parse_azure_endpoint")
