"""Provider-agnostic dispatch of chat completions."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from functools import lru_cache

import httpx

from ..settings import get_settings
from .config import ClientAIConfig, ProviderOptions
from .exceptions import AIServiceError, ProviderConfigurationError, UnsupportedProviderError
from .prompts import build_agent_prompt
from .providers.azure import AzureOpenAIClient
from .providers.base import DEFAULT_REQUEST_TIMEOUT, BaseAIClient
from .providers.gemini import GeminiClient
from .providers.openai import OpenAIClient
from .stream import CompletionStream
from .types import AIMode, AIRequest, AIResponse, CompletionPacket, PromptMessage, ProviderName

logger = logging.getLogger(__name__)

_CLIENTS: dict[ProviderName, type[BaseAIClient]] = {
    ProviderName.OPENAI: OpenAIClient,
    ProviderName.AZURE: AzureOpenAIClient,
    ProviderName.GEMINI: GeminiClient,
}


def parse_provider(tag: str) -> ProviderName:
    """Map a case-sensitive provider tag onto :class:`ProviderName`."""

    try:
        return ProviderName(tag)
    except ValueError as exc:
        raise UnsupportedProviderError(f"unsupported AI provider: {tag}") from exc


def resolve_provider(client_config: ClientAIConfig, requested: str | None = None) -> ProviderName:
    """Pick the request's provider, falling back to the client default."""

    tag = requested or client_config.default
    if not tag:
        raise ProviderConfigurationError("no AI provider configured")
    return parse_provider(tag)


class AIDispatcher:
    """Facade routing completion requests to provider adapters.

    Adapters are created per invocation so every call owns, and releases, its
    own HTTP client.
    """

    def __init__(
        self,
        *,
        transport_overrides: Mapping[ProviderName, httpx.AsyncBaseTransport] | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._transport_overrides = dict(transport_overrides or {})
        self._request_timeout = request_timeout

    def open_client(self, options: ProviderOptions | None) -> BaseAIClient:
        """Build the adapter for *options*, with defaults applied to a copy."""

        if options is None:
            raise ProviderConfigurationError("AI provider options not configured")
        provider = parse_provider(options.provider)
        client_cls = _CLIENTS.get(provider)
        if client_cls is None:
            raise UnsupportedProviderError(f"unsupported AI provider: {provider.value}")
        return client_cls(
            client_cls.apply_defaults(options),
            transport=self._transport_overrides.get(provider),
            timeout=self._request_timeout,
        )

    async def complete(
        self, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> list[CompletionPacket]:
        """Run a batched completion with *options*."""

        client = self.open_client(options)
        start_time = time.perf_counter()
        self._log_event("ai.request.start", client, streaming=False)
        try:
            packets = await client.complete(prompt)
        except AIServiceError as exc:
            self._log_event(
                "ai.request.failure",
                client,
                streaming=False,
                duration=time.perf_counter() - start_time,
                error=str(exc),
            )
            raise
        self._log_event(
            "ai.request.success",
            client,
            streaming=False,
            duration=time.perf_counter() - start_time,
        )
        return packets

    async def complete_stream(
        self, options: ProviderOptions | None, prompt: Sequence[PromptMessage]
    ) -> CompletionStream:
        """Open a streaming completion with *options*."""

        client = self.open_client(options)
        start_time = time.perf_counter()
        self._log_event("ai.request.start", client, streaming=True)
        try:
            stream = await client.complete_stream(prompt)
        except AIServiceError as exc:
            self._log_event(
                "ai.request.failure",
                client,
                streaming=True,
                duration=time.perf_counter() - start_time,
                error=str(exc),
            )
            raise
        self._log_event(
            "ai.stream.open",
            client,
            streaming=True,
            duration=time.perf_counter() - start_time,
        )
        return stream

    async def dispatch(self, client_config: ClientAIConfig, request: AIRequest) -> AIResponse:
        """Resolve provider and options for *request* and run it."""

        snapshot = client_config.model_copy(deep=True)
        provider = resolve_provider(snapshot, request.provider)
        options = snapshot.options_for(provider)
        prompt = tuple(request.prompt)

        if request.streaming:
            return AIResponse(stream=await self.complete_stream(options, prompt))
        return AIResponse(packets=await self.complete(options, prompt))

    async def run_agent_mode(
        self, client_config: ClientAIConfig, prompt: str, provider: str | None = None
    ) -> AIResponse:
        """Stream an answer to *prompt* under the fixed agent system prompt."""

        request = AIRequest(
            mode=AIMode.AGENT,
            prompt=build_agent_prompt(prompt),
            streaming=True,
            provider=provider,
        )
        return await self.dispatch(client_config, request)

    async def run_thread_mode(
        self, client_config: ClientAIConfig, conversation: Sequence[PromptMessage]
    ) -> AIResponse:
        """Stream a reply to an assembled conversation using the client default provider."""

        request = AIRequest(mode=AIMode.THREAD, prompt=conversation, streaming=True)
        return await self.dispatch(client_config, request)

    @staticmethod
    def _log_event(
        action: str,
        client: BaseAIClient,
        *,
        streaming: bool,
        duration: float | None = None,
        error: str | None = None,
    ) -> None:
        extra = {
            "provider": client.name,
            "model": client.model_name,
            "streaming": streaming,
        }
        if duration is not None:
            extra["duration"] = duration
        if error is not None:
            extra["error"] = error
        logger.info(action, extra=extra)


@lru_cache()
def get_dispatcher() -> AIDispatcher:
    """Return a cached instance of :class:`AIDispatcher`."""

    return AIDispatcher(request_timeout=get_settings().ai_request_timeout)


__all__ = ("AIDispatcher", "get_dispatcher", "parse_provider", "resolve_provider")
