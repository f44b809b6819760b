"""Base implementation for provider specific HTTP clients."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Generic, Mapping, Sequence, TypeVar

import httpx

from ..exceptions import (
    ProviderConfigurationError,
    ProviderResponseError,
    ProviderTransportError,
    StreamFailureError,
)
from ..stream import CompletionStream
from ..types import CompletionPacket, PromptMessage, create_error_packet

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0

OptionsT = TypeVar("OptionsT")


class BaseAIClient(Generic[OptionsT]):
    """Shared HTTP transport and request handling for AI providers.

    One client serves one invocation: :meth:`complete` releases the HTTP client
    when it returns, and :meth:`complete_stream` hands that duty to the
    producer task feeding the returned stream.
    """

    name: str = ""

    def __init__(
        self,
        options: OptionsT | None,
        *,
        base_url: str,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        if options is None:
            raise ProviderConfigurationError(f"no {self.name} options found")
        self.validate_options(options)
        self._options = options
        try:
            self._client = httpx.AsyncClient(
                base_url=base_url,
                timeout=timeout,
                headers=default_headers or {},
                transport=transport,
            )
        except httpx.InvalidURL as exc:
            raise ProviderConfigurationError(f"invalid {self.name} base url: {exc}") from exc

    @property
    def options(self) -> OptionsT:
        return self._options

    @property
    def model_name(self) -> str:
        """Model identifier sent on the wire."""

        raise NotImplementedError

    @classmethod
    def apply_defaults(cls, options: OptionsT) -> OptionsT:
        """Return a copy of *options* with adapter defaults filled in."""

        return options

    @classmethod
    def validate_options(cls, options: OptionsT) -> None:
        if not getattr(options, "api_token", ""):
            raise ProviderConfigurationError(f"no api token configured for {cls.name}")

    async def __aenter__(self) -> "BaseAIClient[OptionsT]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete(self, prompt: Sequence[PromptMessage]) -> list[CompletionPacket]:
        """Execute a batched completion and return its packets."""

        try:
            payload = self._build_payload(prompt, stream=False)
            try:
                response = await self._client.post(
                    self._endpoint(stream=False),
                    json=payload,
                    params=self._request_params(stream=False),
                )
            except httpx.RequestError as exc:
                raise ProviderTransportError(f"{self.name} request transport error: {exc}") from exc
            except httpx.InvalidURL as exc:
                raise ProviderConfigurationError(f"invalid {self.name} request url: {exc}") from exc

            if response.status_code >= 400:
                raise ProviderResponseError(self._error_message(response))

            try:
                parsed = response.json()
            except ValueError as exc:
                raise ProviderResponseError(f"{self.name} returned invalid JSON") from exc

            return self._parse_response(parsed)
        finally:
            await self.aclose()

    async def complete_stream(self, prompt: Sequence[PromptMessage]) -> CompletionStream:
        """Open a streaming completion and return the channel it feeds."""

        try:
            payload = self._build_payload(prompt, stream=True)
            try:
                request = self._client.build_request(
                    "POST",
                    self._endpoint(stream=True),
                    json=payload,
                    params=self._request_params(stream=True),
                )
            except httpx.InvalidURL as exc:
                raise ProviderConfigurationError(f"invalid {self.name} request url: {exc}") from exc
            try:
                response = await self._client.send(request, stream=True)
            except httpx.RequestError as exc:
                raise ProviderTransportError(f"{self.name} request transport error: {exc}") from exc

            if response.status_code >= 400:
                try:
                    await response.aread()
                except httpx.RequestError as exc:
                    raise ProviderTransportError(f"{self.name} request transport error: {exc}") from exc
                finally:
                    await response.aclose()
                raise ProviderResponseError(self._error_message(response))
        except BaseException:
            await self.aclose()
            raise

        stream = CompletionStream()

        async def _produce(channel: CompletionStream) -> None:
            try:
                async for packet in self._iter_stream_packets(response):
                    await channel.send(packet)
            except Exception as exc:
                logger.warning(
                    "ai.stream.failure",
                    extra={"provider": self.name, "model": self.model_name, "error": str(exc)},
                )
                await channel.send(create_error_packet(f"error in streaming: {exc}"))
            finally:
                await response.aclose()
                await self.aclose()

        stream.spawn(_produce)
        return stream

    async def _iter_sse_events(self, response: httpx.Response) -> AsyncIterator[Mapping[str, Any]]:
        """Yield decoded ``data:`` payloads from a server-sent-event body."""

        async for line in response.aiter_lines():
            line = line.strip()
            if not line or line.startswith(":") or not line.startswith("data:"):
                continue
            data = line[len("data:"):].strip()
            if data == "[DONE]":
                return
            try:
                event = json.loads(data)
            except ValueError as exc:
                raise StreamFailureError(f"malformed event from {self.name}: {data[:80]}") from exc
            if isinstance(event, Mapping) and event.get("error"):
                raise StreamFailureError(self._describe_error(event["error"]))
            yield event

    def _error_message(self, response: httpx.Response) -> str:
        detail: Any = None
        try:
            detail = response.json()
        except ValueError:
            detail = response.text
        if isinstance(detail, Mapping) and detail.get("error"):
            detail = self._describe_error(detail["error"])
        logger.debug(
            "Provider %s responded with error %s: %s",
            self.name,
            response.status_code,
            detail,
        )
        message = f"{self.name} request failed with status {response.status_code}"
        if detail:
            message = f"{message}: {detail}"
        return message

    @staticmethod
    def _describe_error(error: Any) -> str:
        if isinstance(error, Mapping):
            return str(error.get("message") or error.get("status") or error)
        return str(error)

    def _request_params(self, *, stream: bool) -> dict[str, str]:
        """Query parameters to forward with the request."""

        return {}

    def _endpoint(self, *, stream: bool) -> str:
        """Return the endpoint path to POST to."""

        raise NotImplementedError

    def _build_payload(self, prompt: Sequence[PromptMessage], *, stream: bool) -> Mapping[str, Any]:
        """Serialise the request payload for the provider."""

        raise NotImplementedError

    def _parse_response(self, data: Mapping[str, Any]) -> list[CompletionPacket]:
        """Map a batched provider response onto packets, header first."""

        raise NotImplementedError

    def _iter_stream_packets(self, response: httpx.Response) -> AsyncIterator[CompletionPacket]:
        """Map a streaming provider response onto packets, header first."""

        raise NotImplementedError


__all__ = (
    "BaseAIClient",
    "DEFAULT_REQUEST_TIMEOUT",
)
