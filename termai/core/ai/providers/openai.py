"""OpenAI provider adapter."""

from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Sequence

import httpx

from ..config import DEFAULT_MAX_TOKENS, OpenAIOptions
from ..types import CompletionPacket, CompletionUsage, PromptMessage
from .base import DEFAULT_REQUEST_TIMEOUT, BaseAIClient

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_BASE_URL = "https://api.openai.com/v1"

_ROLES = frozenset({"system", "user", "assistant"})


def convert_prompt_messages(prompt: Sequence[PromptMessage]) -> list[dict[str, str]]:
    """Render the prompt as chat messages, dropping unknown roles."""

    return [
        {"role": message.role, "content": message.content}
        for message in prompt
        if message.role in _ROLES
    ]


def convert_usage(usage: Mapping[str, Any] | None) -> CompletionUsage | None:
    if not usage or not usage.get("total_tokens"):
        return None
    return CompletionUsage(
        prompt_tokens=usage.get("prompt_tokens") or 0,
        completion_tokens=usage.get("completion_tokens") or 0,
        total_tokens=usage.get("total_tokens") or 0,
    )


class OpenAIClient(BaseAIClient[OpenAIOptions]):
    """Adapter for the OpenAI Chat Completions API."""

    name = "openai"

    def __init__(
        self,
        options: OpenAIOptions | None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        api_token = options.api_token if options is not None else ""
        super().__init__(
            options,
            base_url=(options.base_url if options is not None else None) or DEFAULT_BASE_URL,
            default_headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_token}",
            },
            transport=transport,
            timeout=timeout,
        )

    @classmethod
    def apply_defaults(cls, options: OpenAIOptions) -> OpenAIOptions:
        updates: dict[str, Any] = {}
        if not options.model:
            updates["model"] = DEFAULT_MODEL
        if options.max_tokens == 0:
            updates["max_tokens"] = DEFAULT_MAX_TOKENS
        return options.model_copy(update=updates)

    @property
    def model_name(self) -> str:
        return self.options.model or DEFAULT_MODEL

    @property
    def max_tokens(self) -> int:
        return self.options.max_tokens or DEFAULT_MAX_TOKENS

    def _endpoint(self, *, stream: bool) -> str:
        return "/chat/completions"

    def _build_payload(self, prompt: Sequence[PromptMessage], *, stream: bool) -> Mapping[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model_name,
            "messages": convert_prompt_messages(prompt),
            "max_tokens": self.max_tokens,
        }
        if stream:
            payload["stream"] = True
        return payload

    def _parse_response(self, data: Mapping[str, Any]) -> list[CompletionPacket]:
        packets = [
            CompletionPacket(
                model=data.get("model") or self.model_name,
                created=data.get("created") or 0,
                usage=convert_usage(data.get("usage")),
            )
        ]
        for choice in data.get("choices") or []:
            message = choice.get("message") or {}
            packets.append(
                CompletionPacket(
                    index=choice.get("index") or 0,
                    text=message.get("content") or "",
                    finish_reason=choice.get("finish_reason") or "",
                )
            )
        return packets

    async def _iter_stream_packets(self, response: httpx.Response) -> AsyncIterator[CompletionPacket]:
        sent_header = False
        async for chunk in self._iter_sse_events(response):
            choices = chunk.get("choices") or []
            model = chunk.get("model") or ""
            if not sent_header and (model or choices):
                # Azure opens with content-filter chunks that carry no model.
                yield CompletionPacket(model=model or self.model_name, created=chunk.get("created") or 0)
                sent_header = True
            for choice in choices:
                delta = choice.get("delta") or {}
                yield CompletionPacket(
                    index=choice.get("index") or 0,
                    text=delta.get("content") or "",
                    finish_reason=choice.get("finish_reason") or "",
                )


__all__ = ("DEFAULT_MODEL", "OpenAIClient", "convert_prompt_messages")
