"""Gemini provider adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Sequence

import httpx

from ..config import DEFAULT_MAX_TOKENS, GeminiOptions
from ..exceptions import EmptyPromptError, ProviderConfigurationError
from ..types import CompletionPacket, PromptMessage
from .base import DEFAULT_REQUEST_TIMEOUT, BaseAIClient

DEFAULT_MODEL = "gemini-pro"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"

_FINISH_REASONS = {
    "FINISH_REASON_UNSPECIFIED": "",
    "STOP": "stop",
    "MAX_TOKENS": "length",
}


@dataclass(slots=True, frozen=True)
class GeminiChat:
    """A prompt split into prior turns and the message being sent."""

    history: list[dict[str, Any]]
    message: str


def build_chat(prompt: Sequence[PromptMessage]) -> GeminiChat:
    """Split *prompt* into chat history and the current turn.

    The last message is sent as the current user turn. Earlier messages become
    history with ``assistant``/``model`` mapped to ``model`` and everything
    else to ``user``.
    """

    if not prompt:
        raise EmptyPromptError("no prompt provided")
    history = [
        {
            "role": "model" if message.role in ("assistant", "model") else "user",
            "parts": [{"text": message.content}],
        }
        for message in prompt[:-1]
    ]
    return GeminiChat(history=history, message=prompt[-1].content)


def map_finish_reason(reason: str | None) -> str:
    if not reason:
        return ""
    return _FINISH_REASONS.get(reason, reason.lower())


class GeminiClient(BaseAIClient[GeminiOptions]):
    """Adapter for the Google Gemini generateContent API."""

    name = "gemini"

    def __init__(
        self,
        options: GeminiOptions | None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        api_token = options.api_token if options is not None else ""
        super().__init__(
            options,
            base_url=DEFAULT_BASE_URL,
            default_headers={
                "Content-Type": "application/json",
                "x-goog-api-key": api_token,
            },
            transport=transport,
            timeout=timeout,
        )

    @classmethod
    def apply_defaults(cls, options: GeminiOptions) -> GeminiOptions:
        updates: dict[str, Any] = {}
        if not options.model:
            updates["model"] = DEFAULT_MODEL
        if options.max_tokens == 0:
            updates["max_tokens"] = DEFAULT_MAX_TOKENS
        return options.model_copy(update=updates)

    @classmethod
    def validate_options(cls, options: GeminiOptions) -> None:
        if not options.model:
            raise ProviderConfigurationError("no gemini model specified")
        super().validate_options(options)

    @property
    def model_name(self) -> str:
        return self.options.model

    def _endpoint(self, *, stream: bool) -> str:
        action = "streamGenerateContent" if stream else "generateContent"
        return f"/v1beta/models/{self.model_name}:{action}"

    def _request_params(self, *, stream: bool) -> dict[str, str]:
        return {"alt": "sse"} if stream else {}

    def _build_payload(self, prompt: Sequence[PromptMessage], *, stream: bool) -> Mapping[str, Any]:
        chat = build_chat(prompt)
        payload: dict[str, Any] = {
            "contents": [*chat.history, {"role": "user", "parts": [{"text": chat.message}]}],
        }
        if self.options.max_tokens > 0:
            payload["generationConfig"] = {"maxOutputTokens": self.options.max_tokens}
        return payload

    def _header_packet(self) -> CompletionPacket:
        # Gemini responses carry no creation timestamp.
        return CompletionPacket(model=self.model_name, created=0)

    def _parse_response(self, data: Mapping[str, Any]) -> list[CompletionPacket]:
        packets = [self._header_packet()]
        for candidate in data.get("candidates") or []:
            content = candidate.get("content")
            if not content:
                continue
            text = "".join(
                part["text"] for part in content.get("parts") or [] if isinstance(part.get("text"), str)
            )
            packets.append(
                CompletionPacket(
                    index=candidate.get("index") or 0,
                    text=text,
                    finish_reason=map_finish_reason(candidate.get("finishReason")),
                )
            )
        return packets

    async def _iter_stream_packets(self, response: httpx.Response) -> AsyncIterator[CompletionPacket]:
        sent_header = False
        async for chunk in self._iter_sse_events(response):
            if not sent_header:
                yield self._header_packet()
                sent_header = True
            for candidate in chunk.get("candidates") or []:
                content = candidate.get("content")
                if not content:
                    continue
                for part in content.get("parts") or []:
                    text = part.get("text")
                    if not isinstance(text, str):
                        continue
                    yield CompletionPacket(
                        index=candidate.get("index") or 0,
                        text=text,
                        finish_reason=map_finish_reason(candidate.get("finishReason")),
                    )


__all__ = ("DEFAULT_MODEL", "GeminiChat", "GeminiClient", "build_chat", "map_finish_reason")
