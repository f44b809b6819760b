"""HTTP routes exposing the AI completion dispatcher."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from ...core.ai.exceptions import (
    AIProviderError,
    AIServiceError,
    EmptyPromptError,
    PacketTimeoutError,
    ProviderConfigurationError,
    UnsupportedProviderError,
)
from ...core.ai.prompts import get_cmd_info_engineered_prompt, get_os_type
from ...core.ai.service import AIDispatcher, get_dispatcher
from ...core.ai.stream import CompletionStream, receive_within
from ...core.ai.types import (
    AIMode,
    AIRequest,
    CompletionPacket,
    MessageRole,
    PromptMessage,
    create_error_packet,
)
from ...core.settings import Settings, get_settings
from ...models.common import ErrorCode, ResponseEnvelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


class PromptMessagePayload(BaseModel):
    role: MessageRole
    content: str = ""


class CompletionRequest(BaseModel):
    """Request payload for a raw completion."""

    prompt: list[PromptMessagePayload] = Field(default_factory=list)
    provider: str | None = Field(default=None, description="Overrides the configured default provider")
    streaming: bool = False


class AgentRequest(BaseModel):
    prompt: str = Field(..., description="User question answered under the agent system prompt")
    provider: str | None = None


class CmdInfoPromptRequest(BaseModel):
    query: str
    cur_line: str = ""
    shell: str = Field(..., description="Shell the user is running")
    os: str | None = Field(default=None, description="Defaults to the server's platform")


class CmdInfoPromptResponse(BaseModel):
    prompt: str


def _error_response(status_code: int, code: ErrorCode, message: str) -> JSONResponse:
    envelope = ResponseEnvelope.error_payload(code=code, message=message)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json"))


def _error_for(exc: AIServiceError) -> JSONResponse:
    if isinstance(exc, UnsupportedProviderError):
        return _error_response(status.HTTP_400_BAD_REQUEST, ErrorCode.UNSUPPORTED_PROVIDER, str(exc))
    if isinstance(exc, ProviderConfigurationError):
        return _error_response(status.HTTP_400_BAD_REQUEST, ErrorCode.NOT_CONFIGURED, str(exc))
    if isinstance(exc, EmptyPromptError):
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCode.NO_PROMPT, str(exc))
    if isinstance(exc, AIProviderError):
        return _error_response(status.HTTP_502_BAD_GATEWAY, ErrorCode.PROVIDER_ERROR, str(exc))
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.PROVIDER_ERROR, str(exc))


async def _ndjson_packets(
    stream: CompletionStream, packet_timeout: float, stream_timeout: float
) -> AsyncIterator[str]:
    deadline = asyncio.get_running_loop().time() + stream_timeout
    async with stream:
        while True:
            try:
                packet = await receive_within(stream, packet_timeout, deadline)
            except PacketTimeoutError as exc:
                logger.warning("ai.stream.timeout", extra={"error": str(exc)})
                yield create_error_packet(str(exc)).to_wire() + "\n"
                return
            if packet is None:
                return
            yield packet.to_wire() + "\n"


def _streaming_response(stream: CompletionStream, settings: Settings) -> StreamingResponse:
    return StreamingResponse(
        _ndjson_packets(stream, settings.ai_packet_timeout, settings.ai_stream_timeout),
        media_type=NDJSON_MEDIA_TYPE,
        # Runs even when the body is never iterated.
        background=BackgroundTask(stream.aclose),
    )


@router.post(
    "/completions",
    response_model=ResponseEnvelope[list[CompletionPacket]],
    summary="Run a chat completion against the configured provider",
)
async def create_completion(
    payload: CompletionRequest,
    dispatcher: AIDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    if not payload.prompt:
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCode.NO_PROMPT, "prompt is empty")

    request = AIRequest(
        mode=AIMode.THREAD,
        prompt=[PromptMessage(role=message.role, content=message.content) for message in payload.prompt],
        streaming=payload.streaming,
        provider=payload.provider,
    )
    try:
        response = await dispatcher.dispatch(settings.ai, request)
    except AIServiceError as exc:
        return _error_for(exc)

    if response.stream is not None:
        return _streaming_response(response.stream, settings)
    return ResponseEnvelope.success_payload(response.packets or [])


@router.post("/agent", summary="Stream an agent-mode answer as NDJSON packets")
async def run_agent(
    payload: AgentRequest,
    dispatcher: AIDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    if not payload.prompt.strip():
        return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCode.NO_PROMPT, "prompt is empty")
    try:
        response = await dispatcher.run_agent_mode(settings.ai, payload.prompt, payload.provider)
    except AIServiceError as exc:
        return _error_for(exc)
    return _streaming_response(response.stream, settings)


@router.post(
    "/cmdinfo/prompt",
    response_model=ResponseEnvelope[CmdInfoPromptResponse],
    summary="Build the engineered prompt for a cmd-info question",
)
async def build_cmd_info_prompt(payload: CmdInfoPromptRequest) -> ResponseEnvelope[CmdInfoPromptResponse]:
    prompt = get_cmd_info_engineered_prompt(
        payload.query,
        payload.cur_line,
        payload.shell,
        get_os_type(payload.os),
    )
    return ResponseEnvelope.success_payload(CmdInfoPromptResponse(prompt=prompt))


__all__ = ("router",)
