"""Chat and transcription routes."""

import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from ai_gateway.core.dispatcher import Dispatcher, ProviderReply, resolve_provider
from ai_gateway.core.errors import GatewayError, InvalidProviderError
from ai_gateway.core.recorder import UsageRecorder
from ai_gateway.core.schema import Choice, OpenAIChatRequest, Provider, UnifiedRequest, UnifiedResponse

from .deps import get_dispatcher, get_recorder, get_user_id, run_until_disconnect, verify_request

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_request)])


class ProviderChatRequest(UnifiedRequest):
    """Body of a provider-specific endpoint; the route fixes the provider."""
    provider: str = ""


def error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.payload)


def _provider_label(identifier: str) -> str:
    try:
        return resolve_provider(identifier).value
    except InvalidProviderError:
        return identifier


async def _complete(
    request: Request,
    background: BackgroundTasks,
    unified: UnifiedRequest,
    user_id: str,
    dispatcher: Dispatcher,
    recorder: UsageRecorder,
) -> Union[ProviderReply, GatewayError]:
    """Dispatch a request and schedule its usage entry after the response."""
    endpoint = request.url.path
    provider = _provider_label(unified.provider)
    logger.info(f"Request from user: {user_id[:12]}..., endpoint: {endpoint}, provider: {provider}, model: {unified.model}")

    try:
        reply = await run_until_disconnect(request, dispatcher.send(unified))
    except GatewayError as e:
        background.add_task(recorder.record, user_id, endpoint, provider, unified.model, None, e.message)
        return e

    background.add_task(
        recorder.record, user_id, endpoint, provider, unified.model or reply.response.model, reply.response
    )
    return reply


@router.post("/api/v1/chat")
async def unified_chat(
    unified: UnifiedRequest,
    request: Request,
    background: BackgroundTasks,
    user_id: str = Depends(get_user_id),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    recorder: UsageRecorder = Depends(get_recorder),
):
    """Unified endpoint: any provider in, unified response out."""
    outcome = await _complete(request, background, unified, user_id, dispatcher, recorder)
    if isinstance(outcome, GatewayError):
        return error_response(outcome)
    return outcome.response.to_wire()


@router.post("/api/chat/completions")
async def openai_chat_completions(
    body: OpenAIChatRequest,
    request: Request,
    background: BackgroundTasks,
    user_id: str = Depends(get_user_id),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    recorder: UsageRecorder = Depends(get_recorder),
):
    """OpenAI-native endpoint; returns OpenAI's body verbatim."""
    unified = body.model_copy(update={"provider": Provider.OPENAI.value})
    outcome = await _complete(request, background, unified, user_id, dispatcher, recorder)
    if isinstance(outcome, GatewayError):
        return error_response(outcome)
    logger.info("Successfully proxied chat request to OpenAI")
    return outcome.raw


@router.post("/api/anthropic/messages")
async def anthropic_messages(
    body: ProviderChatRequest,
    request: Request,
    background: BackgroundTasks,
    user_id: str = Depends(get_user_id),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    recorder: UsageRecorder = Depends(get_recorder),
):
    unified = body.model_copy(update={"provider": Provider.ANTHROPIC.value})
    outcome = await _complete(request, background, unified, user_id, dispatcher, recorder)
    if isinstance(outcome, GatewayError):
        return error_response(outcome)
    return outcome.response.to_wire()


@router.post("/api/google/chat")
async def google_chat(
    body: ProviderChatRequest,
    request: Request,
    background: BackgroundTasks,
    user_id: str = Depends(get_user_id),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    recorder: UsageRecorder = Depends(get_recorder),
):
    unified = body.model_copy(update={"provider": Provider.GOOGLE.value})
    outcome = await _complete(request, background, unified, user_id, dispatcher, recorder)
    if isinstance(outcome, GatewayError):
        return error_response(outcome)
    return outcome.response.to_wire()


@router.post("/api/audio/transcriptions")
async def audio_transcriptions(
    request: Request,
    background: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    model: str = Form("whisper-1"),
    user_id: str = Depends(get_user_id),
    dispatcher: Dispatcher = Depends(get_dispatcher),
    recorder: UsageRecorder = Depends(get_recorder),
):
    """Proxy an audio upload to OpenAI's transcription API."""
    if file is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": {"message": "No audio file provided"}},
        )

    endpoint = request.url.path
    content = await file.read()
    try:
        result: Dict[str, Any] = await run_until_disconnect(
            request,
            dispatcher.transcribe(file.filename or "audio", content, file.content_type, model),
        )
    except GatewayError as e:
        background.add_task(recorder.record, user_id, endpoint, Provider.OPENAI.value, model, None, e.message)
        return error_response(e)

    transcript = UnifiedResponse(
        id="transcription",
        model=model,
        provider=Provider.OPENAI.value,
        choices=[Choice(content=str(result.get("text", "")))],
    )
    background.add_task(recorder.record, user_id, endpoint, Provider.OPENAI.value, model, transcript)
    logger.info("Successfully transcribed audio via OpenAI")
    return result
