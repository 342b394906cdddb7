from __future__ import annotations

from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from ...domain.relay_models import (
    SENDER_AI,
    SENDER_USER,
    StreamChatRequest,
    VoiceChatRequest,
    VoiceChatResponse,
)
from ...errors import UpstreamError, ValidationError
from ...observability.metrics import record_upstream_error
from ...services.chat_responder import ChatResponder
from ...services.session_resolver import SessionResolver
from ...services.streaming import StreamRelay, RelayState
from ...services.transcript import TranscriptLogger
from ..dependencies import get_chat_responder, get_session_resolver, get_transcript_logger


LOG = logging.getLogger("relay.api")

router = APIRouter(tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def require_text(value: Optional[str], field: str) -> str:
    if not value:
        raise ValidationError(field)
    return value


def _bad_request(exc: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _server_error(exc: UpstreamError, route: str) -> HTTPException:
    record_upstream_error(exc.service)
    LOG.error("request_failed", extra={"route": route, "service": exc.service, "err": str(exc)})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Server error")


@router.post("/voice-chat", response_model=VoiceChatResponse)
def voice_chat(
    req: VoiceChatRequest,
    resolver: SessionResolver = Depends(get_session_resolver),
    transcript: TranscriptLogger = Depends(get_transcript_logger),
    responder: ChatResponder = Depends(get_chat_responder),
) -> VoiceChatResponse:
    LOG.info("voice_chat_received", extra={"stakeholder": req.stakeholder_id, "project": req.project_id})
    try:
        user_message = require_text(req.user_message, "userMessage")
    except ValidationError as exc:
        raise _bad_request(exc) from exc

    stakeholder_id = req.stakeholder_id or ""
    project_id = req.project_id or ""
    try:
        session_id = resolver.resolve(stakeholder_id, project_id)
        transcript.append(session_id, SENDER_USER, user_message)
        ai_response = responder.respond(session_id, project_id, user_message)
        transcript.append(session_id, SENDER_AI, ai_response)
    except UpstreamError as exc:
        raise _server_error(exc, "/voice-chat") from exc
    return VoiceChatResponse(ai_response=ai_response)


def _finish_stream(transcript: TranscriptLogger, relay: StreamRelay, session_id: Optional[str]) -> None:
    # covers a caller that left before the body was ever iterated
    relay.close()
    if session_id is None:
        return
    if relay.state is not RelayState.DONE:
        LOG.info("stream_reply_not_logged", extra={"session_id": session_id, "state": relay.state.value})
        return
    try:
        transcript.append(session_id, SENDER_AI, relay.text)
    except UpstreamError as exc:
        # the reply is already delivered; only the transcript is short
        record_upstream_error(exc.service)
        LOG.error("stream_reply_log_failed", extra={"session_id": session_id, "err": str(exc)})


@router.post("/stream-chat", response_class=StreamingResponse)
async def stream_chat(
    req: StreamChatRequest,
    resolver: SessionResolver = Depends(get_session_resolver),
    transcript: TranscriptLogger = Depends(get_transcript_logger),
    responder: ChatResponder = Depends(get_chat_responder),
):
    try:
        user_message = require_text(req.user_message, "userMessage")
    except ValidationError as exc:
        raise _bad_request(exc) from exc

    session_id: Optional[str] = None
    try:
        if req.stakeholder_id and req.project_id:
            session_id = await run_in_threadpool(resolver.resolve, req.stakeholder_id, req.project_id)
            await run_in_threadpool(transcript.append, session_id, SENDER_USER, user_message)
        relay = await run_in_threadpool(responder.respond_streaming, user_message)
    except UpstreamError as exc:
        raise _server_error(exc, "/stream-chat") from exc

    return StreamingResponse(
        relay.events(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        background=BackgroundTask(_finish_stream, transcript, relay, session_id),
    )
