from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...config import Settings
from ...domain.relay_models import SpeechRequest
from ...errors import UpstreamError, ValidationError
from ...observability.metrics import record_upstream_error
from ...services.speech import SpeechClient, pick_voice
from ..dependencies import get_settings, get_speech_client
from .chat import require_text


LOG = logging.getLogger("relay.api")

router = APIRouter(tags=["speech"])


@router.post("/tts")
def text_to_speech(
    req: SpeechRequest,
    client: SpeechClient = Depends(get_speech_client),
    settings: Settings = Depends(get_settings),
) -> Response:
    try:
        text = require_text(req.text, "text")
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    voice = pick_voice(req.voice, settings.tts_voice)
    try:
        audio = client.synthesize(text, voice=voice, model=settings.tts_model)
    except UpstreamError as exc:
        record_upstream_error(exc.service)
        LOG.error("tts_failed", extra={"voice": voice, "status": exc.status_code, "err": str(exc)})
        raise HTTPException(
            status_code=exc.status_code or status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Text-to-speech failed",
        ) from exc
    return Response(content=audio, media_type="audio/mpeg")
