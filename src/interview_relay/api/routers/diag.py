from __future__ import annotations

from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from ...config import Settings
from ...domain.relay_models import SENDER_TEST
from ...errors import UpstreamError
from ...observability.metrics import record_upstream_error
from ...services.transcript import TranscriptLogger
from ..dependencies import get_settings, get_transcript_logger


LOG = logging.getLogger("relay.api")

router = APIRouter(tags=["diagnostics"])


@router.get("/test", response_class=PlainTextResponse)
def test_route() -> str:
    return "Test route is working!"


@router.get("/test-airtable", response_class=PlainTextResponse)
def test_airtable(
    session_id: Optional[str] = Query(None, description="Session to attach the test message to"),
    transcript: TranscriptLogger = Depends(get_transcript_logger),
    settings: Settings = Depends(get_settings),
) -> str:
    """Write one ``Test`` message to check record store connectivity."""
    target = session_id or settings.test_session_id
    try:
        record_id = transcript.append_record(target, SENDER_TEST, "Testing airtable record creation")
    except UpstreamError as exc:
        record_upstream_error(exc.service)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Test failed") from exc
    LOG.info("test_record_created", extra={"record_id": record_id})
    return f"Test record created: {record_id}"
