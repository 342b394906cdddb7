from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...config import Settings
from ...errors import UpstreamError
from ...observability.metrics import record_upstream_error
from ...services.completion_client import CompletionClient
from ..dependencies import get_completion_client, get_settings


LOG = logging.getLogger("relay.api")

router = APIRouter(tags=["models"])


@router.get("/model-info")
def model_info(
    client: CompletionClient = Depends(get_completion_client),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    try:
        data = client.retrieve_model(settings.voice_model)
    except UpstreamError as exc:
        record_upstream_error(exc.service)
        LOG.error("model_info_failed", extra={"model": settings.voice_model, "err": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not retrieve model info",
        ) from exc
    LOG.debug("model_info_retrieved", extra={"model": settings.voice_model})
    return {"model": data}


@router.get("/list-models")
def list_models(client: CompletionClient = Depends(get_completion_client)) -> Dict[str, Any]:
    try:
        return client.list_models()
    except UpstreamError as exc:
        record_upstream_error(exc.service)
        LOG.error("list_models_failed", extra={"err": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not list models",
        ) from exc
