from __future__ import annotations

from datetime import UTC, datetime
from dotenv import load_dotenv
import logging
from fastapi import Depends, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from ..config import Settings
from .dependencies import get_settings
from .routers.chat import router as chat_router
from .routers.diag import router as diag_router
from .routers.models import router as models_router
from .routers.speech import router as speech_router
from ..observability.metrics import metrics_middleware_factory

load_dotenv()  # Load OPENAI_API_KEY, AIRTABLE_* and RELAY_* from .env if present

LOG = logging.getLogger("relay.api")

app = FastAPI(title="Interview Relay API", version="0.1.0")

app.middleware("http")(metrics_middleware_factory())

app.include_router(chat_router)
app.include_router(models_router)
app.include_router(speech_router)
app.include_router(diag_router)

_origins = list(get_settings().cors_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials="*" not in _origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health(settings: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "components": {
            "api": "ok",
            "record_store": settings.resolved_store_impl(),
            "completion": "configured" if settings.openai_api_key else "missing_api_key",
        },
    }


@app.get("/metrics")
def metrics() -> Response:
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


def run() -> None:
    import uvicorn

    port = get_settings().port
    LOG.info("server_starting", extra={"port": port})
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
