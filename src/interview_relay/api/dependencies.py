"""Process-wide client handles, built once and injected with ``Depends``.

Tests swap any of these through ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends

from ..config import Settings, load_settings
from ..infrastructure.record_store import RecordStore, build_record_store
from ..services.chat_responder import ChatResponder
from ..services.completion_client import CompletionClient
from ..services.session_resolver import SessionResolver
from ..services.speech import SpeechClient
from ..services.transcript import TranscriptLogger


_settings: Settings | None = None
_store: RecordStore | None = None
_completion: CompletionClient | None = None
_speech: SpeechClient | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_record_store(settings: Settings = Depends(get_settings)) -> RecordStore:
    global _store
    if _store is None:
        _store = build_record_store(settings)
    return _store


def get_completion_client(settings: Settings = Depends(get_settings)) -> CompletionClient:
    global _completion
    if _completion is None:
        _completion = CompletionClient(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.timeout,
        )
    return _completion


def get_speech_client(settings: Settings = Depends(get_settings)) -> SpeechClient:
    global _speech
    if _speech is None:
        _speech = SpeechClient(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.timeout,
        )
    return _speech


def get_session_resolver(
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
) -> SessionResolver:
    return SessionResolver(store, table=settings.sessions_table)


def get_transcript_logger(
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
) -> TranscriptLogger:
    return TranscriptLogger(store, table=settings.messages_table)


def get_chat_responder(
    client: CompletionClient = Depends(get_completion_client),
    settings: Settings = Depends(get_settings),
) -> ChatResponder:
    return ChatResponder(
        client,
        model=settings.voice_model,
        stream_model=settings.stream_model,
        stream_buffer=settings.stream_buffer,
    )


def reset_dependencies() -> None:
    global _settings, _store, _completion, _speech
    _settings = None
    _store = None
    _completion = None
    _speech = None
