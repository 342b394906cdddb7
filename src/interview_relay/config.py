"""Runtime settings for the interview relay.

Settings are read once from a mapping (``os.environ`` by default) so tests can
build them from a plain dict without touching the process environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple


DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_AIRTABLE_API_URL = "https://api.airtable.com/v0"


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    airtable_token: Optional[str] = None
    airtable_base_id: Optional[str] = None
    airtable_api_url: str = DEFAULT_AIRTABLE_API_URL
    record_store_impl: str = "auto"
    sessions_table: str = "interview_sessions"
    messages_table: str = "interview_messages"
    voice_model: str = "gpt-4o-realtime-preview"
    stream_model: str = "gpt-4o"
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"
    stream_buffer: int = 32
    connect_timeout: float = 5.0
    read_timeout: float = 120.0
    test_session_id: str = "rec6pyjVRGBKshJto"
    cors_origins: Tuple[str, ...] = ("*",)
    port: int = 8080

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_token and self.airtable_base_id)

    def resolved_store_impl(self) -> str:
        """Return ``airtable`` or ``memory`` after applying the ``auto`` rule."""
        impl = self.record_store_impl
        if impl == "auto":
            return "airtable" if self.airtable_configured else "memory"
        return impl


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    origins = tuple(
        o.strip() for o in (env.get("RELAY_CORS_ORIGINS") or "*").split(",") if o.strip()
    )
    return Settings(
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        openai_base_url=(env.get("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL).rstrip("/"),
        airtable_token=env.get("AIRTABLE_PERSONAL_ACCESS_TOKEN") or None,
        airtable_base_id=env.get("AIRTABLE_BASE_ID") or None,
        airtable_api_url=(env.get("AIRTABLE_API_URL") or DEFAULT_AIRTABLE_API_URL).rstrip("/"),
        record_store_impl=(env.get("RELAY_RECORD_STORE_IMPL") or "auto").strip().lower(),
        sessions_table=env.get("RELAY_SESSIONS_TABLE") or "interview_sessions",
        messages_table=env.get("RELAY_MESSAGES_TABLE") or "interview_messages",
        voice_model=env.get("RELAY_VOICE_MODEL") or "gpt-4o-realtime-preview",
        stream_model=env.get("RELAY_STREAM_MODEL") or "gpt-4o",
        tts_model=env.get("RELAY_TTS_MODEL") or "tts-1",
        tts_voice=env.get("RELAY_TTS_VOICE") or "alloy",
        stream_buffer=max(1, _int(env, "RELAY_STREAM_BUFFER", 32)),
        connect_timeout=_float(env, "RELAY_CONNECT_TIMEOUT", 5.0),
        read_timeout=_float(env, "RELAY_READ_TIMEOUT", 120.0),
        test_session_id=env.get("RELAY_TEST_SESSION_ID") or "rec6pyjVRGBKshJto",
        cors_origins=origins or ("*",),
        port=_int(env, "PORT", 8080),
    )
