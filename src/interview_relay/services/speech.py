"""
Purpose: text-to-speech pass-through. Turns a text snippet into MP3 bytes.
"""

from __future__ import annotations

from typing import Optional
import logging

from .completion_client import OpenAIRestClient


LOG = logging.getLogger("relay.llm")


class SpeechClient(OpenAIRestClient):
    service = "speech"

    def synthesize(self, text: str, voice: str = "alloy", model: str = "tts-1") -> bytes:
        """Return raw MP3 bytes for ``text`` spoken with ``voice``."""
        LOG.debug("speech_invoke", extra={"model": model, "voice": voice, "chars": len(text)})
        resp = self._send(
            "POST",
            "/audio/speech",
            json={"model": model, "voice": voice, "input": text, "response_format": "mp3"},
        )
        return resp.content


def pick_voice(requested: Optional[str], default: str) -> str:
    voice = (requested or "").strip()
    return voice or default
