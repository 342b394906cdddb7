from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

from src.interview_relay.errors import UpstreamError
from src.interview_relay.infrastructure.record_store import InMemoryRecordStore


class CountingStore(InMemoryRecordStore):
    """In-memory store that counts calls and can be told to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.selects = 0
        self.creates = 0
        self.fail_select = False
        self.fail_create_on: Optional[int] = None  # 1-based create call to fail

    def select(self, table: str, match: Mapping[str, str], max_records: Optional[int] = None):
        self.selects += 1
        if self.fail_select:
            raise UpstreamError("record_store", "select failed", status_code=503)
        return super().select(table, match, max_records=max_records)

    def create(self, table: str, fields: Mapping[str, Any]):
        self.creates += 1
        if self.fail_create_on is not None and self.creates == self.fail_create_on:
            raise UpstreamError("record_store", "create failed", status_code=422)
        return super().create(table, fields)


class FakeCompletionClient:
    def __init__(self) -> None:
        self.reply = "Tell me about the project goals."
        self.frames: List[str] = []
        self.error: Optional[UpstreamError] = None
        self.calls: List[Dict[str, Any]] = []

    def create_chat_completion(self, model: str, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        self.calls.append({"op": "complete", "model": model, "messages": messages})
        if self.error:
            raise self.error
        return {"choices": [{"message": {"role": "assistant", "content": self.reply}}]}

    def open_stream(self, model: str, messages: List[Dict[str, str]]) -> Iterable[str]:
        self.calls.append({"op": "stream", "model": model, "messages": messages})
        if self.error:
            raise self.error
        return list(self.frames)

    def retrieve_model(self, model_id: str) -> Dict[str, Any]:
        self.calls.append({"op": "retrieve_model", "model": model_id})
        if self.error:
            raise self.error
        return {"id": model_id, "object": "model", "owned_by": "system"}

    def list_models(self) -> Dict[str, Any]:
        self.calls.append({"op": "list_models"})
        if self.error:
            raise self.error
        return {"object": "list", "data": [{"id": "gpt-4o"}, {"id": "tts-1"}]}


class FakeSpeechClient:
    def __init__(self) -> None:
        self.audio = b"ID3-fake-mp3"
        self.error: Optional[UpstreamError] = None
        self.calls: List[Dict[str, Any]] = []

    def synthesize(self, text: str, voice: str = "alloy", model: str = "tts-1") -> bytes:
        self.calls.append({"text": text, "voice": voice, "model": model})
        if self.error:
            raise self.error
        return self.audio


def delta_frame(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


class ClosableFrames:
    """Upstream double that stops yielding once closed."""

    def __init__(self, frames: List[str]) -> None:
        self.frames = frames
        self.closed = False

    def __iter__(self):
        for frame in self.frames:
            if self.closed:
                return
            yield frame

    def close(self) -> None:
        self.closed = True


class FakeResponse:
    def __init__(self, status_code: int = 200, json_data: Any = None, content: bytes = b"", lines: Optional[List[bytes]] = None) -> None:
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.text = content.decode("utf-8", errors="replace") if content else ""
        self._lines = lines or []
        self.closed = False

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no json body")
        return self._json

    def iter_lines(self, decode_unicode: bool = False):
        for line in self._lines:
            yield line

    def close(self) -> None:
        self.closed = True


class FakeHTTPSession:
    """Stands in for ``requests.Session``; replays queued responses."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt
