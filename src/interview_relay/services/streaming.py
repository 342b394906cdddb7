"""Server-sent event relay from a streaming completion to an HTTP client.

Upstream frames are read on a worker thread and handed to the event loop
through a bounded ``asyncio.Queue``; a full queue blocks the reader. Each
frame is parsed on its own and every non-empty fragment is forwarded as one
``data: <fragment>\\n\\n`` event in arrival order.

State machine::

    IDLE -> STREAMING -> DONE    upstream finished, terminal marker sent
                      -> ERROR   upstream failed or the caller went away
"""

from __future__ import annotations

import asyncio
import json
import logging
from concurrent.futures import CancelledError
from enum import Enum
from threading import Event, Thread
from typing import Any, AsyncIterator, Iterable, Iterator, List, Optional, Tuple

from ..domain.relay_models import STREAM_DONE_MARKER
from ..errors import StreamParseError
from ..observability.metrics import STREAM_FRAMES


LOG = logging.getLogger("relay.stream")

UPSTREAM_DONE = "[DONE]"

_FRAME = "frame"
_END = "end"
_FAILED = "failed"


class RelayState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    DONE = "done"
    ERROR = "error"


def _payload(frame: str) -> str:
    text = frame.strip()
    if text.startswith("data:"):
        text = text[5:].lstrip()
    return text


def is_done_frame(frame: str) -> bool:
    return _payload(frame) == UPSTREAM_DONE


def parse_frame(frame: str) -> Optional[str]:
    """Return the text fragment carried by one upstream frame, if any.

    Raises ``StreamParseError`` when the frame is not a JSON object.
    """
    payload = _payload(frame)
    if not payload:
        return None
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise StreamParseError(frame) from exc
    if not isinstance(data, dict):
        raise StreamParseError(frame, "Stream frame is not a JSON object")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def format_event(data: str) -> str:
    return f"data: {data}\n\n"


class StreamRelay:
    """One-shot relay over an iterable of upstream frames.

    ``upstream`` may expose ``close()``; it is called when the relay stops for
    any reason so the reader thread does not outlive the caller.
    """

    def __init__(self, upstream: Iterable[str], buffer_size: int = 32) -> None:
        self._upstream = upstream
        self._buffer_size = max(1, buffer_size)
        self._closed = Event()
        self._upstream_closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: "Optional[asyncio.Queue[Tuple[str, Any]]]" = None
        self.state = RelayState.IDLE
        self.fragments: List[str] = []

    @property
    def text(self) -> str:
        return "".join(self.fragments)

    def _put(self, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[Tuple[str, Any]]", item: Tuple[str, Any]) -> bool:
        if self._closed.is_set():
            return False
        try:
            asyncio.run_coroutine_threadsafe(queue.put(item), loop).result()
        except (RuntimeError, CancelledError):
            # loop closed underneath the reader
            self._closed.set()
            return False
        return True

    def _pump(self, frames: Iterator[str], loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[Tuple[str, Any]]") -> None:
        while True:
            try:
                frame = next(frames)
            except StopIteration:
                self._put(loop, queue, (_END, None))
                return
            except Exception as exc:
                if not self._closed.is_set():
                    self._put(loop, queue, (_FAILED, exc))
                return
            if not self._put(loop, queue, (_FRAME, frame)):
                return

    def close(self) -> None:
        """Stop the relay and release the upstream response.

        Safe to call more than once, and before ``events`` was ever iterated;
        an unstarted relay can no longer be consumed afterwards.
        """
        self._closed.set()
        if self.state is RelayState.IDLE:
            self.state = RelayState.ERROR
        if self._loop is not None:
            try:
                self._loop.call_soon_threadsafe(self._drain)
            except RuntimeError:
                pass  # loop already closed, nothing left to unblock
        if self._upstream_closed:
            return
        self._upstream_closed = True
        close = getattr(self._upstream, "close", None)
        if callable(close):
            try:
                close()
            except Exception as exc:
                LOG.debug("stream_upstream_close_failed", extra={"err": str(exc)})

    def _drain(self) -> None:
        # unblock a reader waiting on a full queue
        queue = self._queue
        while queue is not None and not queue.empty():
            queue.get_nowait()

    async def events(self) -> AsyncIterator[str]:
        if self.state is not RelayState.IDLE:
            raise RuntimeError("StreamRelay can only be consumed once")
        loop = self._loop = asyncio.get_running_loop()
        queue: "asyncio.Queue[Tuple[str, Any]]" = asyncio.Queue(maxsize=self._buffer_size)
        self._queue = queue
        frames = iter(self._upstream)
        self.state = RelayState.STREAMING
        Thread(target=self._pump, args=(frames, loop, queue), name="stream-relay", daemon=True).start()
        try:
            while True:
                kind, payload = await queue.get()
                if kind == _FAILED:
                    self.state = RelayState.ERROR
                    LOG.error(
                        "stream_upstream_failed",
                        extra={"err": str(payload), "forwarded": len(self.fragments)},
                    )
                    return
                if kind == _END or is_done_frame(payload):
                    break
                try:
                    fragment = parse_frame(payload)
                except StreamParseError as exc:
                    STREAM_FRAMES.labels(outcome="malformed").inc()
                    LOG.warning(
                        "stream_frame_malformed",
                        extra={"frame": exc.frame[:200], "err": str(exc.__cause__ or exc)},
                    )
                    continue
                if not fragment:
                    STREAM_FRAMES.labels(outcome="skipped").inc()
                    continue
                self.fragments.append(fragment)
                STREAM_FRAMES.labels(outcome="forwarded").inc()
                yield format_event(fragment)
            self.state = RelayState.DONE
            LOG.debug("stream_done", extra={"forwarded": len(self.fragments)})
            yield format_event(STREAM_DONE_MARKER)
        except Exception:
            self.state = RelayState.ERROR
            LOG.exception("stream_relay_failed", extra={"forwarded": len(self.fragments)})
            raise
        finally:
            if self.state is RelayState.STREAMING:
                self.state = RelayState.ERROR
                LOG.info("stream_cancelled", extra={"forwarded": len(self.fragments)})
            self.close()
            self._drain()
