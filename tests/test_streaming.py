from __future__ import annotations

import asyncio
from typing import List

import pytest
import requests

from src.interview_relay.errors import StreamParseError
from src.interview_relay.services import streaming
from src.interview_relay.services.streaming import RelayState, StreamRelay

from .utils import ClosableFrames, delta_frame


def _collect(relay: StreamRelay) -> List[str]:
    async def run() -> List[str]:
        return [event async for event in relay.events()]

    return asyncio.run(run())


def test_parse_frame_extracts_delta_content():
    assert streaming.parse_frame(delta_frame("Hi")) == "Hi"
    assert streaming.parse_frame('{"choices":[{"delta":{"content":"raw"}}]}') == "raw"


def test_parse_frame_ignores_frames_without_content():
    assert streaming.parse_frame('data: {"choices":[{"delta":{"role":"assistant"}}]}') is None
    assert streaming.parse_frame('data: {"choices":[]}') is None
    assert streaming.parse_frame("   ") is None


def test_parse_frame_skips_frames_whose_choices_is_not_a_list():
    assert streaming.parse_frame('data: {"choices": 5}') is None
    assert streaming.parse_frame('data: {"choices": true}') is None
    assert streaming.parse_frame('data: {"choices": {"x": 1}}') is None
    assert streaming.parse_frame('data: {"choices": "text"}') is None


def test_parse_frame_rejects_malformed_json():
    with pytest.raises(StreamParseError):
        streaming.parse_frame("data: {not json")
    with pytest.raises(StreamParseError):
        streaming.parse_frame("data: [1, 2]")


def test_done_frame_detection():
    assert streaming.is_done_frame("data: [DONE]")
    assert streaming.is_done_frame("data:[DONE]")
    assert not streaming.is_done_frame(delta_frame("[DONE]"))


def test_relay_forwards_fragments_then_terminal_marker():
    frames = [
        'data: {"choices":[{"delta":{"content":"A"}}]}',
        'data: {"choices":[{"delta":{"content":"B"}}]}',
        "data: [DONE]",
    ]
    relay = StreamRelay(frames)

    assert relay.state is RelayState.IDLE
    events = _collect(relay)

    assert events == ["data: A\n\n", "data: B\n\n", "data: [STREAM_DONE]\n\n"]
    assert relay.state is RelayState.DONE
    assert relay.text == "AB"


def test_relay_skips_malformed_frame_without_reordering():
    frames = [delta_frame("first"), "data: {oops", delta_frame("second"), "data: [DONE]"]
    events = _collect(StreamRelay(frames))
    assert events == ["data: first\n\n", "data: second\n\n", "data: [STREAM_DONE]\n\n"]



def test_relay_skips_frame_with_unexpected_choices_shape():
    frames = [delta_frame("A"), 'data: {"choices": 5}', 'data: {"choices": {"x": 1}}', delta_frame("B"), "data: [DONE]"]
    relay = StreamRelay(frames)

    assert _collect(relay) == ["data: A\n\n", "data: B\n\n", "data: [STREAM_DONE]\n\n"]
    assert relay.state is RelayState.DONE


def test_relay_emits_marker_when_upstream_ends_without_sentinel():
    relay = StreamRelay([delta_frame("only")])
    assert _collect(relay) == ["data: only\n\n", "data: [STREAM_DONE]\n\n"]
    assert relay.state is RelayState.DONE


def test_relay_stops_reading_after_sentinel():
    relay = StreamRelay([delta_frame("a"), "data: [DONE]", delta_frame("late")])
    assert _collect(relay) == ["data: a\n\n", "data: [STREAM_DONE]\n\n"]


def test_relay_preserves_order_through_small_buffer():
    words = [f"w{i} " for i in range(50)]
    relay = StreamRelay([delta_frame(w) for w in words] + ["data: [DONE]"], buffer_size=1)
    events = _collect(relay)
    assert events[:-1] == [f"data: {w}\n\n" for w in words]
    assert events[-1] == "data: [STREAM_DONE]\n\n"


def test_relay_closes_without_marker_on_upstream_error():
    def frames():
        yield delta_frame("partial")
        raise requests.exceptions.ChunkedEncodingError("connection reset")

    relay = StreamRelay(frames())
    events = _collect(relay)

    assert events == ["data: partial\n\n"]
    assert relay.state is RelayState.ERROR


def test_relay_closes_upstream_when_caller_disconnects():
    upstream = ClosableFrames([delta_frame(str(i)) for i in range(100)])
    relay = StreamRelay(upstream, buffer_size=1)

    async def run() -> str:
        agen = relay.events()
        first = await agen.__anext__()
        await agen.aclose()
        return first

    assert asyncio.run(run()) == "data: 0\n\n"
    assert upstream.closed
    assert relay.state is RelayState.ERROR


def test_close_before_iteration_releases_upstream():
    upstream = ClosableFrames([delta_frame("never sent")])
    relay = StreamRelay(upstream)

    relay.close()
    relay.close()

    assert upstream.closed
    assert relay.state is RelayState.ERROR
    with pytest.raises(RuntimeError):
        _collect(relay)


def test_close_after_completion_keeps_done_state():
    upstream = ClosableFrames([delta_frame("x"), "data: [DONE]"])
    relay = StreamRelay(upstream)
    _collect(relay)

    relay.close()

    assert upstream.closed
    assert relay.state is RelayState.DONE


def test_relay_is_single_use():
    relay = StreamRelay([delta_frame("x")])
    _collect(relay)
    with pytest.raises(RuntimeError):
        _collect(relay)
