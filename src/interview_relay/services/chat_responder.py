from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from ..domain.relay_models import ChatTurn, to_messages
from ..errors import UpstreamError
from .completion_client import CompletionClient
from .streaming import StreamRelay


LOG = logging.getLogger("relay.llm")

DEFAULT_STREAM_SYSTEM_PROMPT = "You are a helpful assistant."


def interview_system_prompt(project_id: Optional[str]) -> str:
    return (
        "You are an AI that interviews stakeholders about project requirements. "
        f"This session is for ProjectID: {project_id}."
    )


def build_messages(user_message: str, project_id: Optional[str] = None, *, interview: bool = True) -> List[Dict[str, str]]:
    """Two-turn prompt: a system instruction and the raw user text."""
    system = interview_system_prompt(project_id) if interview else DEFAULT_STREAM_SYSTEM_PROMPT
    return to_messages(
        [
            ChatTurn(role="system", content=system),
            ChatTurn(role="user", content=user_message),
        ]
    )


def extract_reply(data: Dict[str, Any]) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise UpstreamError("completion", "Completion response has no choices")
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise UpstreamError("completion", "Completion response has no message content")
    return content


class ChatResponder:
    def __init__(
        self,
        client: CompletionClient,
        model: str = "gpt-4o-realtime-preview",
        stream_model: str = "gpt-4o",
        stream_buffer: int = 32,
    ) -> None:
        self._client = client
        self.model = model
        self.stream_model = stream_model
        self._stream_buffer = stream_buffer

    def respond(self, session_id: str, project_id: Optional[str], user_message: str) -> str:
        """Return the assistant's reply verbatim for one user turn."""
        messages = build_messages(user_message, project_id)
        LOG.info("chat_respond", extra={"session_id": session_id, "model": self.model})
        data = self._client.create_chat_completion(self.model, messages)
        return extract_reply(data)

    def respond_streaming(self, user_message: str) -> StreamRelay:
        """Open the upstream stream and wrap it in a relay.

        The upstream call is made here, so connection and status errors raise
        ``UpstreamError`` before the caller commits to a streaming response.
        """
        messages = build_messages(user_message, interview=False)
        LOG.info("chat_respond_streaming", extra={"model": self.stream_model})
        upstream = self._client.open_stream(self.stream_model, messages)
        return StreamRelay(upstream, buffer_size=self._stream_buffer)
