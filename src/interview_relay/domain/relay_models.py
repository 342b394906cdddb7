from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


SessionStatus = Literal["In Progress"]
SESSION_IN_PROGRESS: SessionStatus = "In Progress"

Sender = Literal["User", "AI", "Test"]
SENDER_USER: Sender = "User"
SENDER_AI: Sender = "AI"
SENDER_TEST: Sender = "Test"

STREAM_DONE_MARKER = "[STREAM_DONE]"


class StoreRecord(BaseModel):
    id: str
    fields: Dict[str, Any] = Field(default_factory=dict)
    created_time: Optional[str] = None


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VoiceChatRequest(_WireModel):
    stakeholder_id: Optional[str] = Field(default=None, alias="stakeholderID")
    project_id: Optional[str] = Field(default=None, alias="projectID")
    user_message: Optional[str] = Field(default=None, alias="userMessage")


class VoiceChatResponse(_WireModel):
    ai_response: str = Field(alias="aiResponse")


class StreamChatRequest(VoiceChatRequest):
    pass


class SpeechRequest(BaseModel):
    text: Optional[str] = None
    voice: Optional[str] = None


class ChatTurn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


def to_messages(turns: List[ChatTurn]) -> List[Dict[str, str]]:
    return [turn.model_dump() for turn in turns]
