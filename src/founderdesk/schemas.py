"""Request and response bodies of the HTTP API."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .models import Scenario


class ChatRequest(BaseModel):
    message: str = Field(..., description="User message text")
    session_id: Optional[str] = Field(None, description="Optional client session id")


class CofounderChatRequest(ChatRequest):
    scenario: Optional[Scenario] = Field(None, description="Startup scenario being discussed")


class ResetRequest(BaseModel):
    session_id: Optional[str] = None


class CofounderResetRequest(ResetRequest):
    scenario: Optional[Scenario] = None


class MessageOut(BaseModel):
    role: str
    text: str


class TurnResponse(BaseModel):
    session_key: str
    reply: str
    sections: Dict[str, Any] = Field(default_factory=dict)
    history: List[MessageOut] = Field(default_factory=list)


class ResetResponse(BaseModel):
    session_key: str
    greeting: str


class SpeechRequest(BaseModel):
    text: str
    voice_id: Optional[str] = None
    output_format: Literal["mp3", "wav"] = "mp3"
