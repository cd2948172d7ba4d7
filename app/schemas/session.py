from pydantic import BaseModel
from typing import Any, Dict, Optional


class StartSessionRequest(BaseModel):
    persona_id: Optional[str] = None
    conversational_context: Optional[str] = None
    custom_greeting: Optional[str] = None
    initial_conversation_url: Optional[str] = None


class ConversationResponse(BaseModel):
    interview_id: str
    conversation_id: str
    conversation_url: str
    status: str
    created_at: Optional[str] = None


class EndSessionResponse(BaseModel):
    conversation_id: str
    ended: bool
    already_ended: bool


class SessionStatusResponse(BaseModel):
    conversation_id: str
    status: Optional[str] = None
    details: Dict[str, Any]
