"""Tavus conversation models."""
from pydantic import BaseModel, ConfigDict
from typing import Optional


class Conversation(BaseModel):
    """Remote conversation as reported by the session provider."""

    model_config = ConfigDict(extra="ignore")

    conversation_id: str
    conversation_url: str
    status: str = "active"
    created_at: Optional[str] = None
