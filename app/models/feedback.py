"""Feedback written by the external review pipeline."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from bson import ObjectId
from app.models.user import PyObjectId


class FeedbackModel(BaseModel):
    """Assessment of one finished interview; at most one per interview."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    interview_id: PyObjectId
    overall_score: int = Field(..., ge=0, le=100)
    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    # e.g. {"technical": 80, "communication": 72}
    skill_scores: Dict[str, int] = Field(default_factory=dict)
    skill_feedback: Dict[str, str] = Field(default_factory=dict)
    tavus_conversation_id: Optional[str] = None
    transcript: Optional[str] = None
    tavus_analysis: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FeedbackInterview(BaseModel):
    """The interview fields shown next to a feedback entry."""

    id: str
    title: str
    role: str
    company: Optional[str] = None
    scheduled_at: datetime
    completed_at: Optional[datetime] = None


class FeedbackDetail(FeedbackModel):
    interview: FeedbackInterview
