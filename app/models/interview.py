"""Interview record models."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import datetime, timezone
from bson import ObjectId
from app.models.user import PyObjectId
from app.models.reference import ReferenceEntry

InterviewStatus = Literal["scheduled", "completed", "canceled"]
PromptStatus = Literal["pending", "generating", "ready", "failed"]
FeedbackStatus = Literal["pending", "processing", "completed", "failed"]


class InterviewModel(BaseModel):
    """One scheduled practice interview."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    user_id: str = Field(..., description="Owning account")

    title: str
    role: str
    company: Optional[str] = None
    interview_type_id: int
    experience_level_id: Optional[int] = None
    difficulty_level_id: int
    duration: int = Field(..., gt=0, description="Reserved conversation minutes")
    scheduled_at: datetime

    status: InterviewStatus = "scheduled"
    # Minutes owed back to the account while a cancel or delete is unfinished
    quota_release_pending: Optional[int] = None
    score: Optional[int] = Field(default=None, ge=0, le=100)
    completed_at: Optional[datetime] = None

    # Prompt generation
    prompt_status: PromptStatus = "pending"
    prompt_error: Optional[str] = None
    llm_generated_context: Optional[str] = None
    llm_generated_greeting: Optional[str] = None

    # Live session (conversation id is written at most once)
    tavus_persona_id: Optional[str] = None
    tavus_conversation_id: Optional[str] = None
    tavus_conversation_url: Optional[str] = None

    # Feedback pipeline
    feedback_processing_status: FeedbackStatus = "pending"
    feedback_requested_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InterviewDetail(InterviewModel):
    """Interview joined with its reference-data labels."""

    interview_type: Optional[ReferenceEntry] = None
    experience_level: Optional[ReferenceEntry] = None
    difficulty_level: Optional[ReferenceEntry] = None
