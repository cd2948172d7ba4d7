from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

from app.models.interview import InterviewModel
from app.models.reference import ReferenceEntry


class CreateInterviewRequest(BaseModel):
    interview_type: str = ""
    role: str = ""
    company: str = ""
    experience: str = ""
    difficulty: str = ""
    duration: int = Field(20, description="Minutes to reserve")
    scheduled_at: Optional[datetime] = None
    interview_mode: Optional[Literal["single", "complete"]] = None


class UpdateInterviewRequest(BaseModel):
    title: Optional[str] = None
    role: Optional[str] = None
    company: Optional[str] = None
    interview_type: Optional[str] = None
    experience: Optional[str] = None
    difficulty: Optional[str] = None
    duration: Optional[int] = None
    scheduled_at: Optional[datetime] = None


class RetryPromptRequest(BaseModel):
    account_name: Optional[str] = None


class StartFeedbackRequest(BaseModel):
    conversation_id: str


class InterviewResponse(BaseModel):
    id: str
    title: str
    role: str
    company: Optional[str] = None
    interview_type_id: int
    experience_level_id: Optional[int] = None
    difficulty_level_id: int
    duration: int
    scheduled_at: datetime
    status: str
    score: Optional[int] = None
    prompt_status: str
    prompt_error: Optional[str] = None
    llm_generated_context: Optional[str] = None
    llm_generated_greeting: Optional[str] = None
    tavus_persona_id: Optional[str] = None
    tavus_conversation_id: Optional[str] = None
    tavus_conversation_url: Optional[str] = None
    feedback_processing_status: str
    completed_at: Optional[datetime] = None
    created_at: datetime
    interview_type: Optional[ReferenceEntry] = None
    experience_level: Optional[ReferenceEntry] = None
    difficulty_level: Optional[ReferenceEntry] = None

    @classmethod
    def from_model(cls, interview: InterviewModel) -> "InterviewResponse":
        return cls(id=str(interview.id), **interview.model_dump(exclude={"id", "user_id"}))


class DeleteInterviewResponse(BaseModel):
    id: str
    deleted: bool = True
    released_minutes: int
