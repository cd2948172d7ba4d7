from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.models.feedback import FeedbackInterview, FeedbackModel
from app.models.usage import DashboardStats
from app.schemas.interview import InterviewResponse


class FeedbackResponse(BaseModel):
    id: str
    interview_id: str
    overall_score: int
    summary: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    skill_scores: Dict[str, int] = Field(default_factory=dict)
    skill_feedback: Dict[str, str] = Field(default_factory=dict)
    tavus_conversation_id: Optional[str] = None
    transcript: Optional[str] = None
    tavus_analysis: Optional[Dict[str, Any]] = None
    created_at: datetime
    interview: Optional[FeedbackInterview] = None

    @classmethod
    def from_model(cls, feedback: FeedbackModel) -> "FeedbackResponse":
        return cls(
            id=str(feedback.id),
            interview_id=str(feedback.interview_id),
            **feedback.model_dump(exclude={"id", "interview_id"}),
        )


class MinutesSummary(BaseModel):
    total: int
    used: int
    remaining: int


class DashboardResponse(BaseModel):
    total_interviews: int
    completed_interviews: int
    average_score: int
    conversation_minutes: MinutesSummary
    recent_interviews: List[InterviewResponse]

    @classmethod
    def from_stats(cls, stats: DashboardStats) -> "DashboardResponse":
        return cls(
            total_interviews=stats.total_interviews,
            completed_interviews=stats.completed_interviews,
            average_score=stats.average_score,
            conversation_minutes=MinutesSummary(**stats.conversation_minutes.model_dump()),
            recent_interviews=[InterviewResponse.from_model(i) for i in stats.recent_interviews],
        )
