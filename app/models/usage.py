from pydantic import BaseModel, Field, computed_field
from typing import Dict, List

from app.models.interview import InterviewDetail


class QuotaSnapshot(BaseModel):
    """Point-in-time view of an account's conversation minutes."""

    total: int
    used: int

    @computed_field
    @property
    def remaining(self) -> int:
        return self.total - self.used

    @classmethod
    def from_profile(cls, profile: Dict) -> "QuotaSnapshot":
        return cls(
            total=profile.get("total_conversation_minutes") or 0,
            used=profile.get("used_conversation_minutes") or 0,
        )


# Minutes granted per billing interval for each subscription plan
PLAN_MINUTES: Dict[str, Dict[str, int]] = {
    "free": {"monthly": 25, "yearly": 25},
    "intro": {"monthly": 60, "yearly": 720},
    "professional": {"monthly": 330, "yearly": 3960},
    "executive": {"monthly": 900, "yearly": 10800},
}


class DashboardStats(BaseModel):
    """Summary figures for an account's home screen."""

    total_interviews: int
    completed_interviews: int
    average_score: int
    conversation_minutes: QuotaSnapshot
    recent_interviews: List[InterviewDetail] = Field(default_factory=list)
