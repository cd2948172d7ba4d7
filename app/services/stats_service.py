"""Dashboard figures derived from interviews and the minutes ledger."""
import asyncio
import logging
import math
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.usage import DashboardStats
from app.services.interview_service import InterviewService
from app.services.quota_service import QuotaLedger

logger = logging.getLogger(__name__)

RECENT_INTERVIEWS = 5


class StatsService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        interviews: Optional[InterviewService] = None,
        quota: Optional[QuotaLedger] = None,
    ):
        self.quota = quota or QuotaLedger(db)
        self.interviews = interviews or InterviewService(db, quota=self.quota)

    async def dashboard_stats(self, account_id: str) -> DashboardStats:
        interviews, minutes = await asyncio.gather(
            self.interviews.list_interviews(account_id),
            self.quota.read(account_id),
        )
        completed = [i for i in interviews if i.status == "completed"]
        average = 0
        if completed:
            # Half-up rounding of the mean; unscored interviews count as 0
            average = math.floor(sum(i.score or 0 for i in completed) / len(completed) + 0.5)
        logger.debug("Dashboard for %s: %d interviews, %d completed", account_id, len(interviews), len(completed))
        return DashboardStats(
            total_interviews=len(interviews),
            completed_interviews=len(completed),
            average_score=average,
            conversation_minutes=minutes,
            recent_interviews=interviews[:RECENT_INTERVIEWS],
        )
