"""Feedback history and dashboard router."""
from fastapi import APIRouter, Depends
from typing import List

from app.schemas.feedback import DashboardResponse, FeedbackResponse
from app.services.feedback_service import FeedbackService
from app.services.stats_service import StatsService
from app.utils.dependencies import get_current_account, get_feedback_service, get_stats_service


router = APIRouter(prefix="/api/v1", tags=["Dashboard"])


@router.get("/feedback", response_model=List[FeedbackResponse])
async def list_feedback(
    account_id: str = Depends(get_current_account),
    service: FeedbackService = Depends(get_feedback_service)
):
    """Every feedback entry for the caller, newest first."""
    return [FeedbackResponse.from_model(f) for f in await service.list_feedback(account_id)]


@router.get("/dashboard/stats", response_model=DashboardResponse)
async def dashboard_stats(
    account_id: str = Depends(get_current_account),
    service: StatsService = Depends(get_stats_service)
):
    """Interview counts, average score, minutes and the latest interviews."""
    return DashboardResponse.from_stats(await service.dashboard_stats(account_id))
