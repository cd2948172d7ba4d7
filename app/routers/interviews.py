"""Interview router."""
from fastapi import APIRouter, Depends, status
from typing import List, Optional

from app.schemas.interview import (
    CreateInterviewRequest,
    UpdateInterviewRequest,
    RetryPromptRequest,
    StartFeedbackRequest,
    InterviewResponse,
    DeleteInterviewResponse
)
from app.schemas.feedback import FeedbackResponse
from app.services.feedback_service import FeedbackService
from app.services.interview_service import InterviewService
from app.services.session_service import SessionOrchestrator
from app.utils.dependencies import (
    get_current_account,
    get_feedback_service,
    get_interview_service,
    get_session_orchestrator
)


router = APIRouter(prefix="/api/v1/interviews", tags=["Interviews"])


@router.post("/", response_model=InterviewResponse, status_code=status.HTTP_201_CREATED)
async def create_interview(
    request: CreateInterviewRequest,
    account_id: str = Depends(get_current_account),
    service: InterviewService = Depends(get_interview_service)
):
    """Schedule an interview, reserving its minutes."""
    interview = await service.create_interview(account_id, request)
    return InterviewResponse.from_model(interview)


@router.get("/", response_model=List[InterviewResponse])
async def list_interviews(
    account_id: str = Depends(get_current_account),
    service: InterviewService = Depends(get_interview_service)
):
    """List the caller's interviews, newest scheduled first."""
    interviews = await service.list_interviews(account_id)
    return [InterviewResponse.from_model(interview) for interview in interviews]


@router.get("/{interview_id}", response_model=InterviewResponse)
async def get_interview(
    interview_id: str,
    account_id: str = Depends(get_current_account),
    service: InterviewService = Depends(get_interview_service)
):
    """Get interview details."""
    interview = await service.get_interview(interview_id, account_id)
    return InterviewResponse.from_model(interview)


@router.patch("/{interview_id}", response_model=InterviewResponse)
async def update_interview(
    interview_id: str,
    request: UpdateInterviewRequest,
    account_id: str = Depends(get_current_account),
    service: InterviewService = Depends(get_interview_service)
):
    """Edit a scheduled interview."""
    interview = await service.update_interview(interview_id, request, account_id)
    return InterviewResponse.from_model(interview)


@router.delete("/{interview_id}", response_model=DeleteInterviewResponse)
async def delete_interview(
    interview_id: str,
    account_id: str = Depends(get_current_account),
    service: InterviewService = Depends(get_interview_service),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator)
):
    """Delete an interview."""
    released = await service.delete_interview(interview_id, account_id)
    orchestrator.discard(interview_id)
    return DeleteInterviewResponse(id=interview_id, released_minutes=released)


@router.post("/{interview_id}/cancel", response_model=InterviewResponse)
async def cancel_interview(
    interview_id: str,
    account_id: str = Depends(get_current_account),
    service: InterviewService = Depends(get_interview_service),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator)
):
    """Cancel a scheduled interview and return its minutes."""
    interview = await service.cancel_interview(interview_id, account_id)
    orchestrator.discard(interview.id)
    return InterviewResponse.from_model(interview)


@router.post("/{interview_id}/retry-prompt", response_model=InterviewResponse)
async def retry_prompt_generation(
    interview_id: str,
    request: Optional[RetryPromptRequest] = None,
    account_id: str = Depends(get_current_account),
    service: InterviewService = Depends(get_interview_service)
):
    """Re-queue interviewer prompt generation after a failure."""
    interview = await service.retry_prompt_generation(
        interview_id,
        account_name=request.account_name if request else None,
        account_id=account_id
    )
    return InterviewResponse.from_model(interview)


@router.post("/{interview_id}/feedback", response_model=InterviewResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_feedback_processing(
    interview_id: str,
    request: StartFeedbackRequest,
    account_id: str = Depends(get_current_account),
    service: FeedbackService = Depends(get_feedback_service)
):
    """Hand a finished session to feedback processing."""
    interview = await service.start_feedback_processing(
        interview_id,
        request.conversation_id,
        account_id=account_id
    )
    return InterviewResponse.from_model(interview)


@router.get("/{interview_id}/feedback", response_model=FeedbackResponse)
async def get_feedback(
    interview_id: str,
    account_id: str = Depends(get_current_account),
    service: FeedbackService = Depends(get_feedback_service)
):
    """Feedback for one interview once the review pipeline has written it."""
    feedback = await service.get_feedback(interview_id, account_id)
    return FeedbackResponse.from_model(feedback)
