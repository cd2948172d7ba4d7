"""Live session router."""
from fastapi import APIRouter, Depends
from typing import Optional

from app.schemas.session import (
    StartSessionRequest,
    ConversationResponse,
    EndSessionResponse,
    SessionStatusResponse
)
from app.services.interview_service import InterviewService
from app.services.session_service import SessionOrchestrator, SessionOverrides
from app.utils.dependencies import (
    get_current_account,
    get_interview_service,
    get_session_orchestrator
)


router = APIRouter(prefix="/api/v1", tags=["Sessions"])


@router.post("/interviews/{interview_id}/session", response_model=ConversationResponse)
async def start_session(
    interview_id: str,
    request: Optional[StartSessionRequest] = None,
    account_id: str = Depends(get_current_account),
    interviews: InterviewService = Depends(get_interview_service),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator)
):
    """Create (or resume) the video conversation for an interview."""
    interview = await interviews.get_interview(interview_id, account_id)
    overrides = SessionOverrides(**request.model_dump()) if request else None
    conversation = await orchestrator.start_session(interview, overrides)
    return ConversationResponse(
        interview_id=str(interview.id),
        conversation_id=conversation.conversation_id,
        conversation_url=conversation.conversation_url,
        status=conversation.status,
        created_at=conversation.created_at
    )


@router.post("/sessions/{conversation_id}/end", response_model=EndSessionResponse)
async def end_session(
    conversation_id: str,
    account_id: str = Depends(get_current_account),
    interviews: InterviewService = Depends(get_interview_service),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator)
):
    """End a conversation; safe to call more than once."""
    await interviews.find_by_conversation(conversation_id, account_id)
    ended = await orchestrator.end_session(conversation_id)
    return EndSessionResponse(
        conversation_id=conversation_id,
        ended=ended,
        already_ended=not ended
    )


@router.get("/sessions/{conversation_id}", response_model=SessionStatusResponse)
async def get_session_status(
    conversation_id: str,
    account_id: str = Depends(get_current_account),
    interviews: InterviewService = Depends(get_interview_service),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator)
):
    """Provider-side status of a conversation."""
    await interviews.find_by_conversation(conversation_id, account_id)
    details = await orchestrator.get_status(conversation_id)
    return SessionStatusResponse(
        conversation_id=conversation_id,
        status=details.get("status"),
        details=details
    )
