"""Authentication and service dependencies."""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.config import settings
from app.database import get_db
from app.exceptions import ConfigurationError
from app.services.feedback_service import FeedbackService
from app.services.interview_service import InterviewService
from app.services.quota_service import QuotaLedger
from app.services.reference_service import ReferenceDataResolver
from app.services.session_service import SessionOrchestrator
from app.services.stats_service import StatsService
from app.utils.security import decode_token


security = HTTPBearer()

_orchestrator: Optional[SessionOrchestrator] = None


async def get_current_account(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> str:
    """Account id from the bearer token; opens the account on first sight."""
    if not settings.jwt_secret_key:
        raise ConfigurationError("JWT secret not configured")

    payload = decode_token(credentials.credentials)
    if payload is None or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account_id = payload["sub"]
    metadata = payload.get("user_metadata") or {}
    email = payload.get("email") or ""
    name = metadata.get("full_name") or metadata.get("name") or email.split("@")[0] or None
    await QuotaLedger(db).open_account(account_id, name)
    return account_id


async def require_admin(x_admin_key: str = Header(default="")):
    """Guard for billing-driven quota changes."""
    if not settings.admin_api_key:
        raise ConfigurationError("Admin API key not configured")
    if x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin key")


def get_quota_ledger(db: AsyncIOMotorDatabase = Depends(get_db)) -> QuotaLedger:
    return QuotaLedger(db)


def get_reference_resolver(db: AsyncIOMotorDatabase = Depends(get_db)) -> ReferenceDataResolver:
    return ReferenceDataResolver(db)


def get_interview_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> InterviewService:
    return InterviewService(db)


def get_feedback_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> FeedbackService:
    return FeedbackService(db)


def get_stats_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> StatsService:
    return StatsService(db)


def get_session_orchestrator(db: AsyncIOMotorDatabase = Depends(get_db)) -> SessionOrchestrator:
    """Shared orchestrator; its conversation cache outlives single requests."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SessionOrchestrator(db)
    return _orchestrator
