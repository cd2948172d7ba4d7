"""Conversation-minutes router."""
from fastapi import APIRouter, Depends

from app.models.usage import QuotaSnapshot
from app.schemas.quota import QuotaResponse, SetTotalRequest, ApplyPlanRequest
from app.services.quota_service import QuotaLedger
from app.utils.dependencies import get_current_account, get_quota_ledger, require_admin


router = APIRouter(prefix="/api/v1/quota", tags=["Quota"])


def _response(account_id: str, snapshot: QuotaSnapshot) -> QuotaResponse:
    return QuotaResponse(
        account_id=account_id,
        total=snapshot.total,
        used=snapshot.used,
        remaining=snapshot.remaining
    )


@router.get("", response_model=QuotaResponse)
async def get_quota(
    account_id: str = Depends(get_current_account),
    ledger: QuotaLedger = Depends(get_quota_ledger)
):
    """Current total, used and remaining minutes for the caller."""
    return _response(account_id, await ledger.read(account_id))


@router.put("/{account_id}/total", response_model=QuotaResponse, dependencies=[Depends(require_admin)])
async def set_total(
    account_id: str,
    request: SetTotalRequest,
    ledger: QuotaLedger = Depends(get_quota_ledger)
):
    """Overwrite an account's total minutes."""
    return _response(account_id, await ledger.set_total(account_id, request.total))


@router.post("/{account_id}/plan", response_model=QuotaResponse, dependencies=[Depends(require_admin)])
async def apply_plan(
    account_id: str,
    request: ApplyPlanRequest,
    ledger: QuotaLedger = Depends(get_quota_ledger)
):
    """Apply a subscription plan's minute allotment."""
    return _response(account_id, await ledger.apply_plan(account_id, request.plan, request.interval))
