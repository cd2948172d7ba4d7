from pydantic import BaseModel, Field
from typing import Literal


class QuotaResponse(BaseModel):
    account_id: str
    total: int
    used: int
    remaining: int


class SetTotalRequest(BaseModel):
    total: int = Field(..., ge=0)


class ApplyPlanRequest(BaseModel):
    plan: Literal["free", "intro", "professional", "executive"]
    interval: Literal["monthly", "yearly"] = "monthly"
