"""Conversation-minutes ledger."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.config import settings
from app.database import store_errors
from app.exceptions import (
    InsufficientQuotaError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.models.usage import PLAN_MINUTES, QuotaSnapshot
from app.models.user import ProfileModel

logger = logging.getLogger(__name__)

TOTAL = "total_conversation_minutes"
USED = "used_conversation_minutes"


def _check_minutes(minutes: int) -> None:
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes < 0:
        raise ValidationError(f"Minutes must be a non-negative integer, got {minutes!r}")


class QuotaLedger:
    """Owns `used_conversation_minutes` / `total_conversation_minutes` on profiles.

    Every mutation is a single conditional update evaluated by the store, so
    concurrent callers for the same account can never push `used` past
    `total` or below zero.
    """

    MAX_ATTEMPTS = 5

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["profiles"]

    async def open_account(self, account_id: str, name: Optional[str] = None) -> QuotaSnapshot:
        """Create the profile with the signup allotment if it does not exist yet."""
        signup = ProfileModel(
            _id=account_id,
            name=name or "Candidate",
            total_conversation_minutes=settings.default_conversation_minutes,
        )
        with store_errors("open account"):
            profile = await self.collection.find_one_and_update(
                {"_id": account_id},
                {"$setOnInsert": signup.model_dump(exclude={"id"})},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return QuotaSnapshot.from_profile(profile)

    async def read(self, account_id: str) -> QuotaSnapshot:
        with store_errors("read conversation minutes"):
            profile = await self.collection.find_one({"_id": account_id}, {TOTAL: 1, USED: 1})
        if profile is None:
            raise NotFoundError(f"Account {account_id} not found")
        return QuotaSnapshot.from_profile(profile)

    async def account_name(self, account_id: str) -> str:
        with store_errors("read profile"):
            profile = await self.collection.find_one({"_id": account_id}, {"name": 1})
        return (profile or {}).get("name") or "Candidate"

    async def reserve(self, account_id: str, minutes: int) -> QuotaSnapshot:
        """Consume `minutes` or raise InsufficientQuotaError without touching the ledger."""
        _check_minutes(minutes)
        for _ in range(self.MAX_ATTEMPTS):
            current = await self.read(account_id)
            if current.remaining < minutes:
                raise InsufficientQuotaError(remaining=max(current.remaining, 0), required=minutes)

            # total is pinned so a concurrent set_total forces a re-check
            with store_errors("reserve conversation minutes"):
                profile = await self.collection.find_one_and_update(
                    {
                        "_id": account_id,
                        TOTAL: current.total,
                        USED: {"$lte": current.total - minutes},
                    },
                    {
                        "$inc": {USED: minutes},
                        "$set": {"updated_at": datetime.now(timezone.utc)},
                    },
                    return_document=ReturnDocument.AFTER,
                )
            if profile is not None:
                snapshot = QuotaSnapshot.from_profile(profile)
                logger.info(
                    "Reserved %s minutes for %s (%s/%s used)",
                    minutes, account_id, snapshot.used, snapshot.total,
                )
                return snapshot
            logger.debug("Reservation for %s lost a race, re-checking", account_id)

        raise StateConflictError(
            f"Conversation minutes for account {account_id} changed concurrently; try again"
        )

    async def release(self, account_id: str, minutes: int) -> QuotaSnapshot:
        """Give back `minutes`; usage is floored at zero."""
        _check_minutes(minutes)
        if minutes == 0:
            return await self.read(account_id)

        for _ in range(self.MAX_ATTEMPTS):
            now = datetime.now(timezone.utc)
            with store_errors("release conversation minutes"):
                profile = await self.collection.find_one_and_update(
                    {"_id": account_id, USED: {"$gte": minutes}},
                    {"$inc": {USED: -minutes}, "$set": {"updated_at": now}},
                    return_document=ReturnDocument.AFTER,
                )
                if profile is None:
                    profile = await self.collection.find_one_and_update(
                        {"_id": account_id, USED: {"$lt": minutes}},
                        {"$set": {USED: 0, "updated_at": now}},
                        return_document=ReturnDocument.AFTER,
                    )
            if profile is not None:
                snapshot = QuotaSnapshot.from_profile(profile)
                logger.info(
                    "Released %s minutes for %s (%s/%s used)",
                    minutes, account_id, snapshot.used, snapshot.total,
                )
                return snapshot
            # Either the account is gone or usage moved between the two updates
            await self.read(account_id)

        raise StateConflictError(
            f"Conversation minutes for account {account_id} changed concurrently; try again"
        )

    async def set_total(self, account_id: str, new_total: int) -> QuotaSnapshot:
        """Replace the allotment; usage is left as is and must still fit."""
        return await self._set_total(account_id, new_total, {})

    async def apply_plan(self, account_id: str, plan: str, interval: str = "monthly") -> QuotaSnapshot:
        """Set the allotment granted by a subscription plan."""
        minutes = PLAN_MINUTES.get(plan, {}).get(interval)
        if minutes is None:
            raise ValidationError(f"Unknown subscription plan {plan!r} ({interval})")
        return await self._set_total(account_id, minutes, {"subscription_tier": plan})

    async def _set_total(self, account_id: str, new_total: int, extra: Dict[str, Any]) -> QuotaSnapshot:
        _check_minutes(new_total)
        with store_errors("set total conversation minutes"):
            profile = await self.collection.find_one_and_update(
                {"_id": account_id, USED: {"$lte": new_total}},
                {"$set": {TOTAL: new_total, "updated_at": datetime.now(timezone.utc), **extra}},
                return_document=ReturnDocument.AFTER,
            )
        if profile is None:
            current = await self.read(account_id)
            raise StateConflictError(
                f"Cannot set total to {new_total} minutes: {current.used} minutes are already in use"
            )
        logger.info("Set total conversation minutes for %s to %s", account_id, new_total)
        return QuotaSnapshot.from_profile(profile)
