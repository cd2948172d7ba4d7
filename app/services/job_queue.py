"""Job submission for background consumers (prompt generation, feedback)."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from app.database import store_errors
from app.models.job import JobModel

logger = logging.getLogger(__name__)

PROMPT_GENERATION_JOB = "prompt_generation"
FEEDBACK_PROCESSING_JOB = "feedback_processing"


class JobQueue:
    """A `jobs` collection used as a work queue.

    Producers only wait for the insert to be acknowledged; the outcome of
    the job is observed through the status fields the consumer writes.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db["jobs"]

    async def submit(self, kind: str, payload: Dict[str, Any]) -> str:
        job = JobModel(kind=kind, payload=payload)
        with store_errors(f"submit {kind} job"):
            result = await self.collection.insert_one(job.model_dump(by_alias=True, exclude={"id"}))
        logger.info("Queued %s job %s", kind, result.inserted_id)
        return str(result.inserted_id)

    async def claim(self, kind: str) -> Optional[JobModel]:
        """Take the oldest queued job of `kind`, or None when the queue is empty."""
        with store_errors(f"claim {kind} job"):
            doc = await self.collection.find_one_and_update(
                {"kind": kind, "status": "queued"},
                {
                    "$set": {"status": "running", "updated_at": datetime.now(timezone.utc)},
                    "$inc": {"attempts": 1},
                },
                sort=[("created_at", ASCENDING)],
                return_document=ReturnDocument.AFTER,
            )
        return JobModel(**doc) if doc else None

    async def complete(self, job_id: ObjectId):
        with store_errors("complete job"):
            await self.collection.update_one(
                {"_id": job_id},
                {"$set": {"status": "done", "updated_at": datetime.now(timezone.utc)}},
            )

    async def fail(self, job_id: ObjectId, error: str):
        with store_errors("fail job"):
            await self.collection.update_one(
                {"_id": job_id},
                {"$set": {"status": "failed", "error": error, "updated_at": datetime.now(timezone.utc)}},
            )
        logger.warning("Job %s failed: %s", job_id, error)
