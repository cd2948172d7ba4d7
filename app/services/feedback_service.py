"""Hands finished sessions to the feedback pipeline and reads its results back."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.database import store_errors
from app.exceptions import InterviewEngineError, NotFoundError, RemoteServiceError, StateConflictError
from app.models.feedback import FeedbackDetail, FeedbackInterview, FeedbackModel
from app.models.interview import InterviewModel
from app.services.interview_service import find_interview
from app.services.job_queue import FEEDBACK_PROCESSING_JOB, JobQueue

logger = logging.getLogger(__name__)


class FeedbackService:
    """Moves `feedback_processing_status` into `processing` and queues the work.

    The downstream consumer writes `completed` or `failed` and the feedback
    document; this service only reads those documents back.
    """

    def __init__(self, db: AsyncIOMotorDatabase, jobs: Optional[JobQueue] = None):
        self.collection = db["interviews"]
        self.feedback = db["feedback"]
        self.jobs = jobs or JobQueue(db)

    async def start_feedback_processing(
        self,
        interview_id,
        conversation_id: str,
        account_id: Optional[str] = None,
    ) -> InterviewModel:
        interview = await find_interview(self.collection, interview_id, account_id)

        if not interview.tavus_conversation_id:
            raise StateConflictError(f"Interview {interview.id} has no session to process")
        if interview.tavus_conversation_id != conversation_id:
            raise StateConflictError(
                f"Conversation {conversation_id} does not belong to interview {interview.id}"
            )

        previous = interview.feedback_processing_status
        if previous == "processing":
            logger.info("Feedback for interview %s is already processing", interview.id)
            return interview
        if previous == "completed":
            raise StateConflictError(f"Feedback for interview {interview.id} is already complete")

        with store_errors("start feedback processing"):
            doc = await self.collection.find_one_and_update(
                {"_id": interview.id, "feedback_processing_status": previous},
                {"$set": {
                    "feedback_processing_status": "processing",
                    "feedback_requested_at": datetime.now(timezone.utc),
                    "updated_at": datetime.now(timezone.utc),
                }},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            current = await find_interview(self.collection, interview.id)
            if current.feedback_processing_status == "processing":
                return current
            raise StateConflictError(
                f"Feedback status changed to {current.feedback_processing_status}"
            )

        try:
            await self.jobs.submit(FEEDBACK_PROCESSING_JOB, {
                "interview_id": str(interview.id),
                "tavus_conversation_id": conversation_id,
            })
        except InterviewEngineError as e:
            logger.error("Error starting feedback processing for %s: %s", interview.id, e)
            try:
                with store_errors("restore feedback status"):
                    await self.collection.update_one(
                        {"_id": interview.id, "feedback_processing_status": "processing"},
                        {"$set": {"feedback_processing_status": previous}},
                    )
            except RemoteServiceError as restore_error:
                logger.error("Could not restore feedback status for %s: %s", interview.id, restore_error)
            raise

        logger.info("Feedback processing started for interview %s", interview.id)
        return InterviewModel(**doc)

    async def get_feedback(self, interview_id, account_id: Optional[str] = None) -> FeedbackModel:
        interview = await find_interview(self.collection, interview_id, account_id)
        with store_errors("load feedback"):
            doc = await self.feedback.find_one({"interview_id": interview.id})
        if not doc:
            raise NotFoundError(f"No feedback for interview {interview.id} yet")
        return FeedbackModel(**doc)

    async def list_feedback(self, account_id: str) -> List[FeedbackDetail]:
        """All feedback for the account's interviews, newest first."""
        with store_errors("list feedback"):
            interviews = await self.collection.find(
                {"user_id": account_id},
                {"title": 1, "role": 1, "company": 1, "scheduled_at": 1, "completed_at": 1},
            ).to_list(length=None)
            by_id = {doc["_id"]: doc for doc in interviews}
            if not by_id:
                return []
            docs = await self.feedback.find({"interview_id": {"$in": list(by_id)}}).sort(
                "created_at", DESCENDING
            ).to_list(length=None)

        results = []
        for doc in docs:
            interview = by_id[doc["interview_id"]]
            results.append(FeedbackDetail(
                **doc,
                interview=FeedbackInterview(
                    id=str(interview["_id"]),
                    title=interview["title"],
                    role=interview["role"],
                    company=interview.get("company"),
                    scheduled_at=interview["scheduled_at"],
                    completed_at=interview.get("completed_at"),
                ),
            ))
        return results
