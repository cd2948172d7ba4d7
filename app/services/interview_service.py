"""Service for managing interview records."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from app.database import store_errors
from app.exceptions import (
    InterviewEngineError,
    NotFoundError,
    ReferenceNotFoundError,
    RemoteServiceError,
    StateConflictError,
    ValidationError,
)
from app.models.interview import InterviewDetail, InterviewModel
from app.schemas.interview import CreateInterviewRequest, UpdateInterviewRequest
from app.services.job_queue import PROMPT_GENERATION_JOB, JobQueue
from app.services.quota_service import QuotaLedger
from app.services.reference_service import (
    DIFFICULTY_LEVELS,
    EXPERIENCE_LEVELS,
    INTERVIEW_TYPES,
    ReferenceDataResolver,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    "interview_type": "Interview type",
    "role": "Job role",
    "company": "Company",
    "experience": "Experience level",
    "difficulty": "Difficulty level",
}


def _as_object_id(interview_id) -> ObjectId:
    if isinstance(interview_id, ObjectId):
        return interview_id
    if isinstance(interview_id, str) and ObjectId.is_valid(interview_id):
        return ObjectId(interview_id)
    raise NotFoundError(f"Interview {interview_id} not found")


def _utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


async def find_interview(collection, interview_id, account_id: Optional[str] = None) -> InterviewModel:
    """Load one interview, optionally scoped to its owner."""
    query: Dict[str, Any] = {"_id": _as_object_id(interview_id)}
    if account_id is not None:
        query["user_id"] = account_id
    with store_errors("load interview"):
        doc = await collection.find_one(query)
    if not doc:
        raise NotFoundError(f"Interview {interview_id} not found")
    return InterviewModel(**doc)


class InterviewService:
    """Create, update, delete and list interviews; owns `prompt_status`.

    Minutes are reserved through the QuotaLedger before an interview is
    written and released again when a scheduled interview is canceled or
    deleted.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        quota: Optional[QuotaLedger] = None,
        reference: Optional[ReferenceDataResolver] = None,
        jobs: Optional[JobQueue] = None,
    ):
        self.collection = db["interviews"]
        self.quota = quota or QuotaLedger(db)
        self.reference = reference or ReferenceDataResolver(db)
        self.jobs = jobs or JobQueue(db)

    async def create_interview(self, account_id: str, form: CreateInterviewRequest) -> InterviewModel:
        """Reserve minutes, persist a scheduled interview and queue prompt generation."""
        for field, label in REQUIRED_FIELDS.items():
            if not (getattr(form, field) or "").strip():
                raise ValidationError(f"{label} is required")
        if form.duration <= 0:
            raise ValidationError("Duration must be a positive number of minutes")

        interview_type_id = await self.reference.resolve_interview_type(form.interview_type)
        if interview_type_id is None:
            raise ReferenceNotFoundError(f'Interview type "{form.interview_type}" not found')
        # Experience is optional
        experience_level_id = await self.reference.resolve_experience_level(form.experience)
        if experience_level_id is None:
            logger.warning("Experience level %r not found, leaving it unset", form.experience)
        difficulty_level_id = await self.reference.resolve_difficulty_level(form.difficulty)
        if difficulty_level_id is None:
            raise ReferenceNotFoundError(f'Difficulty level "{form.difficulty}" not found')

        await self.quota.reserve(account_id, form.duration)

        role = form.role.strip()
        if form.interview_mode == "complete":
            title = f"Complete {role} Interview"
        else:
            title = f"{role} {form.interview_type} Interview"
        scheduled_at = form.scheduled_at or datetime.now(timezone.utc) + timedelta(days=1)

        interview = InterviewModel(
            id=ObjectId(),
            user_id=account_id,
            title=title,
            role=role,
            company=form.company.strip(),
            interview_type_id=interview_type_id,
            experience_level_id=experience_level_id,
            difficulty_level_id=difficulty_level_id,
            duration=form.duration,
            scheduled_at=_utc(scheduled_at),
            status="scheduled",
            prompt_status="pending",
        )
        try:
            with store_errors("create interview"):
                await self.collection.insert_one(interview.model_dump(by_alias=True))
        except RemoteServiceError:
            await self._release_unless_written(account_id, interview.id, form.duration)
            raise

        logger.info("Created interview %s for %s (%s minutes)", interview.id, account_id, form.duration)

        try:
            account_name = await self.quota.account_name(account_id)
        except RemoteServiceError:
            account_name = "Candidate"
        await self._request_prompt_generation(interview, account_name)
        return interview

    async def get_interview(self, interview_id, account_id: Optional[str] = None) -> InterviewModel:
        return await find_interview(self.collection, interview_id, account_id)

    async def find_by_conversation(self, conversation_id: str, account_id: Optional[str] = None) -> InterviewModel:
        query: Dict[str, Any] = {"tavus_conversation_id": conversation_id}
        if account_id is not None:
            query["user_id"] = account_id
        with store_errors("load interview"):
            doc = await self.collection.find_one(query)
        if not doc:
            raise NotFoundError(f"No interview owns conversation {conversation_id}")
        return InterviewModel(**doc)

    async def list_interviews(self, account_id: str) -> List[InterviewDetail]:
        """Interviews newest-scheduled first, joined with reference labels."""
        with store_errors("list interviews"):
            docs = await self.collection.find({"user_id": account_id}).sort(
                "scheduled_at", DESCENDING
            ).to_list(length=None)
        catalogs = await self.reference.catalogs()
        return [
            InterviewDetail(
                **doc,
                interview_type=catalogs[INTERVIEW_TYPES].get(doc.get("interview_type_id")),
                experience_level=catalogs[EXPERIENCE_LEVELS].get(doc.get("experience_level_id")),
                difficulty_level=catalogs[DIFFICULTY_LEVELS].get(doc.get("difficulty_level_id")),
            )
            for doc in docs
        ]

    async def update_interview(
        self,
        interview_id,
        updates: UpdateInterviewRequest,
        account_id: Optional[str] = None,
    ) -> InterviewModel:
        """Apply a partial update; a duration change reserves or releases the delta."""
        interview = await self.get_interview(interview_id, account_id)
        if interview.status != "scheduled":
            raise StateConflictError(f"Cannot edit a {interview.status} interview")

        changes = updates.model_dump(exclude_unset=True)
        fields: Dict[str, Any] = {}

        for field in ("title", "role", "company"):
            if field in changes:
                value = (changes[field] or "").strip()
                if not value:
                    raise ValidationError(f"{REQUIRED_FIELDS.get(field, 'Title')} is required")
                fields[field] = value
        if "scheduled_at" in changes:
            if changes["scheduled_at"] is None:
                raise ValidationError("Scheduled time is required")
            fields["scheduled_at"] = _utc(changes["scheduled_at"])
        if changes.get("interview_type") is not None:
            type_id = await self.reference.resolve_interview_type(changes["interview_type"])
            if type_id is None:
                raise ReferenceNotFoundError(f'Interview type "{changes["interview_type"]}" not found')
            fields["interview_type_id"] = type_id
        if changes.get("experience") is not None:
            fields["experience_level_id"] = await self.reference.resolve_experience_level(changes["experience"])
        if changes.get("difficulty") is not None:
            difficulty_id = await self.reference.resolve_difficulty_level(changes["difficulty"])
            if difficulty_id is None:
                raise ReferenceNotFoundError(f'Difficulty level "{changes["difficulty"]}" not found')
            fields["difficulty_level_id"] = difficulty_id

        delta = 0
        if changes.get("duration") is not None:
            if changes["duration"] <= 0:
                raise ValidationError("Duration must be a positive number of minutes")
            delta = changes["duration"] - interview.duration
            fields["duration"] = changes["duration"]

        if not fields:
            return interview

        if delta > 0:
            await self.quota.reserve(interview.user_id, delta)

        fields["updated_at"] = datetime.now(timezone.utc)
        try:
            with store_errors("update interview"):
                doc = await self.collection.find_one_and_update(
                    {"_id": interview.id, "status": "scheduled", "duration": interview.duration},
                    {"$set": fields},
                    return_document=ReturnDocument.AFTER,
                )
        except RemoteServiceError:
            if delta > 0:
                await self._release_unless_written(
                    interview.user_id, interview.id, delta, expected_duration=fields["duration"]
                )
            raise

        if doc is None:
            if delta > 0:
                await self.quota.release(interview.user_id, delta)
            raise StateConflictError("Interview changed while it was being edited; reload and try again")

        if delta < 0:
            await self.quota.release(interview.user_id, -delta)
        logger.info("Updated interview %s (%s)", interview.id, ", ".join(sorted(fields)))
        return InterviewModel(**doc)

    async def cancel_interview(self, interview_id, account_id: Optional[str] = None) -> InterviewModel:
        """Mark a scheduled interview canceled and give its minutes back."""
        interview = await self.get_interview(interview_id, account_id)
        if interview.status == "canceled" and interview.quota_release_pending:
            # An earlier cancel stopped before its minutes were given back
            await self._settle_release(interview.id, interview.user_id, interview.quota_release_pending)
            return await self.get_interview(interview.id)

        doc = await self._mark_canceled(interview.id, interview.duration)
        if doc is None:
            raise StateConflictError(f"Only scheduled interviews can be canceled (status: {interview.status})")
        await self._settle_release(doc["_id"], doc["user_id"], doc["quota_release_pending"])
        logger.info("Canceled interview %s", interview.id)
        return await self.get_interview(interview.id)

    async def delete_interview(self, interview_id, account_id: Optional[str] = None) -> int:
        """Remove an interview; returns the minutes released back to the account.

        Completed interviews keep their minutes consumed and canceled ones
        were already released, so only scheduled interviews release. The
        record is removed only after the release went through.
        """
        interview = await self.get_interview(interview_id, account_id)

        pending = interview.quota_release_pending or 0
        if interview.status == "scheduled":
            doc = await self._mark_canceled(interview.id, interview.duration)
            if doc is None:
                # Status moved under us; settle whatever the record holds now
                current = await self.get_interview(interview.id)
                if current.status == "scheduled":
                    raise StateConflictError(f"Interview {interview.id} changed while being deleted")
                doc = current.model_dump(by_alias=True)
            pending = doc.get("quota_release_pending") or 0

        if pending:
            await self._settle_release(interview.id, interview.user_id, pending)

        with store_errors("delete interview"):
            await self.collection.delete_one({"_id": interview.id})
        logger.info("Deleted interview %s (released %s minutes)", interview.id, pending)
        return pending

    async def _mark_canceled(self, interview_id: ObjectId, duration: int) -> Optional[Dict[str, Any]]:
        """scheduled -> canceled, recording the minutes still owed back to the account."""
        with store_errors("cancel interview"):
            doc = await self.collection.find_one_and_update(
                {"_id": interview_id, "status": "scheduled", "duration": duration},
                {"$set": {
                    "status": "canceled",
                    "quota_release_pending": duration,
                    "updated_at": datetime.now(timezone.utc),
                }},
                return_document=ReturnDocument.AFTER,
            )
        return doc

    async def _settle_release(self, interview_id: ObjectId, account_id: str, minutes: int):
        """Give the minutes back, then clear the marker; a failed release keeps the marker for a retry."""
        await self.quota.release(account_id, minutes)
        with store_errors("clear pending release"):
            await self.collection.update_one(
                {"_id": interview_id, "quota_release_pending": minutes},
                {"$unset": {"quota_release_pending": ""}},
            )

    async def retry_prompt_generation(
        self,
        interview_id,
        account_name: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> InterviewModel:
        """Re-queue prompt generation for a failed interview.

        A retry while generation is already running is a no-op; any other
        state is a conflict and leaves the record untouched.
        """
        interview = await self.get_interview(interview_id, account_id)
        if interview.prompt_status == "generating":
            return interview
        if interview.prompt_status != "failed":
            raise StateConflictError(
                f"Prompt generation can only be retried after a failure (status: {interview.prompt_status})"
            )

        with store_errors("retry prompt generation"):
            doc = await self.collection.find_one_and_update(
                {"_id": interview.id, "prompt_status": "failed"},
                {
                    "$set": {"prompt_status": "generating", "updated_at": datetime.now(timezone.utc)},
                    "$unset": {"prompt_error": ""},
                },
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            current = await self.get_interview(interview.id)
            if current.prompt_status == "generating":
                return current
            raise StateConflictError(f"Prompt status changed to {current.prompt_status}")

        retried = InterviewModel(**doc)
        if account_name is None:
            account_name = await self.quota.account_name(retried.user_id)
        await self._request_prompt_generation(retried, account_name, raise_on_failure=True)
        return retried

    async def _request_prompt_generation(
        self,
        interview: InterviewModel,
        account_name: str,
        raise_on_failure: bool = False,
    ):
        """Submit the job; a failed submission leaves `prompt_status=failed` for a later retry."""
        try:
            await self.jobs.submit(PROMPT_GENERATION_JOB, {
                "interview_id": str(interview.id),
                "user_name": account_name or "Candidate",
            })
        except InterviewEngineError as e:
            logger.error("Error triggering prompt generation for %s: %s", interview.id, e)
            interview.prompt_status = "failed"
            interview.prompt_error = e.message
            try:
                with store_errors("mark prompt generation failed"):
                    await self.collection.update_one(
                        {"_id": interview.id},
                        {"$set": {"prompt_status": "failed", "prompt_error": e.message}},
                    )
            except RemoteServiceError as mark_error:
                logger.error("Could not record prompt failure for %s: %s", interview.id, mark_error)
            if raise_on_failure:
                raise

    async def _release_unless_written(
        self,
        account_id: str,
        interview_id: ObjectId,
        minutes: int,
        expected_duration: Optional[int] = None,
    ):
        """Undo a reservation only once the write is known not to have landed."""
        try:
            with store_errors("verify interview write"):
                doc = await self.collection.find_one({"_id": interview_id}, {"duration": 1})
        except RemoteServiceError:
            logger.error(
                "Could not verify interview %s; keeping %s reserved minutes for %s",
                interview_id, minutes, account_id,
            )
            return
        landed = doc is not None and (expected_duration is None or doc.get("duration") == expected_duration)
        if landed:
            logger.warning("Interview %s write landed despite the error; keeping reservation", interview_id)
            return
        await self.quota.release(account_id, minutes)
