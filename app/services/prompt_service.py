"""Background worker that turns prompt_generation jobs into interviewer prompts."""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from openai import AsyncOpenAI, OpenAIError
from pymongo import ReturnDocument

from app.config import settings
from app.database import store_errors
from app.exceptions import InterviewEngineError
from app.models.interview import InterviewModel
from app.models.job import JobModel
from app.services.job_queue import PROMPT_GENERATION_JOB, JobQueue
from app.services.reference_service import (
    DIFFICULTY_LEVELS,
    EXPERIENCE_LEVELS,
    INTERVIEW_TYPES,
    ReferenceDataResolver,
)
from app.utils.prompt_generator import SYSTEM_MESSAGE, generate_interviewer_prompt

logger = logging.getLogger(__name__)


class PromptGenerationService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        self.collection = db["interviews"]
        self.jobs = JobQueue(db)
        self.reference = ReferenceDataResolver(db)
        self.client = client or AsyncOpenAI(api_key=settings.openai_api_key)
        self.model = model or settings.openai_model

    async def process_next(self) -> bool:
        """Handle one queued job. Returns False when there was nothing to do."""
        job = await self.jobs.claim(PROMPT_GENERATION_JOB)
        if job is None:
            return False
        await self._process(job)
        return True

    async def run(self, stop: asyncio.Event):
        """Poll the queue until `stop` is set."""
        logger.info("Prompt generation worker started")
        while not stop.is_set():
            try:
                processed = await self.process_next()
            except InterviewEngineError as e:
                logger.error("Prompt generation worker error: %s", e)
                processed = False
            except Exception:
                logger.exception("Prompt generation worker crashed on a job; continuing")
                processed = False
            if processed:
                continue
            try:
                await asyncio.wait_for(stop.wait(), timeout=settings.prompt_worker_poll_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Prompt generation worker stopped")

    async def _process(self, job: JobModel):
        interview_id = job.payload.get("interview_id")
        if not ObjectId.is_valid(interview_id or ""):
            await self.jobs.fail(job.id, f"Invalid interview id {interview_id!r}")
            return
        with store_errors("start prompt generation"):
            doc = await self.collection.find_one_and_update(
                {"_id": ObjectId(interview_id), "prompt_status": {"$in": ["pending", "generating"]}},
                {"$set": {"prompt_status": "generating", "updated_at": datetime.now(timezone.utc)}},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            # Deleted, or already ready/failed through another job
            logger.info("Skipping prompt generation for interview %s", interview_id)
            await self.jobs.complete(job.id)
            return

        interview = InterviewModel(**doc)
        try:
            context, greeting = await self._generate(interview, job.payload.get("user_name") or "Candidate")
        except (OpenAIError, ValueError, KeyError) as e:
            logger.error("Prompt generation failed for interview %s: %s", interview.id, e)
            await self._record_failure(interview, job, str(e) or type(e).__name__)
            return
        except Exception as e:
            logger.exception("Unexpected prompt generation error for interview %s", interview.id)
            await self._record_failure(interview, job, f"{type(e).__name__}: {e}")
            return

        with store_errors("store generated prompt"):
            await self.collection.update_one(
                {"_id": interview.id, "prompt_status": "generating"},
                {
                    "$set": {
                        "prompt_status": "ready",
                        "llm_generated_context": context,
                        "llm_generated_greeting": greeting,
                        "updated_at": datetime.now(timezone.utc),
                    },
                    "$unset": {"prompt_error": ""},
                },
            )
        await self.jobs.complete(job.id)
        logger.info("Prompt ready for interview %s", interview.id)

    async def _record_failure(self, interview: InterviewModel, job: JobModel, message: str):
        with store_errors("record prompt failure"):
            await self.collection.update_one(
                {"_id": interview.id, "prompt_status": "generating"},
                {"$set": {
                    "prompt_status": "failed",
                    "prompt_error": message,
                    "updated_at": datetime.now(timezone.utc),
                }},
            )
        await self.jobs.fail(job.id, message)

    async def _generate(self, interview: InterviewModel, user_name: str):
        catalogs = await self.reference.catalogs()
        interview_type = catalogs[INTERVIEW_TYPES].get(interview.interview_type_id)
        experience = catalogs[EXPERIENCE_LEVELS].get(interview.experience_level_id)
        difficulty = catalogs[DIFFICULTY_LEVELS].get(interview.difficulty_level_id)

        prompt = generate_interviewer_prompt(
            interview_type=interview_type.value if interview_type else "mixed",
            role=interview.role,
            company=interview.company,
            experience_level=experience.value if experience else None,
            difficulty_level=difficulty.value if difficulty else None,
            user_name=user_name,
            duration_minutes=interview.duration,
        )
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=0.7,
        )
        result = json.loads(response.choices[0].message.content or "")
        if not isinstance(result, dict):
            raise ValueError("Prompt generation returned a non-object payload")
        context = (result.get("conversational_context") or "").strip()
        greeting = (result.get("custom_greeting") or "").strip()
        if not context or not greeting:
            raise ValueError("Prompt generation returned an incomplete payload")
        return context, greeting
