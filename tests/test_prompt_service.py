"""Tests for the prompt generation worker."""
import asyncio
import json
from types import SimpleNamespace

from openai import OpenAIError

from app.config import settings
from app.services.interview_service import InterviewService
from app.services.job_queue import PROMPT_GENERATION_JOB
from app.services.prompt_service import PromptGenerationService
from app.schemas.interview import CreateInterviewRequest

GOOD_REPLY = json.dumps({
    "conversational_context": "You are a hiring manager at Acme interviewing for Backend Engineer.",
    "custom_greeting": "Hi Ada Lovelace, today we'll talk about backend systems.",
})


class FakeCompletions:
    def __init__(self, content=GOOD_REPLY, error=None, choices=None):
        self.content = content
        self.error = error
        self.choices = choices
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.choices is not None:
            return SimpleNamespace(choices=self.choices)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def fake_client(**kwargs):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(**kwargs)))


async def create_interview(db, account_id):
    form = CreateInterviewRequest(
        interview_type="technical",
        role="Backend Engineer",
        company="Acme",
        experience="senior",
        difficulty="hard",
        duration=20,
    )
    return await InterviewService(db).create_interview(account_id, form)


async def test_worker_stores_generated_prompt(db, account):
    interview = await create_interview(db, account)
    client = fake_client()

    processed = await PromptGenerationService(db, client=client, model="test-model").process_next()

    assert processed is True
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["prompt_status"] == "ready"
    assert stored["llm_generated_context"].startswith("You are a hiring manager")
    assert stored["llm_generated_greeting"].startswith("Hi Ada Lovelace")
    job = await db["jobs"].find_one({"kind": PROMPT_GENERATION_JOB})
    assert job["status"] == "done"
    assert job["attempts"] == 1

    call = client.chat.completions.calls[0]
    assert call["model"] == "test-model"
    assert call["response_format"] == {"type": "json_object"}
    user_prompt = call["messages"][1]["content"]
    assert "Ada Lovelace" in user_prompt
    assert "**Experience level:** senior" in user_prompt
    assert "**Difficulty:** hard" in user_prompt


async def test_empty_queue(db):
    assert await PromptGenerationService(db, client=fake_client()).process_next() is False


async def test_incomplete_reply_marks_prompt_failed(db, account):
    interview = await create_interview(db, account)

    await PromptGenerationService(db, client=fake_client(content='{"custom_greeting": "Hi"}')).process_next()

    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["prompt_status"] == "failed"
    assert "incomplete" in stored["prompt_error"]
    job = await db["jobs"].find_one({"kind": PROMPT_GENERATION_JOB})
    assert job["status"] == "failed"


async def test_provider_error_then_retry_succeeds(db, account):
    interview = await create_interview(db, account)

    await PromptGenerationService(db, client=fake_client(error=OpenAIError("rate limited"))).process_next()
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["prompt_status"] == "failed"
    assert stored["prompt_error"] == "rate limited"

    await InterviewService(db).retry_prompt_generation(interview.id)
    await PromptGenerationService(db, client=fake_client()).process_next()

    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["prompt_status"] == "ready"
    assert "prompt_error" not in stored


async def test_job_for_deleted_interview_is_skipped(db, account):
    interview = await create_interview(db, account)
    await InterviewService(db).delete_interview(interview.id)
    client = fake_client()

    assert await PromptGenerationService(db, client=client).process_next() is True

    assert client.chat.completions.calls == []
    job = await db["jobs"].find_one({"kind": PROMPT_GENERATION_JOB})
    assert job["status"] == "done"


async def test_run_drains_queue_until_stopped(db, account, monkeypatch):
    monkeypatch.setattr(settings, "prompt_worker_poll_seconds", 0.01)
    first = await create_interview(db, account)
    second = await create_interview(db, account)
    stop = asyncio.Event()

    task = asyncio.create_task(PromptGenerationService(db, client=fake_client()).run(stop))
    for _ in range(100):
        ready = await db["interviews"].count_documents({"prompt_status": "ready"})
        if ready == 2:
            break
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    for interview in (first, second):
        stored = await db["interviews"].find_one({"_id": interview.id})
        assert stored["prompt_status"] == "ready"


async def test_unexpected_reply_shape_marks_prompt_failed(db, account):
    interview = await create_interview(db, account)

    await PromptGenerationService(db, client=fake_client(choices=[])).process_next()

    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["prompt_status"] == "failed"
    assert stored["prompt_error"].startswith("IndexError")
    job = await db["jobs"].find_one({"kind": PROMPT_GENERATION_JOB})
    assert job["status"] == "failed"


class CrashingOnceService(PromptGenerationService):
    crashed = False

    async def process_next(self):
        if not self.crashed:
            self.crashed = True
            raise RuntimeError("worker bug")
        return await super().process_next()


async def test_run_survives_unexpected_worker_error(db, account, monkeypatch):
    monkeypatch.setattr(settings, "prompt_worker_poll_seconds", 0.01)
    interview = await create_interview(db, account)
    stop = asyncio.Event()
    worker = CrashingOnceService(db, client=fake_client())

    task = asyncio.create_task(worker.run(stop))
    for _ in range(100):
        if await db["interviews"].count_documents({"prompt_status": "ready"}) == 1:
            break
        await asyncio.sleep(0.01)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert worker.crashed is True
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["prompt_status"] == "ready"
