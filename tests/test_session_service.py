"""Tests for live session orchestration."""
import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest
from bson import ObjectId

from app.exceptions import ConfigurationError, RemoteServiceError, StateConflictError
from app.models.interview import InterviewModel
from app.services.session_service import (
    ContextualPersona,
    DefaultPersona,
    ExplicitPersona,
    SessionOrchestrator,
    SessionOverrides,
    adopt_conversation_url,
    select_strategy,
)
from app.services.tavus_service import TavusService


class FakeTavus:
    """Stands in for the Tavus API behind an httpx MockTransport."""

    def __init__(self, end_status=200, create_status=200):
        self.end_status = end_status
        self.create_status = create_status
        self.requests = []
        self.created = 0

    @property
    def creates(self):
        return [r for r in self.requests if r["method"] == "POST" and r["path"].endswith("/conversations")]

    @property
    def ends(self):
        return [r for r in self.requests if r["path"].endswith("/end")]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({
            "method": request.method,
            "path": request.url.path,
            "body": json.loads(request.content) if request.content else None,
        })
        if request.url.path.endswith("/end"):
            return httpx.Response(self.end_status, text="" if self.end_status < 400 else "already ended")
        if request.method == "POST":
            if self.create_status >= 400:
                return httpx.Response(self.create_status, text='{"error": "replica not found"}')
            self.created += 1
            conversation_id = f"c{self.created}"
            return httpx.Response(200, json={
                "conversation_id": conversation_id,
                "conversation_url": f"https://tavus.daily.co/{conversation_id}",
                "status": "active",
                "created_at": "2030-01-01T10:00:00Z",
            })
        return httpx.Response(200, json={"conversation_id": request.url.path.split("/")[-1], "status": "ended"})


def make_orchestrator(db, fake, config, api_key="test-key") -> SessionOrchestrator:
    tavus = TavusService(api_key=api_key, base_url="https://tavus.test/v2", transport=httpx.MockTransport(fake))
    return SessionOrchestrator(db, tavus=tavus, config=config)


async def insert_interview(db, **overrides) -> InterviewModel:
    data = dict(
        id=ObjectId(),
        user_id="acct-1",
        title="Backend Engineer technical Interview",
        role="Backend Engineer",
        company="Acme",
        interview_type_id=1,
        difficulty_level_id=2,
        duration=20,
        scheduled_at=datetime(2030, 1, 1, 10, tzinfo=timezone.utc),
    )
    data.update(overrides)
    interview = InterviewModel(**data)
    await db["interviews"].insert_one(interview.model_dump(by_alias=True))
    return interview


async def test_start_session_creates_once_and_persists(db, tavus_settings):
    fake = FakeTavus()
    orchestrator = make_orchestrator(db, fake, tavus_settings)
    interview = await insert_interview(db)

    first = await orchestrator.start_session(interview)
    second = await orchestrator.start_session(interview)

    assert first.conversation_id == second.conversation_id == "c1"
    assert len(fake.creates) == 1
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["tavus_conversation_id"] == "c1"
    assert stored["tavus_conversation_url"] == "https://tavus.daily.co/c1"


async def test_concurrent_starts_create_one_conversation(db, tavus_settings):
    fake = FakeTavus()
    orchestrator = make_orchestrator(db, fake, tavus_settings)
    interview = await insert_interview(db)

    results = await asyncio.gather(*(orchestrator.start_session(interview) for _ in range(3)))

    assert {c.conversation_id for c in results} == {"c1"}
    assert len(fake.creates) == 1


async def test_default_configuration(db, tavus_settings):
    fake = FakeTavus()
    interview = await insert_interview(db)

    await make_orchestrator(db, fake, tavus_settings).start_session(interview)

    body = fake.creates[0]["body"]
    assert body["replica_id"] == "r-technical"
    assert body["persona_id"] == "p-technical"
    assert body["conversation_name"].startswith("Backend Engineer Interview - ")
    assert body["properties"] == {
        "max_call_duration": 3600,
        "enable_recording": True,
        "enable_transcription": True,
        "apply_greenscreen": True,
    }


async def test_generated_prompt_is_sent_with_type_persona(db, tavus_settings):
    fake = FakeTavus()
    interview = await insert_interview(
        db,
        interview_type_id=2,
        prompt_status="ready",
        llm_generated_context="You are interviewing Ada for a backend role.",
        llm_generated_greeting="Hi Ada, ready to begin?",
    )

    await make_orchestrator(db, fake, tavus_settings).start_session(interview)

    body = fake.creates[0]["body"]
    assert (body["replica_id"], body["persona_id"]) == ("r-behavioral", "p-behavioral")
    assert body["properties"]["conversational_context"] == "You are interviewing Ada for a backend role."
    assert body["properties"]["custom_greeting"] == "Hi Ada, ready to begin?"


async def test_explicit_persona_wins_over_context(db, tavus_settings):
    fake = FakeTavus()
    interview = await insert_interview(db, llm_generated_context="ctx", llm_generated_greeting="hello")

    await make_orchestrator(db, fake, tavus_settings).start_session(
        interview, SessionOverrides(persona_id="p-custom", custom_greeting="override")
    )

    body = fake.creates[0]["body"]
    assert body["persona_id"] == "p-custom"
    assert body["replica_id"] == "r-technical"
    assert "conversational_context" not in body["properties"]
    assert "custom_greeting" not in body["properties"]


async def test_initial_conversation_url_skips_provider(db, tavus_settings):
    fake = FakeTavus()
    interview = await insert_interview(db)

    conversation = await make_orchestrator(db, fake, tavus_settings).start_session(
        interview, SessionOverrides(initial_conversation_url="https://tavus.daily.co/abc123")
    )

    assert conversation.conversation_id == "abc123"
    assert fake.requests == []
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["tavus_conversation_id"] == "abc123"


async def test_stored_conversation_is_resumed_after_restart(db, tavus_settings):
    fake = FakeTavus()
    interview = await insert_interview(
        db, tavus_conversation_id="c9", tavus_conversation_url="https://tavus.daily.co/c9"
    )

    conversation = await make_orchestrator(db, fake, tavus_settings).start_session(interview)

    assert conversation.conversation_id == "c9"
    assert fake.requests == []


async def test_lost_persist_race_ends_duplicate_and_adopts_stored(db, tavus_settings):
    fake = FakeTavus()
    interview = await insert_interview(
        db, tavus_conversation_id="winner", tavus_conversation_url="https://tavus.daily.co/winner"
    )
    stale = interview.model_copy(update={"tavus_conversation_id": None, "tavus_conversation_url": None})

    conversation = await make_orchestrator(db, fake, tavus_settings).start_session(stale)

    assert conversation.conversation_id == "winner"
    assert len(fake.creates) == 1
    assert [r["path"] for r in fake.ends] == ["/v2/conversations/c1/end"]
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["tavus_conversation_id"] == "winner"


async def test_provider_failure_is_not_cached(db, tavus_settings):
    fake = FakeTavus(create_status=400)
    orchestrator = make_orchestrator(db, fake, tavus_settings)
    interview = await insert_interview(db)

    with pytest.raises(RemoteServiceError) as exc_info:
        await orchestrator.start_session(interview)

    assert exc_info.value.status_code == 400
    assert "replica not found" in exc_info.value.body
    assert orchestrator.cached_conversation(interview.id) is None
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored.get("tavus_conversation_id") is None


async def test_only_scheduled_interviews_start(db, tavus_settings):
    interview = await insert_interview(db, status="canceled")

    with pytest.raises(StateConflictError):
        await make_orchestrator(db, FakeTavus(), tavus_settings).start_session(interview)


async def test_supplied_url_does_not_replace_stored_conversation(db, tavus_settings):
    fake = FakeTavus()
    interview = await insert_interview(
        db, tavus_conversation_id="c9", tavus_conversation_url="https://tavus.daily.co/c9"
    )

    conversation = await make_orchestrator(db, fake, tavus_settings).start_session(
        interview, SessionOverrides(initial_conversation_url="https://tavus.daily.co/other7")
    )

    assert conversation.conversation_id == "c9"
    assert conversation.conversation_url == "https://tavus.daily.co/c9"
    assert fake.requests == []
    stored = await db["interviews"].find_one({"_id": interview.id})
    assert stored["tavus_conversation_url"] == "https://tavus.daily.co/c9"


async def test_canceled_interview_does_not_reuse_cached_conversation(db, tavus_settings):
    orchestrator = make_orchestrator(db, FakeTavus(), tavus_settings)
    interview = await insert_interview(db)
    await orchestrator.start_session(interview)

    with pytest.raises(StateConflictError):
        await orchestrator.start_session(interview.model_copy(update={"status": "canceled"}))

    assert orchestrator.cached_conversation(interview.id) is None


async def test_locks_are_released_after_start(db, tavus_settings):
    orchestrator = make_orchestrator(db, FakeTavus(), tavus_settings)
    interviews = [await insert_interview(db) for _ in range(3)]

    await asyncio.gather(*(orchestrator.start_session(i) for i in interviews for _ in range(2)))
    with pytest.raises(StateConflictError):
        await orchestrator.start_session(interviews[0].model_copy(update={"status": "completed"}))

    assert orchestrator._locks == {}
    assert orchestrator._lock_users == {}


async def test_discard_forgets_cached_conversation(db, tavus_settings):
    orchestrator = make_orchestrator(db, FakeTavus(), tavus_settings)
    interview = await insert_interview(db)
    await orchestrator.start_session(interview)

    orchestrator.discard(str(interview.id))

    assert orchestrator.cached_conversation(interview.id) is None


async def test_missing_mapping_is_a_configuration_error(db, tavus_settings, monkeypatch):
    monkeypatch.setattr(tavus_settings, "tavus_mixed_persona_id", "")
    fake = FakeTavus()
    interview = await insert_interview(db, interview_type_id=3)

    with pytest.raises(ConfigurationError):
        await make_orchestrator(db, fake, tavus_settings).start_session(interview)
    assert fake.requests == []


async def test_missing_api_key_is_checked_first(db, tavus_settings):
    orchestrator = make_orchestrator(db, FakeTavus(), tavus_settings, api_key="")
    interview = await insert_interview(db)

    with pytest.raises(ConfigurationError):
        await orchestrator.start_session(interview)
    with pytest.raises(ConfigurationError):
        await orchestrator.end_session("c1")
    with pytest.raises(ConfigurationError):
        await orchestrator.get_status("c1")


async def test_end_session_is_idempotent(db, tavus_settings):
    fake = FakeTavus()
    orchestrator = make_orchestrator(db, fake, tavus_settings)
    interview = await insert_interview(db)
    await orchestrator.start_session(interview)

    assert await orchestrator.end_session("c1") is True
    assert orchestrator.cached_conversation(interview.id) is None

    fake.end_status = 409
    assert await orchestrator.end_session("c1") is False


async def test_get_status_passes_provider_payload_through(db, tavus_settings):
    status = await make_orchestrator(db, FakeTavus(), tavus_settings).get_status("c7")

    assert status == {"conversation_id": "c7", "status": "ended"}


def test_strategy_selection_order():
    assert select_strategy(SessionOverrides(persona_id="p", conversational_context="ctx")) == ExplicitPersona("p")
    assert select_strategy(SessionOverrides(custom_greeting="hi")) == ContextualPersona(None, "hi")
    assert select_strategy(SessionOverrides()) == DefaultPersona()


def test_adopted_conversation_ids():
    assert adopt_conversation_url("https://tavus.daily.co/abc123/").conversation_id == "abc123"
    assert adopt_conversation_url("https://tavus.daily.co/abc123", "stored").conversation_id == "stored"
    assert adopt_conversation_url("").conversation_id.startswith("pre-generated-")
