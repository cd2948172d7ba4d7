"""Live interview sessions with the Tavus provider."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.config import Settings, settings
from app.database import store_errors
from app.exceptions import (
    ConfigurationError,
    NotFoundError,
    ReferenceNotFoundError,
    RemoteServiceError,
    StateConflictError,
)
from app.models.conversation import Conversation
from app.models.interview import InterviewModel
from app.services.reference_service import ReferenceDataResolver
from app.services.tavus_service import TavusService

logger = logging.getLogger(__name__)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SessionOverrides:
    persona_id: Optional[str] = None
    conversational_context: Optional[str] = None
    custom_greeting: Optional[str] = None
    initial_conversation_url: Optional[str] = None


@dataclass(frozen=True)
class SessionConfiguration:
    replica_id: str
    persona_id: str
    conversation_name: str
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_request(self) -> Dict[str, Any]:
        return {
            "replica_id": self.replica_id,
            "persona_id": self.persona_id,
            "conversation_name": self.conversation_name,
            "properties": dict(self.properties),
        }


def _base_properties(config: Settings) -> Dict[str, Any]:
    return {
        "max_call_duration": config.max_call_duration_seconds,
        "enable_recording": True,
        "enable_transcription": True,
        "apply_greenscreen": True,
    }


@dataclass(frozen=True)
class ExplicitPersona:
    """Caller picked the persona; only the replica comes from the interview type."""

    persona_id: str

    def configure(self, interview_type: str, role: str, config: Settings) -> SessionConfiguration:
        replica_id, _ = config.tavus_ids_for(interview_type)
        if not replica_id:
            raise ConfigurationError(f"No replica configured for interview type: {interview_type}")
        return SessionConfiguration(
            replica_id=replica_id,
            persona_id=self.persona_id,
            conversation_name=f"{role} Interview - {_iso_now()}",
            properties=_base_properties(config),
        )


@dataclass(frozen=True)
class ContextualPersona:
    """Type's replica and persona, primed with generated context and/or greeting."""

    conversational_context: Optional[str] = None
    custom_greeting: Optional[str] = None

    def configure(self, interview_type: str, role: str, config: Settings) -> SessionConfiguration:
        replica_id, persona_id = config.tavus_ids_for(interview_type)
        if not replica_id or not persona_id:
            raise ConfigurationError(f"No replica or persona configured for interview type: {interview_type}")
        properties = _base_properties(config)
        if self.conversational_context:
            properties["conversational_context"] = self.conversational_context
        if self.custom_greeting:
            properties["custom_greeting"] = self.custom_greeting
        return SessionConfiguration(
            replica_id=replica_id,
            persona_id=persona_id,
            conversation_name=f"{role} Interview - {_iso_now()}",
            properties=properties,
        )


@dataclass(frozen=True)
class DefaultPersona:
    """Type's replica and persona with no extra properties."""

    def configure(self, interview_type: str, role: str, config: Settings) -> SessionConfiguration:
        replica_id, persona_id = config.tavus_ids_for(interview_type)
        if not replica_id or not persona_id:
            raise ConfigurationError(f"No replica or persona configured for interview type: {interview_type}")
        return SessionConfiguration(
            replica_id=replica_id,
            persona_id=persona_id,
            conversation_name=f"{role} Interview - {_iso_now()}",
            properties=_base_properties(config),
        )


SessionStrategy = Union[ExplicitPersona, ContextualPersona, DefaultPersona]


def select_strategy(overrides: SessionOverrides) -> SessionStrategy:
    """Explicit persona wins, then context/greeting, then the type defaults."""
    if overrides.persona_id:
        return ExplicitPersona(overrides.persona_id)
    if overrides.conversational_context or overrides.custom_greeting:
        return ContextualPersona(overrides.conversational_context, overrides.custom_greeting)
    return DefaultPersona()


def adopt_conversation_url(url: str, conversation_id: Optional[str] = None) -> Conversation:
    """Treat an already provisioned conversation URL as the active conversation."""
    if not conversation_id:
        conversation_id = url.rstrip("/").split("/")[-1]
    if not conversation_id:
        conversation_id = f"pre-generated-{int(datetime.now(timezone.utc).timestamp() * 1000)}"
    return Conversation(
        conversation_id=conversation_id,
        conversation_url=url,
        status="active",
        created_at=_iso_now(),
    )


class SessionOrchestrator:
    """Creates, resumes and ends the Tavus conversation behind an interview.

    One instance is shared by the application: the in-memory cache maps
    interview ids to their live conversation, and the interview record is
    the system of record for `tavus_conversation_id`/`tavus_conversation_url`.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        tavus: Optional[TavusService] = None,
        reference: Optional[ReferenceDataResolver] = None,
        config: Settings = settings,
    ):
        self.collection = db["interviews"]
        self.tavus = tavus or TavusService()
        self.reference = reference or ReferenceDataResolver(db)
        self.config = config
        self._conversations: Dict[str, Conversation] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def _require_credentials(self):
        if not self.tavus.is_configured():
            raise ConfigurationError("Tavus API key not configured")

    def cached_conversation(self, interview_id) -> Optional[Conversation]:
        return self._conversations.get(str(interview_id))

    def discard(self, interview_id) -> None:
        """Forget the cached conversation of an interview that left `scheduled`."""
        self._conversations.pop(str(interview_id), None)

    async def start_session(
        self,
        interview: InterviewModel,
        overrides: Optional[SessionOverrides] = None,
    ) -> Conversation:
        """Return a joinable conversation for the interview, creating one at most once."""
        self._require_credentials()
        key = str(interview.id)

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._start(key, interview, overrides or SessionOverrides())
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _start(self, key: str, interview: InterviewModel, overrides: SessionOverrides) -> Conversation:
        if interview.status != "scheduled":
            self._conversations.pop(key, None)
            raise StateConflictError(f"Cannot start a session for a {interview.status} interview")

        cached = self._conversations.get(key)
        if cached is not None:
            logger.info("Using existing conversation %s for interview %s", cached.conversation_id, key)
            return cached

        if interview.tavus_conversation_id:
            # The stored conversation is authoritative; a supplied URL cannot replace it
            if (overrides.initial_conversation_url
                    and overrides.initial_conversation_url != interview.tavus_conversation_url):
                logger.warning(
                    "Ignoring supplied conversation URL for interview %s; %s is already stored",
                    key, interview.tavus_conversation_id,
                )
            conversation = adopt_conversation_url(
                interview.tavus_conversation_url or "", interview.tavus_conversation_id
            )
            self._conversations[key] = conversation
            return conversation

        initial_url = overrides.initial_conversation_url or interview.tavus_conversation_url
        if initial_url:
            conversation = adopt_conversation_url(initial_url)
            logger.info("Using pre-generated conversation URL for interview %s", key)
            conversation = await self._record(interview, conversation, created=False)
            self._conversations[key] = conversation
            return conversation

        interview_type = await self.reference.interview_type_value(interview.interview_type_id)
        if interview_type is None:
            raise ReferenceNotFoundError(f"Unknown interview type id {interview.interview_type_id}")

        strategy = select_strategy(SessionOverrides(
            persona_id=overrides.persona_id or interview.tavus_persona_id,
            conversational_context=overrides.conversational_context or interview.llm_generated_context,
            custom_greeting=overrides.custom_greeting or interview.llm_generated_greeting,
        ))
        configuration = strategy.configure(interview_type, interview.role, self.config)
        logger.info(
            "Creating %s session for interview %s (%s)",
            interview_type, key, type(strategy).__name__,
        )

        conversation = await self.tavus.create_conversation(configuration.to_request())
        conversation = await self._record(interview, conversation, created=True)
        self._conversations[key] = conversation
        return conversation

    async def end_session(self, conversation_id: str) -> bool:
        """End a conversation; ending one that is already over is not an error."""
        self._require_credentials()
        ended = await self.tavus.end_conversation(conversation_id)
        for key, conversation in list(self._conversations.items()):
            if conversation.conversation_id == conversation_id:
                del self._conversations[key]
        return ended

    async def get_status(self, conversation_id: str) -> Dict[str, Any]:
        self._require_credentials()
        return await self.tavus.get_conversation(conversation_id)

    async def _record(self, interview: InterviewModel, conversation: Conversation, created: bool) -> Conversation:
        """Write the conversation onto the interview unless one is already stored."""
        if interview.tavus_conversation_id == conversation.conversation_id:
            return conversation

        with store_errors("record conversation"):
            doc = await self.collection.find_one_and_update(
                {"_id": interview.id, "tavus_conversation_id": None},
                {"$set": {
                    "tavus_conversation_id": conversation.conversation_id,
                    "tavus_conversation_url": conversation.conversation_url,
                    "updated_at": datetime.now(timezone.utc),
                }},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                doc = await self.collection.find_one({"_id": interview.id})
        if doc is not None and doc.get("tavus_conversation_id") == conversation.conversation_id:
            return conversation

        # Someone else stored a conversation first (or the interview is gone)
        if created:
            try:
                await self.tavus.end_conversation(conversation.conversation_id)
            except RemoteServiceError as e:
                logger.error("Could not end duplicate conversation %s: %s", conversation.conversation_id, e)
        if doc is None:
            raise NotFoundError(f"Interview {interview.id} not found")
        logger.warning(
            "Interview %s already has conversation %s; adopting it",
            interview.id, doc["tavus_conversation_id"],
        )
        return adopt_conversation_url(doc.get("tavus_conversation_url") or "", doc["tavus_conversation_id"])
