"""Reference data lookups with a static fallback catalog."""
import logging
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.models.reference import ReferenceEntry

logger = logging.getLogger(__name__)

INTERVIEW_TYPES = "interview_types"
EXPERIENCE_LEVELS = "experience_levels"
DIFFICULTY_LEVELS = "difficulty_levels"

FALLBACK_CATALOG: Dict[str, List[ReferenceEntry]] = {
    INTERVIEW_TYPES: [
        ReferenceEntry(
            id=1,
            value="technical",
            label="Technical",
            description="Coding, system design, and technical knowledge questions",
            icon="Code",
        ),
        ReferenceEntry(
            id=2,
            value="behavioral",
            label="Behavioral",
            description="Questions about your past experiences and situations",
            icon="User",
        ),
        ReferenceEntry(
            id=3,
            value="mixed",
            label="Mixed",
            description="Combination of technical and behavioral questions",
            icon="Briefcase",
        ),
    ],
    EXPERIENCE_LEVELS: [
        ReferenceEntry(id=1, value="entry", label="Entry Level (0-2 years)"),
        ReferenceEntry(id=2, value="mid", label="Mid Level (3-5 years)"),
        ReferenceEntry(id=3, value="senior", label="Senior Level (6+ years)"),
    ],
    DIFFICULTY_LEVELS: [
        ReferenceEntry(id=1, value="easy", label="Easy - Beginner friendly questions"),
        ReferenceEntry(id=2, value="medium", label="Medium - Standard interview difficulty"),
        ReferenceEntry(id=3, value="hard", label="Hard - Challenging interview questions"),
    ],
}


class ReferenceDataResolver:
    """Maps human-readable selections to lookup-table ids.

    When the store cannot be reached (or the table is empty) the fixed
    catalog above is served instead, so interview creation keeps working on
    stale-but-available data.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def list_interview_types(self) -> List[ReferenceEntry]:
        return await self._list(INTERVIEW_TYPES)

    async def list_experience_levels(self) -> List[ReferenceEntry]:
        return await self._list(EXPERIENCE_LEVELS)

    async def list_difficulty_levels(self) -> List[ReferenceEntry]:
        return await self._list(DIFFICULTY_LEVELS)

    async def resolve_interview_type(self, value: str) -> Optional[int]:
        return await self._resolve(INTERVIEW_TYPES, value)

    async def resolve_experience_level(self, value: str) -> Optional[int]:
        return await self._resolve(EXPERIENCE_LEVELS, value)

    async def resolve_difficulty_level(self, value: str) -> Optional[int]:
        return await self._resolve(DIFFICULTY_LEVELS, value)

    async def interview_type_value(self, type_id: int) -> Optional[str]:
        """Type string (e.g. "technical") for a stored interview_type_id."""
        for entry in await self.list_interview_types():
            if entry.id == type_id:
                return entry.value
        return None

    async def catalogs(self) -> Dict[str, Dict[int, ReferenceEntry]]:
        """All three tables keyed by id, for joining labels onto interviews."""
        return {
            name: {entry.id: entry for entry in await self._list(name)}
            for name in (INTERVIEW_TYPES, EXPERIENCE_LEVELS, DIFFICULTY_LEVELS)
        }

    async def seed(self):
        """Insert the fallback catalog where rows are missing so ids agree with it."""
        for name, entries in FALLBACK_CATALOG.items():
            for entry in entries:
                if name == INTERVIEW_TYPES:
                    doc = {"type": entry.value, "title": entry.label,
                           "description": entry.description, "icon": entry.icon}
                else:
                    doc = {"value": entry.value, "label": entry.label}
                await self.db[name].update_one({"_id": entry.id}, {"$setOnInsert": doc}, upsert=True)
        logger.info("Reference data seeded")

    async def _list(self, name: str) -> List[ReferenceEntry]:
        try:
            docs = await self.db[name].find({}).sort("_id", 1).to_list(length=None)
        except PyMongoError as e:
            logger.warning("Falling back to static %s: %s", name, e)
            return list(FALLBACK_CATALOG[name])
        if not docs:
            logger.warning("No rows in %s, serving static catalog", name)
            return list(FALLBACK_CATALOG[name])
        return [ReferenceEntry.from_document(doc) for doc in docs]

    async def _resolve(self, name: str, value: str) -> Optional[int]:
        wanted = (value or "").strip().lower()
        for entry in await self._list(name):
            if entry.value.lower() == wanted:
                return entry.id
        return None
