"""Tests for reference data lookups and the fallback catalog."""
from pymongo.errors import ServerSelectionTimeoutError

from app.services.reference_service import (
    DIFFICULTY_LEVELS,
    INTERVIEW_TYPES,
    ReferenceDataResolver,
)


class UnreachableCollection:
    def find(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("No servers available")


class UnreachableDatabase:
    def __getitem__(self, name):
        return UnreachableCollection()


async def test_store_failure_serves_fixed_catalog():
    resolver = ReferenceDataResolver(UnreachableDatabase())

    types = await resolver.list_interview_types()
    levels = await resolver.list_experience_levels()
    difficulties = await resolver.list_difficulty_levels()

    assert [t.value for t in types] == ["technical", "behavioral", "mixed"]
    assert [t.id for t in types] == [1, 2, 3]
    assert [level.value for level in levels] == ["entry", "mid", "senior"]
    assert [d.value for d in difficulties] == ["easy", "medium", "hard"]


async def test_creation_lookups_work_while_store_is_down():
    resolver = ReferenceDataResolver(UnreachableDatabase())

    assert await resolver.resolve_interview_type("Behavioral") == 2
    assert await resolver.resolve_difficulty_level("hard") == 3
    assert await resolver.resolve_experience_level("principal") is None


async def test_empty_tables_serve_fixed_catalog(db):
    types = await ReferenceDataResolver(db).list_interview_types()

    assert [t.label for t in types] == ["Technical", "Behavioral", "Mixed"]


async def test_stored_rows_win_over_catalog(db):
    await db[INTERVIEW_TYPES].insert_many([
        {"_id": 7, "type": "screening", "title": "Screening"},
        {"_id": 4, "type": "technical", "title": "Technical (Live Coding)"},
    ])
    resolver = ReferenceDataResolver(db)

    types = await resolver.list_interview_types()

    assert [(t.id, t.value, t.label) for t in types] == [
        (4, "technical", "Technical (Live Coding)"),
        (7, "screening", "Screening"),
    ]
    assert await resolver.interview_type_value(7) == "screening"
    assert await resolver.resolve_interview_type("mixed") is None


async def test_seed_keeps_existing_rows(db):
    await db[DIFFICULTY_LEVELS].insert_one({"_id": 2, "value": "medium", "label": "Medium (custom)"})
    resolver = ReferenceDataResolver(db)

    await resolver.seed()
    await resolver.seed()

    difficulties = await resolver.list_difficulty_levels()
    assert [d.id for d in difficulties] == [1, 2, 3]
    assert difficulties[1].label == "Medium (custom)"
    types = await resolver.list_interview_types()
    assert types[0].icon == "Code"


async def test_catalogs_are_keyed_by_id(db):
    catalogs = await ReferenceDataResolver(db).catalogs()

    assert catalogs[INTERVIEW_TYPES][3].value == "mixed"
    assert catalogs[DIFFICULTY_LEVELS][1].label.startswith("Easy")
