import pytest
from mongomock_motor import AsyncMongoMockClient

from app.config import settings
from app.services.quota_service import QuotaLedger

ACCOUNT_ID = "acct-1"


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    return AsyncMongoMockClient()["test_mock_interviews"]


@pytest.fixture
async def account(db):
    """Account with 60 conversation minutes and nothing used."""
    ledger = QuotaLedger(db)
    await ledger.open_account(ACCOUNT_ID, "Ada Lovelace")
    await ledger.set_total(ACCOUNT_ID, 60)
    return ACCOUNT_ID


@pytest.fixture
def tavus_settings(monkeypatch):
    """Provider credentials and replica/persona mapping for every interview type."""
    monkeypatch.setattr(settings, "tavus_api_key", "test-key")
    monkeypatch.setattr(settings, "tavus_base_url", "https://tavus.test/v2")
    for interview_type in ("technical", "behavioral", "mixed"):
        monkeypatch.setattr(settings, f"tavus_{interview_type}_replica_id", f"r-{interview_type}")
        monkeypatch.setattr(settings, f"tavus_{interview_type}_persona_id", f"p-{interview_type}")
    return settings
