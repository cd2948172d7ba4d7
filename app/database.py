"""Database connection and utilities."""
import logging
from contextlib import contextmanager
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.config import settings
from app.exceptions import RemoteServiceError, StateConflictError

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect(cls):
        """Connect to MongoDB."""
        cls.client = AsyncIOMotorClient(
            settings.mongodb_url,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
            socketTimeoutMS=settings.mongodb_timeout_ms,
        )
        cls.db = cls.client[settings.mongodb_db_name]
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    @classmethod
    async def disconnect(cls):
        """Disconnect from MongoDB."""
        if cls.client:
            cls.client.close()
            logger.info("Disconnected from MongoDB")

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        """Get database instance."""
        if cls.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return cls.db


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """Create the indexes the services query by."""
    await db["interviews"].create_index([("user_id", ASCENDING), ("scheduled_at", DESCENDING)])
    await db["interviews"].create_index(
        "tavus_conversation_id",
        unique=True,
        partialFilterExpression={"tavus_conversation_id": {"$type": "string"}},
    )
    await db["feedback"].create_index("interview_id", unique=True)
    await db["jobs"].create_index([("kind", ASCENDING), ("status", ASCENDING), ("created_at", ASCENDING)])


@contextmanager
def store_errors(operation: str):
    """Translate driver errors into the engine's error taxonomy.

    Duplicate keys are constraint violations (a state conflict); every other
    driver error, timeouts included, is a transport failure of the store.
    """
    try:
        yield
    except DuplicateKeyError as e:
        raise StateConflictError(f"{operation}: record already exists") from e
    except PyMongoError as e:
        logger.error("Store error during %s: %s", operation, e)
        raise RemoteServiceError(f"{operation} failed: {e}", source="persistence") from e


# Dependency for FastAPI routes
async def get_db() -> AsyncIOMotorDatabase:
    """Get database dependency for routes."""
    return Database.get_database()
