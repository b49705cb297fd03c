from kyc_review_service.app.config import settings
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

# Global client and db variables, managed by connect/close functions
client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None

def connect_to_mongo():
    global client, db
    if client is not None and db is not None:
        logger.info("MongoDB connection already established.")
        return

    try:
        logger.info(f"Attempting to connect to MongoDB at {settings.MONGO_DETAILS}...")
        # Motor connects lazily; the first command (ping in /health, or hydration) opens the socket.
        client = AsyncIOMotorClient(settings.MONGO_DETAILS)
        db = client[settings.DB_NAME]
        logger.info(f"MongoDB client created and database '{settings.DB_NAME}' is set.")
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}", exc_info=True)
        client = None
        db = None
        raise ConnectionError(f"Failed to connect to MongoDB: {e}")

def close_mongo_connection():
    global client, db
    if client is not None:
        client.close()
        client = None
        db = None
        logger.info("MongoDB connection closed.")

def get_database() -> AsyncIOMotorDatabase:
    if db is None:
        logger.warning("Database not initialized. Attempting to connect via get_database().")
        connect_to_mongo()
    if db is None:
        logger.error("Failed to get database instance in get_database.")
        raise ConnectionError("Database client is not available. Connection might have failed or was not established.")
    return db

async def get_db():
    """FastAPI dependency yielding the shared database handle."""
    yield get_database()

async def get_optional_db():
    """Like get_db, but yields None when submissions are not mirrored to MongoDB."""
    if settings.PERSISTENCE_BACKEND != "mongo":
        yield None
        return
    yield get_database()
