"""
app/db/mongo.py

Purpose: MongoDB connection setup

- One Motor client per process, opened in the application lifespan
- Collections: users (alert settings) and bindings (linked accounts)
- Startup retries with exponential backoff
- Ping-based health check for the probes
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional
import asyncio
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

CONNECT_ATTEMPTS = 3
INITIAL_RETRY_DELAY = 2  # seconds, doubled after each failure

USERS_COLLECTION = "users"
BINDINGS_COLLECTION = "bindings"

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def _build_client() -> AsyncIOMotorClient:
    # The monitor and webhook share one pool; a handful of connections is plenty
    return AsyncIOMotorClient(
        settings.MONGODB_URL,
        maxPoolSize=10,
        minPoolSize=1,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
        retryWrites=True,
        retryReads=True,
        tz_aware=False,
    )


async def connect_to_mongo():
    """
    Opens the client and verifies it with a ping.

    Raises:
        ConnectionError: If MongoDB is unreachable after all attempts
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    delay = INITIAL_RETRY_DELAY
    for attempt in range(1, CONNECT_ATTEMPTS + 1):
        client = _build_client()
        try:
            logger.info(f"Connecting to MongoDB (attempt {attempt}/{CONNECT_ATTEMPTS})")
            await client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            client.close()
            logger.error(f"MongoDB unreachable (attempt {attempt}/{CONNECT_ATTEMPTS}): {e}")

            if attempt == CONNECT_ATTEMPTS:
                logger.critical("Giving up on MongoDB")
                raise ConnectionError("Could not establish MongoDB connection") from e

            logger.info(f"Retrying in {delay} seconds...")
            await asyncio.sleep(delay)
            delay *= 2
            continue

        _client = client
        _database = client[settings.MONGODB_DB_NAME]
        logger.info(f"✅ Connected to MongoDB database '{settings.MONGODB_DB_NAME}'")
        return


async def close_mongo_connection():
    global _client, _database

    if _client is None:
        return

    _client.close()
    _client = None
    _database = None
    logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    Pings the server.

    Returns:
        True if the server answered, False otherwise
    """
    if _client is None:
        logger.error("MongoDB client not initialized")
        return False

    try:
        await _client.admin.command("ping")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def get_database() -> AsyncIOMotorDatabase:
    """
    Raises:
        RuntimeError: If connect_to_mongo() has not run
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database


def get_users_collection() -> AsyncIOMotorCollection:
    """
    Users collection, one document per chat user.

    Fields:
    - user_id: int (Telegram user id, unique)
    - alert_enabled: bool
    - notify_threshold: float
    - check_interval: int (minutes)
    - created_at / updated_at: datetime
    """
    return get_database()[USERS_COLLECTION]


def get_bindings_collection() -> AsyncIOMotorCollection:
    """
    Bindings collection, one document per linked (account, customer code).

    Fields:
    - user_id: int (owner)
    - account: str (student / card number)
    - customer_code: str (school code)
    - room_name: str (cached)
    - last_balance: float (cached)
    - last_check: datetime (last successful query)

    (user_id, account, customer_code) is unique, see app/db/indexes.py.
    """
    return get_database()[BINDINGS_COLLECTION]
