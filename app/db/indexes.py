"""
app/db/indexes.py

Purpose: Database index management

- Creates unique and performance indexes
- The bindings uniqueness index is what rejects duplicate account links
"""

from pymongo import ASCENDING

from app.db.mongo import get_users_collection, get_bindings_collection
from app.core.logging import get_logger

logger = get_logger(__name__)

BINDING_UNIQUE_INDEX = "binding_unique_idx"


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        bindings = get_bindings_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        await users.create_index("user_id", unique=True, name="user_id_unique")
        logger.debug("Created unique index on users.user_id")

        # Monitoring pass only loads users with alerts switched on
        await users.create_index("alert_enabled", name="alert_enabled_idx")
        logger.debug("Created index on users.alert_enabled")

        # ==============================================
        # BINDINGS COLLECTION INDEXES
        # ==============================================

        await bindings.create_index(
            [("user_id", ASCENDING), ("account", ASCENDING), ("customer_code", ASCENDING)],
            unique=True,
            name=BINDING_UNIQUE_INDEX
        )
        logger.debug("Created unique index on bindings.user_id + account + customer_code")

        # Unbind deletes by (user_id, account)
        await bindings.create_index(
            [("user_id", ASCENDING), ("account", ASCENDING)],
            name="binding_user_account_idx"
        )
        logger.debug("Created compound index on bindings.user_id + account")

        logger.info("✅ All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
