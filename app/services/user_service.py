"""
app/services/user_service.py

Purpose: User settings management

- Create users on first interaction
- Read and update alert settings (threshold, interval, enabled flag)
- Batch load of alert-enabled users for the monitor
"""

from pymongo import ReturnDocument

from app.db.mongo import get_users_collection
from app.models.user import User
from app.core.config import settings
from app.core.logging import get_logger, LogContext
from datetime import datetime
from utils.time_utils import utcnow
from utils.validation_utils import MAX_CHECK_INTERVAL
from typing import List, Optional

logger = get_logger(__name__)


def _default_user_document(user_id: int, now: datetime) -> dict:
    return {
        "user_id": user_id,
        "alert_enabled": False,
        "notify_threshold": settings.DEFAULT_NOTIFY_THRESHOLD,
        "check_interval": settings.DEFAULT_CHECK_INTERVAL,
        "created_at": now,
    }


async def get_user_by_id(user_id: int) -> Optional[User]:
    """
    Retrieves a user by ID.

    Args:
        user_id: Telegram user ID

    Returns:
        User or None if not found
    """
    users = get_users_collection()
    doc = await users.find_one({"user_id": user_id})
    return User.from_document(doc) if doc else None


async def get_or_create_user(user_id: int) -> User:
    """
    Retrieves an existing user or creates one with default settings.

    Args:
        user_id: Telegram user ID

    Returns:
        User record
    """
    with LogContext(user_id=user_id):
        users = get_users_collection()
        now = utcnow()

        defaults = _default_user_document(user_id, now)
        defaults.pop("user_id")

        result = await users.update_one(
            {"user_id": user_id},
            {"$setOnInsert": {**defaults, "updated_at": now}},
            upsert=True
        )

        if result.upserted_id is not None:
            logger.info("New user created", extra={"user_id": user_id})

        doc = await users.find_one({"user_id": user_id})
        return User.from_document(doc)


async def _update_settings(user_id: int, fields: dict) -> User:
    users = get_users_collection()
    now = utcnow()

    defaults = _default_user_document(user_id, now)
    defaults.pop("user_id")
    for key in fields:
        defaults.pop(key, None)

    doc = await users.find_one_and_update(
        {"user_id": user_id},
        {
            "$set": {**fields, "updated_at": now},
            "$setOnInsert": defaults,
        },
        upsert=True,
        return_document=ReturnDocument.AFTER
    )
    return User.from_document(doc)


async def update_threshold(user_id: int, threshold: float) -> User:
    """
    Persists a new low-balance threshold.

    Args:
        user_id: Telegram user ID
        threshold: New threshold in kWh

    Returns:
        Updated user
    """
    with LogContext(user_id=user_id):
        user = await _update_settings(user_id, {"notify_threshold": threshold})
        logger.info(f"Threshold updated to {threshold:.2f}", extra={"user_id": user_id})
        return user


async def update_check_interval(user_id: int, interval_minutes: int) -> User:
    """
    Persists a new check interval.

    Args:
        user_id: Telegram user ID
        interval_minutes: Minutes between balance checks (1 to MAX_CHECK_INTERVAL)

    Returns:
        Updated user

    Raises:
        ValueError: If the interval is out of range
    """
    if not 1 <= interval_minutes <= MAX_CHECK_INTERVAL:
        raise ValueError(f"Check interval must be between 1 and {MAX_CHECK_INTERVAL} minutes")

    with LogContext(user_id=user_id):
        user = await _update_settings(user_id, {"check_interval": interval_minutes})
        logger.info(f"Check interval updated to {interval_minutes}m", extra={"user_id": user_id})
        return user


async def toggle_alert(user_id: int) -> User:
    """
    Flips the alert-enabled flag and persists it immediately.

    The flip is a conditional write on the value just read, retried until
    it lands, so overlapping toggles never lose an update.

    Args:
        user_id: Telegram user ID

    Returns:
        Updated user
    """
    with LogContext(user_id=user_id):
        users = get_users_collection()

        while True:
            user = await get_or_create_user(user_id)
            doc = await users.find_one_and_update(
                {"user_id": user_id, "alert_enabled": user.alert_enabled},
                {"$set": {"alert_enabled": not user.alert_enabled, "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER
            )
            if doc is not None:
                break
            logger.debug("Alert flag changed concurrently, retrying toggle")

        updated = User.from_document(doc)
        logger.info(
            f"Alerts {'enabled' if updated.alert_enabled else 'disabled'}",
            extra={"user_id": user_id}
        )
        return updated


async def get_alert_enabled_users() -> List[User]:
    """
    Loads every user with alerts switched on.

    Returns:
        List of users
    """
    users = get_users_collection()
    docs = await users.find({"alert_enabled": True}).to_list(length=None)
    return [User.from_document(doc) for doc in docs]
