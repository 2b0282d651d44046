"""
app/services/binding_service.py

Purpose: Linked account (binding) management

- Create bindings; duplicates are rejected by the unique index
- List bindings for one user or for a batch of users
- Delete by account within a user's scope
- Refresh cached room / balance after a successful query
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pymongo.errors import DuplicateKeyError

from app.db.mongo import get_bindings_collection
from app.models.binding import Binding
from app.core.logging import get_logger, LogContext

logger = get_logger(__name__)


async def create_binding(
    user_id: int,
    account: str,
    customer_code: str,
    room_name: str,
    balance: float,
    checked_at: Optional[datetime]
) -> bool:
    """
    Inserts a new binding seeded with the verified room and balance.

    Args:
        user_id: Owning Telegram user ID
        account: Student / card number
        customer_code: School code
        room_name: Room label returned by the provider
        balance: Balance returned by the provider
        checked_at: Verification time

    Returns:
        True if created, False if (user, account, customer_code) is already bound
    """
    with LogContext(user_id=user_id, account=account):
        bindings = get_bindings_collection()
        binding = Binding(
            user_id=user_id,
            account=account,
            customer_code=customer_code,
            room_name=room_name,
            last_balance=balance,
            last_check=checked_at,
        )

        try:
            await bindings.insert_one(binding.to_document())
        except DuplicateKeyError:
            logger.info("Binding already exists", extra={"user_id": user_id})
            return False

        logger.info(f"Binding created for room {room_name}", extra={"user_id": user_id})
        return True


async def get_user_bindings(user_id: int) -> List[Binding]:
    """
    Lists a user's bindings in creation order.
    """
    bindings = get_bindings_collection()
    docs = await bindings.find({"user_id": user_id}).sort("_id", 1).to_list(length=None)
    return [Binding.from_document(doc) for doc in docs]


async def get_bindings_for_users(user_ids: Iterable[int]) -> Dict[int, List[Binding]]:
    """
    Loads the bindings of many users with a single query.

    Args:
        user_ids: Owners to load

    Returns:
        Mapping of user ID to that user's bindings (users without bindings are absent)
    """
    ids = list(user_ids)
    if not ids:
        return {}

    bindings = get_bindings_collection()
    docs = await bindings.find({"user_id": {"$in": ids}}).sort("_id", 1).to_list(length=None)

    grouped: Dict[int, List[Binding]] = defaultdict(list)
    for doc in docs:
        binding = Binding.from_document(doc)
        grouped[binding.user_id].append(binding)
    return dict(grouped)


async def delete_binding(user_id: int, account: str) -> int:
    """
    Deletes every binding of the given account owned by the user.

    Returns:
        Number of bindings removed
    """
    with LogContext(user_id=user_id, account=account):
        bindings = get_bindings_collection()
        result = await bindings.delete_many({"user_id": user_id, "account": account})

        if result.deleted_count:
            logger.info(f"Removed {result.deleted_count} binding(s)", extra={"user_id": user_id})
        else:
            logger.info("No binding to remove", extra={"user_id": user_id})

        return result.deleted_count


async def update_binding_cache(
    binding_id: Any,
    room_name: str,
    balance: float,
    checked_at: datetime
) -> bool:
    """
    Stores the latest room / balance for a binding.

    Returns:
        True if the binding still exists
    """
    bindings = get_bindings_collection()
    result = await bindings.update_one(
        {"_id": binding_id},
        {
            "$set": {
                "room_name": room_name,
                "last_balance": balance,
                "last_check": checked_at,
            }
        }
    )
    return result.matched_count > 0
