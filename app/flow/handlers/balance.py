"""
app/flow/handlers/balance.py

Handles: On-demand balance check

- Queries every bound account in order
- Refreshes the cached room / balance on success
- Failed accounts appear in the report instead of aborting it
"""

from app.flow.context import FlowContext
from app.services.binding_service import get_user_bindings, update_binding_cache
from app.core.exceptions import BalanceProviderError
from app.core.logging import get_logger, LogContext
from utils.constants import (
    NO_BINDINGS_MESSAGE,
    CHECKING_MESSAGE,
    STATUS_HEADER_MD,
    STATUS_ROOM_MD,
    STATUS_ERROR_MD,
)
from utils.telegram_utils import escape_markdown_v2, escape_markdown_v2_code, format_amount
from utils.time_utils import utcnow

logger = get_logger(__name__)


async def handle_check_balance(ctx: FlowContext, user_id: int) -> None:
    """
    Sends a balance report for all of the user's bindings.

    Args:
        ctx: Flow collaborators
        user_id: Telegram user ID
    """
    ctx.sessions.reset(user_id)
    bindings = await get_user_bindings(user_id)

    if not bindings:
        await ctx.reply(user_id, NO_BINDINGS_MESSAGE)
        return

    pending = await ctx.reply(user_id, CHECKING_MESSAGE)

    report = STATUS_HEADER_MD
    for binding in bindings:
        with LogContext(user_id=user_id, account=binding.account):
            try:
                rooms = await ctx.provider.get_balance(binding.account, binding.customer_code)
            except BalanceProviderError as e:
                logger.warning(f"Balance query failed: {e.message}")
                report += STATUS_ERROR_MD.format(
                    account=escape_markdown_v2_code(binding.account),
                    reason=escape_markdown_v2(e.message)
                )
                continue

            checked_at = utcnow()
            for room in rooms:
                report += STATUS_ROOM_MD.format(
                    room=escape_markdown_v2(room.room_name),
                    balance=escape_markdown_v2_code(format_amount(room.balance))
                )
                await update_binding_cache(binding.id, room.room_name, room.balance, checked_at)

    message_id = pending.get("message_id")
    if message_id:
        await ctx.messenger.delete_message(user_id, message_id)

    await ctx.reply(user_id, report, markdown=True)
