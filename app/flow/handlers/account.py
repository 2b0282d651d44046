"""
app/flow/handlers/account.py

Handles: Account binding and the account list

Binding flow:
- AWAIT_ACCOUNT: receive the student / card number, ask for the school code
- AWAIT_CUSTOMER_CODE: verify with the provider, store the binding, back to IDLE

Account list:
- Shows bound accounts with one unbind button each
- Unbind removes every binding of that account for the user
"""

from typing import Any, Dict, List, Optional

from app.flow.context import FlowContext
from app.flow.states import ConversationState, get_progress_message
from app.services.binding_service import create_binding, delete_binding, get_user_bindings
from app.core.exceptions import BalanceProviderError
from app.core.logging import get_logger, LogContext
from utils.constants import (
    ASK_ACCOUNT_MD,
    ASK_CUSTOMER_CODE_MD,
    VERIFYING_MESSAGE,
    VERIFY_FAILED_MESSAGE,
    NO_ROOMS_MESSAGE,
    ALREADY_BOUND_MESSAGE,
    BIND_SUCCESS_MD,
    ACCOUNTS_HEADER_MD,
    ACCOUNTS_EMPTY_MD,
    ACCOUNT_LINE_MD,
    BUTTON_ADD_ACCOUNT,
    BUTTON_UNBIND,
    CALLBACK_ADD_ACCOUNT,
    CALLBACK_UNBIND_PREFIX,
    UNBIND_SUCCESS_NOTICE,
    UNBIND_NOT_FOUND_NOTICE,
)
from utils.telegram_utils import (
    escape_markdown_v2,
    escape_markdown_v2_code,
    create_inline_button,
    create_inline_keyboard,
    format_amount,
)
from utils.time_utils import utcnow
from utils.validation_utils import sanitize_input

logger = get_logger(__name__)

SCRATCH_ACCOUNT = "account"


async def handle_add_account_request(ctx: FlowContext, user_id: int) -> None:
    """
    Starts the binding flow.
    """
    state = ConversationState.AWAIT_ACCOUNT
    ctx.sessions.set_state(user_id, state)

    await ctx.reply(
        user_id,
        ASK_ACCOUNT_MD.format(progress=escape_markdown_v2(get_progress_message(state))),
        markdown=True
    )


async def handle_account_input(ctx: FlowContext, user_id: int, message: str) -> None:
    """
    Stores the account number and asks for the school code.

    The identifier is taken as typed; the provider is the only judge of it.
    """
    account = sanitize_input(message)
    ctx.sessions.set_scratch(user_id, SCRATCH_ACCOUNT, account)

    state = ConversationState.AWAIT_CUSTOMER_CODE
    ctx.sessions.set_state(user_id, state)

    await ctx.reply(
        user_id,
        ASK_CUSTOMER_CODE_MD.format(
            account=escape_markdown_v2_code(account),
            progress=escape_markdown_v2(get_progress_message(state))
        ),
        markdown=True
    )


async def handle_customer_code_input(ctx: FlowContext, user_id: int, message: str) -> None:
    """
    Verifies the (account, customer code) pair and stores the binding.

    Every outcome ends the flow and clears the pending account.

    Args:
        ctx: Flow collaborators
        user_id: Telegram user ID
        message: School code as typed
    """
    customer_code = sanitize_input(message)
    account = ctx.sessions.get_scratch(user_id, SCRATCH_ACCOUNT)

    with LogContext(user_id=user_id, account=account):
        await ctx.reply(user_id, VERIFYING_MESSAGE)

        try:
            rooms = await ctx.provider.get_balance(account, customer_code)
        except BalanceProviderError as e:
            logger.info(f"Verification failed: {e.message}")
            ctx.sessions.reset(user_id)
            await ctx.reply(user_id, VERIFY_FAILED_MESSAGE.format(reason=e.message))
            return

        if not rooms:
            logger.info("Verification returned no rooms")
            ctx.sessions.reset(user_id)
            await ctx.reply(user_id, NO_ROOMS_MESSAGE)
            return

        first = rooms[0]
        created = await create_binding(
            user_id=user_id,
            account=account,
            customer_code=customer_code,
            room_name=first.room_name,
            balance=first.balance,
            checked_at=utcnow()
        )
        ctx.sessions.reset(user_id)

        if not created:
            await ctx.reply(user_id, ALREADY_BOUND_MESSAGE)
            return

        await ctx.reply(
            user_id,
            BIND_SUCCESS_MD.format(
                room=escape_markdown_v2(first.room_name),
                balance=escape_markdown_v2_code(format_amount(first.balance))
            ),
            markdown=True
        )


def _unbind_rows(accounts: List[str]) -> List[List[Dict[str, Any]]]:
    rows = []
    for account in accounts:
        try:
            button = create_inline_button(
                BUTTON_UNBIND.format(account=account),
                f"{CALLBACK_UNBIND_PREFIX}{account}"
            )
        except ValueError:
            logger.warning(f"Account too long for an unbind button: {account[:20]}...")
            continue
        rows.append([button])
    return rows


async def handle_accounts_view(ctx: FlowContext, user_id: int) -> None:
    """
    Shows the user's bound accounts with add / unbind buttons.
    """
    ctx.sessions.reset(user_id)
    bindings = await get_user_bindings(user_id)

    text = ACCOUNTS_HEADER_MD
    if not bindings:
        text += ACCOUNTS_EMPTY_MD

    accounts: List[str] = []
    for binding in bindings:
        text += ACCOUNT_LINE_MD.format(
            account=escape_markdown_v2_code(binding.account),
            room=escape_markdown_v2(binding.room_name)
        )
        # Unbind works per account, so one button covers every code under it
        if binding.account not in accounts:
            accounts.append(binding.account)

    rows = [[create_inline_button(BUTTON_ADD_ACCOUNT, CALLBACK_ADD_ACCOUNT)]]
    rows.extend(_unbind_rows(accounts))

    await ctx.reply(user_id, text, markdown=True, reply_markup=create_inline_keyboard(rows))


async def handle_unbind(
    ctx: FlowContext,
    user_id: int,
    account: str,
    callback_id: Optional[str] = None
) -> bool:
    """
    Removes the user's bindings for an account and refreshes the list.

    Returns:
        True if anything was removed
    """
    removed = await delete_binding(user_id, account)

    if not removed:
        await ctx.notify(user_id, UNBIND_NOT_FOUND_NOTICE, callback_id)
        return False

    await ctx.notify(user_id, UNBIND_SUCCESS_NOTICE, callback_id)
    await handle_accounts_view(ctx, user_id)
    return True
