"""
app/flow/handlers/settings.py

Handles: Alert settings

- Settings summary with inline buttons
- Toggle alerts (immediate, no prompt)
- AWAIT_THRESHOLD / AWAIT_INTERVAL: validate, persist, re-render
- Invalid input keeps the user in the same state so they can retry
"""

from typing import Optional

from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.models.user import User
from app.services.user_service import (
    get_user_by_id,
    get_or_create_user,
    toggle_alert,
    update_threshold,
    update_check_interval,
)
from app.core.logging import get_logger, LogContext
from utils.constants import (
    SETTINGS_MD,
    SETTINGS_INIT_MESSAGE,
    SETTINGS_UPDATED_NOTICE,
    ASK_THRESHOLD_MD,
    ASK_INTERVAL_MD,
    INVALID_NUMBER_MESSAGE,
    INVALID_INTERVAL_MESSAGE,
    THRESHOLD_UPDATED_MESSAGE,
    INTERVAL_UPDATED_MESSAGE,
    BUTTON_SET_THRESHOLD,
    BUTTON_SET_INTERVAL,
    BUTTON_TOGGLE_ALERT,
    CALLBACK_SET_THRESHOLD,
    CALLBACK_SET_INTERVAL,
    CALLBACK_TOGGLE_ALERT,
)
from utils.telegram_utils import (
    create_inline_button,
    create_inline_keyboard,
    escape_markdown_v2_code,
    format_amount,
)
from utils.validation_utils import parse_threshold, parse_check_interval

logger = get_logger(__name__)


async def render_settings(ctx: FlowContext, user: User) -> None:
    """Sends the settings summary. Does not touch conversation state."""
    text = SETTINGS_MD.format(
        threshold=escape_markdown_v2_code(format_amount(user.notify_threshold)),
        enabled="ON" if user.alert_enabled else "OFF",
        interval=user.check_interval
    )
    keyboard = create_inline_keyboard([
        [
            create_inline_button(BUTTON_SET_THRESHOLD, CALLBACK_SET_THRESHOLD),
            create_inline_button(BUTTON_SET_INTERVAL, CALLBACK_SET_INTERVAL),
        ],
        [create_inline_button(BUTTON_TOGGLE_ALERT, CALLBACK_TOGGLE_ALERT)],
    ])
    await ctx.reply(user.user_id, text, markdown=True, reply_markup=keyboard)


async def handle_settings_view(ctx: FlowContext, user_id: int) -> None:
    """
    Shows alert settings, creating the user record if it is missing.
    """
    ctx.sessions.reset(user_id)

    user = await get_user_by_id(user_id)
    if user is None:
        user = await get_or_create_user(user_id)
        await ctx.reply(user_id, SETTINGS_INIT_MESSAGE)

    await render_settings(ctx, user)


async def handle_toggle_alert(
    ctx: FlowContext,
    user_id: int,
    callback_id: Optional[str] = None
) -> None:
    user = await toggle_alert(user_id)
    await ctx.notify(user_id, SETTINGS_UPDATED_NOTICE, callback_id)
    await render_settings(ctx, user)


async def handle_threshold_request(ctx: FlowContext, user_id: int) -> None:
    ctx.sessions.set_state(user_id, ConversationState.AWAIT_THRESHOLD)
    await ctx.reply(user_id, ASK_THRESHOLD_MD, markdown=True)


async def handle_interval_request(ctx: FlowContext, user_id: int) -> None:
    ctx.sessions.set_state(user_id, ConversationState.AWAIT_INTERVAL)
    await ctx.reply(user_id, ASK_INTERVAL_MD, markdown=True)


async def handle_threshold_input(ctx: FlowContext, user_id: int, message: str) -> None:
    """
    Validates and stores a new threshold.

    Args:
        ctx: Flow collaborators
        user_id: Telegram user ID
        message: Decimal number as typed
    """
    with LogContext(user_id=user_id, state=ConversationState.AWAIT_THRESHOLD.value):
        threshold = parse_threshold(message)
        if threshold is None:
            logger.info("Rejected threshold input")
            await ctx.reply(user_id, INVALID_NUMBER_MESSAGE)
            return

        user = await update_threshold(user_id, threshold)
        ctx.sessions.reset(user_id)

        await ctx.reply(user_id, THRESHOLD_UPDATED_MESSAGE)
        await render_settings(ctx, user)


async def handle_interval_input(ctx: FlowContext, user_id: int, message: str) -> None:
    """
    Validates and stores a new check interval (whole minutes, at least 1).
    """
    with LogContext(user_id=user_id, state=ConversationState.AWAIT_INTERVAL.value):
        interval = parse_check_interval(message)
        if interval is None:
            logger.info("Rejected interval input")
            await ctx.reply(user_id, INVALID_INTERVAL_MESSAGE)
            return

        user = await update_check_interval(user_id, interval)
        ctx.sessions.reset(user_id)

        await ctx.reply(user_id, INTERVAL_UPDATED_MESSAGE)
        await render_settings(ctx, user)
