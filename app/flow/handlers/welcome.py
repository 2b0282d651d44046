"""
app/flow/handlers/welcome.py

Handles: /start

- Creates the user record on first contact
- Resets any half-finished workflow
- Sends the welcome message with the main menu keyboard
"""

from app.flow.context import FlowContext
from app.services.user_service import get_or_create_user
from utils.constants import WELCOME_MESSAGE, MAIN_MENU_ROWS
from utils.telegram_utils import create_reply_keyboard
from app.core.logging import get_logger, LogContext

logger = get_logger(__name__)


async def handle_welcome(ctx: FlowContext, user_id: int) -> None:
    """
    Handles /start and initializes the user's session.

    Args:
        ctx: Flow collaborators
        user_id: Telegram user ID
    """
    with LogContext(user_id=user_id, state="IDLE"):
        logger.info("Processing welcome interaction")

        await get_or_create_user(user_id)
        ctx.sessions.reset(user_id)

        await ctx.reply(
            user_id,
            WELCOME_MESSAGE,
            reply_markup=create_reply_keyboard(MAIN_MENU_ROWS)
        )
