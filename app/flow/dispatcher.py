"""
app/flow/dispatcher.py

Purpose: Central message dispatcher

- Receives normalized messages from the webhook
- Menu buttons and /start always win over a pending prompt
- Free text is routed by the user's conversation state
- Inline-button callbacks are routed by their data and always answered
"""

from typing import Any, Awaitable, Callable, Dict

from app.schemas.webhook import UnifiedMessage
from app.flow.context import FlowContext
from app.flow.states import ConversationState
from app.flow.handlers.welcome import handle_welcome
from app.flow.handlers.balance import handle_check_balance
from app.flow.handlers.account import (
    handle_add_account_request,
    handle_account_input,
    handle_customer_code_input,
    handle_accounts_view,
    handle_unbind,
)
from app.flow.handlers.settings import (
    handle_settings_view,
    handle_toggle_alert,
    handle_threshold_request,
    handle_interval_request,
    handle_threshold_input,
    handle_interval_input,
)
from app.core.logging import get_logger, LogContext
from utils.constants import (
    START_COMMAND,
    BUTTON_CHECK_BALANCE,
    BUTTON_ACCOUNTS,
    BUTTON_SETTINGS,
    CALLBACK_ADD_ACCOUNT,
    CALLBACK_TOGGLE_ALERT,
    CALLBACK_SET_THRESHOLD,
    CALLBACK_SET_INTERVAL,
    CALLBACK_UNBIND_PREFIX,
    GENERIC_ERROR_MESSAGE,
)

logger = get_logger(__name__)

TextHandler = Callable[[FlowContext, int, str], Awaitable[None]]
MenuHandler = Callable[[FlowContext, int], Awaitable[None]]


def is_start_command(text: str) -> bool:
    """Matches /start, /start@botname and /start <payload>"""
    parts = text.strip().split()
    if not parts:
        return False
    return parts[0].split("@", 1)[0] == START_COMMAND


class Dispatcher:
    """Routes inbound Telegram events to flow handlers"""

    def __init__(self, ctx: FlowContext):
        self.ctx = ctx

        self._menu_handlers: Dict[str, MenuHandler] = {
            BUTTON_CHECK_BALANCE: handle_check_balance,
            BUTTON_ACCOUNTS: handle_accounts_view,
            BUTTON_SETTINGS: handle_settings_view,
        }

        # IDLE has no entry: free text outside a prompt is ignored
        self._state_handlers: Dict[ConversationState, TextHandler] = {
            ConversationState.AWAIT_ACCOUNT: handle_account_input,
            ConversationState.AWAIT_CUSTOMER_CODE: handle_customer_code_input,
            ConversationState.AWAIT_THRESHOLD: handle_threshold_input,
            ConversationState.AWAIT_INTERVAL: handle_interval_input,
        }

    async def dispatch_message(self, message: UnifiedMessage) -> Dict[str, Any]:
        """
        Main entry point for a parsed Telegram update.

        Args:
            message: Normalized message object

        Returns:
            Response dict
        """
        user_id = message.user_id
        logger.info(
            f"📨 Dispatching {'callback' if message.is_callback else 'message'} from {user_id}"
        )

        try:
            if message.is_callback:
                await self.handle_callback(user_id, message.callback_id, message.callback_data or "")
            elif is_start_command(message.text):
                await handle_welcome(self.ctx, user_id)
            elif message.text.strip() in self._menu_handlers:
                await self._menu_handlers[message.text.strip()](self.ctx, user_id)
            else:
                await self.handle_text(user_id, message.text)

            return {"status": "success"}

        except Exception as e:
            logger.error(f"❌ Dispatcher error: {e}", exc_info=True)

            # Never leave a user stuck halfway through a prompt
            self.ctx.sessions.reset(user_id)
            await self.ctx.reply(user_id, GENERIC_ERROR_MESSAGE)
            if message.is_callback:
                await self.ctx.messenger.answer_callback_query(message.callback_id)

            return {"status": "error", "error": str(e)}

    async def handle_text(self, user_id: int, text: str) -> bool:
        """
        Routes free text according to the user's conversation state.

        Returns:
            True if a handler consumed the text, False if it was ignored
        """
        state = self.ctx.sessions.get_state(user_id)
        handler = self._state_handlers.get(state)

        if handler is None:
            logger.debug(f"Ignoring free text from {user_id} in state {state.value}")
            return False

        with LogContext(user_id=user_id, state=state.value):
            logger.info(f"🚦 Routing text to {handler.__name__}")
            await handler(self.ctx, user_id, text)
        return True

    async def handle_callback(self, user_id: int, callback_id: str, data: str) -> None:
        """
        Routes an inline-button press.

        Handlers that show a notice answer the callback themselves;
        every other path is answered here without text.
        """
        logger.info(f"🔘 Callback '{data}' from {user_id}")

        if data == CALLBACK_TOGGLE_ALERT:
            await handle_toggle_alert(self.ctx, user_id, callback_id=callback_id)
            return

        if data.startswith(CALLBACK_UNBIND_PREFIX):
            account = data[len(CALLBACK_UNBIND_PREFIX):]
            await handle_unbind(self.ctx, user_id, account, callback_id=callback_id)
            return

        if data == CALLBACK_ADD_ACCOUNT:
            await handle_add_account_request(self.ctx, user_id)
        elif data == CALLBACK_SET_THRESHOLD:
            await handle_threshold_request(self.ctx, user_id)
        elif data == CALLBACK_SET_INTERVAL:
            await handle_interval_request(self.ctx, user_id)
        else:
            logger.warning(f"⚠️ Unknown callback data: {data}")

        await self.ctx.messenger.answer_callback_query(callback_id)
