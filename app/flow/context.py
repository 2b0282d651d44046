"""
app/flow/context.py

Purpose: Collaborators shared by every flow handler

- Conversation session store (owned by the application, not a module global)
- Balance provider client
- Outbound Telegram messenger
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.services.session_service import ConversationSessionStore
from app.services.telegram_service import TelegramService
from app.services.wanxiao_service import WanxiaoClient
from utils.telegram_utils import PARSE_MODE_MARKDOWN_V2


@dataclass
class FlowContext:
    sessions: ConversationSessionStore
    provider: WanxiaoClient
    messenger: TelegramService

    async def reply(
        self,
        user_id: int,
        text: str,
        markdown: bool = False,
        reply_markup: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Sends a message to the user's private chat.

        Args:
            user_id: Recipient
            text: Plain text, or pre-escaped MarkdownV2 when markdown=True
            reply_markup: Optional keyboard
        """
        return await self.messenger.send_message(
            user_id,
            text,
            parse_mode=PARSE_MODE_MARKDOWN_V2 if markdown else None,
            reply_markup=reply_markup
        )

    async def notify(self, user_id: int, text: str, callback_id: Optional[str] = None) -> None:
        """
        Short notice: a toast on the pressed button, or a plain message without one.
        """
        if callback_id:
            await self.messenger.answer_callback_query(callback_id, text)
        else:
            await self.reply(user_id, text)
