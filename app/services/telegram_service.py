"""
app/services/telegram_service.py

Purpose: Telegram Bot API message sending

- Sends text messages with optional MarkdownV2 and keyboards
- Answers inline-button callbacks and deletes transient messages
- Registers / removes the webhook
- Never raises: callers get a result dict, delivery is fire-and-forget
"""

import httpx
from typing import Dict, Any, Optional
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class TelegramService:
    """Service for talking to the Telegram Bot API"""

    def __init__(
        self,
        token: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.token = token or settings.TELEGRAM_BOT_TOKEN
        self.base_url = f"{api_base or settings.TELEGRAM_API_BASE}/bot{self.token}"
        self.timeout = timeout
        self._transport = transport

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Calls a Bot API method.

        Returns:
            {
                "success": True/False,
                "result": <Bot API result>,
                "error": "Optional error message"
            }
        """
        url = f"{self.base_url}/{method}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)

            data = response.json()
            if response.status_code == 200 and data.get("ok"):
                return {"success": True, "result": data.get("result")}

            description = data.get("description", f"HTTP {response.status_code}")
            logger.error(f"❌ Telegram API error on {method}: {description}")
            return {"success": False, "error": description}

        except httpx.TimeoutException:
            logger.error(f"Telegram API timeout on {method}")
            return {"success": False, "error": "Telegram API timeout"}
        except Exception as e:
            logger.error(f"Error calling Telegram {method}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def send_message(
        self,
        chat_id: int,
        text: str,
        parse_mode: Optional[str] = None,
        reply_markup: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Sends a text message.

        Args:
            chat_id: Recipient chat (the user ID for private chats)
            text: Message text
            parse_mode: "MarkdownV2" or None for plain text
            reply_markup: Optional keyboard payload

        Returns:
            {"success": bool, "message_id": int | None, "error": str | None}
        """
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup:
            payload["reply_markup"] = reply_markup

        logger.debug(f"📤 Sending Telegram message to {chat_id}")
        result = await self._call("sendMessage", payload)

        if not result["success"]:
            return {"success": False, "message_id": None, "error": result["error"]}

        message_id = (result.get("result") or {}).get("message_id")
        return {"success": True, "message_id": message_id}

    async def delete_message(self, chat_id: int, message_id: int) -> Dict[str, Any]:
        return await self._call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Acknowledges an inline button press, optionally with a toast notice.
        """
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        return await self._call("answerCallbackQuery", payload)

    async def set_webhook(self, url: str, secret_token: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "url": url,
            "allowed_updates": ["message", "callback_query"],
        }
        if secret_token:
            payload["secret_token"] = secret_token

        result = await self._call("setWebhook", payload)
        if result["success"]:
            logger.info(f"✅ Telegram webhook registered: {url}")
        return result

    async def delete_webhook(self) -> Dict[str, Any]:
        return await self._call("deleteWebhook", {})

    def is_configured(self) -> bool:
        """Check if a bot token is present"""
        return bool(self.token)
