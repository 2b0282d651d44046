"""
app/schemas/webhook.py

Purpose: Telegram webhook payload schemas and parsers

- Validates incoming Telegram updates
- Normalizes text messages and inline-button callbacks into UnifiedMessage
- Ensures predictable request handling
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from utils.time_utils import utcnow


class UnifiedMessage(BaseModel):
    """
    Normalized inbound event for internal processing.
    Either text (typed message / menu button) or callback_data (inline button).
    """
    user_id: int = Field(..., description="Telegram user ID of the sender")
    chat_id: int = Field(..., description="Chat the event came from")
    name: str = Field(default="", description="Sender display name")
    text: str = Field(default="", description="Message text content")
    message_id: Optional[int] = Field(default=None, description="Telegram message ID")
    timestamp: datetime = Field(default_factory=utcnow)

    # Inline button presses
    callback_id: Optional[str] = None
    callback_data: Optional[str] = None

    @property
    def is_callback(self) -> bool:
        return self.callback_id is not None

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_id": 123456789,
                "chat_id": 123456789,
                "name": "Li Hua",
                "text": "/start",
                "message_id": 42
            }
        }
    }


def _display_name(sender: Dict[str, Any]) -> str:
    parts = [sender.get("first_name", ""), sender.get("last_name", "")]
    name = " ".join(p for p in parts if p).strip()
    return name or sender.get("username", "") or str(sender.get("id", ""))


def parse_telegram_update(payload: Dict[str, Any]) -> Optional[UnifiedMessage]:
    """
    Parses a Telegram Update.

    Telegram format (JSON):
    {
        "update_id": 1,
        "message": {
            "message_id": 42,
            "from": {"id": 123, "first_name": "Li"},
            "chat": {"id": 123, "type": "private"},
            "date": 1732890000,
            "text": "/start"
        }
    }
    or
    {
        "update_id": 2,
        "callback_query": {
            "id": "4382",
            "from": {"id": 123},
            "message": {"message_id": 43, "chat": {"id": 123}},
            "data": "unbind:2021001"
        }
    }

    Returns:
        UnifiedMessage, or None for updates that carry neither text nor a callback
    """
    callback = payload.get("callback_query")
    if callback:
        sender = callback.get("from") or {}
        message = callback.get("message") or {}
        chat = message.get("chat") or {}
        if "id" not in sender:
            return None
        return UnifiedMessage(
            user_id=sender["id"],
            chat_id=chat.get("id", sender["id"]),
            name=_display_name(sender),
            message_id=message.get("message_id"),
            callback_id=str(callback.get("id", "")),
            callback_data=(callback.get("data") or "").strip()
        )

    message = payload.get("message")
    if not message or "text" not in message:
        return None

    sender = message.get("from") or {}
    chat = message.get("chat") or {}
    if "id" not in sender:
        return None

    timestamp = (
        datetime.fromtimestamp(message["date"], tz=timezone.utc).replace(tzinfo=None)
        if isinstance(message.get("date"), int)
        else utcnow()
    )

    return UnifiedMessage(
        user_id=sender["id"],
        chat_id=chat.get("id", sender["id"]),
        name=_display_name(sender),
        text=message["text"],
        message_id=message.get("message_id"),
        timestamp=timestamp
    )
