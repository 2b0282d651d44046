"""
app/api/webhook.py

Purpose: Telegram webhook endpoint

- Verifies the secret token Telegram echoes back on every update
- Parses updates and normalizes them into UnifiedMessage
- Passes control to the flow dispatcher owned by the application
- Always acknowledges handled updates so Telegram does not redeliver them
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Header, Request

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ValidationError
from app.core.logging import get_logger
from app.schemas.webhook import parse_telegram_update

logger = get_logger(__name__)
router = APIRouter()

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def verify_secret_token(received: Optional[str]) -> None:
    """
    Raises AuthenticationError unless the header matches TELEGRAM_WEBHOOK_SECRET.
    No secret configured means no check.
    """
    expected = settings.TELEGRAM_WEBHOOK_SECRET
    if not expected:
        return
    if not received or not secrets.compare_digest(received, expected):
        raise AuthenticationError("Invalid webhook secret token")


@router.post("/telegram/webhook")
async def telegram_webhook(
    request: Request,
    secret_token: Optional[str] = Header(None, alias=SECRET_HEADER)
):
    """
    Telegram webhook endpoint for messages and inline-button callbacks.
    """
    verify_secret_token(secret_token)

    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Invalid webhook payload")

    if not isinstance(payload, dict):
        raise ValidationError("Invalid webhook payload")

    message = parse_telegram_update(payload)
    if message is None:
        logger.debug(f"Ignoring update {payload.get('update_id')} without text or callback")
        return {"status": "ignored"}

    logger.info(
        f"📱 Telegram update from {message.user_id}: "
        f"{message.callback_data if message.is_callback else message.text[:50]}"
    )

    dispatcher = request.app.state.dispatcher
    result = await dispatcher.dispatch_message(message)
    return {"status": result.get("status", "success")}


@router.get("/telegram/webhook")
async def webhook_verification():
    """
    Lets operators confirm the endpoint is reachable.
    """
    return {"status": "ok", "message": "Webhook endpoint is active"}
