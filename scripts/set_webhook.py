"""
Register or remove the Telegram webhook

Run this script after deploying to point Telegram at the bot,
or with --delete to stop webhook delivery.

Usage:
    python scripts/set_webhook.py https://bot.example.com/api/v1/telegram/webhook
    python scripts/set_webhook.py --delete
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

from app.core.config import settings
from app.services.telegram_service import TelegramService


async def set_webhook(url: str) -> bool:
    print("=" * 60)
    print("  Telegram Webhook Registration")
    print("=" * 60 + "\n")

    service = TelegramService()
    if not service.is_configured():
        print("⚠️  Please set TELEGRAM_BOT_TOKEN in .env file")
        return False

    print(f"Webhook URL: {url}")
    print(f"Secret token: {'✅ Set' if settings.TELEGRAM_WEBHOOK_SECRET else '❌ Not set'}\n")

    result = await service.set_webhook(url, secret_token=settings.TELEGRAM_WEBHOOK_SECRET)
    if result["success"]:
        print("✅ Webhook registered")
        return True

    print(f"❌ Failed: {result.get('error')}")
    return False


async def delete_webhook() -> bool:
    service = TelegramService()
    if not service.is_configured():
        print("⚠️  Please set TELEGRAM_BOT_TOKEN in .env file")
        return False

    result = await service.delete_webhook()
    if result["success"]:
        print("✅ Webhook removed")
        return True

    print(f"❌ Failed: {result.get('error')}")
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description="Manage the Telegram webhook")
    parser.add_argument("url", nargs="?", default=None, help="Public webhook URL (defaults to TELEGRAM_WEBHOOK_URL)")
    parser.add_argument("--delete", action="store_true", help="Remove the webhook instead")
    args = parser.parse_args()

    if args.delete:
        ok = asyncio.run(delete_webhook())
    else:
        url = args.url or settings.TELEGRAM_WEBHOOK_URL
        if not url:
            parser.error("a webhook URL is required (argument or TELEGRAM_WEBHOOK_URL)")
        ok = asyncio.run(set_webhook(url))

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
