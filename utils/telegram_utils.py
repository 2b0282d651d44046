"""
utils/telegram_utils.py

Purpose: Telegram message builders

- MarkdownV2 escaping for normal text and code spans
- Reply keyboard and inline keyboard payloads
- Abstracts Telegram Bot API formatting
"""

from typing import Any, Dict, List, Sequence

PARSE_MODE_MARKDOWN_V2 = "MarkdownV2"

# Characters that must be backslash-escaped outside code entities
_MARKDOWN_V2_SPECIAL = set("_*[]()~`>#+-=|{}.!\\")

# Inside `code` and ```pre``` entities only these need escaping
_MARKDOWN_V2_CODE_SPECIAL = set("`\\")

# Telegram rejects callback_data longer than 64 bytes
MAX_CALLBACK_DATA_BYTES = 64


def escape_markdown_v2(text: str) -> str:
    """
    Escapes text for use in a MarkdownV2 message body.

    Args:
        text: Raw text (room names, error reasons, ...)

    Returns:
        Escaped text
    """
    return "".join(f"\\{ch}" if ch in _MARKDOWN_V2_SPECIAL else ch for ch in text)


def escape_markdown_v2_code(text: str) -> str:
    """
    Escapes text placed inside a MarkdownV2 `code` span.
    """
    return "".join(f"\\{ch}" if ch in _MARKDOWN_V2_CODE_SPECIAL else ch for ch in text)


def create_reply_keyboard(rows: Sequence[Sequence[str]], resize: bool = True) -> Dict[str, Any]:
    """
    Creates a persistent reply keyboard (the main menu).

    Args:
        rows: Button labels, one inner sequence per row
        resize: Ask clients to shrink the keyboard to fit

    Returns:
        ReplyKeyboardMarkup payload

    Example:
        create_reply_keyboard([["🔌 Check Balance"], ["👤 Accounts", "⚙️ Alert Settings"]])
    """
    return {
        "keyboard": [[{"text": label} for label in row] for row in rows],
        "resize_keyboard": resize,
    }


def create_inline_button(text: str, callback_data: str) -> Dict[str, str]:
    """
    Creates one inline button.

    Raises:
        ValueError: If callback_data exceeds Telegram's 64-byte limit
    """
    if len(callback_data.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        raise ValueError(f"callback_data too long: {callback_data!r}")
    return {"text": text, "callback_data": callback_data}


def create_inline_keyboard(rows: List[List[Dict[str, str]]]) -> Dict[str, Any]:
    """
    Creates an inline keyboard attached to a message.

    Args:
        rows: Rows of buttons built with create_inline_button

    Returns:
        InlineKeyboardMarkup payload
    """
    return {"inline_keyboard": rows}


def format_amount(value: float) -> str:
    """Two-decimal rendering used for balances and thresholds."""
    return f"{value:.2f}"
