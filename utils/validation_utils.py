"""
utils/validation_utils.py

Purpose: Input validation

- Threshold parsing (decimal numbers)
- Check interval parsing (whole minutes, at most one year)
- Input sanitization
"""

import math
import re
from typing import Optional

_DECIMAL_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_POSITIVE_INT_PATTERN = re.compile(r"^\+?\d+$")

# One year in minutes
MAX_CHECK_INTERVAL = 525600


def sanitize_input(text: Optional[str]) -> str:
    """
    Strips surrounding whitespace from user input.
    """
    if not text:
        return ""
    return text.strip()


def parse_threshold(text: Optional[str]) -> Optional[float]:
    """
    Parses a low-balance threshold.

    Accepts plain decimals such as "10", "7.5", "-1" or "1e2".

    Args:
        text: User input

    Returns:
        The threshold, or None if the input is not a finite number
    """
    value = sanitize_input(text)
    if not _DECIMAL_PATTERN.match(value):
        return None

    threshold = float(value)
    if not math.isfinite(threshold):
        return None
    return threshold


def parse_check_interval(text: Optional[str]) -> Optional[int]:
    """
    Parses a check interval in minutes.

    Args:
        text: User input

    Returns:
        The interval, or None unless the input is a whole number
        between 1 and MAX_CHECK_INTERVAL
    """
    value = sanitize_input(text)
    if not _POSITIVE_INT_PATTERN.match(value):
        return None

    interval = int(value)
    if interval < 1 or interval > MAX_CHECK_INTERVAL:
        return None
    return interval
