"""
utils/time_utils.py

Purpose: Time helpers

- Naive UTC "now" matching what MongoDB hands back
- Due-check for binding polling intervals
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Current UTC time without tzinfo, truncated to milliseconds like BSON dates.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def is_check_due(last_check: Optional[datetime], interval_minutes: int, now: datetime) -> bool:
    """
    Checks whether a binding should be polled again.

    Args:
        last_check: Time of the last successful query (None if never)
        interval_minutes: Configured check interval
        now: Current time

    Returns:
        True once at least interval_minutes have elapsed since last_check
    """
    if not last_check:
        return True
    return now - last_check >= timedelta(minutes=interval_minutes)

