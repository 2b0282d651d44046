"""
app/models/user.py

Purpose: User document model

- Telegram user ID
- Alert settings (enabled flag, threshold, check interval)
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Alert settings of one chat user."""

    model_config = ConfigDict(extra="ignore")

    user_id: int
    alert_enabled: bool = False
    notify_threshold: float = 10.0
    check_interval: int = Field(default=60, ge=1)  # minutes
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        return cls.model_validate(doc)
