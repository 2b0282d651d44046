"""
app/models/binding.py

Purpose: Binding document model

- One linked (account, customer code) pair owned by a user
- Cached room name / balance from the last successful query
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Binding(BaseModel):
    """A utility account linked to a user."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[Any] = Field(default=None, alias="_id")
    user_id: int
    account: str
    customer_code: str
    room_name: str = ""
    last_balance: float = 0.0
    last_check: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Binding":
        return cls.model_validate(doc)

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"id"})
        if self.id is not None:
            doc["_id"] = self.id
        return doc
