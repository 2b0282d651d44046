"""
app/schemas/response.py

Purpose: HTTP error body shared by every exception handler
"""

from pydantic import BaseModel, Field
from typing import Optional, Any


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable message")
    code: str = Field(..., description="Machine-readable error code")
    details: Optional[Any] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "Invalid webhook secret token",
                "code": "AUTHENTICATION_FAILED",
                "details": None
            }
        }
    }
