"""Common response schemas."""

from typing import Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True
    note: Optional[str] = None
