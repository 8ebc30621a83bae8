"""Schema for lesson analysis requests."""

from typing import Optional

from pydantic import BaseModel


class AnalyzeRequest(BaseModel):
    prompt: Optional[str] = None
    text: Optional[str] = None
