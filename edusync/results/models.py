from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from edusync.db import utcnow


class Result(BaseModel):
    """
    One graded attempt. Written once, never updated.
    Multiple attempts per (student, assessment) are separate rows.
    """
    result_id: str  # RES_XXXXXXXXXXXX
    assessment_id: str
    user_id: str
    score: int = Field(..., ge=0)
    attempt_date: datetime = Field(default_factory=utcnow)
    submission_token: Optional[str] = None  # client idempotency key, optional
