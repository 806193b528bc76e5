"""Baseline score schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BaselineScoreUpsert(BaseModel):
    """Set the manual mastery score for one student on one node."""

    student_id: int = Field(gt=0)
    node_id: int = Field(gt=0)
    score: Optional[float] = Field(default=None, allow_inf_nan=False)
    comment: Optional[str] = Field(default=None, max_length=300)


class BaselineScore(BaseModel):
    """Stored baseline score."""

    id: int
    student_id: int
    node_id: int
    score: Optional[float] = None
    comment: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True
