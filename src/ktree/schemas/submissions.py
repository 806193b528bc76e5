"""Draft and submission schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

MAX_CODE_TEXT = 20000


class CodeImage(BaseModel):
    """Inline image upload, base64 or data URL."""

    image_base64: str = Field(min_length=1)
    image_mime_type: Optional[str] = None


class DraftUpdate(BaseModel):
    """Draft edit; omitted fields keep their stored value."""

    code_text: Optional[str] = Field(default=None, max_length=MAX_CODE_TEXT)
    image: Optional[CodeImage] = None
    remove_image: bool = False


class Draft(BaseModel):
    """Current draft; all fields null once the draft is cleared."""

    student_id: int
    node_id: int
    code_text: Optional[str] = None
    code_image_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionCreate(BaseModel):
    """Submit work for a node."""

    node_id: int = Field(gt=0)
    code_text: Optional[str] = Field(default=None, max_length=MAX_CODE_TEXT)
    image: Optional[CodeImage] = None
    clear_draft: bool = False


class SubmissionScoreUpdate(BaseModel):
    """Instructor grading of one submission; nulls clear the grade."""

    score: Optional[float] = Field(default=None, allow_inf_nan=False)
    comment: Optional[str] = Field(default=None, max_length=300)


class Submission(BaseModel):
    """Submission response."""

    id: int
    student_id: int
    node_id: int
    code_text: Optional[str] = None
    code_image_url: Optional[str] = None
    submitted_at: datetime
    teacher_score: Optional[float] = None
    teacher_comment: Optional[str] = None
    scored_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionList(BaseModel):
    """Submission history, newest first."""

    items: List[Submission]
