"""Student roster schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class StudentCreate(BaseModel):
    """Create student request."""

    username: str = Field(min_length=1, max_length=80)
    name: Optional[str] = Field(default=None, max_length=80)


class StudentUpdate(BaseModel):
    """Partial student update."""

    username: Optional[str] = Field(default=None, min_length=1, max_length=80)
    name: Optional[str] = Field(default=None, max_length=80)


class Student(BaseModel):
    """Student response."""

    id: int
    username: str
    name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class StudentList(BaseModel):
    """List of students."""

    items: List[Student]
