"""Student roster service."""

import logging
from typing import Any, List, Optional, cast

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ktree.errors import NotFound
from ktree.models import Student, StudentNodeSubmission, StudentNodeWork, StudentScore
from ktree.services.common import UNSET, commit_or_conflict, required_text

logger = logging.getLogger(__name__)


class StudentService:
    """Service for student identity rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_students(self) -> List[Student]:
        """List students newest first."""
        result = await self.db.execute(select(Student).order_by(Student.id.desc()))
        return list(result.scalars().all())

    async def get_student(self, student_id: int) -> Student:
        """Get student by ID or raise NotFound."""
        student = await self.db.get(Student, student_id)
        if not student:
            raise NotFound("Student not found", {"student_id": student_id})
        return student

    async def create_student(self, username: str, name: Optional[str] = None) -> Student:
        """Register a student record."""
        student = Student(username=required_text(username, "username"), name=name)
        self.db.add(student)
        await commit_or_conflict(self.db, "Username is already taken")
        await self.db.refresh(student)
        return student

    async def update_student(
        self, student_id: int, username: Any = UNSET, name: Any = UNSET
    ) -> Student:
        """Rename a student."""
        student = await self.get_student(student_id)
        s = cast(Any, student)
        if username is not UNSET and username is not None:
            s.username = required_text(username, "username")
        if name is not UNSET:
            s.name = name

        await commit_or_conflict(self.db, "Username is already taken")
        await self.db.refresh(student)
        return student

    async def delete_student(self, student_id: int) -> None:
        """Delete a student with their scores, drafts and submissions."""
        await self.get_student(student_id)
        for model in (StudentScore, StudentNodeWork, StudentNodeSubmission):
            await self.db.execute(delete(model).where(model.student_id == student_id))
        await self.db.execute(delete(Student).where(Student.id == student_id))
        await self.db.commit()
        logger.info("Deleted student %s", student_id)
