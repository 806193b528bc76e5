"""Student roster endpoints (instructor)."""

from ktree.auth import require_instructor
from ktree.db.base import get_db
from ktree.schemas.common import OkResponse
from ktree.schemas.students import Student, StudentCreate, StudentList, StudentUpdate
from ktree.services.students import StudentService
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("", response_model=StudentList)
async def list_students(
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> StudentList:
    """List students."""
    students = await StudentService(db).list_students()
    return StudentList(items=[Student.model_validate(s) for s in students])


@router.post("", response_model=Student, status_code=201)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> Student:
    """Register a student."""
    student = await StudentService(db).create_student(payload.username, payload.name)
    return Student.model_validate(student)


@router.patch("/{student_id}", response_model=Student)
async def update_student(
    student_id: int,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> Student:
    """Rename a student."""
    student = await StudentService(db).update_student(
        student_id, **payload.model_dump(exclude_unset=True)
    )
    return Student.model_validate(student)


@router.delete("/{student_id}", response_model=OkResponse)
async def delete_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> OkResponse:
    """Delete a student and their work."""
    await StudentService(db).delete_student(student_id)
    return OkResponse()
