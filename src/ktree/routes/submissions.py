"""Submission review and grading endpoints (instructor)."""

from ktree.auth import require_instructor
from ktree.db.base import get_db
from ktree.schemas.submissions import Submission, SubmissionList, SubmissionScoreUpdate
from ktree.services.students import StudentService
from ktree.services.submissions import SubmissionService
from ktree.services.trees import TreeService
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("", response_model=SubmissionList)
async def list_submissions(
    student_id: int = Query(gt=0),
    tree_id: int = Query(gt=0),
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> SubmissionList:
    """A student's submissions within one tree, newest first."""
    await StudentService(db).get_student(student_id)
    await TreeService(db).get_tree(tree_id)
    history = await SubmissionService(db).get_history(student_id, tree_id=tree_id)
    return SubmissionList(items=[Submission.model_validate(s) for s in history])


@router.put("/{submission_id}/score", response_model=Submission)
async def score_submission(
    submission_id: int,
    payload: SubmissionScoreUpdate,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> Submission:
    """Grade a submission; null score and comment clear the grade."""
    submission = await SubmissionService(db).score_submission(
        submission_id, payload.score, payload.comment
    )
    return Submission.model_validate(submission)
