"""Instructor view of one student's progress in one tree."""

from ktree.auth import require_instructor
from ktree.db.base import get_db
from ktree.schemas.progress import BaselineSummaryView, ProgressNode, StudentTree
from ktree.schemas.trees import Tree
from ktree.services.progress import ProgressService, TreeProgress
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


def to_student_tree(view: TreeProgress) -> StudentTree:
    return StudentTree(
        tree=Tree.model_validate(view.tree),
        root=ProgressNode.from_assembled(view.root) if view.root else None,
        summary=BaselineSummaryView.of(view.summary),
    )


@router.get("", response_model=StudentTree)
async def get_progress(
    student_id: int = Query(gt=0),
    tree_id: int = Query(gt=0),
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> StudentTree:
    """Scores, drafts and submission statistics for one student in one tree."""
    view = await ProgressService(db).student_tree(student_id, tree_id)
    return to_student_tree(view)
