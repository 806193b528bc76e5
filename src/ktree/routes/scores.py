"""Baseline score endpoints (instructor)."""

from ktree.auth import require_instructor
from ktree.db.base import get_db
from ktree.schemas.common import OkResponse
from ktree.schemas.scores import BaselineScore, BaselineScoreUpsert
from ktree.services.scores import BaselineScoreService
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.put("", response_model=BaselineScore)
async def upsert_score(
    payload: BaselineScoreUpsert,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> BaselineScore:
    """Set the baseline score and comment for a student on a node."""
    row = await BaselineScoreService(db).upsert_score(
        student_id=payload.student_id,
        node_id=payload.node_id,
        score=payload.score,
        comment=payload.comment,
    )
    return BaselineScore.model_validate(row)


@router.delete("", response_model=OkResponse)
async def delete_score(
    student_id: int = Query(gt=0),
    node_id: int = Query(gt=0),
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> OkResponse:
    """Clear a baseline score."""
    await BaselineScoreService(db).delete_score(student_id, node_id)
    return OkResponse()
