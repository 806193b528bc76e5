"""Baseline (manual mastery) score service."""

import math
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ktree.errors import NotFound, ValidationError
from ktree.models import KnowledgeNode, Student, StudentScore
from ktree.services import hierarchy
from ktree.services.common import clean_text, dialect_insert


class BaselineScoreService:
    """Upsert and clear the per-node score an instructor assigns by hand."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert_score(
        self,
        student_id: int,
        node_id: int,
        score: Optional[float],
        comment: Optional[str] = None,
    ) -> StudentScore:
        """Create or replace the score row for (student, node); last write wins."""
        if score is not None and not math.isfinite(score):
            raise ValidationError("Score must be a finite number")
        if not await self.db.get(Student, student_id):
            raise NotFound("Student not found", {"student_id": student_id})
        node = await self.db.get(KnowledgeNode, node_id)
        hierarchy.validate_gradable(hierarchy.NodeFacts.of(node) if node else None)

        now = datetime.utcnow()
        comment = clean_text(comment)
        stmt = dialect_insert(self.db, StudentScore).values(
            student_id=student_id,
            node_id=node_id,
            score=score,
            comment=comment,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["student_id", "node_id"],
            set_={"score": score, "comment": comment, "updated_at": now},
        )
        await self.db.execute(stmt)
        await self.db.commit()

        result = await self.db.execute(
            select(StudentScore)
            .where(
                StudentScore.student_id == student_id,
                StudentScore.node_id == node_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def delete_score(self, student_id: int, node_id: int) -> None:
        """Remove the score row if present."""
        await self.db.execute(
            delete(StudentScore).where(
                StudentScore.student_id == student_id,
                StudentScore.node_id == node_id,
            )
        )
        await self.db.commit()

    async def fetch_baseline_scores(
        self, student_id: int, tree_id: int
    ) -> List[StudentScore]:
        """Baseline rows of one student across one tree."""
        result = await self.db.execute(
            select(StudentScore)
            .join(KnowledgeNode, KnowledgeNode.id == StudentScore.node_id)
            .where(
                StudentScore.student_id == student_id,
                KnowledgeNode.tree_id == tree_id,
            )
        )
        return list(result.scalars().all())
