"""Draft and submission lifecycle for (student, node) pairs."""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, cast

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ktree.errors import NotFound, ValidationError
from ktree.models import (
    KnowledgeNode,
    Student,
    StudentNodeSubmission,
    StudentNodeWork,
)
from ktree.services import hierarchy
from ktree.services.common import UNSET, clean_text, dialect_insert

logger = logging.getLogger(__name__)

MIN_TEACHER_SCORE = 0
MAX_TEACHER_SCORE = 10


@dataclass
class DraftUpdate:
    """Outcome of a draft edit.

    ``discarded_image_url`` is an image the draft no longer references.
    """

    draft: Optional[StudentNodeWork]
    discarded_image_url: Optional[str] = None


@dataclass
class SubmitOutcome:
    """Outcome of a submit, including the image of a draft it cleared."""

    submission: StudentNodeSubmission
    discarded_image_url: Optional[str] = None


class SubmissionService:
    """Drafts, append-only submissions and instructor grading."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _gradable(self, student_id: int, node_id: int) -> KnowledgeNode:
        node = await self.db.get(KnowledgeNode, node_id)
        hierarchy.validate_gradable(hierarchy.NodeFacts.of(node) if node else None)
        if not await self.db.get(Student, student_id):
            raise NotFound("Student not found", {"student_id": student_id})
        return cast(KnowledgeNode, node)

    # Drafts

    async def get_draft(self, student_id: int, node_id: int) -> Optional[StudentNodeWork]:
        """Current draft for the pair, if any."""
        result = await self.db.execute(
            select(StudentNodeWork)
            .where(
                StudentNodeWork.student_id == student_id,
                StudentNodeWork.node_id == node_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def save_draft(
        self,
        student_id: int,
        node_id: int,
        *,
        code_text: Any = UNSET,
        code_image_url: Any = UNSET,
        remove_image: bool = False,
    ) -> DraftUpdate:
        """Edit the draft; a draft left with neither text nor image is deleted."""
        if code_text is UNSET and code_image_url is UNSET and not remove_image:
            raise ValidationError("Provide code text or an image for the draft")
        await self._gradable(student_id, node_id)

        existing = await self.get_draft(student_id, node_id)
        next_text = existing.code_text if existing else None
        next_image = existing.code_image_url if existing else None
        discarded = None

        if code_text is not UNSET:
            next_text = clean_text(code_text)

        if code_image_url is not UNSET or remove_image:
            replacement = None if code_image_url is UNSET else code_image_url
            if next_image and next_image != replacement:
                discarded = next_image
            next_image = replacement or None

        if next_text is None and next_image is None:
            await self.db.execute(
                delete(StudentNodeWork).where(
                    StudentNodeWork.student_id == student_id,
                    StudentNodeWork.node_id == node_id,
                )
            )
            await self.db.commit()
            return DraftUpdate(draft=None, discarded_image_url=discarded)

        now = datetime.utcnow()
        stmt = dialect_insert(self.db, StudentNodeWork).values(
            student_id=student_id,
            node_id=node_id,
            code_text=next_text,
            code_image_url=next_image,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["student_id", "node_id"],
            set_={
                "code_text": next_text,
                "code_image_url": next_image,
                "updated_at": now,
            },
        )
        await self.db.execute(stmt)
        await self.db.commit()

        return DraftUpdate(
            draft=await self.get_draft(student_id, node_id),
            discarded_image_url=discarded,
        )

    async def delete_draft(self, student_id: int, node_id: int) -> Optional[str]:
        """Drop the draft; returns the image URL it referenced."""
        await self._gradable(student_id, node_id)
        existing = await self.get_draft(student_id, node_id)
        if existing is None:
            return None
        image_url = existing.code_image_url
        await self.db.execute(
            delete(StudentNodeWork).where(
                StudentNodeWork.student_id == student_id,
                StudentNodeWork.node_id == node_id,
            )
        )
        await self.db.commit()
        return image_url

    # Submissions

    async def submit(
        self,
        student_id: int,
        node_id: int,
        *,
        code_text: Optional[str] = None,
        code_image_url: Optional[str] = None,
        clear_draft: bool = False,
    ) -> SubmitOutcome:
        """Append one immutable submission."""
        await self._gradable(student_id, node_id)
        code_text = clean_text(code_text)
        code_image_url = code_image_url or None
        if code_text is None and code_image_url is None:
            raise ValidationError("Submit at least code text or a code image")

        submission = StudentNodeSubmission(
            student_id=student_id,
            node_id=node_id,
            code_text=code_text,
            code_image_url=code_image_url,
            submitted_at=datetime.utcnow(),
        )
        self.db.add(submission)

        discarded = None
        if clear_draft:
            draft = await self.get_draft(student_id, node_id)
            if draft is not None:
                discarded = draft.code_image_url
                await self.db.delete(draft)

        await self.db.commit()
        await self.db.refresh(submission)
        return SubmitOutcome(submission=submission, discarded_image_url=discarded)

    async def get_submission(self, submission_id: int) -> StudentNodeSubmission:
        """Get submission by ID or raise NotFound."""
        submission = await self.db.get(StudentNodeSubmission, submission_id)
        if not submission:
            raise NotFound("Submission not found", {"submission_id": submission_id})
        return submission

    async def score_submission(
        self,
        submission_id: int,
        score: Optional[float],
        comment: Optional[str] = None,
    ) -> StudentNodeSubmission:
        """Set or clear the instructor grade; content fields stay untouched."""
        if score is not None and (
            not math.isfinite(score)
            or score < MIN_TEACHER_SCORE
            or score > MAX_TEACHER_SCORE
        ):
            raise ValidationError(
                f"Score must be between {MIN_TEACHER_SCORE} and {MAX_TEACHER_SCORE}",
                {"score": score},
            )
        submission = await self.get_submission(submission_id)
        comment = clean_text(comment)

        s = cast(Any, submission)
        s.teacher_score = score
        s.teacher_comment = comment
        s.scored_at = (
            datetime.utcnow() if score is not None or comment is not None else None
        )

        await self.db.commit()
        await self.db.refresh(submission)
        return submission

    async def get_history(
        self,
        student_id: int,
        *,
        node_id: Optional[int] = None,
        tree_id: Optional[int] = None,
    ) -> List[StudentNodeSubmission]:
        """Submission history, newest first (submitted_at, then id)."""
        query = select(StudentNodeSubmission).where(
            StudentNodeSubmission.student_id == student_id
        )
        if node_id is not None:
            query = query.where(StudentNodeSubmission.node_id == node_id)
        if tree_id is not None:
            query = query.join(
                KnowledgeNode, KnowledgeNode.id == StudentNodeSubmission.node_id
            ).where(KnowledgeNode.tree_id == tree_id)

        result = await self.db.execute(
            query.order_by(
                StudentNodeSubmission.submitted_at.desc(),
                StudentNodeSubmission.id.desc(),
            )
        )
        return list(result.scalars().all())

    # Migration

    async def migrate_legacy_drafts(self) -> int:
        """Promote drafts that predate submission history into one submission.

        Safe to run repeatedly: pairs that already have history are skipped.
        """
        existing = aliased(StudentNodeSubmission)
        has_history = (
            select(existing.id)
            .where(
                existing.student_id == StudentNodeWork.student_id,
                existing.node_id == StudentNodeWork.node_id,
            )
            .exists()
        )
        source = select(
            StudentNodeWork.student_id,
            StudentNodeWork.node_id,
            StudentNodeWork.code_text,
            StudentNodeWork.code_image_url,
            func.coalesce(StudentNodeWork.updated_at, func.current_timestamp()),
        ).where(
            or_(
                StudentNodeWork.code_text.is_not(None),
                StudentNodeWork.code_image_url.is_not(None),
            ),
            ~has_history,
        )
        stmt = insert(StudentNodeSubmission.__table__).from_select(
            ["student_id", "node_id", "code_text", "code_image_url", "submitted_at"],
            source,
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        migrated = max(result.rowcount or 0, 0)
        if migrated:
            logger.info("Promoted %d legacy drafts into submissions", migrated)
        return migrated
