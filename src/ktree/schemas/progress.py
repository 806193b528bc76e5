"""Progress view schemas built from assembled, annotated trees."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ktree.schemas.common import ScoreDisplay
from ktree.schemas.submissions import Submission
from ktree.schemas.trees import Tree
from ktree.services.aggregation import BaselineSummary, NodeProgress
from ktree.services.assembly import AssembledNode


class SubmissionStatsView(BaseModel):
    """Per-node submission statistics."""

    submission_count: int = 0
    latest_submission_id: Optional[int] = None
    latest_score: ScoreDisplay = ScoreDisplay()
    latest_comment: Optional[str] = None
    latest_scored_at: Optional[datetime] = None
    latest_submitted_at: Optional[datetime] = None
    latest_code_text: Optional[str] = None
    latest_code_image_url: Optional[str] = None
    highest_score: ScoreDisplay = ScoreDisplay()
    average_score: ScoreDisplay = ScoreDisplay()


class ProgressNode(BaseModel):
    """One node of a student's progress tree."""

    id: int
    parent_id: Optional[int] = None
    name: str
    sort_order: int
    score: ScoreDisplay = ScoreDisplay()
    comment: Optional[str] = None
    score_updated_at: Optional[datetime] = None
    draft_code_text: Optional[str] = None
    draft_code_image_url: Optional[str] = None
    draft_updated_at: Optional[datetime] = None
    stats: SubmissionStatsView = SubmissionStatsView()
    history: List[Submission] = []
    children: List["ProgressNode"] = []

    @classmethod
    def from_assembled(cls, node: AssembledNode) -> "ProgressNode":
        progress: NodeProgress = node.progress or NodeProgress()
        stats = progress.stats
        return cls(
            id=node.id,
            parent_id=node.parent_id,
            name=node.name,
            sort_order=node.sort_order,
            score=ScoreDisplay.of(progress.score),
            comment=progress.comment,
            score_updated_at=progress.score_updated_at,
            draft_code_text=progress.draft_code_text,
            draft_code_image_url=progress.draft_code_image_url,
            draft_updated_at=progress.draft_updated_at,
            stats=SubmissionStatsView(
                submission_count=stats.submission_count,
                latest_submission_id=stats.latest_submission_id,
                latest_score=ScoreDisplay.of(stats.latest_score),
                latest_comment=stats.latest_comment,
                latest_scored_at=stats.latest_scored_at,
                latest_submitted_at=stats.latest_submitted_at,
                latest_code_text=stats.latest_code_text,
                latest_code_image_url=stats.latest_code_image_url,
                highest_score=ScoreDisplay.of(stats.highest_score),
                average_score=ScoreDisplay.of(stats.average_score),
            ),
            history=[Submission.model_validate(s) for s in progress.history],
            children=[cls.from_assembled(child) for child in node.children],
        )


class BaselineSummaryView(BaseModel):
    """Tree-level baseline score summary."""

    node_count: int
    scored_count: int
    total: ScoreDisplay
    average: ScoreDisplay

    @classmethod
    def of(cls, summary: BaselineSummary) -> "BaselineSummaryView":
        return cls(
            node_count=summary.node_count,
            scored_count=summary.scored_count,
            total=ScoreDisplay.of(summary.total if summary.scored_count else None),
            average=ScoreDisplay.of(summary.average),
        )


class StudentTree(BaseModel):
    """One tree as seen by (or for) a student."""

    tree: Tree
    root: Optional[ProgressNode] = None
    summary: BaselineSummaryView


class StudentTreeList(BaseModel):
    """All trees for a student."""

    items: List[StudentTree]
