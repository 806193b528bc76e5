"""Student progress views over assembled trees."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ktree.errors import NotFound
from ktree.models import (
    KnowledgeNode,
    LearningTree,
    Student,
    StudentNodeSubmission,
    StudentNodeWork,
    StudentScore,
)
from ktree.services.aggregation import (
    BaselineSummary,
    NodeProgress,
    group_history_by_node,
    summarize_baseline,
    summarize_submissions,
)
from ktree.services.assembly import AssembledNode, assemble, group_rows_by_tree


@dataclass
class TreeProgress:
    """One tree with its annotated hierarchy and baseline summary."""

    tree: LearningTree
    root: Optional[AssembledNode]
    summary: BaselineSummary


class ProgressService:
    """Builds per-student progress trees; recomputed on every call."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def student_trees(self, student_id: int) -> List[TreeProgress]:
        """Every tree, in creation order, annotated for one student."""
        await self._require_student(student_id)
        trees = await self.db.execute(select(LearningTree).order_by(LearningTree.id))
        return await self._build(student_id, list(trees.scalars().all()))

    async def student_tree(self, student_id: int, tree_id: int) -> TreeProgress:
        """One tree annotated for one student (instructor inspection)."""
        await self._require_student(student_id)
        tree = await self.db.get(LearningTree, tree_id)
        if not tree:
            raise NotFound("Learning tree not found", {"tree_id": tree_id})
        return (await self._build(student_id, [tree]))[0]

    async def _require_student(self, student_id: int) -> None:
        if not await self.db.get(Student, student_id):
            raise NotFound("Student not found", {"student_id": student_id})

    async def _build(
        self, student_id: int, trees: Sequence[LearningTree]
    ) -> List[TreeProgress]:
        if not trees:
            return []
        tree_ids = [tree.id for tree in trees]

        node_rows = (
            await self.db.execute(
                select(KnowledgeNode).where(KnowledgeNode.tree_id.in_(tree_ids))
            )
        ).scalars().all()

        scores = (
            await self.db.execute(
                select(StudentScore)
                .join(KnowledgeNode, KnowledgeNode.id == StudentScore.node_id)
                .where(
                    StudentScore.student_id == student_id,
                    KnowledgeNode.tree_id.in_(tree_ids),
                )
            )
        ).scalars().all()

        drafts = (
            await self.db.execute(
                select(StudentNodeWork)
                .join(KnowledgeNode, KnowledgeNode.id == StudentNodeWork.node_id)
                .where(
                    StudentNodeWork.student_id == student_id,
                    KnowledgeNode.tree_id.in_(tree_ids),
                )
            )
        ).scalars().all()

        history = (
            await self.db.execute(
                select(StudentNodeSubmission)
                .join(KnowledgeNode, KnowledgeNode.id == StudentNodeSubmission.node_id)
                .where(
                    StudentNodeSubmission.student_id == student_id,
                    KnowledgeNode.tree_id.in_(tree_ids),
                )
                .order_by(
                    StudentNodeSubmission.submitted_at.desc(),
                    StudentNodeSubmission.id.desc(),
                )
            )
        ).scalars().all()

        score_by_node = {row.node_id: row for row in scores}
        draft_by_node = {row.node_id: row for row in drafts}
        history_by_node = group_history_by_node(history)

        progress: Dict[int, NodeProgress] = {}
        for node in node_rows:
            score = score_by_node.get(node.id)
            draft = draft_by_node.get(node.id)
            node_history = history_by_node.get(node.id, [])
            progress[node.id] = NodeProgress(
                score=score.score if score else None,
                comment=score.comment if score else None,
                score_updated_at=score.updated_at if score else None,
                draft_code_text=draft.code_text if draft else None,
                draft_code_image_url=draft.code_image_url if draft else None,
                draft_updated_at=draft.updated_at if draft else None,
                stats=summarize_submissions(node_history),
                history=node_history,
            )

        rows_by_tree = group_rows_by_tree(node_rows)
        views = []
        for tree in trees:
            rows = rows_by_tree.get(tree.id, [])
            root = assemble(rows, progress)
            summary = summarize_baseline(
                progress[row.id].score for row in rows if row.parent_id is not None
            )
            views.append(TreeProgress(tree=tree, root=root, summary=summary))
        return views
