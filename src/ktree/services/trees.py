"""Learning tree and knowledge node management."""

import logging
from typing import Any, Dict, Iterable, List, Optional, cast

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ktree.errors import NotFound
from ktree.models import (
    KnowledgeNode,
    LearningTree,
    StudentNodeSubmission,
    StudentNodeWork,
    StudentScore,
)
from ktree.services import hierarchy
from ktree.services.assembly import AssembledNode, assemble
from ktree.services.common import UNSET, commit_or_conflict, required_text

logger = logging.getLogger(__name__)


class TreeService:
    """Service for trees and their node hierarchy."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Trees

    async def list_trees(self) -> List[Dict[str, Any]]:
        """List trees newest first with root and topic count."""
        root = aliased(KnowledgeNode)
        topic_count = (
            select(func.count(KnowledgeNode.id))
            .where(
                KnowledgeNode.tree_id == LearningTree.id,
                KnowledgeNode.parent_id.is_not(None),
            )
            .correlate(LearningTree)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(
                LearningTree,
                root.id.label("root_id"),
                root.name.label("root_name"),
                topic_count.label("knowledge_count"),
            )
            .outerjoin(
                root, (root.tree_id == LearningTree.id) & root.parent_id.is_(None)
            )
            .order_by(LearningTree.id.desc())
        )
        return [
            {
                "id": tree.id,
                "title": tree.title,
                "chapter_desc": tree.chapter_desc,
                "created_at": tree.created_at,
                "root_id": root_id,
                "root_name": root_name,
                "knowledge_count": knowledge_count or 0,
            }
            for tree, root_id, root_name, knowledge_count in result.all()
        ]

    async def get_tree(self, tree_id: int) -> LearningTree:
        """Get tree by ID or raise NotFound."""
        tree = await self.db.get(LearningTree, tree_id)
        if not tree:
            raise NotFound("Learning tree not found", {"tree_id": tree_id})
        return tree

    async def create_tree(
        self, title: str, chapter_desc: Optional[str], root_name: str
    ) -> LearningTree:
        """Create a tree together with its root node."""
        title = required_text(title, "title")
        root_name = required_text(root_name, "root_name")
        tree = LearningTree(title=title, chapter_desc=chapter_desc)
        self.db.add(tree)
        await self.db.flush()

        root = KnowledgeNode(
            tree_id=tree.id, parent_id=None, name=root_name, sort_order=0
        )
        self.db.add(root)
        await commit_or_conflict(self.db, "Tree root already exists")
        await self.db.refresh(tree)

        logger.info("Created tree %s with root %s", tree.id, root.id)
        return tree

    async def update_tree(
        self, tree_id: int, title: Any = UNSET, chapter_desc: Any = UNSET
    ) -> LearningTree:
        """Update title and/or chapter description."""
        tree = await self.get_tree(tree_id)
        t = cast(Any, tree)
        if title is not UNSET and title is not None:
            t.title = required_text(title, "title")
        if chapter_desc is not UNSET:
            t.chapter_desc = chapter_desc

        await self.db.commit()
        await self.db.refresh(tree)
        return tree

    async def delete_tree(self, tree_id: int) -> None:
        """Delete a tree, its nodes and every dependent score, draft and submission."""
        await self.get_tree(tree_id)
        node_ids = await self.db.scalars(
            select(KnowledgeNode.id).where(KnowledgeNode.tree_id == tree_id)
        )
        await self._delete_dependents(node_ids.all())
        await self.db.execute(
            delete(KnowledgeNode).where(KnowledgeNode.tree_id == tree_id)
        )
        await self.db.execute(delete(LearningTree).where(LearningTree.id == tree_id))
        await self.db.commit()
        logger.info("Deleted tree %s", tree_id)

    # Nodes

    async def fetch_node_rows(
        self, tree_id: int, *, for_update: bool = False
    ) -> List[KnowledgeNode]:
        """All node rows of a tree; root first, then by (sort_order, id)."""
        query = (
            select(KnowledgeNode)
            .where(KnowledgeNode.tree_id == tree_id)
            .order_by(
                case((KnowledgeNode.parent_id.is_(None), 0), else_=1),
                KnowledgeNode.sort_order,
                KnowledgeNode.id,
            )
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_nodes(self, tree_id: int) -> List[KnowledgeNode]:
        """Flat node listing for a tree."""
        await self.get_tree(tree_id)
        return await self.fetch_node_rows(tree_id)

    async def get_structure(self, tree_id: int) -> Optional[AssembledNode]:
        """Instructor structural view: the bare assembled tree."""
        await self.get_tree(tree_id)
        return assemble(await self.fetch_node_rows(tree_id))

    async def get_node(self, node_id: int) -> KnowledgeNode:
        """Get node by ID or raise NotFound."""
        node = await self.db.get(KnowledgeNode, node_id)
        if not node:
            raise NotFound("Node not found", {"node_id": node_id})
        return node

    async def create_node(
        self,
        tree_id: int,
        parent_id: Optional[int],
        name: str,
        sort_order: int = 0,
    ) -> KnowledgeNode:
        """Insert a child node under an existing parent of the same tree."""
        name = required_text(name, "name")
        await self.get_tree(tree_id)
        parent = None
        if parent_id is not None:
            parent_row = await self.db.get(KnowledgeNode, parent_id)
            parent = hierarchy.NodeFacts.of(parent_row) if parent_row else None
        hierarchy.validate_create_child(tree_id, parent_id, parent)

        node = KnowledgeNode(
            tree_id=tree_id,
            parent_id=parent_id,
            name=name,
            sort_order=sort_order,
        )
        self.db.add(node)
        await commit_or_conflict(self.db, "Node could not be created")
        await self.db.refresh(node)

        logger.info("Created node %s under %s in tree %s", node.id, parent_id, tree_id)
        return node

    async def update_node(
        self,
        node_id: int,
        name: Any = UNSET,
        sort_order: Any = UNSET,
        parent_id: Any = UNSET,
    ) -> KnowledgeNode:
        """Rename, reorder and/or move a node.

        The move check reads the tree's rows locked, in the same transaction
        as the write.
        """
        if name is not UNSET and name is not None:
            name = required_text(name, "name")
        node = await self.get_node(node_id)
        n = cast(Any, node)

        if parent_id is not UNSET and parent_id != node.parent_id:
            rows: List[Any] = await self.fetch_node_rows(
                cast(int, node.tree_id), for_update=True
            )
            if parent_id is not None and all(r.id != parent_id for r in rows):
                # Let the validator tell absent from foreign
                foreign = await self.db.get(KnowledgeNode, parent_id)
                if foreign is not None:
                    rows.append(foreign)
            hierarchy.validate_move(hierarchy.NodeFacts.of(node), parent_id, rows)
            logger.info(
                "Moving node %s from parent %s to %s",
                node_id,
                node.parent_id,
                parent_id,
            )
            n.parent_id = parent_id

        if name is not UNSET and name is not None:
            n.name = name
        if sort_order is not UNSET and sort_order is not None:
            n.sort_order = sort_order

        await commit_or_conflict(self.db, "Node was modified concurrently")
        await self.db.refresh(node)
        return node

    async def delete_node(self, node_id: int) -> None:
        """Delete a non-root node with its subtree and dependent rows."""
        node = await self.get_node(node_id)
        hierarchy.validate_delete(hierarchy.NodeFacts.of(node))

        rows = await self.fetch_node_rows(cast(int, node.tree_id), for_update=True)
        doomed = hierarchy.subtree_ids(node_id, rows)
        await self._delete_dependents(sorted(doomed))
        await self.db.execute(
            delete(KnowledgeNode).where(KnowledgeNode.id.in_(sorted(doomed)))
        )
        await self.db.commit()
        logger.info("Deleted node %s and %d descendants", node_id, len(doomed) - 1)

    async def _delete_dependents(self, node_ids: Iterable[int]) -> None:
        """Remove scores, drafts and submissions attached to ``node_ids``."""
        ids = list(node_ids)
        if not ids:
            return
        for model in (StudentScore, StudentNodeWork, StudentNodeSubmission):
            await self.db.execute(delete(model).where(model.node_id.in_(ids)))
