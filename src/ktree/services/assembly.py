"""Assemble flat knowledge-node rows into one ordered tree.

Rows are first allocated into an id-keyed mapping and only then linked by
``parent_id``, so no row order is assumed from the store. Children are sorted
by ``(sort_order, id)`` after linking, giving a stable pre-order for display.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ktree.errors import StoreCorruption

logger = logging.getLogger(__name__)


@dataclass
class AssembledNode:
    """In-memory tree node carrying its row fields and ordered children."""

    id: int
    tree_id: int
    parent_id: Optional[int]
    name: str
    sort_order: int
    created_at: Optional[datetime] = None
    progress: Any = None
    children: List["AssembledNode"] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


def _corrupt(tree_id: Any, message: str, **details: Any) -> StoreCorruption:
    logger.error("Knowledge tree %s is corrupt: %s %s", tree_id, message, details)
    return StoreCorruption(message, {"tree_id": tree_id, **details})


def assemble(
    rows: Iterable[Any],
    progress: Optional[Mapping[int, Any]] = None,
) -> Optional[AssembledNode]:
    """Build the rooted tree for one tree's node rows.

    Returns ``None`` when no row is a root (a tree still being created).
    Raises ``StoreCorruption`` for multiple roots, dangling or foreign-tree
    parents, and rows that are unreachable from the root.
    """
    progress = progress or {}
    nodes: Dict[int, AssembledNode] = {}
    roots: List[AssembledNode] = []

    for row in rows:
        node = AssembledNode(
            id=row.id,
            tree_id=row.tree_id,
            parent_id=row.parent_id,
            name=row.name,
            sort_order=row.sort_order if row.sort_order is not None else 0,
            created_at=getattr(row, "created_at", None),
            progress=progress.get(row.id),
        )
        nodes[node.id] = node
        if node.parent_id is None:
            roots.append(node)

    if not roots:
        return None
    if len(roots) > 1:
        raise _corrupt(
            roots[0].tree_id,
            "Tree has more than one root node",
            root_ids=sorted(r.id for r in roots),
        )

    root = roots[0]
    for node in nodes.values():
        if node.tree_id != root.tree_id:
            raise _corrupt(
                root.tree_id,
                "Node belongs to a different tree",
                node_id=node.id,
                node_tree_id=node.tree_id,
            )
        if node.parent_id is None:
            continue
        parent = nodes.get(node.parent_id)
        if parent is None:
            raise _corrupt(
                root.tree_id,
                "Node references a missing parent",
                node_id=node.id,
                parent_id=node.parent_id,
            )
        parent.children.append(node)

    # Sort after linking; a detached cycle never reaches the root
    reached = 0
    stack = [root]
    while stack:
        current = stack.pop()
        reached += 1
        current.children.sort(key=lambda child: (child.sort_order, child.id))
        stack.extend(current.children)

    if reached != len(nodes):
        raise _corrupt(
            root.tree_id,
            "Nodes are not reachable from the root",
            unreachable=len(nodes) - reached,
        )

    return root


def iter_preorder(root: Optional[AssembledNode]) -> Iterator[AssembledNode]:
    """Yield nodes in display order (node, then its children left to right)."""
    if root is None:
        return
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def group_rows_by_tree(rows: Iterable[Any]) -> Dict[int, List[Any]]:
    """Bucket node rows fetched across several trees by ``tree_id``."""
    grouped: Dict[int, List[Any]] = defaultdict(list)
    for row in rows:
        grouped[row.tree_id].append(row)
    return dict(grouped)
