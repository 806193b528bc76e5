"""Structural checks consulted before any hierarchy write.

Everything here is pure: callers load the minimal facts (id, tree, parent)
from the store, ask for a decision, and only then write.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

from ktree.errors import InvariantViolation, NotFound

# Rejection reasons
PARENT_REQUIRED = "parent_required"
PARENT_NOT_FOUND = "parent_not_found"
CROSS_TREE_PARENT = "cross_tree_parent"
SELF_PARENT = "self_parent"
DESCENDANT_PARENT = "descendant_parent"
ROOT_CANNOT_HAVE_PARENT = "root_cannot_have_parent"
CANNOT_DETACH_FROM_PARENT = "cannot_detach_from_parent"
ROOT_DELETE = "root_delete"
ROOT_NOT_GRADABLE = "root_not_gradable"


@dataclass(frozen=True)
class NodeFacts:
    """The membership facts the validator needs about one node."""

    id: int
    tree_id: int
    parent_id: Optional[int]

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def of(cls, row: Any) -> "NodeFacts":
        return cls(id=row.id, tree_id=row.tree_id, parent_id=row.parent_id)


def _children_map(rows: Iterable[Any]) -> Dict[int, List[int]]:
    children: Dict[int, List[int]] = defaultdict(list)
    for row in rows:
        if row.parent_id is not None:
            children[row.parent_id].append(row.id)
    return children


def descendant_ids(node_id: int, rows: Iterable[Any]) -> Set[int]:
    """Ids of every node below ``node_id`` (excluding the node itself)."""
    children = _children_map(rows)
    found: Set[int] = set()
    queue = deque(children.get(node_id, ()))
    while queue:
        current = queue.popleft()
        if current in found or current == node_id:
            continue
        found.add(current)
        queue.extend(children.get(current, ()))
    return found


def subtree_ids(node_id: int, rows: Iterable[Any]) -> Set[int]:
    """The node plus all of its descendants."""
    return {node_id} | descendant_ids(node_id, rows)


def validate_create_child(
    tree_id: int, parent_id: Optional[int], parent: Optional[NodeFacts]
) -> None:
    """A new node needs an existing parent inside the same tree."""
    if parent_id is None:
        raise InvariantViolation(
            PARENT_REQUIRED,
            "A new node must be created under a parent; roots come with their tree",
            {"tree_id": tree_id},
        )
    if parent is None:
        raise InvariantViolation(
            PARENT_NOT_FOUND, "Parent node does not exist", {"tree_id": tree_id}
        )
    if parent.tree_id != tree_id:
        raise InvariantViolation(
            CROSS_TREE_PARENT,
            "Parent node belongs to a different tree",
            {"tree_id": tree_id, "parent_id": parent.id},
        )


def validate_delete(node: NodeFacts) -> None:
    """Roots live and die with their tree."""
    if node.is_root:
        raise InvariantViolation(
            ROOT_DELETE,
            "The root node cannot be deleted on its own; delete the tree instead",
            {"node_id": node.id},
        )


def validate_gradable(node: Optional[NodeFacts]) -> NodeFacts:
    """Drafts, submissions and baseline scores only attach to non-root nodes."""
    if node is None:
        raise NotFound("Node not found")
    if node.is_root:
        raise InvariantViolation(
            ROOT_NOT_GRADABLE,
            "The root node does not take work or scores",
            {"node_id": node.id},
        )
    return node


def validate_move(
    node: NodeFacts,
    new_parent_id: Optional[int],
    tree_rows: Iterable[Any],
) -> None:
    """Check a reparent of ``node`` under ``new_parent_id``.

    ``tree_rows`` are the node rows of ``node``'s tree, plus the requested
    parent's row when the caller found it in another tree. Rows whose
    ``tree_id`` differs from the node's are ignored for the cycle check.
    """
    if node.is_root:
        if new_parent_id is not None:
            raise InvariantViolation(
                ROOT_CANNOT_HAVE_PARENT,
                "The root node cannot be given a parent",
                {"node_id": node.id},
            )
        return

    if new_parent_id is None:
        raise InvariantViolation(
            CANNOT_DETACH_FROM_PARENT,
            "A topic node cannot become a second root",
            {"node_id": node.id},
        )

    if new_parent_id == node.id:
        raise InvariantViolation(
            SELF_PARENT, "A node cannot be its own parent", {"node_id": node.id}
        )

    rows = list(tree_rows)
    parent = next((r for r in rows if r.id == new_parent_id), None)
    if parent is None:
        raise InvariantViolation(
            PARENT_NOT_FOUND,
            "Parent node does not exist",
            {"node_id": node.id, "parent_id": new_parent_id},
        )
    if parent.tree_id != node.tree_id:
        raise InvariantViolation(
            CROSS_TREE_PARENT,
            "Parent node belongs to a different tree",
            {"node_id": node.id, "parent_id": new_parent_id},
        )

    same_tree = [r for r in rows if r.tree_id == node.tree_id]
    if new_parent_id in descendant_ids(node.id, same_tree):
        raise InvariantViolation(
            DESCENDANT_PARENT,
            "A node cannot be moved under its own descendant",
            {"node_id": node.id, "parent_id": new_parent_id},
        )
