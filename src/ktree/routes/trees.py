"""Tree and node structure endpoints (instructor)."""

from ktree.auth import require_instructor
from ktree.db.base import get_db
from ktree.schemas.common import OkResponse
from ktree.schemas.trees import (
    Node,
    NodeCreate,
    NodeList,
    StructureNode,
    Tree,
    TreeCreate,
    TreeList,
    TreeStructure,
    TreeSummary,
    TreeUpdate,
)
from ktree.services.trees import TreeService
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.get("", response_model=TreeList)
async def list_trees(
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> TreeList:
    """List trees with their root and topic count."""
    service = TreeService(db)
    trees = await service.list_trees()
    return TreeList(items=[TreeSummary(**t) for t in trees])


@router.post("", response_model=Tree, status_code=201)
async def create_tree(
    payload: TreeCreate,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> Tree:
    """Create a tree and its root node."""
    service = TreeService(db)
    tree = await service.create_tree(
        title=payload.title,
        chapter_desc=payload.chapter_desc,
        root_name=payload.root_name,
    )
    return Tree.model_validate(tree)


@router.patch("/{tree_id}", response_model=Tree)
async def update_tree(
    tree_id: int,
    payload: TreeUpdate,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> Tree:
    """Update title or chapter description."""
    service = TreeService(db)
    tree = await service.update_tree(tree_id, **payload.model_dump(exclude_unset=True))
    return Tree.model_validate(tree)


@router.delete("/{tree_id}", response_model=OkResponse)
async def delete_tree(
    tree_id: int,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> OkResponse:
    """Delete a tree with everything attached to it."""
    await TreeService(db).delete_tree(tree_id)
    return OkResponse()


@router.get("/{tree_id}/nodes", response_model=NodeList)
async def list_nodes(
    tree_id: int,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> NodeList:
    """Flat node rows, root first."""
    nodes = await TreeService(db).list_nodes(tree_id)
    return NodeList(items=[Node.model_validate(n) for n in nodes])


@router.get("/{tree_id}/structure", response_model=TreeStructure)
async def get_structure(
    tree_id: int,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> TreeStructure:
    """The assembled hierarchy of a tree."""
    service = TreeService(db)
    tree = await service.get_tree(tree_id)
    root = await service.get_structure(tree_id)
    return TreeStructure(
        tree=Tree.model_validate(tree),
        root=StructureNode.model_validate(root) if root else None,
    )


@router.post("/{tree_id}/nodes", response_model=Node, status_code=201)
async def create_node(
    tree_id: int,
    payload: NodeCreate,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> Node:
    """Add a child node under an existing parent."""
    node = await TreeService(db).create_node(
        tree_id=tree_id,
        parent_id=payload.parent_id,
        name=payload.name,
        sort_order=payload.sort_order,
    )
    return Node.model_validate(node)
