"""Node edit endpoints (instructor)."""

from ktree.auth import require_instructor
from ktree.db.base import get_db
from ktree.schemas.common import OkResponse
from ktree.schemas.trees import Node, NodeUpdate
from ktree.services.trees import TreeService
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter()


@router.patch("/{node_id}", response_model=Node)
async def update_node(
    node_id: int,
    payload: NodeUpdate,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> Node:
    """Rename, reorder or move a node. Send ``parent_id: null`` only for roots."""
    node = await TreeService(db).update_node(
        node_id, **payload.model_dump(exclude_unset=True)
    )
    return Node.model_validate(node)


@router.delete("/{node_id}", response_model=OkResponse)
async def delete_node(
    node_id: int,
    db: AsyncSession = Depends(get_db),
    _: int = Depends(require_instructor),
) -> OkResponse:
    """Delete a topic node and its subtree."""
    await TreeService(db).delete_node(node_id)
    return OkResponse()
