"""Learning tree and knowledge node schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class TreeCreate(BaseModel):
    """Create tree request; the root node is created with it."""

    title: str = Field(min_length=1, max_length=120)
    chapter_desc: Optional[str] = Field(default=None, max_length=500)
    root_name: str = Field(min_length=1, max_length=120)


class TreeUpdate(BaseModel):
    """Partial tree update."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=120)
    chapter_desc: Optional[str] = Field(default=None, max_length=500)


class Tree(BaseModel):
    """Tree response."""

    id: int
    title: str
    chapter_desc: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TreeSummary(Tree):
    """Tree listing entry with its root and topic count."""

    root_id: Optional[int] = None
    root_name: Optional[str] = None
    knowledge_count: int = 0


class TreeList(BaseModel):
    """List of trees."""

    items: List[TreeSummary]


class NodeCreate(BaseModel):
    """Create child node request."""

    parent_id: Optional[int] = Field(default=None, gt=0)
    name: str = Field(min_length=1, max_length=120)
    sort_order: int = 0


class NodeUpdate(BaseModel):
    """Rename, reorder or move a node; only sent fields are applied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    sort_order: Optional[int] = None
    parent_id: Optional[int] = Field(default=None, gt=0)


class Node(BaseModel):
    """Flat node row."""

    id: int
    tree_id: int
    parent_id: Optional[int] = None
    name: str
    sort_order: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NodeList(BaseModel):
    """Flat node rows of one tree."""

    items: List[Node]


class StructureNode(Node):
    """Node of an assembled tree."""

    children: List["StructureNode"] = []


class TreeStructure(BaseModel):
    """A tree with its assembled hierarchy."""

    tree: Tree
    root: Optional[StructureNode] = None
