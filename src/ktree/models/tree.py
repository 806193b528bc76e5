"""Learning tree and knowledge node models."""

from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import relationship

from ktree.db.base import Base, IdType


class LearningTree(Base):
    """One chapter's hierarchy of topics."""

    __tablename__ = "learning_trees"

    id = Column(IdType, primary_key=True, autoincrement=True)
    title = Column(String(120), nullable=False)
    chapter_desc = Column(String(500), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )

    # Relationships
    nodes = relationship(
        "KnowledgeNode",
        back_populates="tree",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class KnowledgeNode(Base):
    """A topic inside a learning tree; the parentless node is the chapter root."""

    __tablename__ = "knowledge_nodes"

    id = Column(IdType, primary_key=True, autoincrement=True)
    tree_id = Column(
        IdType,
        ForeignKey("learning_trees.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_id = Column(
        IdType,
        ForeignKey("knowledge_nodes.id", ondelete="CASCADE"),
        nullable=True,
    )
    name = Column(String(120), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )

    tree = relationship("LearningTree", back_populates="nodes")

    __table_args__ = (
        Index("idx_knowledge_nodes_tree", "tree_id"),
        Index("idx_knowledge_nodes_parent", "parent_id"),
        # At most one root per tree
        Index(
            "idx_knowledge_one_root_per_tree",
            "tree_id",
            unique=True,
            postgresql_where=text("parent_id IS NULL"),
            sqlite_where=text("parent_id IS NULL"),
        ),
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None
