"""Baseline per-node score model."""

from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)

from ktree.db.base import Base, IdType


class StudentScore(Base):
    """Manually assigned mastery score for one (student, node) pair."""

    __tablename__ = "student_scores"

    id = Column(IdType, primary_key=True, autoincrement=True)
    student_id = Column(
        IdType, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    node_id = Column(
        IdType, ForeignKey("knowledge_nodes.id", ondelete="CASCADE"), nullable=False
    )
    score = Column(Float, nullable=True)
    comment = Column(String(300), nullable=True)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("student_id", "node_id", name="uq_student_scores_pair"),
        Index("idx_student_scores_node", "node_id"),
    )
