"""Draft work and submission history models."""

from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)

from ktree.db.base import Base, IdType


class StudentNodeWork(Base):
    """The single mutable draft a student keeps for a node."""

    __tablename__ = "student_node_works"

    id = Column(IdType, primary_key=True, autoincrement=True)
    student_id = Column(
        IdType, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    node_id = Column(
        IdType, ForeignKey("knowledge_nodes.id", ondelete="CASCADE"), nullable=False
    )
    code_text = Column(Text, nullable=True)
    code_image_url = Column(Text, nullable=True)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("student_id", "node_id", name="uq_student_node_works_pair"),
    )


class StudentNodeSubmission(Base):
    """Immutable snapshot of submitted work; only the teacher_* fields change."""

    __tablename__ = "student_node_submissions"

    id = Column(IdType, primary_key=True, autoincrement=True)
    student_id = Column(
        IdType, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    node_id = Column(
        IdType, ForeignKey("knowledge_nodes.id", ondelete="CASCADE"), nullable=False
    )
    code_text = Column(Text, nullable=True)
    code_image_url = Column(Text, nullable=True)
    submitted_at = Column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
    teacher_score = Column(Float, nullable=True)
    teacher_comment = Column(String(300), nullable=True)
    scored_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "idx_submissions_student_node_time",
            "student_id",
            "node_id",
            "submitted_at",
        ),
    )
