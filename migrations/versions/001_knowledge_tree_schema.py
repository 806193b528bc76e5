"""knowledge tree schema: trees, nodes, students, scores, drafts, submissions"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _id_column(name: str = "id", **kwargs) -> sa.Column:
    return sa.Column(name, sa.BigInteger(), **kwargs)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=None if nullable else sa.text("now()"),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create knowledge tree tables."""
    op.create_table(
        "learning_trees",
        _id_column(primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=120), nullable=False),
        sa.Column("chapter_desc", sa.String(length=500), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "knowledge_nodes",
        _id_column(primary_key=True, autoincrement=True),
        _id_column(
            "tree_id",
            sa.ForeignKey("learning_trees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _id_column(
            "parent_id",
            sa.ForeignKey("knowledge_nodes.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
    )
    op.create_index("idx_knowledge_nodes_tree", "knowledge_nodes", ["tree_id"])
    op.create_index("idx_knowledge_nodes_parent", "knowledge_nodes", ["parent_id"])
    op.create_index(
        "idx_knowledge_one_root_per_tree",
        "knowledge_nodes",
        ["tree_id"],
        unique=True,
        postgresql_where=sa.text("parent_id IS NULL"),
    )

    op.create_table(
        "students",
        _id_column(primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(length=80), nullable=False, unique=True),
        sa.Column("name", sa.String(length=80), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "student_scores",
        _id_column(primary_key=True, autoincrement=True),
        _id_column(
            "student_id",
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _id_column(
            "node_id",
            sa.ForeignKey("knowledge_nodes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("comment", sa.String(length=300), nullable=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint("student_id", "node_id", name="uq_student_scores_pair"),
    )
    op.create_index("idx_student_scores_node", "student_scores", ["node_id"])

    op.create_table(
        "student_node_works",
        _id_column(primary_key=True, autoincrement=True),
        _id_column(
            "student_id",
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _id_column(
            "node_id",
            sa.ForeignKey("knowledge_nodes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code_text", sa.Text(), nullable=True),
        sa.Column("code_image_url", sa.Text(), nullable=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "student_id", "node_id", name="uq_student_node_works_pair"
        ),
    )

    op.create_table(
        "student_node_submissions",
        _id_column(primary_key=True, autoincrement=True),
        _id_column(
            "student_id",
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _id_column(
            "node_id",
            sa.ForeignKey("knowledge_nodes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code_text", sa.Text(), nullable=True),
        sa.Column("code_image_url", sa.Text(), nullable=True),
        _timestamp("submitted_at"),
        sa.Column("teacher_score", sa.Float(), nullable=True),
        sa.Column("teacher_comment", sa.String(length=300), nullable=True),
        _timestamp("scored_at", nullable=True),
    )
    op.create_index(
        "idx_submissions_student_node_time",
        "student_node_submissions",
        ["student_id", "node_id", "submitted_at"],
    )


def downgrade() -> None:
    """Drop knowledge tree tables."""
    op.drop_index(
        "idx_submissions_student_node_time", table_name="student_node_submissions"
    )
    op.drop_table("student_node_submissions")
    op.drop_table("student_node_works")
    op.drop_index("idx_student_scores_node", table_name="student_scores")
    op.drop_table("student_scores")
    op.drop_table("students")
    op.drop_index("idx_knowledge_one_root_per_tree", table_name="knowledge_nodes")
    op.drop_index("idx_knowledge_nodes_parent", table_name="knowledge_nodes")
    op.drop_index("idx_knowledge_nodes_tree", table_name="knowledge_nodes")
    op.drop_table("knowledge_nodes")
    op.drop_table("learning_trees")
