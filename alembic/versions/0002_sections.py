"""Add the sections table.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("slug", sa.String(150), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_index("ix_sections_slug", "sections", ["slug"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_sections_slug", table_name="sections")
    op.drop_table("sections")
