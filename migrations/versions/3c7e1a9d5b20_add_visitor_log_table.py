"""add visitor log table

Revision ID: 3c7e1a9d5b20
Revises:
Create Date: 2026-10-17 09:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c7e1a9d5b20"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "visitor_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("signed_day", sa.Date(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("signed_day", name="uq_visitor_log_signed_day"),
    )
    op.create_index(op.f("ix_visitor_log_signed_at"), "visitor_log", ["signed_at"], unique=False)


def downgrade():
    op.drop_index(op.f("ix_visitor_log_signed_at"), table_name="visitor_log")
    op.drop_table("visitor_log")
