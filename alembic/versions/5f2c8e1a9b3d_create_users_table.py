"""Create Users table

Revision ID: 5f2c8e1a9b3d
Revises:
Create Date: 2026-10-17 09:12:44.180322

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5f2c8e1a9b3d"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Column names match the table the hosted database already exposes
    op.create_table(
        "Users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=True),
        sa.Column("isPro", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("firstName", sa.String(length=255), nullable=True),
        sa.Column("Encrypted Email", sa.String(length=32), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_Users_id"), "Users", ["id"], unique=False)
    op.create_index(op.f("ix_Users_email"), "Users", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_Users_email"), table_name="Users")
    op.drop_index(op.f("ix_Users_id"), table_name="Users")
    op.drop_table("Users")
