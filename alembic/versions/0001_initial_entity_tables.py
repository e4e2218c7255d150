"""initial entity tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

One table per collection: integer id, JSON data sidecar, timestamps and the
few mirrored columns that carry constraints.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")

RECORD_TABLES = ("applicants", "manpower_requests", "audit_logs")


def _base_columns():
    return [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("data", JSON_TYPE, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all entity tables."""

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_role", "users", ["role"])

    for table_name in RECORD_TABLES:
        op.create_table(
            table_name,
            *_base_columns(),
            sa.PrimaryKeyConstraint("id"),
            sqlite_autoincrement=True,
        )

    op.create_table(
        "assignments",
        *_base_columns(),
        sa.Column("applicant_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_assignments_applicant_id", "assignments", ["applicant_id"])
    # At most one active assignment per applicant
    op.create_index(
        "uq_assignments_active_applicant",
        "assignments",
        ["applicant_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "sessions",
        *_base_columns(),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "settings",
        *_base_columns(),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop all entity tables."""
    op.drop_table("settings")
    op.drop_table("sessions")
    op.drop_index("uq_assignments_active_applicant", table_name="assignments")
    op.drop_index("ix_assignments_applicant_id", table_name="assignments")
    op.drop_table("assignments")
    for table_name in reversed(RECORD_TABLES):
        op.drop_table(table_name)
    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")
