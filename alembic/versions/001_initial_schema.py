"""Initial cemetery records schema

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

Creates users and sessions, clusters with their instructions, graves with
pictures and user relations, and service requests with their status row,
audit logs and grave link. On PostgreSQL the status column uses the native
`request_status_enum` type and JSON columns use JSONB.

Rollback: downgrade() drops every table and the enum type.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
STATUS_VALUES = ("pending", "processing", "approved", "rejected")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _timestamps(updated: bool = True) -> list:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())
        )
    return cols


def _fk(name: str, target: str) -> sa.Column:
    return sa.Column(name, sa.String(36), sa.ForeignKey(f"{target}.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    # ── Identity ──────────────────────────────────────────────────────────
    op.create_table(
        "user",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("role", sa.String(20), nullable=True, server_default="user"),
        sa.Column("banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ban_reason", sa.Text(), nullable=True),
        sa.Column("ban_expires", sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "session",
        _id(),
        sa.Column("token", sa.String(255), nullable=False, unique=True),
        _fk("user_id", "user"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("idx_session_user_id", "session", ["user_id"])

    # ── Clusters & instructions ───────────────────────────────────────────
    op.create_table(
        "grave_cluster",
        _id(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("cluster_number", sa.Integer(), nullable=False),
        sa.Column("coordinates", JSONType, nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "cluster_instructions",
        _id(),
        _fk("grave_cluster_id", "grave_cluster"),
        *_timestamps(),
    )
    op.create_index("idx_cluster_instructions_cluster", "cluster_instructions", ["grave_cluster_id"])
    op.create_table(
        "cluster_instruction_steps",
        _id(),
        sa.Column("step", sa.Integer(), nullable=False),
        sa.Column("instruction", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("image_path", sa.String(255), nullable=True),
        sa.Column("image_custom_id", sa.String(255), nullable=True),
        _fk("cluster_instructions_id", "cluster_instructions"),
        *_timestamps(),
    )
    op.create_index(
        "idx_instruction_steps_parent", "cluster_instruction_steps", ["cluster_instructions_id", "step"]
    )

    # ── Graves ────────────────────────────────────────────────────────────
    op.create_table(
        "grave_details",
        _id(),
        sa.Column("grave_json", JSONType, nullable=True),
        _fk("grave_cluster_id", "grave_cluster"),
        sa.Column("grave_expiration_date", sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_grave_details_cluster", "grave_details", ["grave_cluster_id"])
    op.create_index("idx_grave_details_expiration", "grave_details", ["grave_expiration_date"])
    op.create_table(
        "grave_picture",
        _id(),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("image_path", sa.String(255), nullable=True),
        sa.Column("image_alt", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("grave_details_id", "grave_details"),
        *_timestamps(),
    )
    op.create_index("idx_grave_picture_grave", "grave_picture", ["grave_details_id"])
    op.create_table(
        "grave_related_users",
        _id(),
        _fk("user_id", "user"),
        _fk("grave_details_id", "grave_details"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "grave_details_id", name="uq_grave_related_user_pair"),
    )

    # ── Service requests ──────────────────────────────────────────────────
    op.create_table(
        "request",
        _id(),
        _fk("user_id", "user"),
        sa.Column("request_details", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_request_user", "request", ["user_id"])
    op.create_index("idx_request_created_at", "request", [sa.text("created_at DESC")])
    op.create_table(
        "request_status",
        _id(),
        sa.Column("status", sa.Enum(*STATUS_VALUES, name="request_status_enum"), nullable=False),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column(
            "request_id",
            sa.String(36),
            sa.ForeignKey("request.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        *_timestamps(),
    )
    op.create_table(
        "request_logs",
        _id(),
        _fk("request_id", "request"),
        _fk("user_id", "user"),
        sa.Column("log", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_request_logs_request", "request_logs", ["request_id", sa.text("created_at DESC")])
    op.create_table(
        "request_grave_relation",
        _id(),
        _fk("request_id", "request"),
        _fk("grave_details_id", "grave_details"),
        *_timestamps(),
    )
    op.create_index("idx_request_grave_relation_request", "request_grave_relation", ["request_id"])
    op.create_index("idx_request_grave_relation_grave", "request_grave_relation", ["grave_details_id"])


def downgrade() -> None:
    for table in (
        "request_grave_relation",
        "request_logs",
        "request_status",
        "request",
        "grave_related_users",
        "grave_picture",
        "grave_details",
        "cluster_instruction_steps",
        "cluster_instructions",
        "grave_cluster",
        "session",
        "user",
    ):
        op.drop_table(table)
    sa.Enum(name="request_status_enum").drop(op.get_bind(), checkfirst=True)
