"""qms_core_tables

Create the relationship graph, history ledger, record store, code
sequence and activity log tables.

Revision ID: a1f3c9d20b17
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1f3c9d20b17"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "relationships" not in existing_tables:
        op.create_table(
            "relationships",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("source_type", sa.String(length=20), nullable=False),
            sa.Column("source_id", sa.String(length=64), nullable=False),
            sa.Column("target_type", sa.String(length=20), nullable=False),
            sa.Column("target_id", sa.String(length=64), nullable=False),
            sa.Column("endpoint_key", sa.String(length=200), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("created_by", sa.String(length=64), nullable=False),
            sa.Column("project_id", sa.String(length=64), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("endpoint_key", name="uq_relationships_endpoints"),
        )
        op.create_index("idx_relationships_source", "relationships", ["source_type", "source_id"])
        op.create_index("idx_relationships_target", "relationships", ["target_type", "target_id"])
        op.create_index("ix_relationships_project_id", "relationships", ["project_id"])

    if "history_entries" not in existing_tables:
        op.create_table(
            "history_entries",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.String(length=64), nullable=False),
            sa.Column("item_type", sa.String(length=20), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("user_name", sa.String(length=150), nullable=False),
            sa.Column("action", sa.String(length=10), nullable=False),
            sa.Column("changes_json", sa.Text(), nullable=False),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_history_item", "history_entries", ["item_type", "item_id"])
        op.create_index("idx_history_ts", "history_entries", ["timestamp"])

    if "comments" not in existing_tables:
        op.create_table(
            "comments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.String(length=64), nullable=False),
            sa.Column("item_type", sa.String(length=20), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("user_name", sa.String(length=150), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_comments_item", "comments", ["item_type", "item_id"])

    if "code_sequences" not in existing_tables:
        op.create_table(
            "code_sequences",
            sa.Column("record_type", sa.String(length=20), nullable=False),
            sa.Column("last_value", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("record_type"),
        )

    if "records" not in existing_tables:
        op.create_table(
            "records",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("record_type", sa.String(length=20), nullable=False),
            sa.Column("project_id", sa.String(length=64), nullable=True),
            sa.Column("code", sa.String(length=40), nullable=False),
            sa.Column("state", sa.String(length=40), nullable=False),
            sa.Column("payload_json", sa.Text(), nullable=False),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("submitted_by", sa.String(length=64), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
        )
        op.create_index("idx_records_type_project", "records", ["record_type", "project_id"])
        op.create_index("ix_records_project_id", "records", ["project_id"])

    if "activity_logs" not in existing_tables:
        op.create_table(
            "activity_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("type", sa.String(length=40), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("user_name", sa.String(length=150), nullable=False),
            sa.Column("user_role", sa.String(length=20), nullable=False),
            sa.Column("project_id", sa.String(length=64), nullable=True),
            sa.Column("project_name", sa.String(length=200), nullable=True),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("details_json", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_activity_user", "activity_logs", ["user_id"])
        op.create_index("idx_activity_project", "activity_logs", ["project_id"])
        op.create_index("idx_activity_type", "activity_logs", ["type"])
        op.create_index("idx_activity_ts", "activity_logs", ["timestamp"])


def downgrade():
    for table in ("activity_logs", "records", "code_sequences", "comments", "history_entries", "relationships"):
        op.drop_table(table)
