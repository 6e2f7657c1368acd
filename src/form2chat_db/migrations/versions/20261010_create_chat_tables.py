"""Create chat_sessions, submissions and uploaded_files.

``chat_sessions`` holds one row per conversation (cursor + JSONB state).
``submissions`` is the append-only log of finalized sessions; the unique
``session_id`` keeps finalization at-most-once per session.
``uploaded_files`` records metadata of accepted uploads (no bytes).

Revision ID: 20261010_chat_tables
Revises:
Create Date: 2026-10-10
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261010_chat_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- chat_sessions ---
    op.create_table(
        "chat_sessions",
        sa.Column("session_id", sa.Text(), primary_key=True),
        sa.Column("form_id", sa.Text(), nullable=False),
        sa.Column(
            "status", sa.String(20), nullable=False,
            server_default=sa.text("'in_progress'"),
        ),
        sa.Column(
            "field_cursor", sa.Integer(), nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "state", JSONB(), nullable=False,
            server_default=sa.text("'{\"committed\": [], \"draft\": {}}'::jsonb"),
        ),
        sa.Column(
            "created_at", TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at", TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("submitted_at", TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("field_cursor >= 0", name="ck_field_cursor_nonneg"),
        sa.CheckConstraint(
            "status IN ('in_progress', 'submitted')", name="ck_status_values",
        ),
        sa.CheckConstraint(
            "status != 'submitted' OR submitted_at IS NOT NULL",
            name="ck_submitted_has_timestamp",
        ),
    )
    op.create_index("ix_chat_sessions_form_id", "chat_sessions", ["form_id"])
    op.create_index("ix_chat_sessions_status", "chat_sessions", ["status"])

    # --- submissions ---
    op.create_table(
        "submissions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "session_id", sa.Text(),
            sa.ForeignKey("chat_sessions.session_id", ondelete="CASCADE"),
            nullable=False, unique=True,
        ),
        sa.Column("form_id", sa.Text(), nullable=False),
        sa.Column("state", JSONB(), nullable=False),
        sa.Column(
            "created_at", TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_submissions_form_id", "submissions", ["form_id"])

    # --- uploaded_files ---
    op.create_table(
        "uploaded_files",
        sa.Column("file_id", sa.Text(), primary_key=True),
        sa.Column(
            "session_id", sa.Text(),
            sa.ForeignKey("chat_sessions.session_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("field_id", sa.Text(), nullable=False),
        sa.Column("original_name", sa.Text(), nullable=False),
        sa.Column("mime", sa.Text(), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at", TIMESTAMP(timezone=True), nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint("size_bytes >= 0", name="ck_size_bytes_nonneg"),
    )
    op.create_index("ix_uploaded_files_session_id", "uploaded_files", ["session_id"])


def downgrade() -> None:
    op.drop_index("ix_uploaded_files_session_id", table_name="uploaded_files")
    op.drop_table("uploaded_files")
    op.drop_index("ix_submissions_form_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_chat_sessions_status", table_name="chat_sessions")
    op.drop_index("ix_chat_sessions_form_id", table_name="chat_sessions")
    op.drop_table("chat_sessions")
