"""ChatSession ORM model — single row per form-filling conversation.

The whole engine state (committed records plus the in-progress draft) lives
in one JSONB column next to the field cursor, so a turn is one row read and
one row write.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from form2chat_db.models.base import Base
from form2chat_db.models.enums import SessionStatus


class ChatSession(Base):
    """One row per chat session, keyed by the caller-visible session id."""

    __tablename__ = "chat_sessions"

    session_id: Mapped[str] = mapped_column(Text, primary_key=True)
    # Form the session was opened for; authoritative once the row exists
    form_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # --- Lifecycle ---
    status: Mapped[SessionStatus] = mapped_column(
        # Store as the lowercase string value, not the Python name
        String(20),
        nullable=False,
        default=SessionStatus.IN_PROGRESS,
        server_default=text("'in_progress'"),
    )
    # Index of the next field to ask within the current record
    field_cursor: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )

    # --- Engine state ---
    # {"committed": [record, ...], "draft": {field_id: value}}
    state: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=lambda: {"committed": [], "draft": {}},
        server_default=text("'{\"committed\": [], \"draft\": {}}'::jsonb"),
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    submitted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint("field_cursor >= 0", name="ck_field_cursor_nonneg"),
        CheckConstraint(
            "status IN ('in_progress', 'submitted')",
            name="ck_status_values",
        ),
        CheckConstraint(
            "status != 'submitted' OR submitted_at IS NOT NULL",
            name="ck_submitted_has_timestamp",
        ),
        Index("ix_chat_sessions_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ChatSession(session={self.session_id!r}, form={self.form_id!r}, "
            f"status={self.status!r}, cursor={self.field_cursor})>"
        )
