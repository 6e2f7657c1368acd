"""Submission ORM model — append-only log of finalized sessions.

Written exactly once per session when it is submitted; the unique
``session_id`` column makes a second write fail instead of duplicating.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from form2chat_db.models.base import Base


class Submission(Base):
    """Frozen copy of a session's records at submit time."""

    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("chat_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    form_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    # Same shape as chat_sessions.state, draft always empty
    state: Mapped[dict] = mapped_column(JSONB, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Submission(id={self.id!s}, session={self.session_id!r})>"
