"""UploadedFile ORM model — metadata of files accepted into a session.

Only metadata is kept here; the bytes live wherever the file subsystem put
them, addressed by ``file_id``.
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from form2chat_db.models.base import Base


class UploadedFile(Base):
    """One row per upload acknowledgement the engine accepted."""

    __tablename__ = "uploaded_files"

    file_id: Mapped[str] = mapped_column(Text, primary_key=True)
    session_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("chat_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    field_id: Mapped[str] = mapped_column(Text, nullable=False)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    mime: Mapped[str] = mapped_column(Text, nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("size_bytes >= 0", name="ck_size_bytes_nonneg"),
    )

    def __repr__(self) -> str:
        return (
            f"<UploadedFile(file={self.file_id!r}, session={self.session_id!r}, "
            f"field={self.field_id!r})>"
        )
