"""Async CRUD repository for ChatSession, Submission and UploadedFile.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries (the FastAPI ``get_db`` dependency commits once per
request).

The repository deliberately avoids business-logic validation — that belongs
in the engine.  It *does* enforce structural invariants through DB
constraints (one submission per session, submitted rows carry a timestamp).

Database failures are wrapped in :class:`StoreIOError` and never retried
here; retry policy, if any, belongs to the caller.
"""

import functools
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from form2chat_db.errors import StoreIOError
from form2chat_db.models.enums import SessionStatus
from form2chat_db.models.session import ChatSession
from form2chat_db.models.submission import Submission
from form2chat_db.models.upload import UploadedFile

logger = logging.getLogger(__name__)


def _store_io(method):
    """Re-raise SQLAlchemy failures of an async repository method as StoreIOError."""

    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("Session store failure in %s: %s", method.__name__, exc)
            raise StoreIOError(f"Session store failure in {method.__name__}") from exc

    return wrapper


class SessionRepository:
    """Async read/write operations on the ``chat_sessions`` family of tables."""

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @_store_io
    async def get(self, db: AsyncSession, session_id: str) -> ChatSession | None:
        """Fetch a session by its caller-visible id."""
        return await db.get(ChatSession, session_id)

    @_store_io
    async def upsert(self, db: AsyncSession, session_id: str, form_id: str) -> ChatSession:
        """Return the session row, inserting a fresh one if absent.

        A fresh row starts ``in_progress`` at cursor 0 with empty state.
        The caller must ``await db.commit()`` to persist.
        """
        row = await db.get(ChatSession, session_id)
        if row is not None:
            return row

        now = datetime.now(timezone.utc)
        row = ChatSession(
            session_id=session_id,
            form_id=form_id,
            status=SessionStatus.IN_PROGRESS,
            field_cursor=0,
            state={"committed": [], "draft": {}},
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        await db.flush()  # Populate server-side defaults
        return row

    @_store_io
    async def update(
        self,
        db: AsyncSession,
        row: ChatSession,
        *,
        field_cursor: int,
        state: dict[str, Any],
        status: SessionStatus | None = None,
    ) -> ChatSession:
        """Overwrite cursor and state; optionally move the status.

        Moving to ``submitted`` also stamps ``submitted_at`` (required by
        the ``ck_submitted_has_timestamp`` constraint).
        """
        now = datetime.now(timezone.utc)
        row.field_cursor = field_cursor
        # New dict so SQLAlchemy detects the JSONB change
        row.state = dict(state)
        if status is not None and status != row.status:
            row.status = status
            if status == SessionStatus.SUBMITTED:
                row.submitted_at = now
        row.updated_at = now
        await db.flush()
        return row

    # ------------------------------------------------------------------
    # Submissions — append-only
    # ------------------------------------------------------------------

    @_store_io
    async def get_submission(self, db: AsyncSession, session_id: str) -> Submission | None:
        """Return the submission written for ``session_id``, if any."""
        stmt = select(Submission).where(Submission.session_id == session_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @_store_io
    async def create_submission(
        self, db: AsyncSession, row: ChatSession, state: dict[str, Any]
    ) -> Submission:
        """Append the frozen state of ``row`` to the submissions log."""
        submission = Submission(
            session_id=row.session_id,
            form_id=row.form_id,
            state=dict(state),
            created_at=datetime.now(timezone.utc),
        )
        db.add(submission)
        await db.flush()
        return submission

    # ------------------------------------------------------------------
    # Uploads — metadata only
    # ------------------------------------------------------------------

    @_store_io
    async def record_upload(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        field_id: str,
        file_id: str,
        original_name: str,
        mime: str,
        size_bytes: int,
    ) -> UploadedFile:
        """Record an accepted upload; a repeated ``file_id`` returns the existing row."""
        existing = await db.get(UploadedFile, file_id)
        if existing is not None:
            return existing

        upload = UploadedFile(
            file_id=file_id,
            session_id=session_id,
            field_id=field_id,
            original_name=original_name,
            mime=mime,
            size_bytes=size_bytes,
            created_at=datetime.now(timezone.utc),
        )
        db.add(upload)
        await db.flush()
        return upload

    @_store_io
    async def list_uploads(self, db: AsyncSession, session_id: str) -> list[UploadedFile]:
        """List uploads accepted into a session, oldest first."""
        stmt = (
            select(UploadedFile)
            .where(UploadedFile.session_id == session_id)
            .order_by(UploadedFile.created_at.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())
