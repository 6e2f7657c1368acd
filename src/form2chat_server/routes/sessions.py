"""Session endpoints — read-only views of a chat session."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from form2chat.engine import ChatEngine
from form2chat.models.session import SessionInfo

from form2chat_server.dependencies import get_chat_engine, get_db

router = APIRouter(tags=["sessions"])


# ------------------------------------------------------------------
# Response models
# ------------------------------------------------------------------

class UploadInfo(BaseModel):
    """Metadata of one upload accepted into a session."""
    file_id: str
    field_id: str
    original_name: str
    mime: str
    size_bytes: int


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
) -> SessionInfo:
    """Get session info by session_id.

    Raises 404 if the session does not exist.
    """
    info = await engine.get_session(db, session_id)
    if info is None:
        raise ValueError(f"Session not found: session_id={session_id}")
    return info


@router.get("/sessions/{session_id}/uploads")
async def list_uploads(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
) -> list[UploadInfo]:
    """List the uploads accepted into a session, oldest first."""
    uploads = await engine.list_uploads(db, session_id)
    if uploads is None:
        raise ValueError(f"Session not found: session_id={session_id}")
    return [
        UploadInfo(
            file_id=u.file_id,
            field_id=u.field_id,
            original_name=u.original_name,
            mime=u.mime,
            size_bytes=u.size_bytes,
        )
        for u in uploads
    ]
