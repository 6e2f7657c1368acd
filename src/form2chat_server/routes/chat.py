"""Chat endpoints — the turn protocol plus one endpoint per operation.

``POST /chat`` accepts a generic :class:`TurnRequest`: ``command`` is
``start``, ``back``, ``restart``, ``submit`` or free text, and an
``upload`` payload turns the request into an upload acknowledgement.

The per-operation endpoints cover the same ground for clients that prefer
explicit routes.  Every endpoint returns an ``ask``, ``review`` or ``done``
step; a request without ``session_id`` opens a new session.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from form2chat.engine import ChatEngine
from form2chat.models.session import TurnRequest, TurnResult
from form2chat.models.state import RecoverySnapshot, UploadMetadata

from form2chat_server.dependencies import get_chat_engine, get_db

router = APIRouter(prefix="/chat", tags=["chat"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class StartRequest(BaseModel):
    """Body for POST /chat/start and POST /chat/submit."""
    form_id: str
    session_id: str | None = None
    recovery: RecoverySnapshot | None = None


class MessageRequest(BaseModel):
    """Body for POST /chat/message — one free-text answer."""
    form_id: str
    session_id: str | None = None
    message: str
    recovery: RecoverySnapshot | None = None


class UploadRequest(BaseModel):
    """Body for POST /chat/upload — metadata of a file stored elsewhere."""
    form_id: str
    session_id: str
    field_id: str
    file_id: str
    original_name: str
    mime: str = "application/octet-stream"
    size_bytes: int = Field(ge=0)
    recovery: RecoverySnapshot | None = None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("")
async def turn(
    body: TurnRequest,
    db: AsyncSession = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
) -> TurnResult:
    """Process one turn of the language-agnostic chat protocol."""
    return await engine.handle_turn(db, body)


@router.post("/start")
async def start(
    body: StartRequest,
    db: AsyncSession = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
) -> TurnResult:
    """Open a session (or continue an existing one) and return its current step."""
    return await engine.start(
        db, form_id=body.form_id, session_id=body.session_id, recovery=body.recovery,
    )


@router.post("/message")
async def message(
    body: MessageRequest,
    db: AsyncSession = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
) -> TurnResult:
    """Send a user message; command words are dispatched like ``POST /chat``."""
    return await engine.handle_turn(
        db,
        TurnRequest(
            form_id=body.form_id,
            session_id=body.session_id,
            command=body.message,
            recovery=body.recovery,
        ),
    )


@router.post("/upload")
async def upload(
    body: UploadRequest,
    db: AsyncSession = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
) -> TurnResult:
    """Acknowledge a stored upload for the asked file field.

    A stale or mismatched upload is ignored and the current step returned.
    """
    return await engine.upload_ack(
        db,
        form_id=body.form_id,
        session_id=body.session_id,
        field_id=body.field_id,
        metadata=UploadMetadata(
            file_id=body.file_id,
            original_name=body.original_name,
            mime=body.mime,
            size_bytes=body.size_bytes,
        ),
        recovery=body.recovery,
    )


@router.post("/submit")
async def submit(
    body: StartRequest,
    db: AsyncSession = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
) -> TurnResult:
    """Finalize the session.  Idempotent: resubmitting returns the same step."""
    return await engine.submit(
        db, form_id=body.form_id, session_id=body.session_id, recovery=body.recovery,
    )
