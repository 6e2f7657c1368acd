"""Turn and step models — the contract between the engine and API callers.

These models define what the engine returns after every turn.  They are
intentionally decoupled from the ORM models in ``form2chat_db`` so that API
consumers never see database internals.

Step types:
  - AskStep: prompt for one field of the record being filled
  - ReviewStep: every record collected, waiting for a submit
  - DoneStep: the session is submitted (terminal, idempotent)

The ``TurnResult`` union covers all three so callers can dispatch on ``type``.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from form2chat.models.state import Record, RecoverySnapshot, UploadMetadata


class Progress(BaseModel):
    """Fields answered so far out of ``fields × target_record_count``."""

    done: int
    total: int


class InputHint(BaseModel):
    """Tells the renderer which input widget to show for the asked field."""

    type: Literal["text", "number", "date", "choice", "file"]
    # Choice labels in order, for choice fields
    options: list[str] | None = None
    # Comma-separated MIME types, for file fields
    accept: str | None = None
    # Inclusive bounds, for number fields
    min: float | None = None
    max: float | None = None


class AskStep(BaseModel):
    """Engine step: ask one field and wait for an answer or upload."""

    type: Literal["ask"] = "ask"
    session_id: str
    field_id: str
    message: str
    input_hint: InputHint
    progress: Progress
    recovery: RecoverySnapshot | None = None


class ReviewStep(BaseModel):
    """Engine step: show the summary and wait for ``submit`` (or ``back``)."""

    type: Literal["review"] = "review"
    session_id: str
    message: str
    records: list[Record]
    # [{id, label}] in form order, so renderers never re-derive labels
    field_order: list[dict]
    progress: Progress
    recovery: RecoverySnapshot | None = None


class DoneStep(BaseModel):
    """Engine step: the session is submitted.

    ``records`` is everything a downstream delivery mechanism needs.
    """

    type: Literal["done"] = "done"
    session_id: str
    message: str
    records: list[Record]


# Callers can match on step.type to dispatch rendering logic.
TurnResult = AskStep | ReviewStep | DoneStep


class UploadAck(UploadMetadata):
    """Upload metadata plus the field it was uploaded for."""

    field_id: str


class TurnRequest(BaseModel):
    """One user turn in the language-agnostic chat protocol.

    ``command`` is ``start``, ``back``, ``restart``, ``submit`` or free
    text (an answer).  When ``upload`` is present the turn is an upload
    acknowledgement and ``command`` is ignored.
    """

    form_id: str
    session_id: Optional[str] = None
    command: str = "start"
    upload: UploadAck | None = None
    recovery: RecoverySnapshot | None = None


class SessionInfo(BaseModel):
    """Public view of session state for API consumers.

    Maps from the ORM ``ChatSession`` model but exposes only what external
    callers need.
    """

    session_id: str
    form_id: str
    status: str
    field_cursor: int
    committed_count: int
    created_at: datetime
    updated_at: datetime
    submitted_at: datetime | None = None
