"""Engine state models — what is persisted and how it is interpreted.

Storage shape (one JSONB blob per session row)::

    {"committed": [record, ...], "draft": {field_id: value, ...}}

together with the row's ``field_cursor`` and ``status`` columns.

Rather than checking the committed/draft/cursor triple ad hoc at every call
site, the engine converts it into an explicit :data:`Position`:

  - InRecord: asking field ``field_index`` of record ``len(committed) + 1``
  - AwaitingReview: every record is committed, waiting for a submit
  - Submitted: the session is finalized and frozen
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

# One record: field id → value (str, number, ISO date str, option str, file dict)
Record = dict[str, Any]


class FileValue(BaseModel):
    """Stored value of an answered ``file`` field."""

    file_id: str
    name: str
    mime: str
    size_bytes: int


class UploadMetadata(BaseModel):
    """What the file subsystem hands over once bytes are durably stored."""

    file_id: str
    original_name: str
    mime: str = "application/octet-stream"
    size_bytes: int = Field(ge=0)

    def to_value(self) -> dict:
        return FileValue(
            file_id=self.file_id,
            name=self.original_name,
            mime=self.mime,
            size_bytes=self.size_bytes,
        ).model_dump()


class EngineState(BaseModel):
    """Serialized engine state stored in ``chat_sessions.state``."""

    committed: list[Record] = Field(default_factory=list)
    draft: Record = Field(default_factory=dict)


# --- Logical position (explicit union) ---

class InRecord(BaseModel):
    """ASK: collecting field ``field_index`` of the record after ``committed``."""

    kind: Literal["in_record"] = "in_record"
    committed: list[Record] = Field(default_factory=list)
    field_index: int = 0
    partial: Record = Field(default_factory=dict)

    @property
    def record_index(self) -> int:
        """Zero-based index of the record being filled."""
        return len(self.committed)


class AwaitingReview(BaseModel):
    """REVIEW: all target records committed, draft empty."""

    kind: Literal["awaiting_review"] = "awaiting_review"
    records: list[Record] = Field(default_factory=list)


class Submitted(BaseModel):
    """DONE: finalized; no further mutation."""

    kind: Literal["submitted"] = "submitted"
    records: list[Record] = Field(default_factory=list)


Position = Annotated[
    Union[InRecord, AwaitingReview, Submitted],
    Field(discriminator="kind"),
]


class RecoverySnapshot(BaseModel):
    """Client-held copy of the persisted state.

    Sent back with a request so a session lost by the store can be rebuilt.
    ``signature`` is an HMAC over ``field_cursor`` and ``state`` when the
    server runs with a recovery secret.
    """

    field_cursor: int = Field(ge=0)
    state: EngineState
    signature: Optional[str] = None
