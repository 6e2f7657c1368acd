"""ChatEngine — the session state machine behind the conversational form.

Stateless engine pattern: each call loads the session row from the
database, derives the logical position (which field of which record is
being asked), applies one command, persists the result and returns the
next step.  No in-memory state is kept between calls.

The engine accepts an ``AsyncSession`` from the caller so that the caller
(typically a FastAPI endpoint) controls transaction boundaries.

States:
    ASK     InRecord        — prompting for one field of the current record
    REVIEW  AwaitingReview  — every target record committed, waiting for submit
    DONE    Submitted       — finalized, frozen; re-entry returns the same step

Commands:
    start   — return the current step (creates the session when absent)
    answer  — validate free text for the asked field and move forward
    upload  — accept upload metadata for the asked ``file`` field
    back    — go back one field, crossing record boundaries
    restart — discard everything (refused once submitted)
    submit  — finalize from REVIEW (idempotent)
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from form2chat_db.models.enums import SessionStatus
from form2chat_db.models.session import ChatSession
from form2chat_db.repository import SessionRepository

from form2chat import transitions
from form2chat.constants import (
    COMMAND_BACK,
    COMMAND_RESTART,
    COMMAND_START,
    COMMAND_SUBMIT,
)
from form2chat.errors import AnswerError, SessionSubmittedError
from form2chat.forms import FormStore
from form2chat.interfaces import Phrasing
from form2chat.models.form import (
    ChoiceField,
    FileField,
    FormSpec,
    NumberField,
)
from form2chat.models.session import (
    AskStep,
    DoneStep,
    InputHint,
    ReviewStep,
    SessionInfo,
    TurnRequest,
    TurnResult,
)
from form2chat.models.state import (
    AwaitingReview,
    EngineState,
    InRecord,
    Position,
    RecoverySnapshot,
    Submitted,
    UploadMetadata,
)
from form2chat.phrasing import RandomPhrasing, extract_name
from form2chat.progress import complete, progress
from form2chat.prompt import PromptManager
from form2chat.recovery import RecoverySigner
from form2chat.summary import build_review_payload, build_summary
from form2chat.validator import validate

logger = logging.getLogger(__name__)

MSG_UNFINISHED = "Please finish the remaining questions before submitting."


def _input_hint(field) -> InputHint:
    """Describe the input widget a renderer should show for ``field``."""
    hint = InputHint(type=field.kind)
    if isinstance(field, ChoiceField):
        hint.options = list(field.options)
    elif isinstance(field, NumberField):
        hint.min = field.min
        hint.max = field.max
    elif isinstance(field, FileField) and field.accept:
        hint.accept = ",".join(field.accept)
    return hint


def load_state(raw: Any) -> EngineState:
    """Parse a stored state blob, degrading to an empty state when unusable.

    Accepts the current ``{committed, draft}`` shape (dict or JSON string)
    and the legacy flat ``{field_id: value}`` dict, which is read as the
    draft of the first record.
    """
    if raw is None:
        return EngineState()
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Stored state is not valid JSON, starting from empty state")
            return EngineState()
    if not isinstance(raw, dict):
        logger.warning("Stored state has unexpected type %s, starting from empty state", type(raw).__name__)
        return EngineState()

    if "committed" not in raw and "draft" not in raw:
        # Legacy flat answers
        return EngineState(draft=dict(raw))

    try:
        return EngineState.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Stored state is malformed, starting from empty state: %s", exc)
        return EngineState()


class ChatEngine:
    """Drives one form-filling conversation per session id.

    Args:
        forms: a loaded :class:`FormStore`
        phrasing: acknowledgement source (defaults to :class:`RandomPhrasing`)
        prompts: message renderer (defaults to the bundled templates)
        signer: signs/vets recovery snapshots (defaults to unsigned)
    """

    def __init__(
        self,
        forms: FormStore,
        *,
        phrasing: Phrasing | None = None,
        prompts: PromptManager | None = None,
        signer: RecoverySigner | None = None,
    ) -> None:
        self._forms = forms
        self._repo = SessionRepository()
        self._phrasing = phrasing or RandomPhrasing()
        self._prompts = prompts or PromptManager()
        self._signer = signer or RecoverySigner()

    # ==================================================================
    # Turn protocol
    # ==================================================================

    async def handle_turn(self, db: AsyncSession, request: TurnRequest) -> TurnResult:
        """Dispatch one protocol turn to the matching command.

        An ``upload`` payload makes the turn an upload acknowledgement;
        otherwise the trimmed, lowercased ``command`` selects start, back,
        restart or submit, and anything else is an answer.
        """
        common = {
            "form_id": request.form_id,
            "session_id": request.session_id,
            "recovery": request.recovery,
        }
        if request.upload is not None:
            metadata = UploadMetadata(
                file_id=request.upload.file_id,
                original_name=request.upload.original_name,
                mime=request.upload.mime,
                size_bytes=request.upload.size_bytes,
            )
            return await self.upload_ack(
                db, field_id=request.upload.field_id, metadata=metadata, **common,
            )

        command = (request.command or "").strip().lower()
        if command == COMMAND_START:
            return await self.start(db, **common)
        if command == COMMAND_BACK:
            return await self.back(db, **common)
        if command == COMMAND_RESTART:
            return await self.restart(db, **common)
        if command == COMMAND_SUBMIT:
            return await self.submit(db, **common)
        return await self.answer(db, text=request.command, **common)

    # ==================================================================
    # Commands
    # ==================================================================

    async def start(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        session_id: str | None = None,
        recovery: RecoverySnapshot | None = None,
    ) -> TurnResult:
        """Start a session or continue an existing one.  Never mutates state."""
        row, form = await self._open(db, form_id, session_id, recovery)
        return self._render(form, row, self._position(form, row))

    async def answer(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        session_id: str | None,
        text: str,
        recovery: RecoverySnapshot | None = None,
    ) -> TurnResult:
        """Validate ``text`` for the asked field and advance.

        A failed validation re-asks the same field with the corrective
        message and persists nothing.  Free text during REVIEW or DONE
        just re-renders that step.
        """
        row, form = await self._open(db, form_id, session_id, recovery)
        position = self._position(form, row)
        if not isinstance(position, InRecord):
            return self._render(form, row, position)

        field = form.fields[position.field_index]
        try:
            value = validate(field, text)
        except AnswerError as exc:
            logger.debug(
                "Rejected answer for %s/%s: %s", row.session_id, field.id, exc,
            )
            return self._render(form, row, position, error=str(exc))

        new_position = transitions.advance(form, position, value)
        await self._persist(db, row, new_position)
        return self._render(form, row, new_position, acknowledge=True)

    async def upload_ack(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        session_id: str | None,
        field_id: str,
        metadata: UploadMetadata,
        recovery: RecoverySnapshot | None = None,
    ) -> TurnResult:
        """Accept a stored file for the asked ``file`` field and advance.

        Only accepted when the cursor sits on a ``file`` field whose id is
        ``field_id``; any other (stale or mismatched) upload is ignored and
        the current step is returned unchanged.
        """
        row, form = await self._open(db, form_id, session_id, recovery)
        position = self._position(form, row)
        if not isinstance(position, InRecord):
            return self._render(form, row, position)

        field = form.fields[position.field_index]
        if not isinstance(field, FileField) or field.id != field_id:
            logger.info(
                "Ignoring upload for %s on session %s (asking %s)",
                field_id, row.session_id, field.id,
            )
            return self._render(form, row, position)

        await self._repo.record_upload(
            db,
            session_id=row.session_id,
            field_id=field_id,
            file_id=metadata.file_id,
            original_name=metadata.original_name,
            mime=metadata.mime,
            size_bytes=metadata.size_bytes,
        )
        new_position = transitions.advance(form, position, metadata.to_value())
        await self._persist(db, row, new_position)
        return self._render(form, row, new_position, acknowledge=True)

    async def back(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        session_id: str | None,
        recovery: RecoverySnapshot | None = None,
    ) -> TurnResult:
        """Go back one field; a submitted session just returns DONE."""
        row, form = await self._open(db, form_id, session_id, recovery)
        position = self._position(form, row)
        if isinstance(position, Submitted):
            return self._render(form, row, position)

        new_position = transitions.step_back(form, position)
        await self._persist(db, row, new_position)
        return self._render(form, row, new_position)

    async def restart(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        session_id: str | None,
        recovery: RecoverySnapshot | None = None,
    ) -> TurnResult:
        """Discard every answer and return the first prompt.

        Raises:
            SessionSubmittedError: if the session is already submitted.
        """
        row, form = await self._open(db, form_id, session_id, recovery)
        if row.status == SessionStatus.SUBMITTED:
            raise SessionSubmittedError(
                f"Cannot restart: session already submitted: session_id={row.session_id}"
            )

        new_position = transitions.restart()
        await self._persist(db, row, new_position)
        return self._render(form, row, new_position)

    async def submit(
        self,
        db: AsyncSession,
        *,
        form_id: str,
        session_id: str | None,
        recovery: RecoverySnapshot | None = None,
    ) -> TurnResult:
        """Finalize the session and return DONE.

        Valid from REVIEW, or from the last record's ASK when its draft
        already satisfies every required field (the draft is committed on
        the way).  Anything else re-asks the current field.

        Idempotent: a submitted session returns the same DONE step and no
        second submission row is written.
        """
        row, form = await self._open(db, form_id, session_id, recovery)
        position = self._position(form, row)
        if isinstance(position, Submitted):
            return self._render(form, row, position)

        review = transitions.ready_for_submit(form, position)
        if review is None:
            return self._render(form, row, position, error=MSG_UNFINISHED)

        final = transitions.finalize(review)
        field_cursor, state = transitions.to_storage(final)
        payload = state.model_dump(mode="json")

        existing = await self._repo.get_submission(db, row.session_id)
        if existing is None:
            await self._repo.create_submission(db, row, payload)
        else:
            logger.warning(
                "Submission already exists for in-progress session %s, not appending",
                row.session_id,
            )
        await self._repo.update(
            db, row, field_cursor=field_cursor, state=payload,
            status=SessionStatus.SUBMITTED,
        )
        logger.info(
            "Session %s submitted (%d records)", row.session_id, len(final.records),
        )
        return self._render(form, row, final)

    # ==================================================================
    # Session info
    # ==================================================================

    async def get_session(self, db: AsyncSession, session_id: str) -> SessionInfo | None:
        """Fetch public session info.  Returns None if not found."""
        row = await self._repo.get(db, session_id)
        if row is None:
            return None
        return self._to_session_info(row)

    async def list_uploads(self, db: AsyncSession, session_id: str) -> list | None:
        """Uploads accepted into a session.  Returns None if not found."""
        row = await self._repo.get(db, session_id)
        if row is None:
            return None
        return await self._repo.list_uploads(db, session_id)

    # ==================================================================
    # Internal: loading and persisting
    # ==================================================================

    async def _open(
        self,
        db: AsyncSession,
        form_id: str,
        session_id: str | None,
        recovery: RecoverySnapshot | None,
    ) -> tuple[ChatSession, FormSpec]:
        """Load (or create) the session row and its form.

        An unknown session id is not an error: a fresh row is created, and
        a trusted recovery snapshot, if supplied, rebuilds its state.  A
        snapshot never overrides a row that already exists.  The row's
        ``form_id`` is authoritative once the row exists.

        Raises:
            KeyError: if the form is unknown.
        """
        if not session_id:
            session_id = uuid.uuid4().hex
            row = None
        else:
            row = await self._repo.get(db, session_id)

        if row is None:
            form = self._forms.get(form_id)
            row = await self._repo.upsert(db, session_id, form_id)
            snapshot = self._signer.verify(recovery)
            if snapshot is not None:
                logger.info(
                    "Rebuilding session %s from recovery snapshot (cursor=%d)",
                    session_id, snapshot.field_cursor,
                )
                await self._repo.update(
                    db, row,
                    field_cursor=snapshot.field_cursor,
                    state=snapshot.state.model_dump(mode="json"),
                )
            else:
                logger.debug("Created session %s for form %s", session_id, form_id)
            return row, form

        if row.form_id != form_id:
            logger.warning(
                "Session %s belongs to form %s, ignoring requested form %s",
                row.session_id, row.form_id, form_id,
            )
        return row, self._forms.get(row.form_id)

    def _position(self, form: FormSpec, row: ChatSession) -> Position:
        """Derive the logical position of a loaded row."""
        state = load_state(row.state)
        return transitions.derive_position(
            form,
            state,
            row.field_cursor or 0,
            submitted=row.status == SessionStatus.SUBMITTED,
        )

    async def _persist(self, db: AsyncSession, row: ChatSession, position: Position) -> None:
        field_cursor, state = transitions.to_storage(position)
        await self._repo.update(
            db, row, field_cursor=field_cursor, state=state.model_dump(mode="json"),
        )
        logger.debug(
            "Session %s -> %s (cursor=%d, committed=%d)",
            row.session_id, position.kind, field_cursor, len(state.committed),
        )

    # ==================================================================
    # Internal: step rendering
    # ==================================================================

    def _render(
        self,
        form: FormSpec,
        row: ChatSession,
        position: Position,
        *,
        acknowledge: bool = False,
        error: str | None = None,
    ) -> TurnResult:
        """Build the step for ``position``.

        Only ASK steps are ever decorated (acknowledgement or corrective
        error); REVIEW and DONE are rendered from the clean summary.
        """
        if isinstance(position, Submitted):
            summary = build_summary(form, position.records)
            return DoneStep(
                session_id=row.session_id,
                message=self._prompts.render_done(summary),
                records=[dict(r) for r in position.records],
            )

        field_cursor, state = transitions.to_storage(position)
        snapshot = self._signer.sign(field_cursor, state)

        if isinstance(position, AwaitingReview):
            summary = build_summary(form, position.records)
            payload = build_review_payload(form, position.records)
            return ReviewStep(
                session_id=row.session_id,
                message=self._prompts.render_review(summary),
                records=payload["records"],
                field_order=payload["field_order"],
                progress=complete(form),
                recovery=snapshot,
            )

        field = form.fields[position.field_index]
        acknowledgement = None
        if acknowledge and error is None:
            acknowledgement = self._phrasing.acknowledgement(extract_name(position.partial))
        message = self._prompts.render_ask(
            form,
            field,
            record_number=position.record_index + 1,
            acknowledgement=acknowledgement,
            error=error,
        )
        return AskStep(
            session_id=row.session_id,
            field_id=field.id,
            message=message,
            input_hint=_input_hint(field),
            progress=progress(form, len(position.committed), position.field_index),
            recovery=snapshot,
        )

    @staticmethod
    def _to_session_info(row: ChatSession) -> SessionInfo:
        """Convert an ORM row to a public SessionInfo."""
        return SessionInfo(
            session_id=row.session_id,
            form_id=row.form_id,
            status=row.status.value if isinstance(row.status, SessionStatus) else str(row.status),
            field_cursor=row.field_cursor,
            committed_count=len(load_state(row.state).committed),
            created_at=row.created_at,
            updated_at=row.updated_at,
            submitted_at=row.submitted_at,
        )
