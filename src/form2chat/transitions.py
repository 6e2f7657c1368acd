"""Pure state-machine transitions over :data:`~form2chat.models.state.Position`.

Nothing here touches storage, randomness or message text; the engine loads a
row, converts it with :func:`derive_position`, applies one transition and
persists the result with :func:`to_storage`.

Transition table:

  | From            | Operation | To                                              |
  |-----------------|-----------|-------------------------------------------------|
  | InRecord        | advance   | InRecord (next field / next record) or Review   |
  | InRecord, c > 0 | back      | InRecord, c - 1, previous answer dropped        |
  | InRecord, c = 0 | back      | last committed record reopened at its last field|
  | AwaitingReview  | back      | last committed record reopened at its last field|
  | any but DONE    | restart   | initial InRecord                                |
  | AwaitingReview  | finalize  | Submitted                                       |
"""

from __future__ import annotations

from form2chat.models.form import FormSpec
from form2chat.models.state import (
    AwaitingReview,
    EngineState,
    InRecord,
    Position,
    Record,
    Submitted,
)


def initial() -> InRecord:
    """The position of a brand-new (or restarted) session."""
    return InRecord()


def _is_filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and value.strip() == "":
        return False
    return True


def _known(form: FormSpec, record: Record) -> Record:
    """Drop keys that are not fields of ``form``."""
    ids = {f.id for f in form.fields}
    return {k: v for k, v in (record or {}).items() if k in ids}


# ------------------------------------------------------------------
# Storage <-> position
# ------------------------------------------------------------------

def derive_position(
    form: FormSpec,
    state: EngineState,
    field_cursor: int,
    *,
    submitted: bool = False,
) -> Position:
    """Interpret a stored (cursor, state, status) triple.

    Repairs shapes the engine never writes itself: a cursor outside the
    field list is clamped, draft keys at or after the cursor are dropped,
    and a cursor past the last field commits the (complete) draft.
    """
    committed = [dict(r) for r in state.committed]
    if submitted:
        return Submitted(records=committed)

    if len(committed) >= form.target_record_count:
        return AwaitingReview(records=committed)

    n_fields = form.fields_per_record
    cursor = max(field_cursor, 0)
    draft = _known(form, state.draft)

    if cursor >= n_fields:
        committed.append(draft)
        if len(committed) >= form.target_record_count:
            return AwaitingReview(records=committed)
        return InRecord(committed=committed)

    before = {f.id for f in form.fields[:cursor]}
    partial = {k: v for k, v in draft.items() if k in before}
    return InRecord(committed=committed, field_index=cursor, partial=partial)


def to_storage(position: Position) -> tuple[int, EngineState]:
    """Return the ``(field_cursor, state)`` pair to persist for ``position``."""
    if isinstance(position, InRecord):
        return position.field_index, EngineState(
            committed=[dict(r) for r in position.committed],
            draft=dict(position.partial),
        )
    return 0, EngineState(committed=[dict(r) for r in position.records], draft={})


# ------------------------------------------------------------------
# Transitions
# ------------------------------------------------------------------

def advance(form: FormSpec, position: InRecord, value) -> InRecord | AwaitingReview:
    """Store ``value`` for the current field and move forward.

    Completing the last field commits the record; completing the last
    target record moves to review.
    """
    field = form.fields[position.field_index]
    partial = {**position.partial, field.id: value}
    next_index = position.field_index + 1

    if next_index < form.fields_per_record:
        return InRecord(
            committed=list(position.committed),
            field_index=next_index,
            partial=partial,
        )

    committed = [*position.committed, partial]
    if len(committed) < form.target_record_count:
        return InRecord(committed=committed)
    return AwaitingReview(records=committed)


def _reopen_last(form: FormSpec, records: list[Record]) -> InRecord:
    """Pop the last committed record back into the draft at its last field."""
    if not records:
        return initial()
    *rest, last = records
    last_index = form.fields_per_record - 1
    keep = {f.id for f in form.fields[:last_index]}
    partial = {k: v for k, v in last.items() if k in keep}
    return InRecord(committed=list(rest), field_index=last_index, partial=partial)


def step_back(form: FormSpec, position: InRecord | AwaitingReview) -> InRecord:
    """Go back one field, crossing record boundaries when needed.

    At the very first field of an empty session this is a no-op.
    """
    if isinstance(position, AwaitingReview):
        return _reopen_last(form, position.records)

    if position.field_index > 0:
        prev_index = position.field_index - 1
        prev_id = form.fields[prev_index].id
        partial = {k: v for k, v in position.partial.items() if k != prev_id}
        return InRecord(
            committed=list(position.committed),
            field_index=prev_index,
            partial=partial,
        )

    if position.committed:
        return _reopen_last(form, position.committed)

    return initial()


def restart() -> InRecord:
    """Discard everything collected so far."""
    return initial()


def ready_for_submit(form: FormSpec, position: Position) -> AwaitingReview | None:
    """Return the review position to finalize from, or ``None`` if not ready.

    Besides the normal REVIEW case, an ASK position qualifies when it is on
    the last target record and its draft already has a value for every
    required field (e.g. only optional fields remain); that draft is
    committed on the way.
    """
    if isinstance(position, AwaitingReview):
        return position
    if not isinstance(position, InRecord):
        return None

    if position.record_index != form.target_record_count - 1:
        return None
    if not any(_is_filled(v) for v in position.partial.values()):
        return None
    for field in form.fields:
        if field.required and not _is_filled(position.partial.get(field.id)):
            return None

    return AwaitingReview(records=[*position.committed, dict(position.partial)])


def finalize(position: AwaitingReview) -> Submitted:
    """Freeze the reviewed records."""
    return Submitted(records=[dict(r) for r in position.records])
