"""Progress calculation shared by every ASK/REVIEW response."""

from form2chat.models.form import FormSpec
from form2chat.models.session import Progress


def progress(form: FormSpec, committed_count: int, field_cursor: int) -> Progress:
    """Return ``{done, total}`` for a session.

    ``total`` counts every field of every target record; ``done`` is capped
    at ``total`` so extra committed records never overflow the bar.
    """
    per_record = form.fields_per_record
    total = per_record * form.target_record_count
    done = min(committed_count * per_record + field_cursor, total)
    return Progress(done=max(done, 0), total=total)


def complete(form: FormSpec) -> Progress:
    """Progress for REVIEW/DONE: everything answered."""
    total = form.fields_per_record * form.target_record_count
    return Progress(done=total, total=total)
