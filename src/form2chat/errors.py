"""Exception types raised by the form2chat SDK.

Only :class:`AnswerError` carries a message meant for the end user; the
engine catches it and re-prompts.  The others surface to the caller (the
HTTP layer maps them to status codes in ``form2chat_server.errors``).
"""

from form2chat_db.errors import StoreIOError

__all__ = ["AnswerError", "SchemaError", "SessionSubmittedError", "StoreIOError"]


class AnswerError(ValueError):
    """A user-correctable answer problem (bad number, unknown option, ...).

    ``str(exc)`` is the corrective message shown to the user.
    """


class SchemaError(Exception):
    """A form definition is structurally invalid.

    Raised while loading forms, never inside a turn.
    """


class SessionSubmittedError(ValueError):
    """An operation that mutates state was attempted on a submitted session."""
