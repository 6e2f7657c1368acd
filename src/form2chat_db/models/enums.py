"""Database-level enumerations for chat sessions."""

import enum


class SessionStatus(str, enum.Enum):
    """Lifecycle states for a chat session.

    Transitions:
        in_progress -> submitted  (exactly once, when the submission row is written)

    A submitted session is frozen; later turns only re-read it.
    """

    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
