"""form2chat_db — PostgreSQL persistence layer for chat sessions.

This package provides the ORM models, async engine factory, and repository
for creating, advancing and finalizing form-filling sessions.  It is
consumed by the engine in ``form2chat`` and by the FastAPI server.
"""

from form2chat_db.models.session import ChatSession
from form2chat_db.models.submission import Submission
from form2chat_db.models.upload import UploadedFile
from form2chat_db.models.enums import SessionStatus
from form2chat_db.config import DatabaseSettings, load_db_settings
from form2chat_db.engine import get_engine, get_session_factory
from form2chat_db.errors import StoreIOError
from form2chat_db.repository import SessionRepository

__all__ = [
    "ChatSession",
    "Submission",
    "UploadedFile",
    "SessionStatus",
    "DatabaseSettings",
    "load_db_settings",
    "get_engine",
    "get_session_factory",
    "StoreIOError",
    "SessionRepository",
]
