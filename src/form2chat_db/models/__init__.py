"""ORM models for form2chat_db."""

from form2chat_db.models.base import Base
from form2chat_db.models.enums import SessionStatus
from form2chat_db.models.session import ChatSession
from form2chat_db.models.submission import Submission
from form2chat_db.models.upload import UploadedFile

__all__ = ["Base", "SessionStatus", "ChatSession", "Submission", "UploadedFile"]
