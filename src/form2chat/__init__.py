"""form2chat — conversational form-filling SDK.

Public API:
    ChatEngine       — session state machine (ask / answer / back / submit)
    FormStore        — loads form definitions into typed models with lookup
    PromptManager    — Jinja2 renderer for ASK / REVIEW / DONE messages
    RecoverySigner   — signs and vets client-held recovery snapshots
    TurnRequest      — one protocol turn (command or upload acknowledgement)
    TurnResult       — union type returned by engine commands
    AskStep          — step: prompt for one field
    ReviewStep       — step: summary awaiting submit
    DoneStep         — step: session submitted
    SessionInfo      — public view of session state

Pluggable phrasing:
    Phrasing         — ABC for acknowledgement phrases
    RandomPhrasing   — default, random pick from a fixed list
    FixedPhrasing    — deterministic, for tests and demos

Pure helpers:
    validate         — raw text → typed field value (raises AnswerError)
    progress         — {done, total} for a session
    build_summary    — review text for committed records
"""

from form2chat.engine import ChatEngine
from form2chat.errors import AnswerError, SchemaError, SessionSubmittedError, StoreIOError
from form2chat.forms import FormStore, load_form, parse_form
from form2chat.interfaces import Phrasing
from form2chat.models.form import FormSpec
from form2chat.models.session import (
    AskStep,
    DoneStep,
    Progress,
    ReviewStep,
    SessionInfo,
    TurnRequest,
    TurnResult,
)
from form2chat.models.state import EngineState, RecoverySnapshot, UploadMetadata
from form2chat.phrasing import FixedPhrasing, RandomPhrasing
from form2chat.progress import progress
from form2chat.prompt import PromptManager
from form2chat.recovery import RecoverySigner
from form2chat.summary import build_review_payload, build_summary
from form2chat.validator import validate

__all__ = [
    # Engine & store
    "ChatEngine",
    "FormStore",
    "PromptManager",
    "RecoverySigner",
    "load_form",
    "parse_form",
    # Models
    "FormSpec",
    "EngineState",
    "RecoverySnapshot",
    "UploadMetadata",
    # Turn / step
    "AskStep",
    "DoneStep",
    "Progress",
    "ReviewStep",
    "SessionInfo",
    "TurnRequest",
    "TurnResult",
    # Phrasing
    "Phrasing",
    "FixedPhrasing",
    "RandomPhrasing",
    # Pure helpers
    "validate",
    "progress",
    "build_summary",
    "build_review_payload",
    # Errors
    "AnswerError",
    "SchemaError",
    "SessionSubmittedError",
    "StoreIOError",
]
