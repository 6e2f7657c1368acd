"""Public model re-exports for form2chat.

Consumers should import from ``form2chat.models`` rather than reaching into
sub-modules directly.
"""

# --- Form definitions ---
from form2chat.models.form import (
    BaseField,
    ChoiceField,
    DateField,
    FieldSpec,
    FileField,
    FormSpec,
    NumberField,
    TextField,
)

# --- Engine state ---
from form2chat.models.state import (
    AwaitingReview,
    EngineState,
    FileValue,
    InRecord,
    Position,
    Record,
    RecoverySnapshot,
    Submitted,
    UploadMetadata,
)

# --- Turn / step ---
from form2chat.models.session import (
    AskStep,
    DoneStep,
    InputHint,
    Progress,
    ReviewStep,
    SessionInfo,
    TurnRequest,
    TurnResult,
    UploadAck,
)

__all__ = [
    # Form
    "BaseField",
    "ChoiceField",
    "DateField",
    "FieldSpec",
    "FileField",
    "FormSpec",
    "NumberField",
    "TextField",
    # State
    "AwaitingReview",
    "EngineState",
    "FileValue",
    "InRecord",
    "Position",
    "Record",
    "RecoverySnapshot",
    "Submitted",
    "UploadMetadata",
    # Steps
    "AskStep",
    "DoneStep",
    "InputHint",
    "Progress",
    "ReviewStep",
    "SessionInfo",
    "TurnRequest",
    "TurnResult",
    "UploadAck",
]
