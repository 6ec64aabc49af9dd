"""Core components for myday-voice."""

from .capture import (
    CaptureCategory,
    CaptureError,
    CaptureResult,
    SpeechCapture,
    TypedCapture,
)
from .commandlog import (
    CommandLog,
    CommandLogStore,
    CommandNotFoundError,
    Outcome,
    OutcomeTransitionError,
)
from .domain import (
    DomainCollaborators,
    DomainWriteError,
    ItemKind,
    ItemNotFoundError,
    ItemRef,
    LocalDomainStore,
)
from .executor import (
    DEFAULT_HANDLERS,
    ExecutionResult,
    Executor,
    ExtractedField,
)
from .ledger import (
    AuditLog,
    NothingToUndoError,
    UndoError,
    UndoLedger,
)
from .lifecycle import (
    CommandLifecycle,
    InvalidTransitionError,
    LifecycleError,
    LifecycleState,
)

__all__ = [
    # Capture
    "SpeechCapture",
    "TypedCapture",
    "CaptureResult",
    "CaptureError",
    "CaptureCategory",
    # Lifecycle
    "CommandLifecycle",
    "LifecycleState",
    "LifecycleError",
    "InvalidTransitionError",
    # Execution
    "Executor",
    "ExecutionResult",
    "ExtractedField",
    "DEFAULT_HANDLERS",
    # Domain
    "ItemKind",
    "ItemRef",
    "DomainCollaborators",
    "DomainWriteError",
    "ItemNotFoundError",
    "LocalDomainStore",
    # Command log and undo
    "CommandLog",
    "CommandLogStore",
    "CommandNotFoundError",
    "Outcome",
    "OutcomeTransitionError",
    "AuditLog",
    "UndoLedger",
    "UndoError",
    "NothingToUndoError",
]
