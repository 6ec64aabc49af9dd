"""Intent taxonomy and value types for voice command parsing.

This module defines the closed sets of intents, entity types and priorities,
plus the immutable values that flow from the parser to the confirmation
surface and the executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class IntentType(str, Enum):
    """Action categories a transcript can be classified into.

    Declaration order matters: the classifier breaks score ties in favour of
    the intent declared first.
    """

    CREATE_TASK = "CREATE_TASK"
    CREATE_EVENT = "CREATE_EVENT"
    CREATE_TODO = "CREATE_TODO"
    CREATE_JOURNAL = "CREATE_JOURNAL"
    CREATE_ROUTINE = "CREATE_ROUTINE"
    CREATE_MILESTONE = "CREATE_MILESTONE"
    CREATE_RESOLUTION = "CREATE_RESOLUTION"
    CREATE_PINNED_EVENT = "CREATE_PINNED_EVENT"
    CREATE_ITEM = "CREATE_ITEM"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    QUERY = "QUERY"
    UNKNOWN = "UNKNOWN"


class EntityType(str, Enum):
    """Kinds of fragments the extractor can pull out of a transcript."""

    TITLE = "TITLE"
    DATE = "DATE"
    TIME = "TIME"
    PRIORITY = "PRIORITY"
    TAG = "TAG"
    RECURRENCE = "RECURRENCE"
    PERSON = "PERSON"
    LOCATION = "LOCATION"
    DESCRIPTION = "DESCRIPTION"
    QUANTITY = "QUANTITY"


class IntentMethod(str, Enum):
    """How an intent classification was produced."""

    RULES = "RULES"
    AI = "AI"
    HYBRID = "HYBRID"


class Priority(str, Enum):
    """Priority levels understood by the domain collaborators."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


def _check_confidence(value: float, name: str) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value!r}")


@dataclass(frozen=True)
class Entity:
    """A typed, confidence-scored fragment of a transcript.

    Attributes:
        type: Entity kind
        value: Raw text as it appeared in the transcript
        normalized_value: Canonical value (ISO date, 24h time, RRULE, name list, ...)
        confidence: Extraction confidence 0.0-1.0
    """

    type: EntityType
    value: Any
    normalized_value: Any
    confidence: float

    def __post_init__(self) -> None:
        _check_confidence(self.confidence, "Entity confidence")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "type": self.type.value,
            "value": self.value,
            "normalized_value": self.normalized_value,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entity":
        """Deserialize from dictionary."""
        return cls(
            type=EntityType(data["type"]),
            value=data.get("value"),
            normalized_value=data.get("normalized_value"),
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass(frozen=True)
class IntentClassification:
    """Result of intent classification.

    Attributes:
        type: The winning intent
        confidence: Confidence score 0.0-1.0
        method: Classification source
        matched_triggers: Trigger phrases that hit (for debugging)
    """

    type: IntentType
    confidence: float
    method: IntentMethod = IntentMethod.RULES
    matched_triggers: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _check_confidence(self.confidence, "Intent confidence")

    @property
    def is_unknown(self) -> bool:
        return self.type is IntentType.UNKNOWN


@dataclass(frozen=True)
class ParsedCommand:
    """One listening cycle's interpretation of a transcript.

    Instances are never mutated; re-parsing produces a new command.

    Attributes:
        transcript: Raw transcript text
        intent: Intent classification
        entities: Extracted entities in extraction order
        overall_confidence: Fused confidence 0.1-1.0
        timestamp: When the command was parsed
        reference_date: Date relative expressions were resolved against
        capture_confidence: Confidence reported by speech capture
    """

    transcript: str
    intent: IntentClassification
    entities: tuple[Entity, ...]
    overall_confidence: float
    timestamp: datetime
    reference_date: date
    capture_confidence: float = 1.0
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        _check_confidence(self.overall_confidence, "Overall confidence")

    @property
    def intent_type(self) -> IntentType:
        return self.intent.type

    def first(self, entity_type: EntityType) -> Entity | None:
        """Get the first entity of a type, or None."""
        for entity in self.entities:
            if entity.type is entity_type:
                return entity
        return None

    def all_of(self, entity_type: EntityType) -> list[Entity]:
        """Get every entity of a type in extraction order."""
        return [e for e in self.entities if e.type is entity_type]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "transcript": self.transcript,
            "intent": {
                "type": self.intent.type.value,
                "confidence": self.intent.confidence,
                "method": self.intent.method.value,
            },
            "entities": [e.to_dict() for e in self.entities],
            "overall_confidence": self.overall_confidence,
            "timestamp": self.timestamp.isoformat(),
            "reference_date": self.reference_date.isoformat(),
        }
