"""Trigger-phrase intent classification.

Each intent owns a list of trigger phrases. A transcript scores one point per
trigger found as a case-insensitive substring; the best-scoring intent wins,
with ties going to the intent declared first in ``IntentType``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from .taxonomy import IntentClassification, IntentMethod, IntentType

logger = logging.getLogger(__name__)

# Confidence assigned when no trigger matches
UNKNOWN_CONFIDENCE = 0.3
# Upper bound for rule-based confidence
MAX_RULE_CONFIDENCE = 0.9
# Added to the hit ratio of the winning intent
RULE_HIT_BOOST = 0.2


class TriggerTable:
    """Immutable mapping of intent -> trigger phrases.

    Phrases are stored lower-cased. Intents missing from the source mapping
    get an empty trigger list, so every ``IntentType`` is always present.

    Example:
        >>> table = TriggerTable({IntentType.QUERY: ["what's on"]})
        >>> table.triggers(IntentType.QUERY)
        ("what's on",)
    """

    def __init__(self, triggers: Mapping[IntentType, Iterable[str]]) -> None:
        table: dict[IntentType, tuple[str, ...]] = {}
        for intent in IntentType:
            phrases = triggers.get(intent, ())
            table[intent] = tuple(p.strip().lower() for p in phrases if p.strip())
        self._table = MappingProxyType(table)

    def triggers(self, intent: IntentType) -> tuple[str, ...]:
        """Get the trigger phrases for an intent."""
        return self._table[intent]

    def items(self):
        """Iterate (intent, triggers) in enumeration order."""
        return self._table.items()

    def __len__(self) -> int:
        return sum(len(t) for t in self._table.values())

    def __repr__(self) -> str:
        return f"TriggerTable({len(self)} triggers)"


DEFAULT_TRIGGERS = TriggerTable(
    {
        IntentType.CREATE_TASK: [
            "remind me to",
            "remind me",
            "add task",
            "add a task",
            "create task",
            "create a task",
            "new task",
        ],
        IntentType.CREATE_EVENT: [
            "schedule",
            "meeting",
            "appointment",
            "event at",
            "book",
            "create event",
            "add event",
            "new event",
        ],
        IntentType.CREATE_TODO: [
            "add todo",
            "add a todo",
            "todo",
            "to-do",
            "to do list",
            "add to my list",
            "my list",
            "remember to",
        ],
        IntentType.CREATE_JOURNAL: [
            "journal",
            "write in my journal",
            "i'm feeling",
            "i am feeling",
            "note to self",
            "dear diary",
        ],
        IntentType.CREATE_ROUTINE: [
            "every day",
            "daily",
            "every week",
            "every monday",
            "every morning",
            "routine",
            "habit",
        ],
        IntentType.CREATE_MILESTONE: [
            "milestone",
            "milestones",
        ],
        IntentType.CREATE_RESOLUTION: [
            "resolution",
            "i will",
            "my goal",
        ],
        IntentType.CREATE_PINNED_EVENT: [
            "pinned event",
            "pin event",
            "pin this",
            "pin an event",
        ],
        IntentType.CREATE_ITEM: [
            "add to list",
            "add to the list",
            "add item",
            "add to shopping list",
            "put on the list",
        ],
        IntentType.UPDATE: ["update", "change", "edit"],
        IntentType.DELETE: ["delete", "remove", "cancel"],
        IntentType.QUERY: ["what", "when", "show me", "list my", "what's on", "do i have"],
    }
)


class IntentClassifier:
    """Rule-based intent classifier over an injected trigger table.

    Pure function of transcript + configuration: no state is kept between
    calls, so alternate vocabularies can be tested in isolation.

    Attributes:
        table: Trigger phrases per intent
        unknown_confidence: Confidence reported for UNKNOWN
        max_confidence: Cap for rule-based confidence
        hit_boost: Added to the winning intent's hit ratio
    """

    def __init__(
        self,
        table: TriggerTable = DEFAULT_TRIGGERS,
        *,
        unknown_confidence: float = UNKNOWN_CONFIDENCE,
        max_confidence: float = MAX_RULE_CONFIDENCE,
        hit_boost: float = RULE_HIT_BOOST,
    ) -> None:
        self.table = table
        self.unknown_confidence = unknown_confidence
        self.max_confidence = max_confidence
        self.hit_boost = hit_boost

    def score(self, transcript: str) -> dict[IntentType, list[str]]:
        """Collect matching triggers per intent.

        Args:
            transcript: Raw transcript

        Returns:
            Mapping of intent -> matched trigger phrases, in enumeration order
        """
        text = transcript.lower()
        return {
            intent: [t for t in triggers if t in text] for intent, triggers in self.table.items()
        }

    def classify(self, transcript: str) -> IntentClassification:
        """Classify a transcript.

        Args:
            transcript: Raw transcript

        Returns:
            IntentClassification; UNKNOWN at ``unknown_confidence`` when no
            trigger matched
        """
        hits = self.score(transcript)

        best_intent = IntentType.UNKNOWN
        best_score = 0
        # Strict ">" keeps the first intent in enumeration order on ties
        for intent, matched in hits.items():
            if len(matched) > best_score:
                best_intent = intent
                best_score = len(matched)

        if best_score == 0:
            return IntentClassification(
                type=IntentType.UNKNOWN,
                confidence=self.unknown_confidence,
                method=IntentMethod.RULES,
            )

        trigger_count = len(self.table.triggers(best_intent)) or 1
        confidence = min(self.max_confidence, best_score / trigger_count + self.hit_boost)
        logger.debug(f"Classified as {best_intent.value} ({best_score}/{trigger_count} triggers)")

        return IntentClassification(
            type=best_intent,
            confidence=confidence,
            method=IntentMethod.RULES,
            matched_triggers=tuple(hits[best_intent]),
        )
