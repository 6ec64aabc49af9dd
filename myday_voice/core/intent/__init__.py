"""Voice command parsing for myday-voice.

This module turns a free-form transcript into a typed, confidence-scored
command awaiting confirmation.

The parsing pipeline:
1. Trigger-phrase intent classification
2. Independent entity extraction passes (title, date, time, priority,
   recurrence, tags, attendees, location, quantity)
3. Confidence fusion (intent + mean entity + capture confidence)

Example usage:
    ```python
    from datetime import date
    from myday_voice.core.intent import CommandParser, EntityType, IntentType

    parser = CommandParser()
    parsed = parser.parse(
        "Create a task to call mom at 5pm today",
        reference_date=date(2026, 1, 30),
    )
    assert parsed.intent_type == IntentType.CREATE_TASK
    assert parsed.first(EntityType.TIME).normalized_value == "17:00"
    ```
"""

from .entities import (
    TAG_KEYWORDS,
    EntityExtractor,
    extract_entities,
)
from .fusion import (
    ConfidenceFusion,
    FusionWeights,
)
from .parser import (
    CommandParser,
    parse_command,
)
from .patterns import (
    DEFAULT_TRIGGERS,
    IntentClassifier,
    TriggerTable,
)
from .taxonomy import (
    Entity,
    EntityType,
    IntentClassification,
    IntentMethod,
    IntentType,
    ParsedCommand,
    Priority,
)

__all__ = [
    # Main parser
    "CommandParser",
    "parse_command",
    # Classification
    "IntentClassifier",
    "TriggerTable",
    "DEFAULT_TRIGGERS",
    # Fusion
    "ConfidenceFusion",
    "FusionWeights",
    # Taxonomy
    "IntentType",
    "IntentMethod",
    "IntentClassification",
    "EntityType",
    "Entity",
    "ParsedCommand",
    "Priority",
    # Entity extraction
    "EntityExtractor",
    "extract_entities",
    "TAG_KEYWORDS",
]
