"""Voice command parsing orchestrator.

Runs the classifier and the entity extractor over the same transcript
(independently, neither sees the other's output), optionally applies the
user's learned corrections, and fuses the confidences into one
``ParsedCommand``. Parsing is synchronous and deterministic for a given
transcript, reference date and pattern store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import TYPE_CHECKING

from .entities import EntityExtractor
from .fusion import ConfidenceFusion
from .patterns import IntentClassifier
from .taxonomy import ParsedCommand

if TYPE_CHECKING:
    from ..learning import PatternStore

logger = logging.getLogger(__name__)

# Security: Maximum input length to prevent regex abuse
MAX_INPUT_LENGTH = 10_000


class CommandParser:
    """Transcript -> ParsedCommand.

    Attributes:
        classifier: Trigger-phrase intent classifier
        extractor: Entity extractor
        fusion: Confidence fusion
        patterns: Optional learned-pattern store
    """

    def __init__(
        self,
        classifier: IntentClassifier | None = None,
        extractor: EntityExtractor | None = None,
        fusion: ConfidenceFusion | None = None,
        clock: Callable[[], datetime] | None = None,
        patterns: "PatternStore | None" = None,
    ) -> None:
        """Initialize the parser.

        Args:
            classifier: Intent classifier (default vocabulary if None)
            extractor: Entity extractor
            fusion: Confidence fusion (default weights if None)
            clock: Source of "now"; injected so tests are reproducible
            patterns: Learned-pattern store applied when a user id is given
        """
        self.classifier = classifier or IntentClassifier()
        self.extractor = extractor or EntityExtractor()
        self.fusion = fusion or ConfidenceFusion()
        self.clock = clock or datetime.now
        self.patterns = patterns

    def parse(
        self,
        transcript: str,
        capture_confidence: float = 1.0,
        reference_date: date | None = None,
        user_id: str | None = None,
    ) -> ParsedCommand:
        """Parse a transcript into a command awaiting confirmation.

        Args:
            transcript: Raw transcript text
            capture_confidence: Confidence reported by speech capture
            reference_date: Date relative expressions resolve against
                (today, per ``clock``, if None)
            user_id: Owner of the command; enables learned patterns

        Returns:
            A new immutable ParsedCommand
        """
        text = transcript.strip()

        # Security: truncate excessively long input
        if len(text) > MAX_INPUT_LENGTH:
            logger.warning(f"Input truncated from {len(text)} to {MAX_INPUT_LENGTH} chars")
            text = text[:MAX_INPUT_LENGTH]

        # Validate and clamp capture confidence to [0.0, 1.0]
        capture = max(0.0, min(1.0, float(capture_confidence)))

        now = self.clock()
        reference = reference_date or now.date()

        intent = self.classifier.classify(text)
        entities = self.extractor.extract(text, reference)

        applied = 0
        if self.patterns is not None and user_id:
            before = list(entities)
            entities = self.patterns.apply(user_id, text, entities)
            applied = sum(1 for e in entities if e not in before)
            if applied:
                logger.debug(f"Applied {applied} learned pattern(s) for user")

        overall = self.fusion.fuse(intent.confidence, entities, capture)

        return ParsedCommand(
            transcript=text,
            intent=intent,
            entities=tuple(entities),
            overall_confidence=overall,
            timestamp=now,
            reference_date=reference,
            capture_confidence=capture,
            metadata={"user_id": user_id, "learned_patterns_applied": applied},
        )


def parse_command(transcript: str, reference_date: date | None = None) -> ParsedCommand:
    """Parse with default components.

    Args:
        transcript: Raw transcript text
        reference_date: Date relative expressions resolve against

    Returns:
        ParsedCommand
    """
    return CommandParser().parse(transcript, reference_date=reference_date)
