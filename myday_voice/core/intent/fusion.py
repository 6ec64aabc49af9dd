"""Confidence fusion.

Combines the classifier's intent confidence, the mean entity confidence and
the capture confidence into one overall score for a parsed command.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .taxonomy import Entity

INTENT_WEIGHT = 0.6
ENTITY_WEIGHT = 0.3
CAPTURE_WEIGHT = 0.1
CONFIDENCE_FLOOR = 0.1
CONFIDENCE_CEILING = 1.0
# Stand-in entity average when nothing was extracted
EMPTY_ENTITY_PRIOR = 0.5


@dataclass(frozen=True)
class FusionWeights:
    """Tunable constants for confidence fusion.

    Attributes:
        intent: Weight of the intent confidence
        entity: Weight of the mean entity confidence
        capture: Weight of the capture confidence
        floor: Lowest overall score ever reported
        ceiling: Highest overall score ever reported
        empty_entity_prior: Entity average used when no entities exist
    """

    intent: float = INTENT_WEIGHT
    entity: float = ENTITY_WEIGHT
    capture: float = CAPTURE_WEIGHT
    floor: float = CONFIDENCE_FLOOR
    ceiling: float = CONFIDENCE_CEILING
    empty_entity_prior: float = EMPTY_ENTITY_PRIOR

    def __post_init__(self) -> None:
        if min(self.intent, self.entity, self.capture) < 0:
            raise ValueError("Fusion weights must be non-negative")
        if not 0.0 <= self.floor <= self.ceiling <= 1.0:
            raise ValueError(
                f"Fusion bounds must satisfy 0 <= floor <= ceiling <= 1, "
                f"got floor={self.floor}, ceiling={self.ceiling}"
            )
        if not 0.0 <= self.empty_entity_prior <= 1.0:
            raise ValueError("empty_entity_prior must be within [0, 1]")


class ConfidenceFusion:
    """Weighted fusion of independent confidence signals.

    Example:
        >>> ConfidenceFusion().fuse(0.9, [], 1.0)
        0.79
    """

    def __init__(self, weights: FusionWeights | None = None) -> None:
        self.weights = weights or FusionWeights()

    def entity_average(self, entities: Iterable[Entity]) -> float:
        """Mean entity confidence, or the empty prior when there are none."""
        scores = [e.confidence for e in entities]
        if not scores:
            return self.weights.empty_entity_prior
        return sum(scores) / len(scores)

    def fuse(
        self,
        intent_confidence: float,
        entities: Iterable[Entity],
        capture_confidence: float,
    ) -> float:
        """Compute the overall confidence.

        Args:
            intent_confidence: Classifier confidence 0.0-1.0
            entities: Extracted entities
            capture_confidence: Speech capture confidence 0.0-1.0

        Returns:
            Score clamped to ``[floor, ceiling]``
        """
        w = self.weights
        overall = (
            w.intent * intent_confidence
            + w.entity * self.entity_average(entities)
            + w.capture * capture_confidence
        )
        return round(max(w.floor, min(w.ceiling, overall)), 4)
