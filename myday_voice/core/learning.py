"""Learned phrase patterns from user corrections.

When a user corrects a field on a parsed command ("gym" should be tagged
"fitness"), the correction is remembered per user. Once the same
correction has been seen three times the pattern is applied automatically
to future transcripts containing the phrase.

Data is stored in:
- <data_dir>/patterns.yaml — patterns grouped by user id
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from ruamel.yaml import YAML

from .intent.taxonomy import Entity, EntityType

logger = logging.getLogger(__name__)

INITIAL_CONFIDENCE = 0.5
CONFIDENCE_STEP = 0.05
AUTO_APPLY_FREQUENCY = 3

# Entity types that may appear more than once per command
_MULTI_VALUED = frozenset({EntityType.TAG})


class LearnedPattern(BaseModel):
    """A phrase the user has mapped to an entity value.

    Attributes:
        user_id: Owner of the pattern
        phrase_pattern: Lower-cased phrase matched as a substring
        maps_to_entity_type: Entity type the phrase produces
        maps_to_value: Normalized value the phrase produces
        frequency_count: Times the correction was seen
        confidence_score: Grows with frequency, capped at 1.0
        auto_apply: Applied automatically once frequency reaches 3
    """

    user_id: str
    phrase_pattern: str
    maps_to_entity_type: EntityType
    maps_to_value: Any
    frequency_count: int = Field(default=1, ge=1)
    confidence_score: float = Field(default=INITIAL_CONFIDENCE, ge=0.0, le=1.0)
    auto_apply: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    last_used_at: datetime | None = None

    def reinforce(self) -> None:
        """Count one more sighting of the same correction."""
        self.frequency_count += 1
        self.confidence_score = min(1.0, round(self.confidence_score + CONFIDENCE_STEP, 4))
        self.auto_apply = self.frequency_count >= AUTO_APPLY_FREQUENCY
        self.last_used_at = datetime.now()

    def to_entity(self) -> Entity:
        value = self.maps_to_value
        if self.maps_to_entity_type is EntityType.PERSON and isinstance(value, str):
            value = [value]
        return Entity(self.maps_to_entity_type, self.phrase_pattern, value, self.confidence_score)


class PatternStore:
    """Per-user learned patterns persisted as YAML.

    Example:
        >>> store = PatternStore(Path("~/.myday-voice"))
        >>> for _ in range(3):
        ...     store.learn_from_correction("u1", "gym", EntityType.TAG, "fitness")
        >>> store.user_patterns("u1")[0].auto_apply
        True
    """

    PATTERNS_FILE = "patterns.yaml"

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._patterns: list[LearnedPattern] | None = None
        self._yaml = YAML()
        self._yaml.default_flow_style = False

    @property
    def patterns_file(self) -> Path:
        return self.data_dir / self.PATTERNS_FILE

    def _load(self) -> list[LearnedPattern]:
        if not self.patterns_file.exists():
            return []
        try:
            with self.patterns_file.open("r") as f:
                data = self._yaml.load(f) or {}
            patterns = []
            for user_id, entries in data.items():
                for entry in entries or []:
                    patterns.append(LearnedPattern.model_validate({**entry, "user_id": user_id}))
            logger.debug(f"Loaded {len(patterns)} learned patterns")
            return patterns
        except Exception as e:
            logger.error(f"Failed to load learned patterns: {e}")
            return []

    def _save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

        data: dict[str, list[dict[str, Any]]] = {}
        for pattern in self.patterns:
            entry = pattern.model_dump(mode="json", exclude={"user_id"})
            data.setdefault(pattern.user_id, []).append(entry)

        # Atomic write
        temp_file = self.patterns_file.with_suffix(".yaml.tmp")
        try:
            with temp_file.open("w") as f:
                self._yaml.dump(data, f)
            temp_file.rename(self.patterns_file)
            logger.debug(f"Saved {len(self.patterns)} learned patterns")
        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise RuntimeError(f"Failed to save learned patterns: {e}") from e

    @property
    def patterns(self) -> list[LearnedPattern]:
        """All patterns for every user (loads if needed)."""
        if self._patterns is None:
            self._patterns = self._load()
        return self._patterns

    def learn_from_correction(
        self,
        user_id: str,
        phrase: str,
        entity_type: EntityType,
        value: Any,
    ) -> LearnedPattern:
        """Record a correction.

        The first sighting creates the pattern; each repeat of the same
        phrase and entity type reinforces it. A different value for the same
        phrase and type replaces the pattern and starts counting again.

        Args:
            user_id: User who made the correction
            phrase: Phrase in the transcript that was misread
            entity_type: Entity type the phrase should produce
            value: Normalized value it should produce

        Returns:
            The created or reinforced pattern
        """
        key = phrase.strip().lower()
        if not key:
            raise ValueError("Pattern phrase must not be empty")

        existing = self._find(user_id, key, entity_type)
        if existing is not None and existing.maps_to_value == value:
            existing.reinforce()
            pattern = existing
        else:
            if existing is not None:
                self.patterns.remove(existing)
            pattern = LearnedPattern(
                user_id=user_id,
                phrase_pattern=key,
                maps_to_entity_type=entity_type,
                maps_to_value=value,
            )
            self.patterns.append(pattern)

        self._save()
        logger.info(
            f"Learned '{key}' -> {entity_type.value}={value!r} "
            f"(seen {pattern.frequency_count}x, auto_apply={pattern.auto_apply})"
        )
        return pattern

    def _find(self, user_id: str, phrase: str, entity_type: EntityType) -> LearnedPattern | None:
        for pattern in self.patterns:
            if (
                pattern.user_id == user_id
                and pattern.phrase_pattern == phrase
                and pattern.maps_to_entity_type is entity_type
            ):
                return pattern
        return None

    def user_patterns(self, user_id: str) -> list[LearnedPattern]:
        """A user's patterns, highest confidence then frequency first."""
        mine = [p for p in self.patterns if p.user_id == user_id]
        return sorted(mine, key=lambda p: (p.confidence_score, p.frequency_count), reverse=True)

    def apply(self, user_id: str, transcript: str, entities: list[Entity]) -> list[Entity]:
        """Overlay a user's auto-apply patterns onto extracted entities.

        Single-valued types are replaced by the best matching pattern; TAGs
        are appended unless already present.

        Args:
            user_id: Owner of the patterns
            transcript: Transcript the entities came from
            entities: Entities from the extractor

        Returns:
            A new entity list
        """
        text = transcript.lower()
        result = list(entities)
        replaced: set[EntityType] = set()

        for pattern in self.user_patterns(user_id):
            if not pattern.auto_apply or pattern.phrase_pattern not in text:
                continue
            entity = pattern.to_entity()

            if entity.type in _MULTI_VALUED:
                if any(
                    e.type is entity.type and e.normalized_value == entity.normalized_value
                    for e in result
                ):
                    continue
                result.append(entity)
            elif entity.type not in replaced:
                result = [e for e in result if e.type is not entity.type]
                result.append(entity)
                replaced.add(entity.type)

        return result
