"""Labelled training examples and parser evaluation.

Examples use a line format of one quoted utterance followed by ``::`` and
``KEY=VALUE`` pairs separated by ``|``:

    "Remind me to call mom tomorrow at 5pm" :: INTENT=CREATE_TASK |
        MEMO_TIME=17:00 | TITLE="call mom" | CONFIDENCE=HIGH

Values may be quoted strings, bracketed lists, numbers, TRUE/FALSE, NULL,
NEEDS_USER_INPUT (the field is missing and must be asked for) or a
confidence bucket (HIGH/MEDIUM/LOW).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from .intent.parser import CommandParser
from .intent.taxonomy import EntityType, IntentType
from .intent.temporal import normalize_time

logger = logging.getLogger(__name__)

CONFIDENCE_MAP: dict[str, float] = {"HIGH": 0.9, "MEDIUM": 0.6, "LOW": 0.3}

# Marker for "field missing, ask the user"
NEEDS_USER_INPUT = object()

_BLOCK_RE = re.compile(r'"([^"]+)"\s*::([\s\S]*?)(?=\n\s*\n|\Z)')
_LIST_ITEM_RE = re.compile(r'"[^"]*"|[^,\s]+')
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _parse_scalar(text: str) -> Any:
    if text.startswith('"') and text.endswith('"') and len(text) >= 2:
        return text[1:-1]
    if text.upper() in ("TRUE", "FALSE"):
        return text.upper() == "TRUE"
    if text.isdigit():
        return int(text)
    return text


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def parse_value(raw: str, buckets: bool = True) -> Any:
    """Parse one ``VALUE`` token.

    Args:
        raw: Token text
        buckets: Map HIGH/MEDIUM/LOW to confidence floats

    Returns:
        None for NULL, ``NEEDS_USER_INPUT`` for a missing field, a list for
        ``[...]``, a float for a confidence bucket, else a str/int/bool
    """
    value = raw.strip()
    if value == "NULL":
        return None
    if value == "NEEDS_USER_INPUT":
        return NEEDS_USER_INPUT
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1].strip()
        return [_parse_scalar(item) for item in _LIST_ITEM_RE.findall(inner)]
    if buckets and value in CONFIDENCE_MAP:
        return CONFIDENCE_MAP[value]
    return _parse_scalar(value)


@dataclass
class TrainingExample:
    """One labelled utterance."""

    transcript: str
    intent: IntentType | None = None
    memo_date: str | None = None
    memo_time: str | None = None
    priority: str | None = None
    recurrence: str | None = None
    title: str | None = None
    tags: list[str] = field(default_factory=list)
    attendees: list[str] = field(default_factory=list)
    location: str | None = None
    confidence: float | None = None
    missing_fields: list[str] = field(default_factory=list)
    note: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


# KEY -> TrainingExample attribute for plain fields
_FIELD_KEYS: dict[str, str] = {
    "MEMO_DATE": "memo_date",
    "MEMO_TIME": "memo_time",
    "PRIORITY": "priority",
    "RECURRENCE": "recurrence",
    "TITLE": "title",
    "LOCATION": "location",
    "NOTE": "note",
}


def parse_training_block(block: str) -> TrainingExample:
    """Parse one ``"utterance" :: KEY=VALUE | ...`` block.

    Raises:
        ValueError: If the block has no quoted utterance
    """
    match = re.search(r'"([^"]+)"\s*::', block)
    if not match:
        raise ValueError(f"Not a training example: {block[:40]!r}")

    example = TrainingExample(transcript=match.group(1).strip())
    body = block.split("::", 1)[1].replace("\n", " ")

    for token in (t.strip() for t in body.split("|")):
        if "=" not in token:
            continue
        key, raw = (part.strip() for part in token.split("=", 1))
        # PRIORITY=HIGH is a priority, not a confidence
        value = parse_value(raw, buckets=key == "CONFIDENCE")

        if value is NEEDS_USER_INPUT:
            example.missing_fields.append(key)
            continue

        if key == "INTENT":
            try:
                example.intent = IntentType(str(value))
            except ValueError:
                logger.warning(f"Unknown intent in training data: {value}")
        elif key in _FIELD_KEYS:
            setattr(example, _FIELD_KEYS[key], None if value is None else str(value))
        elif key == "TAGS":
            example.tags = [str(v) for v in _as_list(value)]
        elif key == "ATTENDEES":
            example.attendees = [str(v) for v in _as_list(value)]
        elif key == "CONFIDENCE":
            example.confidence = float(value) if isinstance(value, (int, float)) else 0.0
        elif key == "MISSING_FIELDS":
            example.missing_fields.extend(str(f) for f in _as_list(value) if f)
        else:
            example.extra[key.lower()] = value

    return example


def parse_training_text(text: str) -> list[TrainingExample]:
    """Parse every example block in a document (blocks end at a blank line)."""
    examples = []
    for match in _BLOCK_RE.finditer(text):
        try:
            examples.append(parse_training_block(match.group(0)))
        except ValueError as e:
            logger.warning(f"Skipping training block: {e}")
    return examples


def load_training_file(path: Path) -> list[TrainingExample]:
    """Load examples from a text/markdown file."""
    with Path(path).open("r", encoding="utf-8") as f:
        examples = parse_training_text(f.read())
    logger.debug(f"Loaded {len(examples)} training examples from {path}")
    return examples


# =============================================================================
# Evaluation
# =============================================================================


@dataclass
class EvaluationReport:
    """Agreement between the parser and labelled examples.

    Attributes:
        total: Examples evaluated
        labelled: Examples carrying an expected intent
        intent_correct: Examples whose intent matched
        field_agreement: Field -> (matched, compared)
        mismatches: (transcript, expected intent, actual intent) for misses
    """

    total: int = 0
    labelled: int = 0
    intent_correct: int = 0
    field_agreement: dict[str, tuple[int, int]] = field(default_factory=dict)
    mismatches: list[tuple[str, str, str]] = field(default_factory=list)

    @property
    def intent_accuracy(self) -> float:
        """Percentage of examples with the expected intent (2 dp)."""
        if not self.labelled:
            return 0.0
        return round(self.intent_correct / self.labelled * 100, 2)

    def record(self, name: str, matched: bool) -> None:
        hits, compared = self.field_agreement.get(name, (0, 0))
        self.field_agreement[name] = (hits + int(matched), compared + 1)


def _compare_fields(
    example: TrainingExample, values: dict[EntityType, Any], report: EvaluationReport
) -> None:
    if example.title:
        got = str(values.get(EntityType.TITLE) or "").lower()
        want = example.title.lower()
        report.record("title", bool(got) and (want in got or got in want))

    # Relative expressions ("tomorrow") cannot be compared without their reference
    if example.memo_date and _ISO_DATE_RE.match(example.memo_date):
        report.record("date", values.get(EntityType.DATE) == example.memo_date)

    if example.memo_time:
        want_time = normalize_time(example.memo_time) or example.memo_time
        report.record("time", values.get(EntityType.TIME) == want_time)

    if example.priority:
        got = values.get(EntityType.PRIORITY)
        report.record("priority", str(got or "").upper() == example.priority.upper())

    if example.recurrence:
        got = str(values.get(EntityType.RECURRENCE) or "").upper()
        report.record("recurrence", got == example.recurrence.upper())

    if example.tags:
        got_tags = {str(t).lower() for t in values.get(EntityType.TAG, [])}
        report.record("tags", {t.lower() for t in example.tags} <= got_tags)

    if example.attendees:
        report.record("attendees", values.get(EntityType.PERSON) == example.attendees)

    if example.location:
        got = str(values.get(EntityType.LOCATION) or "").lower()
        report.record("location", got == example.location.lower())


def evaluate(
    parser: CommandParser,
    examples: list[TrainingExample],
    reference_date: date,
) -> EvaluationReport:
    """Run the parser over labelled examples.

    Args:
        parser: Parser under evaluation
        examples: Labelled examples
        reference_date: Date relative expressions resolve against

    Returns:
        EvaluationReport with intent accuracy and per-field agreement
    """
    report = EvaluationReport()
    for example in examples:
        parsed = parser.parse(example.transcript, reference_date=reference_date)
        report.total += 1

        if example.intent is not None:
            report.labelled += 1
            if parsed.intent_type is example.intent:
                report.intent_correct += 1
            else:
                report.mismatches.append(
                    (example.transcript, example.intent.value, parsed.intent_type.value)
                )

        values: dict[EntityType, Any] = {}
        for entity in parsed.entities:
            if entity.type is EntityType.TAG:
                values.setdefault(EntityType.TAG, []).append(entity.normalized_value)
            else:
                values.setdefault(entity.type, entity.normalized_value)

        _compare_fields(example, values, report)

    return report
