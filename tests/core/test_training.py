"""Tests for training example parsing and parser evaluation."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import pytest

from myday_voice.core.intent import CommandParser, IntentType
from myday_voice.core.training import (
    NEEDS_USER_INPUT,
    evaluate,
    load_training_file,
    parse_training_block,
    parse_training_text,
    parse_value,
)

SAMPLE = '''
# Voice examples

"Remind me to call mom tomorrow at 5pm" :: INTENT=CREATE_TASK |
    MEMO_TIME=17:00 | MEMO_DATE=2026-01-31 | TITLE="call mom" | CONFIDENCE=HIGH

"Schedule dentist appointment" :: INTENT=CREATE_TODO | MEMO_DATE=tomorrow

"Something vague" :: MEMO_TIME=NEEDS_USER_INPUT | NOTE="no intent label"
'''


class TestParseValue:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("NULL", None),
            ('"call mom"', "call mom"),
            ("TRUE", True),
            ("false", False),
            ("42", 42),
            ("HIGH", 0.9),
            ("LOW", 0.3),
            ('["work", q1]', ["work", "q1"]),
            ("[]", []),
            ("17:00", "17:00"),
        ],
    )
    def test_values(self, raw: str, expected: object) -> None:
        assert parse_value(raw) == expected

    def test_needs_user_input(self) -> None:
        assert parse_value(" NEEDS_USER_INPUT ") is NEEDS_USER_INPUT


class TestParseBlock:
    """Tests for a single example block."""

    def test_fields(self) -> None:
        example = parse_training_block(
            '"Lunch with Ana and Ben at Olive Garden" :: INTENT=CREATE_EVENT | '
            'ATTENDEES=["Ana", "Ben"] | LOCATION="Olive Garden" | TAGS=[social] | '
            "PRIORITY=HIGH | SOURCE=manual"
        )

        assert example.transcript == "Lunch with Ana and Ben at Olive Garden"
        assert example.intent is IntentType.CREATE_EVENT
        assert example.attendees == ["Ana", "Ben"]
        assert example.location == "Olive Garden"
        assert example.tags == ["social"]
        assert example.priority == "HIGH"
        assert example.extra == {"source": "manual"}

    def test_confidence_bucket(self) -> None:
        example = parse_training_block('"todo buy milk" :: CONFIDENCE=MEDIUM')
        assert example.confidence == 0.6

    def test_missing_fields(self) -> None:
        example = parse_training_block(
            '"remind me" :: TITLE=NEEDS_USER_INPUT | MISSING_FIELDS=[MEMO_DATE]'
        )
        assert example.title is None
        assert example.missing_fields == ["TITLE", "MEMO_DATE"]

    def test_unknown_intent_ignored(self) -> None:
        assert parse_training_block('"hello" :: INTENT=GREETING').intent is None

    def test_not_an_example(self) -> None:
        with pytest.raises(ValueError):
            parse_training_block("INTENT=CREATE_TASK")


class TestParseText:
    def test_blocks_split_on_blank_lines(self) -> None:
        examples = parse_training_text(SAMPLE)

        assert [e.transcript for e in examples] == [
            "Remind me to call mom tomorrow at 5pm",
            "Schedule dentist appointment",
            "Something vague",
        ]
        first = examples[0]
        assert first.memo_time == "17:00"
        assert first.title == "call mom"
        assert first.confidence == 0.9
        assert examples[2].missing_fields == ["MEMO_TIME"]
        assert examples[2].note == "no intent label"

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "examples.md"
        path.write_text(SAMPLE, encoding="utf-8")
        assert len(load_training_file(path)) == 3


class TestEvaluate:
    """Tests for scoring the parser against labels."""

    def test_report(self) -> None:
        parser = CommandParser(clock=lambda: datetime(2026, 1, 30, 9, 0))

        report = evaluate(parser, parse_training_text(SAMPLE), date(2026, 1, 30))

        assert report.total == 3
        assert report.labelled == 2
        assert report.intent_correct == 1
        assert report.intent_accuracy == 50.0
        assert report.mismatches == [
            ("Schedule dentist appointment", "CREATE_TODO", "CREATE_EVENT")
        ]
        assert report.field_agreement["time"] == (1, 1)
        assert report.field_agreement["date"] == (1, 1)
        assert report.field_agreement["title"] == (1, 1)

    def test_relative_dates_not_compared(self) -> None:
        examples = parse_training_text('"Schedule dentist appointment" :: MEMO_DATE=tomorrow')
        report = evaluate(CommandParser(), examples, date(2026, 1, 30))
        assert "date" not in report.field_agreement
        assert report.intent_accuracy == 0.0
