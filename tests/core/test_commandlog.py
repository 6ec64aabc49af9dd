"""Tests for myday_voice.core.commandlog.

Covers:
- CommandLog construction and the created-item invariant
- Outcome transition rules
- CommandLogStore persistence, reads, search and retention
"""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from myday_voice.core.commandlog import (
    CommandLog,
    CommandLogStore,
    CommandNotFoundError,
    Outcome,
    OutcomeTransitionError,
    check_transition,
)
from myday_voice.core.domain import ItemKind, ItemRef
from myday_voice.core.intent import CommandParser, IntentType
from myday_voice.core.privacy import Base64Codec, FernetCodec

NOW = datetime(2026, 1, 30, 9, 0)


@pytest.fixture
def parser() -> CommandParser:
    return CommandParser(clock=lambda: NOW)


@pytest.fixture
def store(tmp_path: Path) -> CommandLogStore:
    return CommandLogStore(tmp_path, clock=lambda: NOW)


def _log(parser: CommandParser, transcript: str, **kwargs) -> CommandLog:
    kwargs.setdefault("now", NOW)
    return CommandLog.from_parsed(parser.parse(transcript), **kwargs)


# ============================================================================
# CommandLog model
# ============================================================================


class TestCommandLog:
    """Tests for the CommandLog model."""

    def test_from_parsed_copies_fields(self, parser: CommandParser) -> None:
        log = _log(
            parser,
            "Schedule dentist appointment with Ana tomorrow at 3pm every Monday",
            user_id="u1",
        )
        assert log.intent_type is IntentType.CREATE_EVENT
        assert log.memo_date == "2026-01-31"
        assert log.memo_time == "15:00"
        assert log.extracted_attendees == ["Ana"]
        assert log.extracted_recurrence == "FREQ=WEEKLY;BYDAY=MO"
        assert "health" in log.extracted_tags
        assert log.outcome is Outcome.PENDING
        assert log.expires_at == NOW + timedelta(days=30)

    def test_success_requires_created_item(self) -> None:
        with pytest.raises(ValidationError):
            CommandLog(outcome=Outcome.SUCCESS)

    def test_pending_cannot_reference_item(self) -> None:
        with pytest.raises(ValidationError):
            CommandLog(created_item_type=ItemKind.TASK, created_item_id="t1")

    def test_created_item(self) -> None:
        log = CommandLog(
            outcome=Outcome.SUCCESS, created_item_type=ItemKind.EVENT, created_item_id="e1"
        )
        assert log.created_item == ItemRef(ItemKind.EVENT, "e1")
        assert str(log.created_item) == "event:e1"

    def test_round_trip_dict(self, parser: CommandParser) -> None:
        log = _log(parser, "Remind me to call mom today", user_id="u1")
        assert CommandLog.from_dict(log.to_dict()) == log


class TestOutcomeTransitions:
    """Outcomes only move forward."""

    @pytest.mark.parametrize(
        "current,new",
        [
            (Outcome.PENDING, Outcome.SUCCESS),
            (Outcome.PENDING, Outcome.FAILED),
            (Outcome.PENDING, Outcome.CANCELLED),
            (Outcome.FAILED, Outcome.SUCCESS),
            (Outcome.FAILED, Outcome.FAILED),
            (Outcome.SUCCESS, Outcome.UNDONE),
            (Outcome.UNDONE, Outcome.UNDONE),
        ],
    )
    def test_allowed(self, current: Outcome, new: Outcome) -> None:
        check_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (Outcome.UNDONE, Outcome.SUCCESS),
            (Outcome.SUCCESS, Outcome.FAILED),
            (Outcome.SUCCESS, Outcome.PENDING),
            (Outcome.CANCELLED, Outcome.SUCCESS),
            (Outcome.PENDING, Outcome.UNDONE),
        ],
    )
    def test_rejected(self, current: Outcome, new: Outcome) -> None:
        with pytest.raises(OutcomeTransitionError):
            check_transition(current, new)


# ============================================================================
# Store
# ============================================================================


class TestCommandLogStoreWrites:
    """Tests for creating and updating records."""

    def test_create_and_reload(
        self, store: CommandLogStore, parser: CommandParser, tmp_path: Path
    ) -> None:
        log = store.create(_log(parser, "Remind me to call mom", user_id="u1"))

        reloaded = CommandLogStore(tmp_path, clock=lambda: NOW)
        assert reloaded.get(log.id).transcript == "Remind me to call mom"

    def test_transcript_not_plain_on_disk(
        self, store: CommandLogStore, parser: CommandParser
    ) -> None:
        store.create(_log(parser, "Remind me to call mom", user_id="u1"))
        raw = store.log_file.read_text()
        assert "call mom" not in json.loads(raw)[0]["transcript"]

    def test_encrypted_transcripts(self, tmp_path: Path, parser: CommandParser) -> None:
        codec = FernetCodec("s3cret")
        store = CommandLogStore(tmp_path, codec=codec, clock=lambda: NOW)
        log = store.create(_log(parser, "Remind me to call mom", user_id="u1"))

        assert log.transcript_encrypted is True
        record = json.loads(store.log_file.read_text())[0]
        assert record["transcript_encrypted"] is True
        assert CommandLogStore(tmp_path, codec=codec, clock=lambda: NOW).get(log.id).transcript == (
            "Remind me to call mom"
        )

    def test_unreadable_transcript_degrades_to_empty(
        self, tmp_path: Path, parser: CommandParser
    ) -> None:
        store = CommandLogStore(tmp_path, codec=FernetCodec("one"), clock=lambda: NOW)
        log = store.create(_log(parser, "Remind me to call mom", user_id="u1"))

        other = CommandLogStore(tmp_path, codec=FernetCodec("two"), clock=lambda: NOW)
        assert other.get(log.id).transcript == ""

    def test_unreadable_transcript_survives_saves(
        self, tmp_path: Path, parser: CommandParser
    ) -> None:
        """Writing with the wrong key never overwrites transcripts it could not read."""
        store = CommandLogStore(tmp_path, codec=FernetCodec("one"), clock=lambda: NOW)
        first = store.create(_log(parser, "Remind me to call mom", user_id="u1"))

        other = CommandLogStore(tmp_path, codec=FernetCodec("two"), clock=lambda: NOW)
        other.create(_log(parser, "todo buy milk", user_id="u1"))
        other.mark_edited(first.id)

        again = CommandLogStore(tmp_path, codec=FernetCodec("one"), clock=lambda: NOW)
        assert again.get(first.id).transcript == "Remind me to call mom"
        assert again.get(first.id).user_edited is True


class TestCodecChanges:
    """Transcripts stay readable when the transcript secret is turned on or off."""

    def test_plain_records_readable_after_enabling_secret(
        self, tmp_path: Path, parser: CommandParser
    ) -> None:
        store = CommandLogStore(tmp_path, codec=Base64Codec(), clock=lambda: NOW)
        log = store.create(_log(parser, "Remind me to call mom", user_id="u1"))

        encrypted = CommandLogStore(tmp_path, codec=FernetCodec("s3cret"), clock=lambda: NOW)
        assert encrypted.get(log.id).transcript == "Remind me to call mom"

    def test_switching_back_and_forth(self, tmp_path: Path, parser: CommandParser) -> None:
        store = CommandLogStore(tmp_path, codec=Base64Codec(), clock=lambda: NOW)
        first = store.create(_log(parser, "Remind me to call mom", user_id="u1"))

        encrypted = CommandLogStore(tmp_path, codec=FernetCodec("s3cret"), clock=lambda: NOW)
        second = encrypted.create(_log(parser, "todo buy milk", user_id="u1"))

        # Without the secret, encrypted records stay sealed but are not lost
        plain = CommandLogStore(tmp_path, codec=Base64Codec(), clock=lambda: NOW)
        assert plain.get(second.id).transcript == ""
        plain.create(_log(parser, "journal good day", user_id="u1"))

        again = CommandLogStore(tmp_path, codec=FernetCodec("s3cret"), clock=lambda: NOW)
        assert again.get(first.id).transcript == "Remind me to call mom"
        assert again.get(second.id).transcript == "todo buy milk"
        assert again.search("good day", user_id="u1")

    def test_records_without_flag_read_as_base64(
        self, tmp_path: Path, parser: CommandParser
    ) -> None:
        store = CommandLogStore(tmp_path, codec=Base64Codec(), clock=lambda: NOW)
        log = store.create(_log(parser, "Remind me to call mom", user_id="u1"))
        records = json.loads(store.log_file.read_text())
        del records[0]["transcript_encrypted"]
        store.log_file.write_text(json.dumps(records))

        reloaded = CommandLogStore(tmp_path, codec=FernetCodec("s3cret"), clock=lambda: NOW)
        assert reloaded.get(log.id).transcript == "Remind me to call mom"

    def test_duplicate_id_rejected(self, store: CommandLogStore, parser: CommandParser) -> None:
        log = store.create(_log(parser, "todo buy milk"))
        with pytest.raises(ValueError):
            store.create(log)

    def test_set_outcome_success(self, store: CommandLogStore, parser: CommandParser) -> None:
        log = store.create(_log(parser, "todo buy milk"))
        updated = store.set_outcome(
            log.id, Outcome.SUCCESS, created_item=ItemRef(ItemKind.TODO, "t1")
        )
        assert updated.outcome is Outcome.SUCCESS
        assert updated.created_item == ItemRef(ItemKind.TODO, "t1")
        assert updated.updated_at == NOW

    def test_set_outcome_success_needs_item(
        self, store: CommandLogStore, parser: CommandParser
    ) -> None:
        log = store.create(_log(parser, "todo buy milk"))
        with pytest.raises(ValueError):
            store.set_outcome(log.id, Outcome.SUCCESS)

    def test_retry_count_after_failure(self, store: CommandLogStore, parser: CommandParser) -> None:
        log = store.create(_log(parser, "todo buy milk"))
        store.set_outcome(log.id, Outcome.FAILED, failure_reason="offline")
        store.set_outcome(log.id, Outcome.FAILED, failure_reason="offline")
        updated = store.set_outcome(
            log.id, Outcome.SUCCESS, created_item=ItemRef(ItemKind.TODO, "t1")
        )
        assert updated.retry_count == 2
        assert updated.failure_reason is None

    def test_backwards_transition_rejected(
        self, store: CommandLogStore, parser: CommandParser
    ) -> None:
        log = store.create(_log(parser, "todo buy milk"))
        store.set_outcome(log.id, Outcome.SUCCESS, created_item=ItemRef(ItemKind.TODO, "t1"))
        store.set_outcome(log.id, Outcome.UNDONE)
        with pytest.raises(OutcomeTransitionError):
            store.set_outcome(log.id, Outcome.SUCCESS, created_item=ItemRef(ItemKind.TODO, "t1"))

    def test_update_refuses_outcome(self, store: CommandLogStore, parser: CommandParser) -> None:
        log = store.create(_log(parser, "todo buy milk"))
        with pytest.raises(ValueError):
            store.update(log.id, outcome=Outcome.CANCELLED)

    def test_update_and_mark_edited(self, store: CommandLogStore, parser: CommandParser) -> None:
        log = store.create(_log(parser, "todo buy milk"))
        assert store.update(log.id, extracted_title="buy oat milk").extracted_title == (
            "buy oat milk"
        )
        assert store.mark_edited(log.id).user_edited is True

    def test_missing_record(self, store: CommandLogStore) -> None:
        with pytest.raises(CommandNotFoundError):
            store.get("nope")


class TestCommandLogStoreReads:
    """Tests for history queries."""

    @pytest.fixture
    def populated(self, store: CommandLogStore, parser: CommandParser) -> CommandLogStore:
        store.create(
            _log(parser, "Remind me to call mom", user_id="u1", now=NOW - timedelta(days=2))
        )
        failed = store.create(
            _log(parser, "Schedule dentist appointment", user_id="u1", now=NOW - timedelta(days=1))
        )
        store.set_outcome(failed.id, Outcome.FAILED, failure_reason="offline")
        store.create(_log(parser, "todo buy milk", user_id="u2", now=NOW))
        return store

    def test_list_recent_newest_first(self, populated: CommandLogStore) -> None:
        logs = populated.list_recent("u1")
        assert [log.transcript for log in logs] == [
            "Schedule dentist appointment",
            "Remind me to call mom",
        ]
        assert len(populated.list_recent("u1", limit=1)) == 1

    def test_by_date_range(self, populated: CommandLogStore) -> None:
        logs = populated.by_date_range(date(2026, 1, 29), date(2026, 1, 30))
        assert {log.transcript for log in logs} == {
            "Schedule dentist appointment",
            "todo buy milk",
        }

    def test_by_intent(self, populated: CommandLogStore) -> None:
        logs = populated.by_intent(IntentType.CREATE_EVENT)
        assert [log.transcript for log in logs] == ["Schedule dentist appointment"]

    def test_by_outcome(self, populated: CommandLogStore) -> None:
        assert len(populated.by_outcome(Outcome.FAILED)) == 1
        assert len(populated.by_outcome(Outcome.PENDING, user_id="u2")) == 1

    def test_search_transcript_and_title(self, populated: CommandLogStore) -> None:
        assert [log.transcript for log in populated.search("MOM")] == ["Remind me to call mom"]
        assert populated.search("mom", user_id="u2") == []

    def test_search_filters(self, populated: CommandLogStore) -> None:
        logs = populated.search("", user_id="u1", outcome=Outcome.FAILED)
        assert [log.transcript for log in logs] == ["Schedule dentist appointment"]
        assert populated.search("", date_from=date(2026, 1, 30)) == populated.search("milk")

    def test_find_by_item(self, store: CommandLogStore, parser: CommandParser) -> None:
        ref = ItemRef(ItemKind.TODO, "t9")
        log = store.create(_log(parser, "todo buy milk"))
        store.set_outcome(log.id, Outcome.SUCCESS, created_item=ref)
        assert store.find_by_item(ref).id == log.id
        assert store.find_by_item(ItemRef(ItemKind.TASK, "t9")) is None


class TestRetention:
    """Tests for expiry and purging."""

    def test_expired_records_are_invisible(self, tmp_path: Path, parser: CommandParser) -> None:
        clock = [NOW]
        store = CommandLogStore(tmp_path, retention_days=7, clock=lambda: clock[0])
        log = store.create(CommandLog.from_parsed(parser.parse("todo buy milk"), now=NOW))
        # from_parsed default retention is overridden only when expires_at is unset
        assert log.expires_at == NOW + timedelta(days=30)

        short = store.create(CommandLog(transcript="todo call bank", created_at=NOW))
        assert short.expires_at == NOW + timedelta(days=7)

        clock[0] = NOW + timedelta(days=8)
        with pytest.raises(CommandNotFoundError):
            store.get(short.id)
        assert [entry.id for entry in store.search("")] == [log.id]

    def test_purge_expired(self, tmp_path: Path) -> None:
        store = CommandLogStore(tmp_path, retention_days=1, clock=lambda: NOW)
        store.create(CommandLog(transcript="old", created_at=NOW - timedelta(days=3)))
        store.create(CommandLog(transcript="new", created_at=NOW))

        assert store.purge_expired() == 1
        assert [log.transcript for log in store.search("")] == ["new"]
        assert len(CommandLogStore(tmp_path, clock=lambda: NOW).logs) == 1

    def test_purge_older_than(self, store: CommandLogStore) -> None:
        store.create(CommandLog(transcript="old", created_at=NOW - timedelta(days=10)))
        store.create(CommandLog(transcript="new", created_at=NOW))
        assert store.purge_older_than(5) == 1
        assert store.purge_older_than(5) == 0

    def test_corrupt_file_loads_empty(self, tmp_path: Path) -> None:
        (tmp_path / "command_log.json").write_text("{not json")
        assert CommandLogStore(tmp_path, codec=Base64Codec()).logs == {}
