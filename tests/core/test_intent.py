"""Tests for the myday-voice intent parsing system.

Tests cover:
- Trigger-phrase classification (tie-break, unknown, injected tables)
- Entity extraction passes (title, date, time, priority, recurrence, tags,
  attendees, location, quantity)
- Confidence fusion bounds
- CommandParser end-to-end scenarios
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from myday_voice.core.intent import (
    CommandParser,
    ConfidenceFusion,
    Entity,
    EntityExtractor,
    EntityType,
    FusionWeights,
    IntentClassifier,
    IntentMethod,
    IntentType,
    TriggerTable,
    extract_entities,
    parse_command,
)
from myday_voice.core.intent.parser import MAX_INPUT_LENGTH

# Friday
REFERENCE = date(2026, 1, 30)


def _first(entities: list[Entity], entity_type: EntityType) -> Entity | None:
    return next((e for e in entities if e.type is entity_type), None)


# ============================================================================
# Intent Classification
# ============================================================================


class TestIntentClassifier:
    """Tests for trigger-phrase classification."""

    @pytest.fixture
    def classifier(self) -> IntentClassifier:
        return IntentClassifier()

    def test_no_trigger_is_unknown(self, classifier: IntentClassifier) -> None:
        result = classifier.classify("something something")
        assert result.type is IntentType.UNKNOWN
        assert result.confidence == 0.3
        assert result.method is IntentMethod.RULES
        assert result.is_unknown

    def test_empty_transcript_is_unknown(self, classifier: IntentClassifier) -> None:
        assert classifier.classify("").type is IntentType.UNKNOWN

    def test_case_insensitive(self, classifier: IntentClassifier) -> None:
        result = classifier.classify("REMIND ME TO water the plants")
        assert result.type is IntentType.CREATE_TASK

    def test_confidence_from_hit_ratio(self) -> None:
        table = TriggerTable({IntentType.QUERY: ["what's on", "agenda"]})
        result = IntentClassifier(table).classify("what's on my agenda")
        assert result.type is IntentType.QUERY
        # 2 hits / 2 triggers + 0.2, capped
        assert result.confidence == 0.9
        assert set(result.matched_triggers) == {"what's on", "agenda"}

    def test_single_hit_on_many_triggers(self) -> None:
        table = TriggerTable({IntentType.CREATE_TASK: ["a1", "b1", "c1", "d1", "e1"]})
        result = IntentClassifier(table).classify("a1 only")
        assert result.confidence == pytest.approx(1 / 5 + 0.2)

    def test_tie_goes_to_first_declared_intent(self) -> None:
        table = TriggerTable(
            {
                IntentType.QUERY: ["plan"],
                IntentType.CREATE_TASK: ["plan"],
            }
        )
        assert IntentClassifier(table).classify("plan it").type is IntentType.CREATE_TASK

    def test_highest_score_wins(self) -> None:
        table = TriggerTable(
            {
                IntentType.CREATE_TASK: ["alpha"],
                IntentType.CREATE_EVENT: ["beta", "gamma"],
            }
        )
        result = IntentClassifier(table).classify("alpha beta gamma")
        assert result.type is IntentType.CREATE_EVENT

    def test_custom_unknown_confidence(self) -> None:
        classifier = IntentClassifier(unknown_confidence=0.25)
        assert classifier.classify("zzz").confidence == 0.25

    def test_trigger_table_normalizes_phrases(self) -> None:
        table = TriggerTable({IntentType.QUERY: ["  Show Me ", ""]})
        assert table.triggers(IntentType.QUERY) == ("show me",)
        assert table.triggers(IntentType.DELETE) == ()
        assert len(table) == 1

    @pytest.mark.parametrize(
        "phrase,intent",
        [
            ("add task", IntentType.CREATE_TASK),
            ("add todo", IntentType.CREATE_TODO),
            ("dear diary", IntentType.CREATE_JOURNAL),
            ("milestone", IntentType.CREATE_MILESTONE),
            ("pinned event", IntentType.CREATE_PINNED_EVENT),
            ("habit", IntentType.CREATE_ROUTINE),
            ("appointment", IntentType.CREATE_EVENT),
        ],
    )
    def test_unique_trigger_beats_unknown(self, phrase: str, intent: IntentType) -> None:
        result = IntentClassifier().classify(f"please {phrase} for later")
        assert result.type is intent
        assert result.confidence > 0.3


# ============================================================================
# Entity Extraction
# ============================================================================


class TestTitleExtraction:
    """Tests for the title pass."""

    @pytest.fixture
    def extractor(self) -> EntityExtractor:
        return EntityExtractor()

    def test_strips_trigger_and_fillers(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_title("Remind me to call mom at 5pm tomorrow")
        assert entity is not None
        assert entity.normalized_value == "call mom"
        assert entity.confidence == 0.9

    def test_strips_hashtags(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_title("add task renew passport #errands")
        assert entity.normalized_value == "renew passport"

    def test_only_triggers_gives_no_title(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_title("remind me tomorrow") is None

    def test_strips_new_task_phrase(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_title("Create a new task to call mom at 5pm today")
        assert entity.normalized_value == "call mom"

    def test_strips_relative_offsets(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_title("Remind me in 3 days at 7:30pm") is None
        entity = extractor.extract_title("follow up with the bank in two weeks")
        assert entity.normalized_value == "follow up with the bank"


class TestDateExtraction:
    """Tests for the date ladder."""

    @pytest.fixture
    def extractor(self) -> EntityExtractor:
        return EntityExtractor()

    def _date(self, extractor: EntityExtractor, text: str, reference: date = REFERENCE):
        entity = extractor.extract_date(text, reference)
        return entity.normalized_value if entity else None

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("do it today", "2026-01-30"),
            ("TODAY please", "2026-01-30"),
            ("pay rent Tomorrow morning", "2026-01-31"),
            ("what did I do yesterday", "2026-01-29"),
            ("dinner tonight", "2026-01-30"),
        ],
    )
    def test_relative_days(self, extractor: EntityExtractor, text: str, expected: str) -> None:
        assert self._date(extractor, text) == expected

    def test_next_weekday_from_friday(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "next Monday") == "2026-02-02"

    def test_next_same_weekday_is_a_week_out(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "next Friday") == "2026-02-06"

    def test_bare_weekday_is_unresolved(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_date("dentist on Tuesday", REFERENCE)
        assert entity.normalized_value == "tuesday"
        assert entity.confidence == 0.8

    def test_next_week(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "sometime next week") == "2026-02-06"

    def test_in_n_days_and_weeks(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "follow up in 3 days") == "2026-02-02"
        assert self._date(extractor, "check back in two weeks") == "2026-02-13"

    def test_ordinal_of_next_month(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "pay rent on the 1st of next month") == "2026-02-01"

    def test_ordinal_month_rolls_forward(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "taxes due 1st April") == "2026-04-01"
        assert self._date(extractor, "party on the 5th of January") == "2027-01-05"

    def test_month_day(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "December 25th") == "2026-12-25"

    def test_month_day_passed_goes_to_next_year(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "December 25th", date(2026, 12, 30)) == "2027-12-25"

    def test_month_day_explicit_year(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "March 3rd, 2028") == "2028-03-03"

    def test_end_of_quarter(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "finish by end of Q1") == "2026-03-31"
        assert self._date(extractor, "ship by end of q2 2027") == "2027-06-30"

    def test_iso_date(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "launch on 2026-03-15") == "2026-03-15"

    def test_impossible_date_is_skipped(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "meet February 30th") is None

    def test_no_date(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "buy milk") is None

    @pytest.mark.parametrize(
        "text",
        [
            "Remind me to buy 2 may flowers",
            "I may 5 things",
            "maybe 3 of them",
        ],
    )
    def test_verb_may_is_not_a_date(self, extractor: EntityExtractor, text: str) -> None:
        assert self._date(extractor, text) is None

    def test_may_as_month(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "dentist on May 5") == "2026-05-05"
        assert self._date(extractor, "dentist May 5th") == "2026-05-05"
        assert self._date(extractor, "the 2nd of May") == "2026-05-02"
        assert self._date(extractor, "party may 9, 2027") == "2027-05-09"

    def test_ordinal_month_needs_suffix_or_of(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "pack 3 April boxes") is None
        assert self._date(extractor, "due 3 of April") == "2026-04-03"

    def test_first_rung_wins(self, extractor: EntityExtractor) -> None:
        assert self._date(extractor, "tomorrow, not next Monday") == "2026-01-31"


class TestTimeExtraction:
    """Tests for the time pass."""

    @pytest.fixture
    def extractor(self) -> EntityExtractor:
        return EntityExtractor()

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("at 5pm", "17:00"),
            ("at 10am", "10:00"),
            ("at 10:30 am", "10:30"),
            ("at 12am", "00:00"),
            ("at 12pm", "12:00"),
            ("around 7 p.m.", "19:00"),
            ("at 14:15", "14:15"),
            ("lunch at noon", "12:00"),
            ("at midnight", "00:00"),
            ("by end of day", "17:00"),
        ],
    )
    def test_times(self, extractor: EntityExtractor, text: str, expected: str) -> None:
        assert extractor.extract_time(text).normalized_value == expected

    def test_bare_at_hour(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_time("call at 9")
        assert entity.normalized_value == "09:00"
        assert entity.confidence == 0.7

    @pytest.mark.parametrize(
        "text,expected",
        [("meet at 3", "15:00"), ("call at 6", "18:00"), ("at 12", "12:00"), ("at 18", "18:00")],
    )
    def test_bare_at_hour_defaults_to_afternoon(
        self, extractor: EntityExtractor, text: str, expected: str
    ) -> None:
        assert extractor.extract_time(text).normalized_value == expected

    def test_guessed_afternoon_has_lower_confidence(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_time("meet at 3").confidence == 0.6

    def test_invalid_time_ignored(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_time("at 13pm") is None

    def test_no_time(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_time("buy milk") is None


class TestPriorityExtraction:
    """Tests for the priority pass."""

    @pytest.fixture
    def extractor(self) -> EntityExtractor:
        return EntityExtractor()

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("urgent: call the bank", "URGENT"),
            ("fix the sink asap", "URGENT"),
            ("high priority report", "HIGH"),
            ("low priority cleanup", "LOW"),
            ("this is important", "HIGH"),
        ],
    )
    def test_buckets(self, extractor: EntityExtractor, text: str, expected: str) -> None:
        assert extractor.extract_priority(text).normalized_value == expected

    def test_unspecified_emits_nothing(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_priority("water the plants") is None


class TestRecurrenceExtraction:
    """Tests for the recurrence pass."""

    @pytest.fixture
    def extractor(self) -> EntityExtractor:
        return EntityExtractor()

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("take vitamins every day", "FREQ=DAILY"),
            ("floss nightly", "FREQ=DAILY"),
            ("stand up every weekday", "FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR"),
            ("sleep in every weekend", "FREQ=WEEKLY;BYDAY=SA,SU"),
            ("team sync every Monday", "FREQ=WEEKLY;BYDAY=MO"),
            ("mow the lawn every other week", "FREQ=WEEKLY;INTERVAL=2"),
            ("water plants every 3 days", "FREQ=DAILY;INTERVAL=3"),
            ("review budget monthly", "FREQ=MONTHLY"),
            ("renew license yearly", "FREQ=YEARLY"),
        ],
    )
    def test_rules(self, extractor: EntityExtractor, text: str, expected: str) -> None:
        assert extractor.extract_recurrence(text).normalized_value == expected

    @pytest.mark.parametrize(
        "text",
        [
            "every Monday and Wednesday",
            "every Wednesday and Monday",
            "every wednesday, monday",
        ],
    )
    def test_weekday_codes_in_canonical_order(self, extractor: EntityExtractor, text: str) -> None:
        rule = extractor.extract_recurrence(text).normalized_value
        assert "FREQ=WEEKLY" in rule
        assert "BYDAY=MO,WE" in rule

    def test_every_other_weekday(self, extractor: EntityExtractor) -> None:
        rule = extractor.extract_recurrence("every other Tuesday").normalized_value
        assert rule == "FREQ=WEEKLY;INTERVAL=2;BYDAY=TU"

    def test_one_time(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_recurrence("dentist tomorrow") is None


class TestTagExtraction:
    """Tests for the tag pass."""

    @pytest.fixture
    def extractor(self) -> EntityExtractor:
        return EntityExtractor()

    def _tags(self, extractor: EntityExtractor, text: str) -> list[str]:
        return [e.normalized_value for e in extractor.extract_tags(text)]

    def test_keyword_buckets(self, extractor: EntityExtractor) -> None:
        assert self._tags(extractor, "team meeting about the report") == ["work"]
        assert self._tags(extractor, "dentist appointment") == ["health"]
        assert self._tags(extractor, "add eggs to the shopping list") == ["shopping"]
        assert self._tags(extractor, "gym after work") == ["fitness"]

    def test_multiple_buckets(self, extractor: EntityExtractor) -> None:
        assert self._tags(extractor, "call mom about the doctor") == ["health", "family"]

    def test_hashtags(self, extractor: EntityExtractor) -> None:
        entities = extractor.extract_tags("renew passport #Errands #travel")
        assert [e.normalized_value for e in entities] == ["errands", "travel"]
        assert all(e.confidence == 0.95 for e in entities)

    def test_hashtag_duplicate_of_bucket(self, extractor: EntityExtractor) -> None:
        assert self._tags(extractor, "gym #fitness") == ["fitness"]

    def test_no_tags(self, extractor: EntityExtractor) -> None:
        assert self._tags(extractor, "water the plants") == []


class TestPeopleLocationQuantity:
    """Tests for attendee, location and quantity passes."""

    @pytest.fixture
    def extractor(self) -> EntityExtractor:
        return EntityExtractor()

    def test_with_clause(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_people("lunch with Sarah and Tom")
        assert entity.normalized_value == ["Sarah", "Tom"]

    def test_order_and_case_preserved(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_people("sync with Tom, Sarah and Alex")
        assert entity.normalized_value == ["Tom", "Sarah", "Alex"]

    def test_name_list_without_with(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_people("invite Priya, Jonas and Mei")
        assert entity.normalized_value == ["Priya", "Jonas", "Mei"]

    def test_lower_case_with_clause(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_people("meeting with john and sarah tomorrow")
        assert entity.normalized_value == ["john", "sarah"]
        assert entity.value == "john and sarah"
        assert entity.confidence == 0.6

    def test_lower_case_with_list_stops_at_stopword(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_people("call with priya, jonas, and mei about the budget")
        assert entity.normalized_value == ["priya", "jonas", "mei"]

    @pytest.mark.parametrize(
        "text",
        ["lunch with the team", "help with taxes", "sync with my manager at 3pm"],
    )
    def test_with_non_names(self, extractor: EntityExtractor, text: str) -> None:
        assert extractor.extract_people(text) is None

    def test_single_capitalized_word_is_not_a_list(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_people("Call the plumber") is None

    def test_location(self, extractor: EntityExtractor) -> None:
        entity = extractor.extract_location("dinner at Olive Garden tomorrow")
        assert entity.normalized_value == "Olive Garden"
        assert entity.confidence == 0.6

    def test_location_ignores_times(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_location("call at 5pm") is None

    def test_quantity(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_quantity("buy 3 apples").normalized_value == 3
        assert extractor.extract_quantity("buy two cartons of milk").normalized_value == 2

    def test_quantity_skips_time_units(self, extractor: EntityExtractor) -> None:
        assert extractor.extract_quantity("follow up in 3 days") is None
        assert extractor.extract_quantity("meet at 5 pm") is None


class TestExtract:
    """Tests for the combined extraction run."""

    def test_all_passes_together(self) -> None:
        entities = extract_entities(
            "Schedule urgent client meeting with Ana and Ben every Monday at 10am #q1",
            REFERENCE,
        )
        types = [e.type for e in entities]
        assert EntityType.TITLE in types
        assert EntityType.TIME in types
        assert EntityType.PRIORITY in types
        assert EntityType.RECURRENCE in types
        assert EntityType.PERSON in types
        tags = [e.normalized_value for e in entities if e.type is EntityType.TAG]
        assert "work" in tags and "q1" in tags

    def test_empty_transcript(self) -> None:
        assert EntityExtractor().extract("   ", REFERENCE) == []

    def test_deterministic(self) -> None:
        text = "Remind me to pay rent on the 1st of next month at 9am"
        assert extract_entities(text, REFERENCE) == extract_entities(text, REFERENCE)


# ============================================================================
# Confidence Fusion
# ============================================================================


class TestConfidenceFusion:
    """Tests for weighted fusion."""

    @pytest.fixture
    def fusion(self) -> ConfidenceFusion:
        return ConfidenceFusion()

    def test_empty_entities_use_prior(self, fusion: ConfidenceFusion) -> None:
        assert fusion.fuse(0.9, [], 1.0) == pytest.approx(0.79)

    def test_entity_average(self, fusion: ConfidenceFusion) -> None:
        entities = [
            Entity(EntityType.TITLE, "x", "x", 0.9),
            Entity(EntityType.TIME, "5pm", "17:00", 0.7),
        ]
        assert fusion.entity_average(entities) == pytest.approx(0.8)
        assert fusion.fuse(0.5, entities, 0.5) == pytest.approx(0.3 + 0.24 + 0.05)

    def test_floor(self, fusion: ConfidenceFusion) -> None:
        entities = [Entity(EntityType.TITLE, "x", "x", 0.0)]
        assert fusion.fuse(0.0, entities, 0.0) == 0.1

    def test_ceiling(self, fusion: ConfidenceFusion) -> None:
        entities = [Entity(EntityType.TITLE, "x", "x", 1.0)]
        assert fusion.fuse(1.0, entities, 1.0) == pytest.approx(1.0)

    @pytest.mark.parametrize("intent", [0.0, 0.3, 1.0])
    @pytest.mark.parametrize("entity", [0.0, 0.5, 1.0])
    @pytest.mark.parametrize("capture", [0.0, 1.0])
    def test_always_within_bounds(
        self, fusion: ConfidenceFusion, intent: float, entity: float, capture: float
    ) -> None:
        entities = [Entity(EntityType.TITLE, "x", "x", entity)]
        assert 0.1 <= fusion.fuse(intent, entities, capture) <= 1.0

    def test_custom_weights(self) -> None:
        fusion = ConfidenceFusion(FusionWeights(intent=1.0, entity=0.0, capture=0.0))
        assert fusion.fuse(0.42, [], 0.0) == pytest.approx(0.42)

    def test_invalid_weights(self) -> None:
        with pytest.raises(ValueError):
            FusionWeights(intent=-0.1)
        with pytest.raises(ValueError):
            FusionWeights(floor=0.8, ceiling=0.5)


# ============================================================================
# Command Parser
# ============================================================================


class TestCommandParser:
    """End-to-end parser tests."""

    @pytest.fixture
    def parser(self) -> CommandParser:
        return CommandParser(clock=lambda: datetime(2026, 1, 30, 9, 0))

    def test_create_task_scenario(self, parser: CommandParser) -> None:
        parsed = parser.parse("Create a task to call mom at 5pm today", reference_date=REFERENCE)
        assert parsed.intent_type is IntentType.CREATE_TASK
        assert parsed.first(EntityType.DATE).normalized_value == "2026-01-30"
        assert parsed.first(EntityType.TIME).normalized_value == "17:00"
        assert "call mom" in parsed.first(EntityType.TITLE).normalized_value

    def test_weekly_standup_scenario(self, parser: CommandParser) -> None:
        parsed = parser.parse("Create weekly standup meeting every Monday at 10am")
        rule = parsed.first(EntityType.RECURRENCE).normalized_value
        assert "FREQ=WEEKLY" in rule
        assert "BYDAY=MO" in rule
        assert parsed.first(EntityType.TIME).normalized_value == "10:00"

    def test_unknown_scenario(self, parser: CommandParser) -> None:
        parsed = parser.parse("something something")
        assert parsed.intent_type is IntentType.UNKNOWN
        assert parsed.intent.confidence < 0.5

    def test_next_monday_from_friday(self, parser: CommandParser) -> None:
        parsed = parser.parse("next Monday")
        assert parsed.reference_date == REFERENCE
        assert parsed.first(EntityType.DATE).normalized_value == "2026-02-02"

    def test_reference_date_defaults_to_clock(self, parser: CommandParser) -> None:
        parsed = parser.parse("do it today")
        assert parsed.reference_date == REFERENCE
        assert parsed.timestamp == datetime(2026, 1, 30, 9, 0)

    def test_overall_confidence_in_range(self, parser: CommandParser) -> None:
        parsed = parser.parse("Remind me to stretch", capture_confidence=0.0)
        assert 0.1 <= parsed.overall_confidence <= 1.0

    def test_capture_confidence_clamped(self, parser: CommandParser) -> None:
        assert parser.parse("todo", capture_confidence=5.0).capture_confidence == 1.0
        assert parser.parse("todo", capture_confidence=-1.0).capture_confidence == 0.0

    def test_long_input_truncated(self, parser: CommandParser) -> None:
        parsed = parser.parse("a" * (MAX_INPUT_LENGTH + 50))
        assert len(parsed.transcript) == MAX_INPUT_LENGTH

    def test_same_input_same_output(self, parser: CommandParser) -> None:
        first = parser.parse("Remind me to call mom at 5pm today", reference_date=REFERENCE)
        second = parser.parse("Remind me to call mom at 5pm today", reference_date=REFERENCE)
        assert first == second

    def test_parsed_command_is_immutable(self, parser: CommandParser) -> None:
        parsed = parser.parse("todo buy milk")
        with pytest.raises(AttributeError):
            parsed.transcript = "other"  # type: ignore[misc]

    def test_to_dict(self, parser: CommandParser) -> None:
        data = parser.parse("Remind me to call mom today", reference_date=REFERENCE).to_dict()
        assert data["intent"]["type"] == "CREATE_TASK"
        assert data["reference_date"] == "2026-01-30"
        assert any(e["type"] == "DATE" for e in data["entities"])

    def test_patterns_ignored_without_user(self, parser: CommandParser) -> None:
        parsed = parser.parse("todo buy milk")
        assert parsed.metadata["learned_patterns_applied"] == 0

    def test_parse_command_helper(self) -> None:
        parsed = parse_command("add todo buy milk", reference_date=REFERENCE)
        assert parsed.intent_type is IntentType.CREATE_TODO
