"""Entity extraction for voice command parsing.

Each pass (title, date, time, priority, recurrence, tags, people, location,
quantity) reads the transcript independently and emits zero or more typed,
confidence-scored entities. No pass looks at another pass's output.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

from . import temporal
from .taxonomy import Entity, EntityType, Priority

# Trigger and connector phrases removed when deriving a title.
# Matched longest-first so "create a task to" wins over "create".
TITLE_STRIP_PHRASES: tuple[str, ...] = (
    "remind me to",
    "remind me",
    "create a new task to",
    "create a new task",
    "add a new task to",
    "add a new task",
    "new task to",
    "create a task to",
    "create a task",
    "create task to",
    "create task",
    "add a task to",
    "add a task",
    "add task to",
    "add task",
    "new task",
    "add a todo",
    "add todo",
    "add to my list",
    "add to the list",
    "add to list",
    "add item",
    "remember to",
    "schedule a",
    "schedule",
    "create an event",
    "create event",
    "add event",
    "write in my journal",
    "journal entry",
    "journal",
    "note to self",
    "pin event",
    "pin this",
    "create",
    "please",
)

TITLE_FILLER_WORDS: tuple[str, ...] = ("at", "on", "in", "tomorrow", "today", "next")

# Keyword -> tag buckets. Each bucket emits at most one TAG.
TAG_KEYWORDS: dict[str, tuple[str, ...]] = {
    "work": (
        "meeting",
        "standup",
        "stand-up",
        "presentation",
        "client",
        "deadline",
        "report",
        "office",
        "conference call",
    ),
    "health": (
        "dentist",
        "doctor",
        "pharmacy",
        "prescription",
        "medication",
        "checkup",
        "check-up",
        "therapy",
        "hospital",
    ),
    "shopping": ("shopping list", "shopping", "groceries", "grocery", "buy"),
    "fitness": ("workout", "work out", "gym", "run", "running", "yoga", "exercise"),
    "family": ("mom", "dad", "family", "kids", "grandma", "grandpa"),
    "finance": ("bill", "bills", "rent", "taxes", "invoice"),
}

# (pattern, priority, confidence); first match wins
PRIORITY_KEYWORDS: tuple[tuple[str, Priority, float], ...] = (
    (r"\b(?:urgent(?:ly)?|asap|as soon as possible|right away|immediately)\b", Priority.URGENT, 0.9),
    (r"\bhigh[\s-]priority\b", Priority.HIGH, 0.9),
    (r"\bimportant\b", Priority.HIGH, 0.75),
    (r"\blow[\s-]priority\b", Priority.LOW, 0.9),
    (r"\b(?:medium|normal)[\s-]priority\b", Priority.MEDIUM, 0.9),
)

NUMBER_WORDS: dict[str, int] = {
    "a": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "dozen": 12,
}

# Words after a number that make it a date/time, not a quantity
QUANTITY_EXCLUDED_UNITS: frozenset[str] = frozenset(
    {
        "am",
        "pm",
        "day",
        "days",
        "week",
        "weeks",
        "month",
        "months",
        "year",
        "years",
        "hour",
        "hours",
        "minute",
        "minutes",
        "times",
        "at",
        "on",
        "in",
        "of",
        "and",
        "to",
    }
)

# Capitalized words that are not people or places
NAME_STOPWORDS: frozenset[str] = frozenset(
    set(temporal.WEEKDAYS)
    | {f"{d}s" for d in temporal.WEEKDAYS}
    | set(temporal.MONTHS)
    | {
        "i",
        "i'm",
        "today",
        "tomorrow",
        "tonight",
        "yesterday",
        "next",
        "every",
        "the",
        "a",
        "an",
        "and",
        "create",
        "add",
        "schedule",
        "remind",
        "remember",
        "journal",
        "pin",
        "delete",
        "update",
        "show",
        "what",
        "when",
        "noon",
        "midnight",
        "q1",
        "q2",
        "q3",
        "q4",
    }
)

# Words that end a lower-case "with ..." attendee list
WITH_STOPWORDS: frozenset[str] = frozenset(
    NAME_STOPWORDS
    | {word for tag, words in TAG_KEYWORDS.items() if tag != "family" for word in words}
    | {
        "at",
        "on",
        "in",
        "to",
        "for",
        "about",
        "from",
        "by",
        "before",
        "after",
        "this",
        "that",
        "my",
        "our",
        "your",
        "his",
        "her",
        "their",
        "me",
        "him",
        "them",
        "us",
        "you",
        "it",
        "team",
        "everyone",
        "morning",
        "afternoon",
        "evening",
        "night",
        "week",
        "priority",
        "urgent",
        "asap",
        "every",
    }
)

_WEEKDAY_ALT = "|".join(temporal.WEEKDAYS)
_MONTH_ALT = "|".join(sorted(temporal.MONTHS, key=len, reverse=True))
_NUMBER_ALT = r"\d+|" + "|".join(w for w in NUMBER_WORDS if w != "a")
_NAME = r"[A-Z][a-z]+(?:['-][A-Za-z]+)?"
_NAME_SEP = r"(?:\s*,\s*(?:and\s+)?|\s+and\s+|\s*&\s*)"


def _phrase_pattern(phrases: tuple[str, ...] | list[str]) -> re.Pattern[str]:
    """Compile phrases into one word-bounded, longest-first alternation."""
    ordered = sorted(phrases, key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(re.escape(p) for p in ordered) + r")\b", re.IGNORECASE)


def _parse_number(text: str) -> int | None:
    key = text.strip().lower()
    if key.isdigit():
        return int(key)
    return NUMBER_WORDS.get(key)


class EntityExtractor:
    """Extract typed entities from a transcript.

    Example:
        >>> extractor = EntityExtractor()
        >>> entities = extractor.extract("call mom at 5pm today", date(2026, 1, 30))
        >>> [(e.type.value, e.normalized_value) for e in entities][:2]
        [('TITLE', 'call mom'), ('DATE', '2026-01-30')]
    """

    PATTERNS = {
        # --- title cleanup ---
        "title_phrases": _phrase_pattern(TITLE_STRIP_PHRASES),
        "title_fillers": _phrase_pattern(TITLE_FILLER_WORDS),
        "title_times": re.compile(
            r"\b\d{1,2}(?::\d{2})?\s*(?:a\.?m\.?|p\.?m\.?)(?![a-z])|\b\d{1,2}:\d{2}\b"
            r"|\b(?:noon|midnight|end of day)\b",
            re.IGNORECASE,
        ),
        "hashtag": re.compile(r"#(\w[\w-]*)"),
        # --- dates ---
        "relative_day": re.compile(r"\b(today|tonight|tomorrow|yesterday)\b", re.IGNORECASE),
        "weekday": re.compile(rf"\b(next\s+)?({_WEEKDAY_ALT})s?\b", re.IGNORECASE),
        "next_week": re.compile(r"\bnext\s+week\b", re.IGNORECASE),
        "in_n": re.compile(rf"\bin\s+(a|{_NUMBER_ALT})\s+(days?|weeks?)\b", re.IGNORECASE),
        "ordinal_next_month": re.compile(
            r"\b(?:the\s+)?(\d{1,2})(?:st|nd|rd|th)\s+of\s+next\s+month\b", re.IGNORECASE
        ),
        # A leading number needs a suffix or "of": "1st April", "5 of May", not "2 may"
        "ordinal_month": re.compile(
            rf"\b(?:the\s+)?(\d{{1,2}})(?:(?:st|nd|rd|th)\s+(?:of\s+)?|\s+of\s+)({_MONTH_ALT})\b"
            r"(?:,?\s+(\d{4}))?",
            re.IGNORECASE,
        ),
        "ordinal_bare": re.compile(r"\bthe\s+(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE),
        "month_day": re.compile(
            rf"\b({_MONTH_ALT})\.?\s+(\d{{1,2}})(st|nd|rd|th)?\b(?:,?\s+(\d{{4}}))?",
            re.IGNORECASE,
        ),
        "end_of_quarter": re.compile(
            r"\bend\s+of\s+(?:the\s+)?q([1-4])(?:\s+(\d{4}))?\b", re.IGNORECASE
        ),
        "iso_date": re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b"),
        "date_preposition": re.compile(
            r"\b(?:on|by|until|till|before|after|from|due)\s+$", re.IGNORECASE
        ),
        # --- times ---
        "clock_meridiem": re.compile(
            r"\b(\d{1,2})(?::(\d{2}))?\s*(a\.?m\.?|p\.?m\.?)(?![a-z])", re.IGNORECASE
        ),
        "clock_24h": re.compile(r"\b(\d{1,2}):(\d{2})\b"),
        "time_literal": re.compile(r"\b(noon|midday|midnight|end of day)\b", re.IGNORECASE),
        "clock_at": re.compile(
            r"\bat\s+(\d{1,2})\b(?!\s*(?:st|nd|rd|th|%|:|days?|weeks?))", re.IGNORECASE
        ),
        # --- recurrence ---
        "every_weekday": re.compile(r"\bevery\s+weekdays?\b|\bon\s+weekdays\b", re.IGNORECASE),
        "every_weekend": re.compile(r"\bevery\s+weekends?\b|\bon\s+weekends\b", re.IGNORECASE),
        "every_days": re.compile(
            rf"\bevery\s+(other\s+)?((?:{_WEEKDAY_ALT})s?(?:{_NAME_SEP}(?:{_WEEKDAY_ALT})s?)*)",
            re.IGNORECASE,
        ),
        "every_other": re.compile(r"\bevery\s+other\s+(day|week|month|year)\b", re.IGNORECASE),
        "every_n": re.compile(
            rf"\bevery\s+({_NUMBER_ALT})\s+(days|weeks|months|years)\b", re.IGNORECASE
        ),
        "daily": re.compile(
            r"\b(?:every\s+day|daily|every\s+night|nightly|every\s+morning|every\s+evening)\b",
            re.IGNORECASE,
        ),
        "weekly": re.compile(r"\b(?:every\s+week|weekly)\b", re.IGNORECASE),
        "monthly": re.compile(r"\b(?:every\s+month|monthly)\b", re.IGNORECASE),
        "yearly": re.compile(r"\b(?:every\s+year|yearly|annually)\b", re.IGNORECASE),
        # --- people and places (case-sensitive on purpose) ---
        "with_names": re.compile(rf"\b[Ww]ith\s+((?:{_NAME})(?:{_NAME_SEP}(?:{_NAME}))*)"),
        "name_list": re.compile(rf"\b((?:{_NAME})(?:{_NAME_SEP}(?:{_NAME}))+)"),
        "with_words": re.compile(r"\bwith\s+(.+)", re.IGNORECASE),
        "location": re.compile(r"\b(?:at|in)\s+(?:the\s+)?([A-Z][\w'&-]*(?:\s+[A-Z][\w'&-]*)*)"),
        # --- quantity ---
        "quantity": re.compile(rf"\b({_NUMBER_ALT})\s+([a-z][a-z-]+)\b", re.IGNORECASE),
    }

    _FREQ_UNITS = {"day": "DAILY", "week": "WEEKLY", "month": "MONTHLY", "year": "YEARLY"}

    def __init__(self) -> None:
        """Initialize the extractor with compiled tag and priority patterns."""
        self._tag_patterns: list[tuple[str, re.Pattern[str]]] = [
            (tag, _phrase_pattern(words)) for tag, words in TAG_KEYWORDS.items()
        ]
        self._priority_patterns: list[tuple[re.Pattern[str], Priority, float]] = [
            (re.compile(pattern, re.IGNORECASE), priority, confidence)
            for pattern, priority, confidence in PRIORITY_KEYWORDS
        ]

    def extract(self, transcript: str, reference_date: date) -> list[Entity]:
        """Run every extraction pass over a transcript.

        Args:
            transcript: Raw transcript text
            reference_date: Date that relative expressions resolve against

        Returns:
            Entities in pass order (title, date, time, priority, recurrence,
            tags, person, location, quantity)
        """
        text = transcript.strip()
        if not text:
            return []

        entities: list[Entity] = []
        for found in (
            self.extract_title(text),
            self.extract_date(text, reference_date),
            self.extract_time(text),
            self.extract_priority(text),
            self.extract_recurrence(text),
        ):
            if found is not None:
                entities.append(found)

        entities.extend(self.extract_tags(text))

        for found in (
            self.extract_people(text),
            self.extract_location(text),
            self.extract_quantity(text),
        ):
            if found is not None:
                entities.append(found)

        return entities

    # =========================================================================
    # Title
    # =========================================================================

    def extract_title(self, text: str) -> Entity | None:
        """Strip trigger phrases, times and filler words to get a title."""
        title = self.PATTERNS["title_phrases"].sub(" ", text)
        title = self.PATTERNS["title_times"].sub(" ", title)
        title = self.PATTERNS["hashtag"].sub(" ", title)
        title = self.PATTERNS["in_n"].sub(" ", title)
        title = self.PATTERNS["next_week"].sub(" ", title)
        title = self.PATTERNS["title_fillers"].sub(" ", title)
        title = re.sub(r"\s+", " ", title).strip(" ,.;:-")
        if not title:
            return None
        return Entity(EntityType.TITLE, title, title, 0.9)

    # =========================================================================
    # Date
    # =========================================================================

    def extract_date(self, text: str, reference: date) -> Entity | None:
        """Resolve the first date expression, trying each rung in order."""
        for rung in (
            self._date_relative_day,
            self._date_weekday,
            self._date_next_week,
            self._date_in_n,
            self._date_ordinal,
            self._date_month_day,
            self._date_end_of_quarter,
            self._date_iso,
        ):
            try:
                found = rung(text, reference)
            except ValueError:
                # Impossible calendar date ("February 30th"): try the next rung
                continue
            if found is not None:
                return found
        return None

    def _date_relative_day(self, text: str, reference: date) -> Entity | None:
        lower = text.lower()
        offsets = (("today", 0), ("tonight", 0), ("tomorrow", 1), ("yesterday", -1))
        for word, offset in offsets:
            if re.search(rf"\b{word}\b", lower):
                resolved = reference + timedelta(days=offset)
                return Entity(EntityType.DATE, word, temporal.format_date(resolved), 0.9)
        return None

    def _date_weekday(self, text: str, reference: date) -> Entity | None:
        match = self.PATTERNS["weekday"].search(text)
        if not match:
            return None
        day_name = match.group(2).lower()
        if match.group(1):
            resolved = temporal.next_weekday(reference, temporal.weekday_index(day_name))
            return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.85)
        # A bare weekday stays unresolved
        return Entity(EntityType.DATE, match.group(2), day_name, 0.8)

    def _date_next_week(self, text: str, reference: date) -> Entity | None:
        match = self.PATTERNS["next_week"].search(text)
        if not match:
            return None
        resolved = reference + timedelta(days=7)
        return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.85)

    def _date_in_n(self, text: str, reference: date) -> Entity | None:
        match = self.PATTERNS["in_n"].search(text)
        if not match:
            return None
        count = _parse_number(match.group(1))
        if count is None:
            return None
        days = count * 7 if match.group(2).lower().startswith("week") else count
        resolved = reference + timedelta(days=days)
        return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.85)

    def _date_ordinal(self, text: str, reference: date) -> Entity | None:
        match = self.PATTERNS["ordinal_next_month"].search(text)
        if match:
            resolved = temporal.add_months(reference, 1, int(match.group(1)))
            return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.85)

        match = self.PATTERNS["ordinal_month"].search(text)
        if match:
            year = int(match.group(3)) if match.group(3) else None
            resolved = temporal.resolve_month_day(
                reference, temporal.month_index(match.group(2)), int(match.group(1)), year
            )
            return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.85)

        match = self.PATTERNS["ordinal_bare"].search(text)
        if match:
            resolved = temporal.resolve_day_of_month(reference, int(match.group(1)))
            return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.75)
        return None

    def _date_month_day(self, text: str, reference: date) -> Entity | None:
        for match in self.PATTERNS["month_day"].finditer(text):
            if match.group(1).lower() == "may" and not self._is_may_date(text, match):
                continue
            year = int(match.group(4)) if match.group(4) else None
            resolved = temporal.resolve_month_day(
                reference, temporal.month_index(match.group(1)), int(match.group(2)), year
            )
            return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.9)
        return None

    def _is_may_date(self, text: str, match: re.Match[str]) -> bool:
        """Whether "may 5" names the month: needs an ordinal, a year or a date preposition."""
        if match.group(3) or match.group(4):
            return True
        return bool(self.PATTERNS["date_preposition"].search(text[: match.start()]))

    def _date_end_of_quarter(self, text: str, reference: date) -> Entity | None:
        match = self.PATTERNS["end_of_quarter"].search(text)
        if not match:
            return None
        year = int(match.group(2)) if match.group(2) else reference.year
        resolved = temporal.end_of_quarter(int(match.group(1)), year)
        return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.85)

    def _date_iso(self, text: str, reference: date) -> Entity | None:
        match = self.PATTERNS["iso_date"].search(text)
        if not match:
            return None
        resolved = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        return Entity(EntityType.DATE, match.group(0), temporal.format_date(resolved), 0.95)

    # =========================================================================
    # Time
    # =========================================================================

    def extract_time(self, text: str) -> Entity | None:
        """Find the first clock time and convert it to 24-hour ``HH:MM``."""
        match = self.PATTERNS["clock_meridiem"].search(text)
        if match:
            normalized = temporal.clock_to_24h(match.group(1), match.group(2), match.group(3))
            if normalized:
                return Entity(EntityType.TIME, match.group(0), normalized, 0.9)

        match = self.PATTERNS["clock_24h"].search(text)
        if match:
            normalized = temporal.clock_to_24h(match.group(1), match.group(2), None)
            if normalized:
                return Entity(EntityType.TIME, match.group(0), normalized, 0.85)

        match = self.PATTERNS["time_literal"].search(text)
        if match:
            literal = match.group(1).lower()
            confidence = 0.8 if literal == "end of day" else 0.9
            return Entity(EntityType.TIME, match.group(0), temporal.TIME_LITERALS[literal], confidence)

        match = self.PATTERNS["clock_at"].search(text)
        if match:
            normalized = temporal.bare_hour_to_24h(match.group(1))
            if normalized:
                # Afternoon is a guess
                guessed = 1 <= int(match.group(1)) <= 6
                return Entity(EntityType.TIME, match.group(0), normalized, 0.6 if guessed else 0.7)

        return None

    # =========================================================================
    # Priority
    # =========================================================================

    def extract_priority(self, text: str) -> Entity | None:
        """Map priority keywords to a bucket; None leaves it to the executor."""
        for pattern, priority, confidence in self._priority_patterns:
            match = pattern.search(text)
            if match:
                return Entity(EntityType.PRIORITY, match.group(0), priority.value, confidence)
        return None

    # =========================================================================
    # Recurrence
    # =========================================================================

    def extract_recurrence(self, text: str) -> Entity | None:
        """Normalize a repetition phrase to an RRULE-like string."""
        match = self.PATTERNS["every_weekday"].search(text)
        if match:
            return Entity(
                EntityType.RECURRENCE, match.group(0), temporal.weekly_rrule(range(5)), 0.9
            )

        match = self.PATTERNS["every_weekend"].search(text)
        if match:
            return Entity(
                EntityType.RECURRENCE, match.group(0), temporal.weekly_rrule([5, 6]), 0.9
            )

        match = self.PATTERNS["every_days"].search(text)
        if match:
            days = {
                temporal.weekday_index(name)
                for name in re.findall(rf"({_WEEKDAY_ALT})", match.group(2), re.IGNORECASE)
            }
            interval = 2 if match.group(1) else 1
            rule = temporal.weekly_rrule(days, interval=interval)
            return Entity(EntityType.RECURRENCE, match.group(0), rule, 0.9)

        match = self.PATTERNS["every_other"].search(text)
        if match:
            freq = self._FREQ_UNITS[match.group(1).lower()]
            return Entity(EntityType.RECURRENCE, match.group(0), f"FREQ={freq};INTERVAL=2", 0.9)

        match = self.PATTERNS["every_n"].search(text)
        if match:
            count = _parse_number(match.group(1))
            if count:
                freq = self._FREQ_UNITS[match.group(2).lower().rstrip("s")]
                rule = f"FREQ={freq}" if count == 1 else f"FREQ={freq};INTERVAL={count}"
                return Entity(EntityType.RECURRENCE, match.group(0), rule, 0.9)

        for key, rule, confidence in (
            ("daily", "FREQ=DAILY", 0.9),
            ("weekly", "FREQ=WEEKLY", 0.85),
            ("monthly", "FREQ=MONTHLY", 0.85),
            ("yearly", "FREQ=YEARLY", 0.85),
        ):
            match = self.PATTERNS[key].search(text)
            if match:
                return Entity(EntityType.RECURRENCE, match.group(0), rule, confidence)

        return None

    # =========================================================================
    # Tags
    # =========================================================================

    def extract_tags(self, text: str) -> list[Entity]:
        """Emit one TAG per matching keyword bucket plus each literal #tag."""
        tags: list[Entity] = []
        seen: set[str] = set()

        for tag, pattern in self._tag_patterns:
            match = pattern.search(text)
            if match:
                tags.append(Entity(EntityType.TAG, match.group(0), tag, 0.75))
                seen.add(tag)

        for match in self.PATTERNS["hashtag"].finditer(text):
            tag = match.group(1).lower()
            if tag in seen:
                continue
            tags.append(Entity(EntityType.TAG, match.group(1), tag, 0.95))
            seen.add(tag)

        return tags

    # =========================================================================
    # People, location, quantity
    # =========================================================================

    def extract_people(self, text: str) -> Entity | None:
        """Collect attendee names after "with", or from a capitalized name list.

        Names keep the order and casing they were spoken in.
        """
        match = self.PATTERNS["with_names"].search(text)
        if match:
            names = self._split_names(match.group(1))
            if names:
                return Entity(EntityType.PERSON, match.group(1), names, 0.85)

        for match in self.PATTERNS["name_list"].finditer(text):
            names = self._split_names(match.group(1))
            if len(names) >= 2:
                return Entity(EntityType.PERSON, match.group(1), names, 0.7)

        match = self.PATTERNS["with_words"].search(text)
        if match:
            names, raw = self._leading_names(match.group(1))
            if names:
                return Entity(EntityType.PERSON, raw, names, 0.6)

        return None

    @staticmethod
    def _leading_names(chunk: str) -> tuple[list[str], str]:
        """Read "john and sarah tomorrow" as names up to the first stopword."""
        names: list[str] = []
        end = 0
        expect_name = True
        for token in re.finditer(r"[A-Za-z][\w'-]*|,|&", chunk):
            word = token.group(0).lower()
            if expect_name:
                if word == "and" and names:
                    continue
                if word in WITH_STOPWORDS or word in (",", "&") or word in NUMBER_WORDS:
                    break
                names.append(token.group(0))
                end = token.end()
                expect_name = False
            elif word in (",", "&", "and"):
                expect_name = True
            else:
                break
        return names, chunk[:end]

    @staticmethod
    def _split_names(chunk: str) -> list[str]:
        parts = re.split(r"\s*,\s*(?:and\s+)?|\s+and\s+|\s*&\s*", chunk)
        return [p for p in (s.strip() for s in parts) if p and p.lower() not in NAME_STOPWORDS]

    def extract_location(self, text: str) -> Entity | None:
        """Find a capitalized place after "at" or "in"."""
        for match in self.PATTERNS["location"].finditer(text):
            words = match.group(1).split()
            # Trim trailing stopwords ("at Olive Garden Tomorrow")
            while words and words[-1].lower() in NAME_STOPWORDS:
                words.pop()
            if not words or words[0].lower() in NAME_STOPWORDS:
                continue
            place = " ".join(words)
            return Entity(EntityType.LOCATION, place, place, 0.6)
        return None

    def extract_quantity(self, text: str) -> Entity | None:
        """Find "<number> <noun>" that is not a date or time expression."""
        for match in self.PATTERNS["quantity"].finditer(text):
            unit = match.group(2).lower()
            if unit in QUANTITY_EXCLUDED_UNITS or unit.startswith(("am", "pm")):
                continue
            amount = _parse_number(match.group(1))
            if amount is None or amount == 0:
                continue
            return Entity(EntityType.QUANTITY, match.group(0), amount, 0.7)
        return None


# Module-level instance for convenience
_extractor = EntityExtractor()


def extract_entities(transcript: str, reference_date: date) -> list[Entity]:
    """Extract entities using the default extractor.

    Args:
        transcript: Raw transcript text
        reference_date: Date that relative expressions resolve against

    Returns:
        List of extracted entities
    """
    return _extractor.extract(transcript, reference_date)
