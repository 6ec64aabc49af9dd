"""Privacy-preserving command analytics.

Commands are folded into aggregate buckets keyed by (hashed user, intent,
date, hour). Transcripts and raw user ids are never stored here.

Data is stored in:
- <data_dir>/analytics.json — array of aggregate buckets
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from .commandlog import CommandLog, Outcome
from .intent.taxonomy import IntentType

if TYPE_CHECKING:
    from .learning import PatternStore

logger = logging.getLogger(__name__)

ANONYMOUS_HASH = "anon"


def hash_user_id(user_id: str | None) -> str:
    """One-way SHA-256 hash of a user id ("anon" for no user)."""
    if not user_id:
        return ANONYMOUS_HASH
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


# =============================================================================
# Data Models
# =============================================================================


class ErrorCount(BaseModel):
    reason: str
    count: int = 1


class AnalyticsBucket(BaseModel):
    """Aggregated commands for one (user hash, intent, date, hour)."""

    user_hash: str
    intent_type: IntentType
    day: date
    hour_of_day: int = Field(ge=0, le=23)
    total_commands: int = 0
    successful_commands: int = 0
    failed_commands: int = 0
    cancelled_commands: int = 0
    average_confidence: float | None = None
    common_errors: list[ErrorCount] = Field(default_factory=list)

    @property
    def key(self) -> tuple[str, IntentType, date, int]:
        return (self.user_hash, self.intent_type, self.day, self.hour_of_day)

    def add(self, log: CommandLog) -> None:
        """Fold one command into this bucket."""
        previous = self.total_commands
        self.total_commands += 1
        self._count(log.outcome, 1)

        # Running average over all commands in the bucket
        prev_avg = self.average_confidence or 0.0
        self.average_confidence = (prev_avg * previous + log.overall_confidence) / (previous + 1)
        self._note_failure(log)

    def revise(self, previous: Outcome, log: CommandLog) -> None:
        """Move an already counted command from ``previous`` to its new outcome.

        The command keeps its single place in ``total_commands`` and the
        confidence average; only the outcome counters change.
        """
        self._count(previous, -1)
        self._count(log.outcome, 1)
        self._note_failure(log)

    def _count(self, outcome: Outcome, delta: int) -> None:
        if outcome is Outcome.SUCCESS:
            self.successful_commands = max(0, self.successful_commands + delta)
        elif outcome is Outcome.FAILED:
            self.failed_commands = max(0, self.failed_commands + delta)
        elif outcome is Outcome.CANCELLED:
            self.cancelled_commands = max(0, self.cancelled_commands + delta)

    def _note_failure(self, log: CommandLog) -> None:
        if log.outcome is not Outcome.FAILED or not log.failure_reason:
            return
        reason = log.failure_reason.strip()
        for error in self.common_errors:
            if error.reason == reason:
                error.count += 1
                break
        else:
            self.common_errors.append(ErrorCount(reason=reason))


@dataclass(frozen=True)
class FailureReasonCount:
    reason: str
    count: int
    percentage: float


@dataclass(frozen=True)
class IntentShare:
    intent: IntentType
    count: int
    percentage: float


@dataclass(frozen=True)
class HourUsage:
    hour: int
    count: int


@dataclass(frozen=True)
class UserMetrics:
    """Aggregated stats for one user."""

    total_commands: int
    success_rate: float
    average_confidence: float
    most_used_intent: IntentType | None
    learned_patterns: int


def _percentage(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 2)


# =============================================================================
# Analytics Store
# =============================================================================


class CommandAnalytics:
    """Aggregates finished commands and answers usage questions.

    Example:
        >>> analytics = CommandAnalytics(Path("~/.myday-voice"))
        >>> analytics.track(log)
        >>> analytics.success_rate(IntentType.CREATE_TASK)
        100.0
    """

    ANALYTICS_FILE = "analytics.json"

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._buckets: list[AnalyticsBucket] | None = None

    @property
    def analytics_file(self) -> Path:
        return self.data_dir / self.ANALYTICS_FILE

    def _load(self) -> list[AnalyticsBucket]:
        if not self.analytics_file.exists():
            return []
        try:
            with self.analytics_file.open("r") as f:
                data = json.load(f)
            return [AnalyticsBucket.model_validate(d) for d in data]
        except Exception as e:
            logger.error(f"Failed to load analytics: {e}")
            return []

    def _save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = [b.model_dump(mode="json") for b in self.buckets]

        # Atomic write
        temp_file = self.analytics_file.with_suffix(".json.tmp")
        try:
            with temp_file.open("w") as f:
                json.dump(data, f, indent=2)
            temp_file.rename(self.analytics_file)
        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise RuntimeError(f"Failed to save analytics: {e}") from e

    @property
    def buckets(self) -> list[AnalyticsBucket]:
        """All aggregate buckets (loads if needed)."""
        if self._buckets is None:
            self._buckets = self._load()
        return self._buckets

    def track(self, log: CommandLog, previous: Outcome | None = None) -> None:
        """Fold a command into its bucket. Never raises.

        Args:
            log: The command in its current outcome
            previous: Outcome this command was already tracked with, if any.
                A tracked command is revised in place instead of counted again.
        """
        try:
            key = (
                hash_user_id(log.user_id),
                log.intent_type,
                log.created_at.date(),
                log.created_at.hour,
            )
            bucket = next((b for b in self.buckets if b.key == key), None)
            if bucket is None:
                bucket = AnalyticsBucket(
                    user_hash=key[0], intent_type=key[1], day=key[2], hour_of_day=key[3]
                )
                self.buckets.append(bucket)
            if previous is not None and bucket.total_commands:
                bucket.revise(previous, log)
            else:
                bucket.add(log)
            self._save()
        except Exception as e:
            logger.warning(f"Failed to track command analytics: {e}")

    def _select(
        self,
        intent: IntentType | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        user_hash: str | None = None,
    ) -> list[AnalyticsBucket]:
        return [
            b
            for b in self.buckets
            if (intent is None or b.intent_type is intent)
            and (date_from is None or b.day >= date_from)
            and (date_to is None or b.day <= date_to)
            and (user_hash is None or b.user_hash == user_hash)
        ]

    # =========================================================================
    # Queries
    # =========================================================================

    def success_rate(
        self,
        intent: IntentType | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> float:
        """Percentage (0-100, 2 dp) of tracked commands that succeeded."""
        selected = self._select(intent, date_from, date_to)
        total = sum(b.total_commands for b in selected)
        success = sum(b.successful_commands for b in selected)
        return _percentage(success, total)

    def top_failure_reasons(self, limit: int = 10) -> list[FailureReasonCount]:
        """Most common failure reasons, most frequent first."""
        counts: dict[str, int] = {}
        for bucket in self.buckets:
            for error in bucket.common_errors:
                counts[error.reason] = counts.get(error.reason, 0) + error.count
        total = sum(counts.values())
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [
            FailureReasonCount(reason, count, _percentage(count, total))
            for reason, count in ranked[:limit]
        ]

    def intent_distribution(self) -> list[IntentShare]:
        """Command counts per intent, most used first."""
        counts: dict[IntentType, int] = {}
        for bucket in self.buckets:
            counts[bucket.intent_type] = counts.get(bucket.intent_type, 0) + bucket.total_commands
        total = sum(counts.values())
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [IntentShare(intent, count, _percentage(count, total)) for intent, count in ranked]

    def average_confidence_by_intent(self) -> dict[IntentType, float]:
        """Command-weighted average confidence per intent."""
        sums: dict[IntentType, tuple[float, int]] = {}
        for bucket in self.buckets:
            if bucket.average_confidence is None:
                continue
            weighted, count = sums.get(bucket.intent_type, (0.0, 0))
            sums[bucket.intent_type] = (
                weighted + bucket.average_confidence * bucket.total_commands,
                count + bucket.total_commands,
            )
        return {
            intent: round(weighted / count, 4) for intent, (weighted, count) in sums.items() if count
        }

    def peak_usage_hours(self) -> list[HourUsage]:
        """Command counts per hour of day, busiest first."""
        counts: dict[int, int] = {}
        for bucket in self.buckets:
            counts[bucket.hour_of_day] = counts.get(bucket.hour_of_day, 0) + bucket.total_commands
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [HourUsage(hour, count) for hour, count in ranked]

    def user_metrics(self, user_id: str, patterns: "PatternStore | None" = None) -> UserMetrics:
        """Aggregated stats for one user.

        Args:
            user_id: Raw user id (hashed before lookup)
            patterns: Pattern store used to count the user's learned patterns
        """
        selected = self._select(user_hash=hash_user_id(user_id))
        total = sum(b.total_commands for b in selected)
        success = sum(b.successful_commands for b in selected)

        weighted = sum((b.average_confidence or 0.0) * b.total_commands for b in selected)
        per_intent: dict[IntentType, int] = {}
        for bucket in selected:
            per_intent[bucket.intent_type] = (
                per_intent.get(bucket.intent_type, 0) + bucket.total_commands
            )
        most_used = max(per_intent, key=per_intent.get) if per_intent else None

        learned = len(patterns.user_patterns(user_id)) if patterns is not None else 0
        return UserMetrics(
            total_commands=total,
            success_rate=_percentage(success, total),
            average_confidence=round(weighted / total, 4) if total else 0.0,
            most_used_intent=most_used,
            learned_patterns=learned,
        )
