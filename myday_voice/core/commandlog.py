"""Persisted voice command log.

Every listening cycle that reaches confirmation leaves one record behind,
tracking how it ended (pending, executed, cancelled, failed or undone) and
which item it created. Records expire after a retention window.

Data is stored in:
- <data_dir>/command_log.json — array of command records, transcripts
  encoded with the configured ``TranscriptCodec`` (``transcript_encrypted``
  records which kind of codec wrote each one)
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from .domain import ItemKind, ItemRef
from .intent.taxonomy import EntityType, IntentType, ParsedCommand
from .privacy import Base64Codec, TranscriptCodec, TranscriptDecodeError

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30

_PLAIN_CODEC = Base64Codec()


class CommandNotFoundError(Exception):
    """No live command record has the requested id."""

    pass


class OutcomeTransitionError(Exception):
    """An outcome change would move a record backwards."""

    pass


# =============================================================================
# Outcome
# =============================================================================


class Outcome(str, Enum):
    """How a voice command ended."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"
    UNDONE = "UNDONE"


ALLOWED_TRANSITIONS: dict[Outcome, frozenset[Outcome]] = {
    Outcome.PENDING: frozenset({Outcome.SUCCESS, Outcome.FAILED, Outcome.CANCELLED}),
    Outcome.FAILED: frozenset({Outcome.SUCCESS, Outcome.FAILED, Outcome.CANCELLED}),
    Outcome.SUCCESS: frozenset({Outcome.UNDONE}),
    Outcome.UNDONE: frozenset({Outcome.UNDONE}),
    Outcome.CANCELLED: frozenset(),
}

# Outcomes that carry a created item
_WITH_ITEM = frozenset({Outcome.SUCCESS, Outcome.UNDONE})


def check_transition(current: Outcome, new: Outcome) -> None:
    """Raise OutcomeTransitionError unless ``current -> new`` is allowed."""
    if new not in ALLOWED_TRANSITIONS[current]:
        raise OutcomeTransitionError(f"Cannot move command from {current.value} to {new.value}")


# =============================================================================
# Data Model
# =============================================================================


class CommandLog(BaseModel):
    """One persisted voice command.

    ``created_item_type``/``created_item_id`` are set exactly when the
    outcome is SUCCESS or UNDONE.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str | None = None
    session_id: str | None = None
    transcript: str = ""
    transcript_encrypted: bool = False
    language: str = "en-US"

    intent_type: IntentType = IntentType.UNKNOWN
    intent_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    entities: list[dict[str, Any]] = Field(default_factory=list)

    memo_date: str | None = None
    memo_time: str | None = None
    extracted_title: str | None = None
    extracted_priority: str | None = None
    extracted_tags: list[str] = Field(default_factory=list)
    extracted_recurrence: str | None = None
    extracted_attendees: list[str] = Field(default_factory=list)
    extracted_location: str | None = None

    overall_confidence: float = Field(default=0.1, ge=0.0, le=1.0)
    outcome: Outcome = Outcome.PENDING
    failure_reason: str | None = None
    created_item_type: ItemKind | None = None
    created_item_id: str | None = None
    retry_count: int = 0
    user_edited: bool = False

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime | None = None
    expires_at: datetime | None = None

    @model_validator(mode="after")
    def _check_created_item(self) -> "CommandLog":
        has_item = self.created_item_type is not None and self.created_item_id is not None
        if self.outcome in _WITH_ITEM and not has_item:
            raise ValueError(f"{self.outcome.value} command must reference its created item")
        if self.outcome not in _WITH_ITEM and (
            self.created_item_type is not None or self.created_item_id is not None
        ):
            raise ValueError(f"{self.outcome.value} command cannot reference a created item")
        return self

    @property
    def created_item(self) -> ItemRef | None:
        if self.created_item_type is None or self.created_item_id is None:
            return None
        return ItemRef(self.created_item_type, self.created_item_id)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON persistence."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommandLog:
        """Deserialize from dictionary."""
        return cls.model_validate(data)

    @classmethod
    def from_parsed(
        cls,
        parsed: ParsedCommand,
        *,
        user_id: str | None = None,
        session_id: str | None = None,
        language: str = "en-US",
        retention_days: int = DEFAULT_RETENTION_DAYS,
        outcome: Outcome = Outcome.PENDING,
        created_item: ItemRef | None = None,
        failure_reason: str | None = None,
        now: datetime | None = None,
    ) -> CommandLog:
        """Build a record from a parsed command.

        Args:
            parsed: The parsed command
            user_id: Owner of the command
            session_id: Listening session the command came from
            language: Capture language
            retention_days: Days until the record expires
            outcome: Initial outcome
            created_item: Item created by the command (SUCCESS only)
            failure_reason: Why execution failed (FAILED only)
            now: Creation time (defaults to now)

        Returns:
            A new CommandLog
        """
        created_at = now or datetime.now()

        def normalized(entity_type: EntityType) -> Any:
            entity = parsed.first(entity_type)
            return entity.normalized_value if entity else None

        attendees = normalized(EntityType.PERSON) or []
        return cls(
            user_id=user_id,
            session_id=session_id,
            transcript=parsed.transcript,
            language=language,
            intent_type=parsed.intent.type,
            intent_confidence=parsed.intent.confidence,
            entities=[e.to_dict() for e in parsed.entities],
            memo_date=normalized(EntityType.DATE),
            memo_time=normalized(EntityType.TIME),
            extracted_title=normalized(EntityType.TITLE),
            extracted_priority=normalized(EntityType.PRIORITY),
            extracted_tags=[e.normalized_value for e in parsed.all_of(EntityType.TAG)],
            extracted_recurrence=normalized(EntityType.RECURRENCE),
            extracted_attendees=list(attendees),
            extracted_location=normalized(EntityType.LOCATION),
            overall_confidence=parsed.overall_confidence,
            outcome=outcome,
            failure_reason=failure_reason,
            created_item_type=created_item.kind if created_item else None,
            created_item_id=created_item.id if created_item else None,
            created_at=created_at,
            expires_at=created_at + timedelta(days=retention_days),
        )


# =============================================================================
# Command Log Store
# =============================================================================


class CommandLogStore:
    """Stores command records and answers history queries.

    Expired records (``expires_at <= now``) are invisible to every read.

    Example:
        >>> store = CommandLogStore(Path("~/.myday-voice"))
        >>> log = store.create(CommandLog.from_parsed(parsed, user_id="u1"))
        >>> store.set_outcome(log.id, Outcome.CANCELLED)
        >>> store.search("mom", user_id="u1")
    """

    LOG_FILE = "command_log.json"

    def __init__(
        self,
        data_dir: Path,
        codec: TranscriptCodec | None = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory holding command_log.json
            codec: Transcript codec for at-rest storage
            retention_days: Default retention for new records
            clock: Source of "now"
        """
        self.data_dir = Path(data_dir)
        self.codec = codec or Base64Codec()
        self.retention_days = retention_days
        self.clock = clock or datetime.now
        self._logs: dict[str, CommandLog] | None = None
        # Stored (token, encrypted) for transcripts the current codec cannot read
        self._sealed: dict[str, tuple[str, bool]] = {}

    @property
    def log_file(self) -> Path:
        return self.data_dir / self.LOG_FILE

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load(self) -> dict[str, CommandLog]:
        """Load records from disk, decoding transcripts."""
        if not self.log_file.exists():
            return {}

        try:
            with self.log_file.open("r") as f:
                data = json.load(f)
        except Exception as e:
            logger.error(f"Failed to load command log: {e}")
            return {}

        logs: dict[str, CommandLog] = {}
        for raw in data:
            try:
                raw = dict(raw)
                token = raw.get("transcript") or ""
                encrypted = bool(raw.get("transcript_encrypted", False))
                text = self._decode(token, encrypted, raw.get("user_id"))
                raw["transcript"] = "" if text is None else text
                log = CommandLog.from_dict(raw)
                if text is None:
                    self._sealed[log.id] = (token, encrypted)
            except Exception as e:
                logger.warning(f"Skipping unreadable command record: {e}")
                continue
            logs[log.id] = log

        logger.debug(f"Loaded {len(logs)} command records")
        return logs

    def _decode(self, token: str, encrypted: bool, user_id: str | None) -> str | None:
        """Decode a stored transcript with the codec it was written with.

        Returns:
            The transcript, or None when it cannot be read with the current
            configuration (the stored token is then kept as is)
        """
        if not token:
            return ""
        if encrypted and not self.codec.encrypted:
            logger.warning("Encrypted transcript kept sealed: no transcript secret configured")
            return None
        # Unencrypted records are base64 whatever the current codec is
        codec = self.codec if encrypted else _PLAIN_CODEC
        try:
            return codec.decode(token, user_id or "")
        except TranscriptDecodeError as e:
            logger.warning(f"Stored transcript unreadable, keeping it sealed: {e}")
            return None

    def _save(self) -> None:
        """Save records to disk."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        data = []
        for log in self.logs.values():
            record = log.to_dict()
            sealed = self._sealed.get(log.id)
            if sealed is not None and not log.transcript:
                record["transcript"], record["transcript_encrypted"] = sealed
            else:
                record["transcript"] = self.codec.encode(log.transcript, log.user_id or "")
                record["transcript_encrypted"] = self.codec.encrypted
            data.append(record)

        # Atomic write
        temp_file = self.log_file.with_suffix(".json.tmp")
        try:
            with temp_file.open("w") as f:
                json.dump(data, f, indent=2)
            temp_file.rename(self.log_file)
            logger.debug(f"Saved {len(data)} command records")
        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise RuntimeError(f"Failed to save command log: {e}") from e

    @property
    def logs(self) -> dict[str, CommandLog]:
        """All records by id, expired included (loads if needed)."""
        if self._logs is None:
            self._logs = self._load()
        return self._logs

    def _live(self, user_id: str | None = None) -> list[CommandLog]:
        """Unexpired records, newest first, optionally for one user."""
        now = self.clock()
        live = [
            log
            for log in self.logs.values()
            if not log.is_expired(now) and (user_id is None or log.user_id == user_id)
        ]
        live.sort(key=lambda log: log.created_at, reverse=True)
        return live

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, log: CommandLog) -> CommandLog:
        """Persist a new record.

        Raises:
            ValueError: If a record with the same id exists
        """
        if log.id in self.logs:
            raise ValueError(f"Command {log.id} already exists")
        if log.expires_at is None:
            log = log.model_copy(
                update={"expires_at": log.created_at + timedelta(days=self.retention_days)}
            )
        log = log.model_copy(update={"transcript_encrypted": self.codec.encrypted})
        self.logs[log.id] = log
        self._save()
        logger.debug(f"Logged command {log.id} ({log.intent_type.value}, {log.outcome.value})")
        return log

    def _replace(self, log_id: str, changes: dict[str, Any]) -> CommandLog:
        current = self.get(log_id)
        data = current.model_dump()
        data.update(changes)
        data["updated_at"] = self.clock()
        updated = CommandLog.model_validate(data)
        self.logs[log_id] = updated
        self._save()
        return updated

    def update(self, log_id: str, **changes: Any) -> CommandLog:
        """Change fields of a record other than its outcome.

        Raises:
            CommandNotFoundError: If the record does not exist or expired
            ValueError: If ``outcome`` is among the changes
        """
        if "outcome" in changes:
            raise ValueError("Use set_outcome() to change a command's outcome")
        return self._replace(log_id, changes)

    def set_outcome(
        self,
        log_id: str,
        outcome: Outcome,
        failure_reason: str | None = None,
        created_item: ItemRef | None = None,
    ) -> CommandLog:
        """Move a record to a new outcome.

        Args:
            log_id: Record id
            outcome: New outcome
            failure_reason: Reason text for FAILED
            created_item: Created item, required for SUCCESS

        Raises:
            CommandNotFoundError: If the record does not exist or expired
            OutcomeTransitionError: If the change is not allowed
        """
        current = self.get(log_id)
        check_transition(current.outcome, outcome)

        changes: dict[str, Any] = {"outcome": outcome}
        if outcome is Outcome.SUCCESS:
            if created_item is None:
                raise ValueError("SUCCESS requires the created item")
            changes["created_item_type"] = created_item.kind
            changes["created_item_id"] = created_item.id
            changes["failure_reason"] = None
        elif outcome is Outcome.FAILED:
            changes["failure_reason"] = failure_reason

        # Another execution attempt after a failure
        if current.outcome is Outcome.FAILED and outcome in (Outcome.SUCCESS, Outcome.FAILED):
            changes["retry_count"] = current.retry_count + 1

        return self._replace(log_id, changes)

    def mark_edited(self, log_id: str) -> CommandLog:
        """Record that the user edited the item this command created."""
        return self._replace(log_id, {"user_edited": True})

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete expired records.

        Returns:
            Number of records removed
        """
        now = now or self.clock()
        expired = [log_id for log_id, log in self.logs.items() if log.is_expired(now)]
        return self._remove(expired)

    def purge_older_than(self, days: int, now: datetime | None = None) -> int:
        """Delete records created more than ``days`` days ago.

        Returns:
            Number of records removed
        """
        cutoff = (now or self.clock()) - timedelta(days=days)
        old = [log_id for log_id, log in self.logs.items() if log.created_at < cutoff]
        return self._remove(old)

    def _remove(self, log_ids: list[str]) -> int:
        for log_id in log_ids:
            del self.logs[log_id]
            self._sealed.pop(log_id, None)
        if log_ids:
            self._save()
            logger.info(f"Purged {len(log_ids)} command records")
        return len(log_ids)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, log_id: str) -> CommandLog:
        """Get a live record by id.

        Raises:
            CommandNotFoundError: If the record does not exist or expired
        """
        log = self.logs.get(log_id)
        if log is None or log.is_expired(self.clock()):
            raise CommandNotFoundError(f"Command not found: {log_id}")
        return log

    def list_recent(self, user_id: str | None, limit: int = 50) -> list[CommandLog]:
        """Get a user's most recent records, newest first."""
        return self._live(user_id)[:limit]

    def by_date_range(
        self, start: date, end: date, user_id: str | None = None
    ) -> list[CommandLog]:
        """Get records created between two dates, inclusive."""
        return [log for log in self._live(user_id) if start <= log.created_at.date() <= end]

    def by_intent(self, intent: IntentType, user_id: str | None = None) -> list[CommandLog]:
        return [log for log in self._live(user_id) if log.intent_type is intent]

    def by_outcome(self, outcome: Outcome, user_id: str | None = None) -> list[CommandLog]:
        return [log for log in self._live(user_id) if log.outcome is outcome]

    def search(
        self,
        query: str,
        user_id: str | None = None,
        intent: IntentType | None = None,
        outcome: Outcome | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[CommandLog]:
        """Keyword search over transcripts and titles.

        Args:
            query: Case-insensitive substring ("" matches everything)
            user_id: Restrict to one user
            intent: Restrict to one intent
            outcome: Restrict to one outcome
            date_from: Earliest creation date, inclusive
            date_to: Latest creation date, inclusive

        Returns:
            Matching records, newest first
        """
        needle = query.strip().lower()
        results = []
        for log in self._live(user_id):
            if intent is not None and log.intent_type is not intent:
                continue
            if outcome is not None and log.outcome is not outcome:
                continue
            created = log.created_at.date()
            if date_from is not None and created < date_from:
                continue
            if date_to is not None and created > date_to:
                continue
            haystack = f"{log.transcript}\n{log.extracted_title or ''}".lower()
            if needle and needle not in haystack:
                continue
            results.append(log)
        return results

    def find_by_item(self, ref: ItemRef) -> CommandLog | None:
        """Find the live record that created an item."""
        for log in self._live():
            if log.created_item == ref:
                return log
        return None
