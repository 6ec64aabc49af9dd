"""Undo ledger and audit trail for voice-created items.

The command log links each executed command to the item it created. The
undo ledger follows that link back: it deletes the item through the
matching delete collaborator, marks the command UNDONE and appends an
audit entry.

Data is stored in:
- <data_dir>/audit.jsonl — one JSON audit entry per line, append-only
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .commandlog import CommandLog, CommandLogStore, Outcome
from .domain import DomainCollaborators, ItemNotFoundError, ItemRef

logger = logging.getLogger(__name__)

UNDO_ACTION = "UNDO_VOICE_CREATED_ITEM"
EXECUTE_SUCCESS_ACTION = "execute_success"
EXECUTE_ERROR_ACTION = "execute_error"


class UndoError(Exception):
    """Undo could not be performed."""

    pass


class NothingToUndoError(UndoError):
    """The command did not create an item."""

    pass


# =============================================================================
# Audit Log
# =============================================================================


class AuditEntry(BaseModel):
    """A single audit record.

    Attributes:
        id: Entry id
        action_type: What happened (e.g. "UNDO_VOICE_CREATED_ITEM")
        metadata: Action details (item type/id, command id, ...)
        timestamp: When it happened
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    action_type: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)


class AuditLog:
    """Append-only JSON-lines audit trail."""

    AUDIT_FILE = "audit.jsonl"

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    @property
    def audit_file(self) -> Path:
        return self.data_dir / self.AUDIT_FILE

    def append(self, action_type: str, metadata: dict[str, Any] | None = None) -> AuditEntry:
        """Append one entry.

        Raises:
            RuntimeError: If the entry could not be written
        """
        entry = AuditEntry(action_type=action_type, metadata=metadata or {})
        self.data_dir.mkdir(parents=True, exist_ok=True)
        try:
            with self.audit_file.open("a") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            raise RuntimeError(f"Failed to write audit entry: {e}") from e
        logger.debug(f"Audit: {action_type} {metadata or {}}")
        return entry

    def entries(self, action_type: str | None = None) -> list[AuditEntry]:
        """Read entries in write order, optionally for one action type."""
        if not self.audit_file.exists():
            return []

        entries = []
        with self.audit_file.open("r") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = AuditEntry.model_validate(json.loads(line))
                except (json.JSONDecodeError, ValueError) as e:
                    logger.warning(f"Skipping malformed audit line {line_no}: {e}")
                    continue
                if action_type is None or entry.action_type == action_type:
                    entries.append(entry)
        return entries


# =============================================================================
# Undo Ledger
# =============================================================================


class UndoLedger:
    """Reverses voice-created items.

    Example:
        >>> ledger = UndoLedger(store, domain.collaborators(), AuditLog(data_dir))
        >>> ledger.undo(command_id)
    """

    def __init__(
        self,
        store: CommandLogStore,
        collaborators: DomainCollaborators,
        audit: AuditLog | None = None,
    ) -> None:
        self.store = store
        self.collaborators = collaborators
        self.audit = audit

    def undo(self, command_id: str) -> CommandLog:
        """Delete the item a command created and mark the command UNDONE.

        Calling it again on an undone command only re-confirms UNDONE.

        Args:
            command_id: Command log id

        Returns:
            The updated command record

        Raises:
            CommandNotFoundError: If the command does not exist
            NothingToUndoError: If the command created no item
            UndoError: If no delete collaborator exists for the item kind
        """
        log = self.store.get(command_id)
        ref = log.created_item
        if ref is None:
            raise NothingToUndoError(f"Nothing to undo for command {command_id}")

        if log.outcome is Outcome.UNDONE:
            logger.info(f"Command {command_id} already undone")
            return self.store.set_outcome(command_id, Outcome.UNDONE)

        deleter = self.collaborators.deleter(ref.kind)
        if deleter is None:
            raise UndoError(f"No delete collaborator for {ref.kind.value}")

        try:
            deleted = deleter(ref.id)
        except ItemNotFoundError:
            deleted = False
        if deleted is False:
            logger.warning(f"Undo: {ref} was already missing")

        self.store.set_outcome(command_id, Outcome.UNDONE)
        updated = self.store.mark_edited(command_id)
        self._audit(ref, command_id)
        logger.info(f"Undid {ref} from command {command_id}")
        return updated

    def undo_item(self, ref: ItemRef) -> CommandLog:
        """Undo the command that created an item.

        Raises:
            NothingToUndoError: If no live command created the item
        """
        log = self.store.find_by_item(ref)
        if log is None:
            raise NothingToUndoError(f"No voice command created {ref}")
        return self.undo(log.id)

    def _audit(self, ref: ItemRef, command_id: str) -> None:
        if self.audit is None:
            return
        try:
            self.audit.append(
                UNDO_ACTION,
                {"item_type": ref.kind.value, "item_id": ref.id, "voice_command_id": command_id},
            )
        except Exception as e:
            logger.warning(f"Failed to write undo audit entry: {e}")
