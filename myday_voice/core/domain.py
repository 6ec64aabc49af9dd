"""Domain collaborators for voice-created items.

The executor never persists items itself: it calls one creation function per
item kind and, for undo, one delete function per kind. This module defines
that call contract and a small JSON-file implementation used by the CLI.

Data is stored in:
- <data_dir>/items.json — created items keyed by kind, then id
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ItemKind(str, Enum):
    """Closed set of item kinds a voice command can create."""

    TASK = "task"
    EVENT = "event"
    TODO = "todo"
    JOURNAL = "journal"
    ROUTINE = "routine"
    MILESTONE = "milestone"
    RESOLUTION = "resolution"
    PINNED_EVENT = "pinned_event"
    ITEM = "item"


@dataclass(frozen=True)
class ItemRef:
    """Tagged reference to a created item."""

    kind: ItemKind
    id: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class DomainWriteError(Exception):
    """A creation collaborator rejected its input."""

    pass


class ItemNotFoundError(Exception):
    """A delete collaborator could not find the item."""

    pass


# Creation: flat field dict -> created id (None keeps the id passed in fields)
Creator = Callable[[dict[str, Any]], "str | None"]
# Deletion: item id -> False (or ItemNotFoundError) when already gone
Deleter = Callable[[str], "bool | None"]


@dataclass(frozen=True)
class DomainCollaborators:
    """Creation and delete functions, keyed by item kind."""

    creators: Mapping[ItemKind, Creator] = field(default_factory=dict)
    deleters: Mapping[ItemKind, Deleter] = field(default_factory=dict)

    def creator(self, kind: ItemKind) -> Creator | None:
        return self.creators.get(kind)

    def deleter(self, kind: ItemKind) -> Deleter | None:
        return self.deleters.get(kind)


# =============================================================================
# Local JSON Store
# =============================================================================

# Field that must be non-empty for each kind
_REQUIRED_TEXT: dict[ItemKind, str] = {
    ItemKind.TASK: "title",
    ItemKind.EVENT: "title",
    ItemKind.TODO: "text",
    ItemKind.JOURNAL: "content",
    ItemKind.ROUTINE: "title",
    ItemKind.MILESTONE: "title",
    ItemKind.RESOLUTION: "title",
    ItemKind.PINNED_EVENT: "title",
    ItemKind.ITEM: "name",
}


class LocalDomainStore:
    """JSON-file implementation of the domain collaborators.

    Example:
        >>> store = LocalDomainStore(Path("~/.myday-voice"))
        >>> item_id = store.add_task({"title": "call mom", "date": "2026-01-30"})
        >>> store.delete(ItemKind.TASK, item_id)
        True
    """

    ITEMS_FILE = "items.json"

    def __init__(self, data_dir: Path) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory holding items.json
        """
        self.data_dir = Path(data_dir)
        self._items: dict[str, dict[str, dict[str, Any]]] | None = None

    @property
    def items_file(self) -> Path:
        return self.data_dir / self.ITEMS_FILE

    def _load(self) -> dict[str, dict[str, dict[str, Any]]]:
        if not self.items_file.exists():
            return {}
        try:
            with self.items_file.open("r") as f:
                return json.load(f)
        except Exception as e:
            logger.error(f"Failed to load items: {e}")
            return {}

    def _save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Atomic write
        temp_file = self.items_file.with_suffix(".json.tmp")
        try:
            with temp_file.open("w") as f:
                json.dump(self.items, f, indent=2, default=str)
            temp_file.rename(self.items_file)
        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise RuntimeError(f"Failed to save items: {e}") from e

    @property
    def items(self) -> dict[str, dict[str, dict[str, Any]]]:
        """All items by kind value then id (loads if needed)."""
        if self._items is None:
            self._items = self._load()
        return self._items

    def _create(self, kind: ItemKind, fields: dict[str, Any]) -> str:
        required = _REQUIRED_TEXT[kind]
        if not str(fields.get(required) or "").strip():
            raise DomainWriteError(f"{kind.value} requires a non-empty {required}")

        item_id = str(fields.get("id") or uuid.uuid4())
        record = {k: v for k, v in fields.items() if k != "id"}
        record["created_at"] = datetime.now().isoformat()

        self.items.setdefault(kind.value, {})[item_id] = record
        self._save()
        logger.info(f"Created {kind.value} {item_id}")
        return item_id

    def add_task(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.TASK, fields)

    def add_event(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.EVENT, fields)

    def create_todo_item(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.TODO, fields)

    def save_journal_entry(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.JOURNAL, fields)

    def add_routine(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.ROUTINE, fields)

    def add_milestone(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.MILESTONE, fields)

    def add_resolution(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.RESOLUTION, fields)

    def pin_event(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.PINNED_EVENT, fields)

    def add_item(self, fields: dict[str, Any]) -> str:
        return self._create(ItemKind.ITEM, fields)

    def get(self, kind: ItemKind, item_id: str) -> dict[str, Any] | None:
        """Get one item's fields, or None."""
        return self.items.get(kind.value, {}).get(item_id)

    def list_items(self, kind: ItemKind) -> dict[str, dict[str, Any]]:
        """Get all items of a kind keyed by id."""
        return dict(self.items.get(kind.value, {}))

    def delete(self, kind: ItemKind, item_id: str) -> bool:
        """Delete an item.

        Returns:
            True if deleted, False if it did not exist
        """
        bucket = self.items.get(kind.value, {})
        if item_id not in bucket:
            return False
        del bucket[item_id]
        self._save()
        logger.info(f"Deleted {kind.value} {item_id}")
        return True

    def collaborators(self) -> DomainCollaborators:
        """Build the collaborator tables consumed by the executor and undo."""
        creators: dict[ItemKind, Creator] = {
            ItemKind.TASK: self.add_task,
            ItemKind.EVENT: self.add_event,
            ItemKind.TODO: self.create_todo_item,
            ItemKind.JOURNAL: self.save_journal_entry,
            ItemKind.ROUTINE: self.add_routine,
            ItemKind.MILESTONE: self.add_milestone,
            ItemKind.RESOLUTION: self.add_resolution,
            ItemKind.PINNED_EVENT: self.pin_event,
            ItemKind.ITEM: self.add_item,
        }
        deleters: dict[ItemKind, Deleter] = {kind: partial(self.delete, kind) for kind in ItemKind}
        return DomainCollaborators(creators=creators, deleters=deleters)
