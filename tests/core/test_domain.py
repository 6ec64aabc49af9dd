"""Tests for the local JSON domain store."""

from __future__ import annotations

from pathlib import Path

import pytest

from myday_voice.core.domain import DomainWriteError, ItemKind, ItemRef, LocalDomainStore


@pytest.fixture
def domain(tmp_path: Path) -> LocalDomainStore:
    return LocalDomainStore(tmp_path)


class TestLocalDomainStore:
    """Tests for item creation, lookup and deletion."""

    def test_create_keeps_given_id(self, domain: LocalDomainStore) -> None:
        item_id = domain.add_task({"id": "t1", "title": "stretch", "priority": "LOW"})

        assert item_id == "t1"
        item = domain.get(ItemKind.TASK, "t1")
        assert item["title"] == "stretch"
        assert "id" not in item
        assert "created_at" in item

    def test_create_generates_id(self, domain: LocalDomainStore) -> None:
        item_id = domain.save_journal_entry({"content": "good day"})
        assert item_id
        assert set(domain.get(ItemKind.JOURNAL, item_id)) == {"content", "created_at"}

    @pytest.mark.parametrize(
        "method,fields",
        [
            ("add_task", {"title": "  "}),
            ("create_todo_item", {"title": "wrong field"}),
            ("add_item", {}),
        ],
    )
    def test_required_text(self, domain: LocalDomainStore, method: str, fields: dict) -> None:
        with pytest.raises(DomainWriteError):
            getattr(domain, method)(fields)

    def test_persists(self, domain: LocalDomainStore, tmp_path: Path) -> None:
        item_id = domain.add_item({"name": "milk", "quantity": 2})
        reloaded = LocalDomainStore(tmp_path)
        assert reloaded.get(ItemKind.ITEM, item_id)["quantity"] == 2
        assert list(reloaded.list_items(ItemKind.ITEM)) == [item_id]

    def test_delete(self, domain: LocalDomainStore) -> None:
        item_id = domain.pin_event({"title": "launch"})
        assert domain.delete(ItemKind.PINNED_EVENT, item_id) is True
        assert domain.delete(ItemKind.PINNED_EVENT, item_id) is False
        assert domain.get(ItemKind.PINNED_EVENT, item_id) is None

    def test_collaborators_cover_every_kind(self, domain: LocalDomainStore) -> None:
        collaborators = domain.collaborators()
        for kind in ItemKind:
            assert collaborators.creator(kind) is not None
            assert collaborators.deleter(kind) is not None

    def test_collaborator_deleter_is_bound_to_kind(self, domain: LocalDomainStore) -> None:
        item_id = domain.add_routine({"title": "stretch", "recurrence": "FREQ=DAILY"})
        collaborators = domain.collaborators()

        assert collaborators.deleter(ItemKind.TASK)(item_id) is False
        assert collaborators.deleter(ItemKind.ROUTINE)(item_id) is True

    def test_item_ref_str(self) -> None:
        assert str(ItemRef(ItemKind.PINNED_EVENT, "p1")) == "pinned_event:p1"
