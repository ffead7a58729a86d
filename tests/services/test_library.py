"""Tests for LibraryService: idempotent upsert and grouping order."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.models.library_entry import LIBRARY_STATUSES, LibraryEntry
from app.services.library.service import LibraryService


def _make_db(existing=None):
    db = MagicMock()
    db.query.return_value.filter.return_value.one_or_none.return_value = existing
    return db


def test_upsert_creates_entry():
    db = _make_db(None)
    entry = LibraryService(db).upsert("u1", "m-1", "reading")
    assert isinstance(entry, LibraryEntry)
    assert entry.status == "reading"
    db.commit.assert_called_once()


def test_upsert_overwrites_status():
    existing = LibraryEntry(user_id="u1", manhwa_id="m-1", status="planned")
    entry = LibraryService(_make_db(existing)).upsert("u1", "m-1", "completed")
    assert entry is existing
    assert existing.status == "completed"


def test_upsert_rejects_unknown_status():
    with pytest.raises(ValueError):
        LibraryService(_make_db()).upsert("u1", "m-1", "favourite")


def test_remove_missing_returns_false():
    assert LibraryService(_make_db(None)).remove("u1", "m-1") is False


def test_grouped_keeps_tab_order_and_counts():
    entry = SimpleNamespace(
        id="e-1", manhwa_id="m-1", status="completed", created_at=None, updated_at=None,
    )
    manhwa = SimpleNamespace(title="Лицар та відьма", cover_image=None, type="manhwa")
    db = MagicMock()
    (
        db.query.return_value.join.return_value.outerjoin.return_value
        .filter.return_value.order_by.return_value.all.return_value
    ) = [(entry, manhwa, None)]

    groups = LibraryService(db).list_grouped("u1")

    assert [g.status for g in groups] == list(LIBRARY_STATUSES)
    completed = groups[LIBRARY_STATUSES.index("completed")]
    assert completed.count == 1
    assert completed.items[0].manhwa_title == "Лицар та відьма"
    assert completed.items[0].last_read_chapter_id is None
