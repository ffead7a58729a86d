"""Tests for rating upsert/average and manhwa-level public_available_at."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.models.manhwa import Manhwa
from app.models.rating import ManhwaRating
from app.services.errors import AdminConflictError
from app.services.manhwa.service import ManhwaAdminService, refresh_manhwa_gate
from app.services.ratings.service import RatingService, RatingValueError

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _make_manhwa(**overrides):
    data = dict(id="lycar-ta-vidma", title="Лицар та відьма", vip_only=False, vip_early_days=0, rating=0.0)
    data.update(overrides)
    return Manhwa(**data)


class TestRatingService:
    @pytest.mark.parametrize("value", [0, 11, -1, 5.5, True, "7"])
    def test_out_of_range_rejected(self, value):
        with pytest.raises(RatingValueError):
            RatingService(MagicMock()).validate(value)

    def test_first_vote_inserts_and_updates_average(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.one_or_none.return_value = None
        db.query.return_value.filter.return_value.one.return_value = (7.666, 3)
        manhwa = _make_manhwa()

        average, total = RatingService(db).rate(manhwa, "u1", 9)

        assert (average, total) == (7.7, 3)
        assert manhwa.rating == 7.7
        inserted = db.add.call_args_list[0].args[0]
        assert isinstance(inserted, ManhwaRating)
        assert inserted.rating == 9
        db.commit.assert_called_once()

    def test_repeat_vote_overwrites(self):
        db = MagicMock()
        existing = ManhwaRating(user_id="u1", manhwa_id="lycar-ta-vidma", rating=3)
        db.query.return_value.filter.return_value.one_or_none.return_value = existing
        db.query.return_value.filter.return_value.one.return_value = (8.0, 1)

        average, total = RatingService(db).rate(_make_manhwa(), "u1", 8)

        assert existing.rating == 8
        assert (average, total) == (8.0, 1)


class TestManhwaGate:
    def test_create_sets_window_from_creation_time(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.one_or_none.return_value = None
        manhwa = ManhwaAdminService(db).create(
            {"id": "new-title", "title": "Нова", "vip_only": False, "vip_early_days": 2},
            NOW,
            actor_id="admin-1",
        )
        assert manhwa.published_at == NOW
        assert manhwa.public_available_at == NOW + timedelta(days=2)

    def test_create_duplicate_id_conflicts(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.one_or_none.return_value = _make_manhwa()
        with pytest.raises(AdminConflictError):
            ManhwaAdminService(db).create({"id": "lycar-ta-vidma", "title": "x"}, NOW)

    def test_update_to_vip_only_clears_window(self):
        manhwa = _make_manhwa(vip_early_days=3, published_at=NOW)
        refresh_manhwa_gate(manhwa, NOW)
        assert manhwa.public_available_at == NOW + timedelta(days=3)

        ManhwaAdminService(MagicMock()).update(manhwa, {"vip_only": True}, NOW + timedelta(days=1))
        assert manhwa.public_available_at is None

    def test_update_days_keeps_original_publish_instant(self):
        manhwa = _make_manhwa(published_at=NOW)
        ManhwaAdminService(MagicMock()).update(manhwa, {"vip_early_days": 5}, NOW + timedelta(days=2))
        assert manhwa.public_available_at == NOW + timedelta(days=5)
