"""Tests for enforce_access and the 403 body shape."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from app.access.errors import ContentLockedError
from app.access.guard import check_access, enforce_access
from app.access.models import AccessDecision, ContentGate, Role, UnitType, Viewer

T = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _row(**overrides):
    data = dict(
        id="ch-1",
        vip_only=False,
        vip_early_days=0,
        published_at=T,
        scheduled_at=None,
        public_available_at=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


class TestFromRow:
    def test_null_flags_read_as_no_gating(self):
        gate = ContentGate.from_row(UnitType.CHAPTER, _row(vip_only=None, vip_early_days=None))
        assert gate.vip_only is False
        assert gate.vip_early_days == 0

    def test_manhwa_row_without_scheduled_at(self):
        row = SimpleNamespace(id="m-1", vip_only=True, vip_early_days=0, published_at=T, public_available_at=None)
        gate = ContentGate.from_row(UnitType.MANHWA, row)
        assert gate.scheduled_at is None
        assert gate.unit_id == "m-1"


class TestEnforceAccess:
    def test_allowed_returns_decision(self):
        gate = ContentGate.from_row(UnitType.CHAPTER, _row())
        assert enforce_access(gate, Viewer.anonymous(), T) == AccessDecision.allow()

    def test_vip_only_raises_without_available_at(self):
        gate = ContentGate.from_row(UnitType.CHAPTER, _row(vip_only=True))
        with pytest.raises(ContentLockedError) as exc_info:
            enforce_access(gate, Viewer.anonymous(), T)
        body = exc_info.value.to_response_body()
        assert body["error"] == "VIP_ONLY"
        assert "availableAt" not in body
        assert body["message"]

    def test_early_access_body_carries_available_at(self):
        gate = ContentGate.from_row(
            UnitType.CHAPTER,
            _row(vip_early_days=3, public_available_at=T + timedelta(days=3)),
        )
        with pytest.raises(ContentLockedError) as exc_info:
            enforce_access(gate, Viewer(user_id="u1", role=Role.USER), T + timedelta(days=1))
        assert exc_info.value.to_response_body() == {
            "error": "EARLY_ACCESS",
            "message": ContentLockedError.MESSAGES["EARLY_ACCESS"],
            "availableAt": "2025-01-04T00:00:00Z",
        }

    def test_denied_error_requires_denied_decision(self):
        with pytest.raises(ValueError):
            ContentLockedError(AccessDecision.allow(), UnitType.CHAPTER, "ch-1")


class TestCheckAccessRecording:
    @patch("app.access.guard.record_decision")
    def test_every_decision_is_recorded(self, mock_record):
        gate = ContentGate.from_row(UnitType.MANHWA, _row(vip_only=True))
        viewer = Viewer.anonymous()
        decision = check_access(gate, viewer, T)
        mock_record.assert_called_once_with(gate, viewer, decision)

    def test_denial_logged_with_reason(self, caplog):
        gate = ContentGate.from_row(UnitType.CHAPTER, _row(vip_only=True))
        with caplog.at_level("INFO", logger="app.access.audit"):
            check_access(gate, Viewer(user_id="u1", role=Role.USER), T)
        records = [r for r in caplog.records if r.getMessage() == "access_denied"]
        assert records
        assert records[0].reason == "VIP_ONLY"
        assert records[0].chapter_id == "ch-1"
