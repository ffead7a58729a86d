"""Tests for role assignment: expiry arithmetic, validation, audit and cache invalidation."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app.models.user import User
from app.services.errors import AdminInputError
from app.services.users.service import UserService, add_months, compute_role_expiration

NOW = datetime(2025, 1, 31, 10, 0, tzinfo=timezone.utc)


def _make_user(role="user"):
    return User(id="u1", email="reader@example.com", role=role, role_duration_type="permanent")


class TestExpiration:
    def test_permanent_has_no_expiry(self):
        assert compute_role_expiration("permanent", NOW) is None

    def test_month_is_calendar_month_clamped(self):
        assert compute_role_expiration("month", NOW) == datetime(2025, 2, 28, 10, 0, tzinfo=timezone.utc)

    def test_add_months_across_year(self):
        assert add_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)
        assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)

    def test_custom_days(self):
        assert compute_role_expiration("custom_days", NOW, 10) == NOW + timedelta(days=10)

    @pytest.mark.parametrize("days", [None, 0, -3, True])
    def test_custom_days_requires_positive_int(self, days):
        with pytest.raises(AdminInputError):
            compute_role_expiration("custom_days", NOW, days)

    def test_unknown_duration(self):
        with pytest.raises(AdminInputError):
            compute_role_expiration("forever", NOW)


class TestSetRole:
    def test_grant_vip_for_month(self):
        db = MagicMock()
        invalidate = MagicMock()
        user = _make_user()
        UserService(db).set_role(user, "vip", "month", NOW, actor_id="admin-1", invalidate=invalidate)
        assert user.role == "vip"
        assert user.role_duration_type == "month"
        assert user.role_expiration == datetime(2025, 2, 28, 10, 0, tzinfo=timezone.utc)
        invalidate.assert_called_once_with("u1")
        db.commit.assert_called_once()

    def test_downgrade_to_user_is_permanent(self):
        user = _make_user("admin")
        user.role_expiration = NOW + timedelta(days=3)
        UserService(MagicMock()).set_role(user, "user", "custom_days", NOW, custom_days=5)
        assert user.role == "user"
        assert user.role_duration_type == "permanent"
        assert user.role_expiration is None

    def test_audit_entry_records_old_and_new_role(self):
        db = MagicMock()
        UserService(db).set_role(_make_user("vip"), "admin", "permanent", NOW, actor_id="admin-1")
        audit = [c.args[0] for c in db.add.call_args_list if c.args[0].__class__.__name__ == "AuditLog"]
        assert audit[0].action == "role_change"
        assert audit[0].payload["old_role"] == "vip"
        assert audit[0].payload["new_role"] == "admin"

    @pytest.mark.parametrize("role", ["root", "VIP", ""])
    def test_invalid_role_rejected_without_write(self, role):
        db = MagicMock()
        invalidate = MagicMock()
        with pytest.raises(AdminInputError):
            UserService(db).set_role(_make_user(), role, "permanent", NOW, invalidate=invalidate)
        db.commit.assert_not_called()
        invalidate.assert_not_called()

    def test_invalid_duration_rejected(self):
        with pytest.raises(AdminInputError):
            UserService(MagicMock()).set_role(_make_user(), "vip", "weekly", NOW)


class TestRoleExpiry:
    def test_is_role_expired(self):
        user = _make_user("vip")
        user.role_expiration = NOW
        assert user.is_role_expired(NOW) is True
        assert user.is_role_expired(NOW - timedelta(seconds=1)) is False

    def test_naive_expiration_treated_as_utc(self):
        user = _make_user("vip")
        user.role_expiration = datetime(2025, 1, 31, 9, 0)
        assert user.is_role_expired(NOW) is True
