"""
Unit-тесты для evaluate / compute_public_available_at: чистая логика, без БД.
"""
import unittest
from datetime import datetime, timedelta, timezone
from itertools import product

from app.access.errors import AccessPolicyError
from app.access.models import AccessDecision, ContentGate, DenialReason, Role, UnitType, Viewer
from app.access.policy import (
    compute_public_available_at,
    effective_publish_instant,
    evaluate,
    has_elevated_access,
    parse_role,
)

T = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _gate(vip_only=False, vip_early_days=0, published_at=T, public_available_at=None, unit_type=UnitType.CHAPTER):
    return ContentGate(
        unit_type=unit_type,
        unit_id="ch-1",
        vip_only=vip_only,
        vip_early_days=vip_early_days,
        published_at=published_at,
        public_available_at=public_available_at,
    )


def _early_gate(days=3, published_at=T):
    return _gate(
        vip_early_days=days,
        published_at=published_at,
        public_available_at=compute_public_available_at(published_at, False, days),
    )


def _viewer(role):
    return Viewer(user_id=None if role is Role.USER else f"{role.value}-1", role=role)


SAMPLE_NOWS = [
    T - timedelta(days=30),
    T,
    T + timedelta(days=1),
    T + timedelta(days=3) - timedelta(microseconds=1),
    T + timedelta(days=3),
    T + timedelta(days=365),
]


class TestVipOnly(unittest.TestCase):
    def test_user_always_denied_regardless_of_time(self):
        for now, days in product(SAMPLE_NOWS, (0, 3)):
            gate = _gate(vip_only=True, vip_early_days=days)
            decision = evaluate(gate, _viewer(Role.USER), now)
            self.assertFalse(decision.allowed)
            self.assertEqual(decision.reason, DenialReason.VIP_ONLY)
            self.assertIsNone(decision.available_at)

    def test_user_denied_even_with_stale_public_available_at(self):
        gate = _gate(vip_only=True, vip_early_days=3, public_available_at=T - timedelta(days=10))
        decision = evaluate(gate, _viewer(Role.USER), T)
        self.assertEqual(decision.reason, DenialReason.VIP_ONLY)

    def test_elevated_roles_always_allowed(self):
        for now, role in product(SAMPLE_NOWS, (Role.VIP, Role.ADMIN)):
            decision = evaluate(_gate(vip_only=True), _viewer(role), now)
            self.assertTrue(decision.allowed)

    def test_concrete_scenario_vip_only_zero_days(self):
        gate = _gate(vip_only=True, vip_early_days=0, published_at=None)
        for now in SAMPLE_NOWS:
            self.assertEqual(evaluate(gate, _viewer(Role.ADMIN), now), AccessDecision.allow())
            self.assertEqual(evaluate(gate, _viewer(Role.USER), now), AccessDecision.deny_vip_only())


class TestEarlyAccessWindow(unittest.TestCase):
    def test_public_available_at_is_instant_plus_days(self):
        self.assertEqual(compute_public_available_at(T, False, 3), T + timedelta(days=3))

    def test_user_denied_before_cutover(self):
        gate = _early_gate()
        for now in SAMPLE_NOWS:
            if now >= T + timedelta(days=3):
                continue
            decision = evaluate(gate, _viewer(Role.USER), now)
            self.assertEqual(decision.reason, DenialReason.EARLY_ACCESS)
            self.assertEqual(decision.available_at, T + timedelta(days=3))

    def test_user_allowed_at_and_after_cutover(self):
        gate = _early_gate()
        self.assertTrue(evaluate(gate, _viewer(Role.USER), T + timedelta(days=3)).allowed)
        self.assertTrue(evaluate(gate, _viewer(Role.USER), T + timedelta(days=30)).allowed)

    def test_elevated_allowed_inside_window(self):
        gate = _early_gate()
        for role in (Role.VIP, Role.ADMIN):
            self.assertTrue(evaluate(gate, _viewer(role), T + timedelta(hours=1)).allowed)

    def test_concrete_scenario_three_days_from_new_year(self):
        published = datetime.fromisoformat("2025-01-01T00:00:00+00:00")
        available = compute_public_available_at(published, False, 3)
        self.assertEqual(available, datetime.fromisoformat("2025-01-04T00:00:00+00:00"))

        gate = _early_gate(published_at=published)
        jan2 = datetime.fromisoformat("2025-01-02T00:00:00+00:00")
        jan5 = datetime.fromisoformat("2025-01-05T00:00:00+00:00")

        self.assertTrue(evaluate(gate, _viewer(Role.VIP), jan2).allowed)
        denied = evaluate(gate, _viewer(Role.USER), jan2)
        self.assertEqual(denied, AccessDecision.deny_early_access(available))
        self.assertEqual(
            denied.to_wire(),
            {"allowed": False, "reason": "EARLY_ACCESS", "availableAt": "2025-01-04T00:00:00Z"},
        )
        self.assertTrue(evaluate(gate, _viewer(Role.USER), jan5).allowed)

    def test_zero_days_means_public_immediately(self):
        self.assertIsNone(compute_public_available_at(T, False, 0))
        gate = _gate(vip_early_days=0, public_available_at=None)
        for now, role in product(SAMPLE_NOWS, Role):
            self.assertTrue(evaluate(gate, _viewer(role), now).allowed)

    def test_early_days_without_public_available_at_allows(self):
        gate = _gate(vip_early_days=3, public_available_at=None)
        self.assertTrue(evaluate(gate, _viewer(Role.USER), T).allowed)

    def test_naive_now_treated_as_utc(self):
        gate = _early_gate()
        self.assertFalse(evaluate(gate, _viewer(Role.USER), datetime(2025, 1, 2)).allowed)


class TestMonotonicity(unittest.TestCase):
    def test_user_allowed_implies_elevated_allowed(self):
        gates = [
            _gate(),
            _gate(vip_only=True),
            _early_gate(),
            _early_gate(days=7),
            _gate(vip_only=True, vip_early_days=2),
        ]
        for gate, now in product(gates, SAMPLE_NOWS):
            if evaluate(gate, _viewer(Role.USER), now).allowed:
                self.assertTrue(evaluate(gate, _viewer(Role.VIP), now).allowed)
                self.assertTrue(evaluate(gate, _viewer(Role.ADMIN), now).allowed)


class TestComputePublicAvailableAt(unittest.TestCase):
    def test_idempotent(self):
        first = compute_public_available_at(T, False, 5)
        second = compute_public_available_at(T, False, 5)
        self.assertEqual(first, second)

    def test_vip_only_yields_none(self):
        self.assertIsNone(compute_public_available_at(T, True, 3))

    def test_missing_instant_rejected_when_window_applies(self):
        with self.assertRaises(AccessPolicyError):
            compute_public_available_at(None, False, 3)

    def test_missing_instant_ok_without_window(self):
        self.assertIsNone(compute_public_available_at(None, False, 0))
        self.assertIsNone(compute_public_available_at(None, True, 3))

    def test_negative_days_rejected(self):
        with self.assertRaises(AccessPolicyError):
            compute_public_available_at(T, False, -1)

    def test_non_integer_days_rejected(self):
        for bad in (1.5, "3", True):
            with self.assertRaises(AccessPolicyError):
                compute_public_available_at(T, False, bad)

    def test_scheduled_unit_uses_scheduled_at(self):
        scheduled_at = T + timedelta(days=10)
        row = type("Row", (), {"status": "scheduled", "scheduled_at": scheduled_at, "published_at": None})()
        self.assertEqual(effective_publish_instant(row), scheduled_at)
        self.assertEqual(
            compute_public_available_at(effective_publish_instant(row), False, 3),
            scheduled_at + timedelta(days=3),
        )

    def test_published_unit_uses_published_at(self):
        row = type("Row", (), {"status": "published", "scheduled_at": None, "published_at": T})()
        self.assertEqual(effective_publish_instant(row), T)


class TestInputValidation(unittest.TestCase):
    def test_parse_role_accepts_enum_values(self):
        self.assertIs(parse_role("vip"), Role.VIP)
        self.assertIs(parse_role(Role.ADMIN), Role.ADMIN)

    def test_parse_role_rejects_unknown(self):
        for bad in ("superuser", "VIP", "", None):
            with self.assertRaises(AccessPolicyError):
                parse_role(bad)

    def test_has_elevated_access(self):
        self.assertFalse(has_elevated_access(Role.USER))
        self.assertTrue(has_elevated_access(Role.VIP))
        self.assertTrue(has_elevated_access(Role.ADMIN))
        with self.assertRaises(AccessPolicyError):
            has_elevated_access("admin-ish")

    def test_evaluate_rejects_negative_days(self):
        gate = ContentGate.model_construct(
            unit_type=UnitType.CHAPTER,
            unit_id="ch-1",
            vip_only=False,
            vip_early_days=-2,
            published_at=T,
            scheduled_at=None,
            public_available_at=None,
        )
        with self.assertRaises(AccessPolicyError):
            evaluate(gate, _viewer(Role.USER), T)

    def test_evaluate_rejects_role_outside_enum(self):
        viewer = Viewer.model_construct(user_id="u1", role="superuser")
        with self.assertRaises(AccessPolicyError):
            evaluate(_gate(), viewer, T)


if __name__ == "__main__":
    unittest.main()
