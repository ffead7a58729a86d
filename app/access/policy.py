"""
Decision только: evaluate(gate, viewer, now) -> AccessDecision.
Чистая функция, без I/O и без чтения часов: now передаёт вызывающий.
Порядок проверок: VIP-only (абсолютный, без исключений по времени) -> окно раннего доступа -> allow.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from app.access.errors import AccessPolicyError
from app.access.models import AccessDecision, ContentGate, Role, Viewer
from app.utils.time import as_utc

ELEVATED_ROLES = frozenset({Role.VIP, Role.ADMIN})


def parse_role(value: Any) -> Role:
    """Closed three-value enum at the boundary; anything else is rejected, not defaulted."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise AccessPolicyError(f"Invalid role: {value!r}") from None


def has_elevated_access(role: Role) -> bool:
    if not isinstance(role, Role):
        raise AccessPolicyError(f"Invalid role: {role!r}")
    return role in ELEVATED_ROLES


def _validate_early_days(vip_early_days: Any) -> int:
    if isinstance(vip_early_days, bool) or not isinstance(vip_early_days, int):
        raise AccessPolicyError(f"vip_early_days must be an integer, got {vip_early_days!r}")
    if vip_early_days < 0:
        raise AccessPolicyError(f"vip_early_days must be >= 0, got {vip_early_days}")
    return vip_early_days


def evaluate(gate: ContentGate, viewer: Viewer, now: datetime) -> AccessDecision:
    """
    Решает, может ли viewer видеть единицу контента прямо сейчас.

    - vip_only и роль не vip/admin -> VIP_ONLY
    - есть окно раннего доступа и now < public_available_at для user -> EARLY_ACCESS(available_at)
    - иначе -> allowed
    """
    elevated = has_elevated_access(viewer.role)
    early_days = _validate_early_days(gate.vip_early_days)

    if gate.vip_only and not elevated:
        return AccessDecision.deny_vip_only()

    if early_days > 0 and gate.public_available_at is not None:
        available_at = as_utc(gate.public_available_at)
        if not elevated and as_utc(now) < available_at:
            return AccessDecision.deny_early_access(available_at)
        return AccessDecision.allow()

    return AccessDecision.allow()


def compute_public_available_at(
    effective_publish_instant: datetime | None,
    vip_only: bool,
    vip_early_days: int,
) -> datetime | None:
    """
    Момент, после которого контент доступен всем ролям.
    effective_publish_instant: now для action=publish, scheduled_at для action=schedule.
    Вызывать при каждом изменении любого из входов: устаревшее значение это баг.
    """
    early_days = _validate_early_days(vip_early_days)
    if vip_only or early_days <= 0:
        return None
    if effective_publish_instant is None:
        raise AccessPolicyError("effective publish instant is required when early access applies")
    return as_utc(effective_publish_instant) + timedelta(days=early_days)


def effective_publish_instant(row: Any) -> datetime | None:
    """scheduled_at for scheduled units, published_at otherwise."""
    if getattr(row, "status", None) == "scheduled" and getattr(row, "scheduled_at", None) is not None:
        return row.scheduled_at
    return row.published_at
