"""
Тупой слой: на вход ContentGate + роль + now, на выход: список бейджей для карточки/списка глав.
Только презентация. Источник истины по времени: сохранённый public_available_at, а не published_at - N дней.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from app.access.models import ContentGate, Role
from app.access.policy import has_elevated_access
from app.utils.time import as_utc


class Badge(str, Enum):
    VIP_LOCKED = "VIP_LOCKED"  # 🔒 VIP Only
    VIP = "VIP"  # ⭐ VIP
    EARLY_ACCESS = "EARLY_ACCESS"  # ⏰ early access, elevated viewer inside the window
    COMING_SOON = "COMING_SOON"  # regular viewer waiting for public_available_at


def build_badges(gate: ContentGate, role: Role, now: datetime) -> list[Badge]:
    elevated = has_elevated_access(role)
    if gate.vip_only:
        return [Badge.VIP] if elevated else [Badge.VIP_LOCKED]

    if gate.vip_early_days <= 0 or gate.public_available_at is None:
        return []
    if as_utc(now) >= as_utc(gate.public_available_at):
        return []
    return [Badge.EARLY_ACCESS] if elevated else [Badge.COMING_SOON]
