"""
DTO access policy: Role, Viewer, ContentGate (вход evaluate), AccessDecision (выход).
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from app.utils.time import isoformat_z


class Role(str, Enum):
    USER = "user"
    VIP = "vip"
    ADMIN = "admin"


class DenialReason(str, Enum):
    """Reason codes are part of the client contract; values must not change."""

    VIP_ONLY = "VIP_ONLY"
    EARLY_ACCESS = "EARLY_ACCESS"


class UnitType(str, Enum):
    MANHWA = "manhwa"
    CHAPTER = "chapter"


# ----- Viewer (role comes from IdentityResolver, never from the client) -----


class Viewer(BaseModel):
    user_id: str | None = None
    role: Role = Role.USER

    model_config = {"frozen": True}

    @classmethod
    def anonymous(cls) -> "Viewer":
        return cls(user_id=None, role=Role.USER)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


# ----- Gating metadata of a manhwa or chapter (read-only for the evaluator) -----


class ContentGate(BaseModel):
    """Gating fields of one content unit, as persisted by the repository."""

    unit_type: UnitType
    unit_id: str
    vip_only: bool = False
    vip_early_days: int = 0
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    public_available_at: datetime | None = None

    model_config = {"frozen": True, "strict": True}

    @classmethod
    def from_row(cls, unit_type: UnitType, row: Any) -> "ContentGate":
        """Build from a Manhwa/Chapter ORM row; NULL flags read as 'no gating'."""
        return cls(
            unit_type=unit_type,
            unit_id=str(row.id),
            vip_only=bool(row.vip_only),
            vip_early_days=row.vip_early_days if row.vip_early_days is not None else 0,
            published_at=row.published_at,
            scheduled_at=getattr(row, "scheduled_at", None),
            public_available_at=row.public_available_at,
        )


# ----- Decision (pure logic output) -----


class AccessDecision(BaseModel):
    allowed: bool
    reason: DenialReason | None = None
    available_at: datetime | None = Field(
        None,
        description="Only for EARLY_ACCESS: instant after which every role may read",
    )

    model_config = {"frozen": True}

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny_vip_only(cls) -> "AccessDecision":
        return cls(allowed=False, reason=DenialReason.VIP_ONLY)

    @classmethod
    def deny_early_access(cls, available_at: datetime) -> "AccessDecision":
        return cls(allowed=False, reason=DenialReason.EARLY_ACCESS, available_at=available_at)

    def to_wire(self) -> dict[str, Any]:
        """{allowed: true} | {allowed: false, reason, availableAt?}"""
        if self.allowed:
            return {"allowed": True}
        payload: dict[str, Any] = {"allowed": False, "reason": self.reason.value}
        if self.available_at is not None:
            payload["availableAt"] = isoformat_z(self.available_at)
        return payload
