"""
Централизованная политика доступа VIP / раннего доступа (внутренняя библиотека).
Decision (policy) и презентация (badges) разделены; контракт через ContentGate и Viewer.
"""
from app.access.audit import record_decision
from app.access.badges import Badge, build_badges
from app.access.errors import AccessPolicyError, ContentLockedError, GateDataError
from app.access.guard import check_access, enforce_access
from app.access.models import (
    AccessDecision,
    ContentGate,
    DenialReason,
    Role,
    UnitType,
    Viewer,
)
from app.access.policy import (
    compute_public_available_at,
    effective_publish_instant,
    evaluate,
    has_elevated_access,
    parse_role,
)

__all__ = [
    "AccessDecision",
    "AccessPolicyError",
    "Badge",
    "ContentGate",
    "ContentLockedError",
    "DenialReason",
    "GateDataError",
    "Role",
    "UnitType",
    "Viewer",
    "build_badges",
    "check_access",
    "compute_public_available_at",
    "effective_publish_instant",
    "enforce_access",
    "evaluate",
    "has_elevated_access",
    "parse_role",
    "record_decision",
]
