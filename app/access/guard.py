"""
Execution: enforce_access(gate, viewer, now) = evaluate + аудит + ContentLockedError при отказе.
Сервисы вызывают guard, а не evaluate напрямую, чтобы каждая проверка попадала в метрики.
"""
from __future__ import annotations

from datetime import datetime

from app.access.audit import record_decision
from app.access.errors import ContentLockedError
from app.access.models import AccessDecision, ContentGate, Viewer
from app.access.policy import evaluate


def check_access(gate: ContentGate, viewer: Viewer, now: datetime) -> AccessDecision:
    decision = evaluate(gate, viewer, now)
    record_decision(gate, viewer, decision)
    return decision


def enforce_access(gate: ContentGate, viewer: Viewer, now: datetime) -> AccessDecision:
    decision = check_access(gate, viewer, now)
    if not decision.allowed:
        raise ContentLockedError(decision, gate.unit_type, gate.unit_id)
    return decision
