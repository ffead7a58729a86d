"""
Аудит решений доступа: record_decision вызывается сервисами после evaluate().
"""
from __future__ import annotations

import logging

from app.access.models import AccessDecision, ContentGate, Viewer
from app.utils.metrics import access_decisions_total

logger = logging.getLogger(__name__)


def record_decision(gate: ContentGate, viewer: Viewer, decision: AccessDecision) -> None:
    outcome = "allowed" if decision.allowed else decision.reason.value
    access_decisions_total.labels(unit=gate.unit_type.value, outcome=outcome).inc()
    if decision.allowed:
        return
    id_field = "manhwa_id" if gate.unit_type.value == "manhwa" else "chapter_id"
    logger.info(
        "access_denied",
        extra={
            id_field: gate.unit_id,
            "user_id": viewer.user_id,
            "role": viewer.role.value,
            "reason": decision.reason.value,
            "available_at": decision.available_at,
        },
    )
