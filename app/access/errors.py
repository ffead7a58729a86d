from __future__ import annotations

from app.access.models import AccessDecision, UnitType


class AccessPolicyError(ValueError):
    """Malformed policy input from a request (unknown role, negative early-access days)."""


class ContentLockedError(Exception):
    """Raised by services when evaluate() denies; mapped to 403 by app.main."""

    MESSAGES = {
        "VIP_ONLY": "This content is available to VIP members only.",
        "EARLY_ACCESS": "This content is in VIP early access and becomes public later.",
    }

    def __init__(self, decision: AccessDecision, unit_type: UnitType, unit_id: str) -> None:
        if decision.allowed:
            raise ValueError("ContentLockedError requires a denied decision")
        self.decision = decision
        self.unit_type = unit_type
        self.unit_id = unit_id
        super().__init__(f"{unit_type.value} {unit_id} locked: {decision.reason.value}")

    def to_response_body(self) -> dict:
        """{error, availableAt?, message}: never includes the gated payload."""
        wire = self.decision.to_wire()
        body = {"error": wire["reason"], "message": self.MESSAGES[wire["reason"]]}
        if "availableAt" in wire:
            body["availableAt"] = wire["availableAt"]
        return body


class GateDataError(RuntimeError):
    """Persisted gating fields of a manhwa/chapter row are invalid; mapped to 500, never blamed on the client."""

    def __init__(self, unit_type: UnitType, unit_id: str, detail: str) -> None:
        self.unit_type = unit_type
        self.unit_id = unit_id
        super().__init__(f"{unit_type.value} {unit_id}: invalid gating data: {detail}")
