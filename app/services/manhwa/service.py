"""
Admin-side manhwa management. public_available_at is recomputed on every write
that may touch one of its inputs (vip_only, vip_early_days, published_at).
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.access.policy import compute_public_available_at
from app.models.manhwa import Manhwa
from app.services.audit.service import AuditService
from app.services.errors import AdminConflictError

logger = logging.getLogger(__name__)

# NOT NULL columns: an explicit null in a partial update is ignored
REQUIRED_FIELDS = ("title", "description", "status", "type", "tags", "vip_only", "vip_early_days")


def refresh_manhwa_gate(manhwa: Manhwa, now: datetime) -> None:
    """Manhwa has no draft state: it is published at creation; the window starts then."""
    if manhwa.published_at is None:
        manhwa.published_at = now
    manhwa.public_available_at = compute_public_available_at(
        manhwa.published_at,
        bool(manhwa.vip_only),
        manhwa.vip_early_days or 0,
    )


class ManhwaAdminService:
    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def get(self, manhwa_id: str) -> Manhwa | None:
        return self.db.query(Manhwa).filter(Manhwa.id == manhwa_id).one_or_none()

    def list(self, page: int = 1, page_size: int = 20, search: str | None = None) -> tuple[list[Manhwa], int]:
        q = self.db.query(Manhwa)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(Manhwa.title.ilike(pattern), Manhwa.id.ilike(pattern)))
        total = q.count()
        rows = (
            q.order_by(Manhwa.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    def create(self, data: dict[str, Any], now: datetime, actor_id: str | None = None) -> Manhwa:
        if self.get(data["id"]) is not None:
            raise AdminConflictError(f"Manhwa {data['id']} already exists")
        manhwa = Manhwa(**data)
        manhwa.published_at = now
        refresh_manhwa_gate(manhwa, now)
        self.db.add(manhwa)
        self.audit.log(actor_id, "manhwa_create", "manhwa", manhwa.id, {"title": manhwa.title}, commit=False)
        self.db.commit()
        self.db.refresh(manhwa)
        logger.info("manhwa_created", extra={"manhwa_id": manhwa.id, "user_id": actor_id})
        return manhwa

    def update(self, manhwa: Manhwa, changes: dict[str, Any], now: datetime, actor_id: str | None = None) -> Manhwa:
        for key, value in changes.items():
            if key in REQUIRED_FIELDS and value is None:
                continue
            setattr(manhwa, key, value)
        refresh_manhwa_gate(manhwa, now)
        self.db.add(manhwa)
        self.audit.log(
            actor_id,
            "manhwa_update",
            "manhwa",
            manhwa.id,
            {"fields": sorted(changes)},
            commit=False,
        )
        self.db.commit()
        self.db.refresh(manhwa)
        return manhwa

    def delete(self, manhwa: Manhwa, actor_id: str | None = None) -> None:
        manhwa_id = manhwa.id
        self.db.delete(manhwa)
        self.audit.log(actor_id, "manhwa_delete", "manhwa", manhwa_id, commit=False)
        self.db.commit()
        logger.info("manhwa_deleted", extra={"manhwa_id": manhwa_id, "user_id": actor_id})
