"""
Admin-side chapter management: drafts, page lists, publish / schedule / cancel.

Status machine:
    draft --publish--> published
    draft --schedule--> scheduled --publish--> published
    scheduled --cancel--> draft
Every transition and every edit of a gating input recomputes public_available_at
through app.access.policy.compute_public_available_at.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy.orm import Session

from app.access.policy import compute_public_available_at, effective_publish_instant
from app.models.chapter import Chapter, ChapterPage
from app.models.manhwa import Manhwa
from app.services.audit.service import AuditService
from app.services.errors import AdminConflictError, AdminInputError
from app.utils.metrics import chapters_published_total
from app.utils.time import as_utc

logger = logging.getLogger(__name__)

PUBLISH_ACTIONS = ("publish", "schedule")


def refresh_chapter_gate(chapter: Chapter) -> None:
    """Drafts carry no window; otherwise window starts at the effective publish instant."""
    if chapter.status == "draft":
        chapter.public_available_at = None
        return
    chapter.public_available_at = compute_public_available_at(
        effective_publish_instant(chapter),
        bool(chapter.vip_only),
        chapter.vip_early_days or 0,
    )


class ChapterAdminService:
    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditService(db)

    def get(self, chapter_id: str) -> Chapter | None:
        return self.db.query(Chapter).filter(Chapter.id == chapter_id).one_or_none()

    def list_for_manhwa(self, manhwa_id: str) -> list[Chapter]:
        return (
            self.db.query(Chapter)
            .filter(Chapter.manhwa_id == manhwa_id)
            .order_by(Chapter.chapter_number.asc())
            .all()
        )

    def get_pages(self, chapter_id: str) -> list[ChapterPage]:
        return (
            self.db.query(ChapterPage)
            .filter(ChapterPage.chapter_id == chapter_id)
            .order_by(ChapterPage.page_number.asc())
            .all()
        )

    def _number_taken(self, manhwa_id: str, chapter_number: float, exclude_id: str | None = None) -> bool:
        q = self.db.query(Chapter).filter(
            Chapter.manhwa_id == manhwa_id,
            Chapter.chapter_number == chapter_number,
        )
        if exclude_id:
            q = q.filter(Chapter.id != exclude_id)
        return q.first() is not None

    def create(self, manhwa: Manhwa, data: dict[str, Any], actor_id: str | None = None) -> Chapter:
        if self._number_taken(manhwa.id, data["chapter_number"]):
            raise AdminConflictError(f"Chapter {data['chapter_number']} already exists")
        chapter = Chapter(manhwa_id=manhwa.id, status="draft", pages_count=0, **data)
        refresh_chapter_gate(chapter)
        self.db.add(chapter)
        self.db.flush()
        self.audit.log(
            actor_id,
            "chapter_create",
            "chapter",
            chapter.id,
            {"manhwa_id": manhwa.id, "chapter_number": chapter.chapter_number},
            commit=False,
        )
        self.db.commit()
        self.db.refresh(chapter)
        return chapter

    def update(self, chapter: Chapter, changes: dict[str, Any], actor_id: str | None = None) -> Chapter:
        number = changes.get("chapter_number")
        if number is not None and self._number_taken(chapter.manhwa_id, number, exclude_id=chapter.id):
            raise AdminConflictError(f"Chapter {number} already exists")
        for key, value in changes.items():
            if value is None and key in ("chapter_number", "title", "vip_only", "vip_early_days"):
                continue
            setattr(chapter, key, value)
        refresh_chapter_gate(chapter)
        self.db.add(chapter)
        self.audit.log(actor_id, "chapter_update", "chapter", chapter.id, {"fields": sorted(changes)}, commit=False)
        self.db.commit()
        self.db.refresh(chapter)
        return chapter

    def delete(self, chapter: Chapter, actor_id: str | None = None) -> None:
        chapter_id, manhwa_id = chapter.id, chapter.manhwa_id
        self.db.delete(chapter)
        self.audit.log(actor_id, "chapter_delete", "chapter", chapter_id, {"manhwa_id": manhwa_id}, commit=False)
        self.db.commit()

    def replace_pages(self, chapter: Chapter, pages: Iterable[dict[str, Any]], actor_id: str | None = None) -> list[ChapterPage]:
        """Replace the whole page list; numbering follows list order starting at 1."""
        self.db.query(ChapterPage).filter(ChapterPage.chapter_id == chapter.id).delete(synchronize_session=False)
        new_pages = [
            ChapterPage(
                chapter_id=chapter.id,
                page_number=index,
                image_url=page["image_url"],
                width=page.get("width"),
                height=page.get("height"),
            )
            for index, page in enumerate(pages, start=1)
        ]
        self.db.add_all(new_pages)
        chapter.pages_count = len(new_pages)
        self.db.add(chapter)
        self.audit.log(
            actor_id,
            "chapter_pages_replace",
            "chapter",
            chapter.id,
            {"pages_count": len(new_pages)},
            commit=False,
        )
        self.db.commit()
        return new_pages

    def publish(
        self,
        chapter: Chapter,
        action: str,
        now: datetime,
        scheduled_at: datetime | None = None,
        vip_only: bool | None = None,
        vip_early_days: int | None = None,
        actor_id: str | None = None,
    ) -> Chapter:
        """
        action=publish: published now, scheduled_at cleared.
        action=schedule: scheduled at scheduled_at (required).
        Both derive public_available_at from the instant the chapter goes live.
        """
        if action not in PUBLISH_ACTIONS:
            raise AdminInputError(f"Unknown action: {action}")
        if action == "schedule" and scheduled_at is None:
            raise AdminInputError("scheduledAt is required for action=schedule")

        if vip_only is not None:
            chapter.vip_only = vip_only
        if vip_early_days is not None:
            chapter.vip_early_days = vip_early_days

        if action == "publish":
            chapter.status = "published"
            chapter.published_at = now
            chapter.scheduled_at = None
        else:
            scheduled_at = as_utc(scheduled_at)
            chapter.status = "scheduled"
            chapter.scheduled_at = scheduled_at
            chapter.published_at = scheduled_at
        refresh_chapter_gate(chapter)

        manhwa = chapter.manhwa
        if manhwa is not None and action == "publish":
            manhwa.last_chapter_date = chapter.published_at
            self.db.add(manhwa)
        self.db.add(chapter)
        self.audit.log(
            actor_id,
            f"chapter_{action}",
            "chapter",
            chapter.id,
            {
                "manhwa_id": chapter.manhwa_id,
                "scheduled_at": chapter.scheduled_at.isoformat() if chapter.scheduled_at else None,
                "vip_only": bool(chapter.vip_only),
                "vip_early_days": chapter.vip_early_days or 0,
                "public_available_at": (
                    chapter.public_available_at.isoformat() if chapter.public_available_at else None
                ),
            },
            commit=False,
        )
        self.db.commit()
        self.db.refresh(chapter)

        chapters_published_total.labels(action=action).inc()
        logger.info(
            "chapter_published",
            extra={
                "chapter_id": chapter.id,
                "manhwa_id": chapter.manhwa_id,
                "action": action,
                "available_at": chapter.public_available_at,
                "user_id": actor_id,
            },
        )
        return chapter

    def cancel_schedule(self, chapter: Chapter, actor_id: str | None = None) -> Chapter:
        chapter.status = "draft"
        chapter.scheduled_at = None
        chapter.published_at = None
        refresh_chapter_gate(chapter)
        self.db.add(chapter)
        self.audit.log(actor_id, "chapter_unpublish", "chapter", chapter.id, {"manhwa_id": chapter.manhwa_id}, commit=False)
        self.db.commit()
        self.db.refresh(chapter)
        logger.info("chapter_unpublished", extra={"chapter_id": chapter.id, "user_id": actor_id})
        return chapter
