"""
CatalogService. Public reads: catalog cards, manhwa detail, chapter reader, schedule.
Every read of gated content goes through app.access.guard; list views only
evaluate (no audit) and expose the access state, never the gated payload.
"""
from __future__ import annotations

import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.access.badges import build_badges
from app.access.errors import GateDataError
from app.access.guard import enforce_access
from app.access.models import ContentGate, UnitType, Viewer
from app.access.policy import evaluate
from app.models.chapter import Chapter, ChapterPage
from app.models.manhwa import Manhwa
from app.models.rating import ManhwaRating
from app.services.reading_progress.service import ReadingProgressService, is_chapter_read
from app.schemas.catalog import (
    AccessStateOut,
    ChapterReadOut,
    ChapterSummaryOut,
    GateOut,
    ManhwaCardOut,
    ManhwaDetailOut,
    PageOut,
    ScheduleDayOut,
    ScheduleGroupOut,
    ScheduleItemOut,
)

logger = logging.getLogger(__name__)

VISIBLE_CHAPTER_STATUSES = ("published", "scheduled")

SCHEDULE_DAY_ABBREVIATIONS = {
    "Понеділок": "ПН",
    "Вівторок": "ВТ",
    "Середа": "СР",
    "Четвер": "ЧТ",
    "П'ятниця": "ПТ",
    "Субота": "СБ",
    "Неділя": "НД",
}


def gate_from_row(unit_type: UnitType, row: Manhwa | Chapter) -> ContentGate:
    """ContentGate of a stored row; bad persisted values raise GateDataError (500), not AccessPolicyError (400)."""
    try:
        gate = ContentGate.from_row(unit_type, row)
    except ValidationError as e:
        raise GateDataError(unit_type, str(row.id), str(e)) from e
    if gate.vip_early_days < 0:
        raise GateDataError(unit_type, gate.unit_id, f"vip_early_days={gate.vip_early_days}")
    return gate


def manhwa_gate(manhwa: Manhwa) -> ContentGate:
    return gate_from_row(UnitType.MANHWA, manhwa)


def chapter_gate(chapter: Chapter) -> ContentGate:
    return gate_from_row(UnitType.CHAPTER, chapter)


def gate_out(gate: ContentGate) -> GateOut:
    return GateOut(
        vip_only=gate.vip_only,
        vip_early_days=gate.vip_early_days,
        public_available_at=gate.public_available_at,
    )


def access_state(gate: ContentGate, viewer: Viewer, now: datetime) -> AccessStateOut:
    decision = evaluate(gate, viewer, now)
    return AccessStateOut(
        locked=not decision.allowed,
        reason=decision.reason,
        available_at=decision.available_at,
        badges=build_badges(gate, viewer.role, now),
    )


def schedule_day_out(manhwa: Manhwa) -> ScheduleDayOut | None:
    if not manhwa.schedule_label:
        return None
    return ScheduleDayOut(
        day_big=manhwa.schedule_day or SCHEDULE_DAY_ABBREVIATIONS.get(manhwa.schedule_label, ""),
        day_label=manhwa.schedule_label,
        note=manhwa.schedule_note or "",
    )


class CatalogService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def _visible_chapter_counts(self, manhwa_ids: list[str], now: datetime) -> dict[str, int]:
        if not manhwa_ids:
            return {}
        rows = (
            self.db.query(Chapter.manhwa_id, func.count(Chapter.id))
            .filter(
                Chapter.manhwa_id.in_(manhwa_ids),
                (Chapter.status == "published")
                | ((Chapter.status == "scheduled") & (Chapter.scheduled_at <= now)),
            )
            .group_by(Chapter.manhwa_id)
            .all()
        )
        return {manhwa_id: count for manhwa_id, count in rows}

    def list_catalog(self, viewer: Viewer, now: datetime, limit: int = 50, offset: int = 0) -> list[ManhwaCardOut]:
        manhwas = (
            self.db.query(Manhwa)
            .order_by(Manhwa.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        counts = self._visible_chapter_counts([m.id for m in manhwas], now)
        cards = []
        for manhwa in manhwas:
            gate = manhwa_gate(manhwa)
            cards.append(
                ManhwaCardOut(
                    id=manhwa.id,
                    title=manhwa.title,
                    short_description=manhwa.short_description,
                    cover_image=manhwa.cover_image,
                    status=manhwa.status,
                    type=manhwa.type or "manhwa",
                    rating=manhwa.rating or 0.0,
                    tags=list(manhwa.tags or []),
                    schedule_day=schedule_day_out(manhwa),
                    last_chapter_date=manhwa.last_chapter_date,
                    chapters_count=counts.get(manhwa.id, 0),
                    gate=gate_out(gate),
                    access=access_state(gate, viewer, now),
                )
            )
        return cards

    # ------------------------------------------------------------------
    # Detail
    # ------------------------------------------------------------------

    def get_manhwa(self, manhwa_id: str) -> Manhwa | None:
        return self.db.query(Manhwa).filter(Manhwa.id == manhwa_id).one_or_none()

    def get_manhwa_detail(self, manhwa_id: str, viewer: Viewer, now: datetime) -> ManhwaDetailOut | None:
        """None when missing; raises ContentLockedError when the title itself is gated."""
        manhwa = self.get_manhwa(manhwa_id)
        if manhwa is None:
            return None
        gate = manhwa_gate(manhwa)
        enforce_access(gate, viewer, now)

        chapters = (
            self.db.query(Chapter)
            .filter(Chapter.manhwa_id == manhwa_id, Chapter.status.in_(VISIBLE_CHAPTER_STATUSES))
            .order_by(Chapter.chapter_number.asc())
            .all()
        )
        rating_count = (
            self.db.query(func.count(ManhwaRating.id))
            .filter(ManhwaRating.manhwa_id == manhwa_id)
            .scalar()
        ) or 0
        read_ids, read_ranges = (
            ReadingProgressService(self.db).read_state(viewer.user_id, manhwa_id)
            if viewer.is_authenticated
            else (set(), [])
        )

        return ManhwaDetailOut(
            id=manhwa.id,
            title=manhwa.title,
            description=manhwa.description or "",
            short_description=manhwa.short_description,
            cover_image=manhwa.cover_image,
            bg_image=manhwa.bg_image,
            char_image=manhwa.char_image,
            status=manhwa.status,
            type=manhwa.type or "manhwa",
            publication_type=manhwa.publication_type,
            rating=manhwa.rating or 0.0,
            rating_count=rating_count,
            tags=list(manhwa.tags or []),
            schedule_day=schedule_day_out(manhwa),
            created_at=manhwa.created_at,
            gate=gate_out(gate),
            badges=build_badges(gate, viewer.role, now),
            chapters=[
                self._chapter_summary(
                    ch,
                    viewer,
                    now,
                    read=is_chapter_read(ch.id, ch.chapter_number, read_ids, read_ranges),
                )
                for ch in chapters
            ],
        )

    def _chapter_summary(self, chapter: Chapter, viewer: Viewer, now: datetime, read: bool = False) -> ChapterSummaryOut:
        gate = chapter_gate(chapter)
        upcoming = not chapter.is_readable(now)
        state = access_state(gate, viewer, now)
        if upcoming:
            state = AccessStateOut(locked=True, badges=state.badges)
        return ChapterSummaryOut(
            id=chapter.id,
            chapter_number=chapter.chapter_number,
            title=chapter.title or "",
            description=chapter.description or "",
            pages_count=chapter.pages_count or 0,
            status=chapter.status,
            published_at=chapter.published_at,
            scheduled_at=chapter.scheduled_at,
            upcoming=upcoming,
            read=read,
            gate=gate_out(gate),
            access=state,
        )

    # ------------------------------------------------------------------
    # Reader
    # ------------------------------------------------------------------

    def get_readable_chapter(self, manhwa_id: str, chapter_id: str, now: datetime) -> Chapter | None:
        chapter = (
            self.db.query(Chapter)
            .filter(Chapter.id == chapter_id, Chapter.manhwa_id == manhwa_id)
            .one_or_none()
        )
        if chapter is None or not chapter.is_readable(now):
            return None
        return chapter

    def authorize_chapter(self, manhwa_id: str, chapter_id: str, viewer: Viewer, now: datetime) -> Chapter | None:
        """Readable chapter the viewer may open; title gate first, then chapter gate."""
        chapter = self.get_readable_chapter(manhwa_id, chapter_id, now)
        if chapter is None:
            return None
        enforce_access(manhwa_gate(chapter.manhwa), viewer, now)
        enforce_access(chapter_gate(chapter), viewer, now)
        return chapter

    def _neighbours(self, chapter: Chapter, now: datetime) -> tuple[str | None, str | None]:
        siblings = (
            self.db.query(Chapter)
            .filter(Chapter.manhwa_id == chapter.manhwa_id, Chapter.status.in_(VISIBLE_CHAPTER_STATUSES))
            .order_by(Chapter.chapter_number.asc())
            .all()
        )
        readable = [c for c in siblings if c.is_readable(now)]
        ids = [c.id for c in readable]
        if chapter.id not in ids:
            return None, None
        idx = ids.index(chapter.id)
        prev_id = ids[idx - 1] if idx > 0 else None
        next_id = ids[idx + 1] if idx + 1 < len(ids) else None
        return prev_id, next_id

    def read_chapter(self, manhwa_id: str, chapter_id: str, viewer: Viewer, now: datetime) -> ChapterReadOut | None:
        chapter = self.authorize_chapter(manhwa_id, chapter_id, viewer, now)
        if chapter is None:
            return None

        pages = (
            self.db.query(ChapterPage)
            .filter(ChapterPage.chapter_id == chapter.id)
            .order_by(ChapterPage.page_number.asc())
            .all()
        )
        prev_id, next_id = self._neighbours(chapter, now)
        logger.info(
            "chapter_read",
            extra={"manhwa_id": manhwa_id, "chapter_id": chapter_id, "user_id": viewer.user_id},
        )
        return ChapterReadOut(
            id=chapter.id,
            manhwa_id=chapter.manhwa_id,
            chapter_number=chapter.chapter_number,
            title=chapter.title or "",
            description=chapter.description,
            pages_count=chapter.pages_count or len(pages),
            status=chapter.status,
            published_at=chapter.published_at,
            scheduled_at=chapter.scheduled_at,
            badges=build_badges(chapter_gate(chapter), viewer.role, now),
            pages=[
                PageOut(number=p.page_number, image_url=p.image_url, width=p.width, height=p.height)
                for p in pages
            ],
            prev_chapter_id=prev_id,
            next_chapter_id=next_id,
        )

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def upcoming_schedule(self, now: datetime, limit: int = 100) -> list[ScheduleItemOut]:
        rows = (
            self.db.query(Chapter, Manhwa)
            .join(Manhwa, Manhwa.id == Chapter.manhwa_id)
            .filter(Chapter.status == "scheduled", Chapter.scheduled_at > now)
            .order_by(Chapter.scheduled_at.asc())
            .limit(limit)
            .all()
        )
        return [
            ScheduleItemOut(
                manhwa_id=manhwa.id,
                manhwa_title=manhwa.title,
                cover_image=manhwa.cover_image,
                chapter_id=chapter.id,
                chapter_number=chapter.chapter_number,
                title=chapter.title or "",
                scheduled_at=chapter.scheduled_at,
                vip_only=bool(chapter.vip_only),
                public_available_at=chapter.public_available_at,
            )
            for chapter, manhwa in rows
        ]

    def schedule_by_manhwa(self, now: datetime, limit: int = 100) -> list[ScheduleGroupOut]:
        """Upcoming chapters grouped per title; groups ordered by their nearest release."""
        groups: dict[str, ScheduleGroupOut] = {}
        for item in self.upcoming_schedule(now, limit):
            group = groups.get(item.manhwa_id)
            if group is None:
                group = groups[item.manhwa_id] = ScheduleGroupOut(
                    manhwa_id=item.manhwa_id,
                    manhwa_title=item.manhwa_title,
                    cover_image=item.cover_image,
                    chapters=[],
                )
            group.chapters.append(item)
        return list(groups.values())
