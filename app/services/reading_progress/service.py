"""
ReadingProgressService: per (user, manhwa) position, read chapters, "continue reading".
Callers pass a chapter already cleared by CatalogService.authorize_chapter.

read_chapters keeps the newest ids; ids pushed out by the cap are folded into
archived_ranges by chapter number, so is_chapter_read still sees them.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.chapter import Chapter
from app.models.manhwa import Manhwa
from app.models.reading_progress import ReadingProgress
from app.schemas.progress import ArchivedRange, ContinueReadingItemOut, ProgressOut

logger = logging.getLogger(__name__)


def append_read_chapter(read_ids: Iterable, chapter_id: str, cap: int) -> tuple[list[str], list[str]]:
    """Dedup (ids normalised to str), append, keep the newest `cap` ids. Returns (kept, evicted)."""
    ids: list[str] = []
    seen: set[str] = set()
    for raw in read_ids or []:
        value = str(raw)
        if value not in seen:
            seen.add(value)
            ids.append(value)
    chapter_id = str(chapter_id)
    if chapter_id not in seen:
        ids.append(chapter_id)
    if len(ids) > cap:
        return ids[-cap:], ids[:-cap]
    return ids, []


def collapse_to_ranges(numbers: Iterable[float]) -> list[dict]:
    """[1, 2, 3, 7] -> [{s: 1, e: 3}, {s: 7, e: 7}]; numbers at most 1 apart join a range."""
    ranges: list[dict] = []
    for n in sorted(set(numbers)):
        if ranges and n <= ranges[-1]["e"] + 1:
            ranges[-1]["e"] = max(ranges[-1]["e"], n)
        else:
            ranges.append({"s": n, "e": n})
    return ranges


def merge_ranges(existing: Iterable[dict], added: Iterable[dict]) -> list[dict]:
    merged: list[dict] = []
    for r in sorted([*(existing or []), *(added or [])], key=lambda r: r["s"]):
        if merged and r["s"] <= merged[-1]["e"] + 1:
            merged[-1]["e"] = max(merged[-1]["e"], r["e"])
        else:
            merged.append({"s": r["s"], "e": r["e"]})
    return merged


def archived_count(ranges: Iterable[dict]) -> int:
    return sum(int(r["e"] - r["s"]) + 1 for r in ranges or [])


def is_in_ranges(chapter_number: float, ranges: Iterable[dict]) -> bool:
    return any(r["s"] <= chapter_number <= r["e"] for r in ranges or [])


def is_chapter_read(chapter_id: str, chapter_number: float, read_ids: Iterable, ranges: Iterable[dict]) -> bool:
    if str(chapter_id) in {str(x) for x in read_ids or []}:
        return True
    return is_in_ranges(chapter_number, ranges)


def to_progress_out(row: ReadingProgress) -> ProgressOut:
    return ProgressOut(
        manhwa_id=row.manhwa_id,
        current_chapter_id=str(row.chapter_id),
        current_chapter_number=row.chapter_number or 0,
        current_page=row.page_number or 1,
        read_chapter_ids=[str(x) for x in row.read_chapters or []],
        archived_ranges=[ArchivedRange(s=r["s"], e=r["e"]) for r in row.archived_ranges or []],
        started_at=row.started_at,
        last_read_at=row.last_read_at,
    )


class ReadingProgressService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, user_id: str, manhwa_id: str) -> ReadingProgress | None:
        return (
            self.db.query(ReadingProgress)
            .filter(ReadingProgress.user_id == user_id, ReadingProgress.manhwa_id == manhwa_id)
            .one_or_none()
        )

    def get(self, user_id: str, manhwa_id: str) -> ProgressOut | None:
        row = self._get(user_id, manhwa_id)
        return to_progress_out(row) if row else None

    def read_state(self, user_id: str, manhwa_id: str) -> tuple[set[str], list[dict]]:
        """(read chapter ids, archived ranges) for per-chapter "read" marks; empty when nothing was read."""
        row = self._get(user_id, manhwa_id)
        if row is None:
            return set(), []
        return {str(x) for x in row.read_chapters or []}, list(row.archived_ranges or [])

    def _chapter_numbers(self, chapter_ids: list[str]) -> list[float]:
        rows = self.db.query(Chapter.chapter_number).filter(Chapter.id.in_(chapter_ids)).all()
        return [number for (number,) in rows if number is not None]

    def _upsert(
        self,
        user_id: str,
        chapter: Chapter,
        now: datetime,
        page_number: int | None,
        move_position: bool,
    ) -> ReadingProgress:
        row = self._get(user_id, chapter.manhwa_id)
        if row is None:
            row = ReadingProgress(
                user_id=user_id,
                manhwa_id=chapter.manhwa_id,
                chapter_id=chapter.id,
                chapter_number=chapter.chapter_number,
                page_number=page_number or 1,
                read_chapters=[],
                archived_ranges=[],
                started_at=now,
            )
        elif move_position:
            row.chapter_id = chapter.id
            row.chapter_number = chapter.chapter_number
            row.page_number = page_number or 1

        read_ids, evicted = append_read_chapter(row.read_chapters, chapter.id, settings.reading_max_read_chapters)
        if evicted:
            row.archived_ranges = merge_ranges(row.archived_ranges, collapse_to_ranges(self._chapter_numbers(evicted)))
        # new lists so the JSONB change is tracked
        row.read_chapters = read_ids
        row.read_count = len(read_ids) + archived_count(row.archived_ranges)
        row.last_read_at = now
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def save_progress(self, user_id: str, chapter: Chapter, page_number: int, now: datetime) -> ProgressOut:
        row = self._upsert(user_id, chapter, now, page_number, move_position=True)
        logger.info(
            "progress_saved",
            extra={"user_id": user_id, "manhwa_id": chapter.manhwa_id, "chapter_id": chapter.id},
        )
        return to_progress_out(row)

    def mark_read(self, user_id: str, chapter: Chapter, now: datetime) -> ProgressOut:
        row = self._upsert(user_id, chapter, now, None, move_position=False)
        return to_progress_out(row)

    def continue_reading(self, user_id: str, limit: int | None = None) -> list[ContinueReadingItemOut]:
        limit = limit or settings.reading_continue_limit
        rows = (
            self.db.query(ReadingProgress, Manhwa)
            .join(Manhwa, Manhwa.id == ReadingProgress.manhwa_id)
            .filter(ReadingProgress.user_id == user_id)
            .order_by(ReadingProgress.last_read_at.desc())
            .limit(limit)
            .all()
        )
        return [
            ContinueReadingItemOut(
                manhwa_id=progress.manhwa_id,
                chapter_id=str(progress.chapter_id),
                chapter_number=progress.chapter_number or 0,
                page_number=progress.page_number or 1,
                last_read_at=progress.last_read_at,
                manhwa_title=manhwa.title,
                cover_image=manhwa.cover_image,
            )
            for progress, manhwa in rows
        ]
