import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.library_entry import LIBRARY_STATUS_LABELS, LIBRARY_STATUSES, LibraryEntry
from app.models.manhwa import Manhwa
from app.models.reading_progress import ReadingProgress
from app.schemas.library import LibraryEntryOut, LibraryGroupOut

logger = logging.getLogger(__name__)


class LibraryService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, user_id: str, manhwa_id: str) -> LibraryEntry | None:
        return (
            self.db.query(LibraryEntry)
            .filter(LibraryEntry.user_id == user_id, LibraryEntry.manhwa_id == manhwa_id)
            .one_or_none()
        )

    def upsert(self, user_id: str, manhwa_id: str, status: str) -> LibraryEntry:
        """Idempotent: one entry per (user, manhwa); status is overwritten."""
        if status not in LIBRARY_STATUSES:
            raise ValueError(f"Invalid library status: {status}")
        entry = self._get(user_id, manhwa_id)
        if entry is None:
            entry = LibraryEntry(user_id=user_id, manhwa_id=manhwa_id, status=status)
        else:
            entry.status = status
        try:
            self.db.add(entry)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            entry = self._get(user_id, manhwa_id)
            entry.status = status
            self.db.add(entry)
            self.db.commit()
        self.db.refresh(entry)
        logger.info("library_upsert", extra={"user_id": user_id, "manhwa_id": manhwa_id})
        return entry

    def remove(self, user_id: str, manhwa_id: str) -> bool:
        entry = self._get(user_id, manhwa_id)
        if entry is None:
            return False
        self.db.delete(entry)
        self.db.commit()
        return True

    def get_status(self, user_id: str, manhwa_id: str) -> str | None:
        entry = self._get(user_id, manhwa_id)
        return entry.status if entry else None

    def list_grouped(self, user_id: str) -> list[LibraryGroupOut]:
        """Entries grouped by status (fixed tab order), enriched with title and last read chapter."""
        rows = (
            self.db.query(LibraryEntry, Manhwa, ReadingProgress)
            .join(Manhwa, Manhwa.id == LibraryEntry.manhwa_id)
            .outerjoin(
                ReadingProgress,
                (ReadingProgress.manhwa_id == LibraryEntry.manhwa_id)
                & (ReadingProgress.user_id == LibraryEntry.user_id),
            )
            .filter(LibraryEntry.user_id == user_id)
            .order_by(LibraryEntry.updated_at.desc())
            .all()
        )
        by_status: dict[str, list[LibraryEntryOut]] = {s: [] for s in LIBRARY_STATUSES}
        for entry, manhwa, progress in rows:
            by_status.setdefault(entry.status, []).append(
                LibraryEntryOut(
                    id=entry.id,
                    manhwa_id=entry.manhwa_id,
                    status=entry.status,
                    created_at=entry.created_at,
                    updated_at=entry.updated_at,
                    manhwa_title=manhwa.title,
                    manhwa_cover=manhwa.cover_image,
                    manhwa_type=manhwa.type,
                    last_read_chapter_id=progress.chapter_id if progress else None,
                    last_read_chapter_number=progress.chapter_number if progress else None,
                    last_read_at=progress.last_read_at if progress else None,
                )
            )
        return [
            LibraryGroupOut(
                status=status,
                label=LIBRARY_STATUS_LABELS[status],
                count=len(by_status[status]),
                items=by_status[status],
            )
            for status in LIBRARY_STATUSES
        ]
