from datetime import datetime

from pydantic import Field

from app.schemas.catalog import CamelModel


class ArchivedRange(CamelModel):
    s: float
    e: float


class SaveProgressIn(CamelModel):
    manhwa_id: str
    chapter_id: str
    page_number: int = Field(1, ge=1)


class MarkReadIn(CamelModel):
    manhwa_id: str
    chapter_id: str


class ProgressOut(CamelModel):
    manhwa_id: str
    current_chapter_id: str
    current_chapter_number: float
    current_page: int
    read_chapter_ids: list[str]
    archived_ranges: list[ArchivedRange] = []
    started_at: datetime | None = None
    last_read_at: datetime | None = None


class ContinueReadingItemOut(CamelModel):
    manhwa_id: str
    chapter_id: str
    chapter_number: float
    page_number: int
    last_read_at: datetime
    manhwa_title: str | None = None
    cover_image: str | None = None
