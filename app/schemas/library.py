from datetime import datetime
from typing import Literal

from app.schemas.catalog import CamelModel

LibraryStatus = Literal["reading", "planned", "completed", "rereading", "postponed", "dropped"]


class LibraryUpsertIn(CamelModel):
    status: LibraryStatus


class LibraryEntryOut(CamelModel):
    id: str
    manhwa_id: str
    status: LibraryStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None
    manhwa_title: str | None = None
    manhwa_cover: str | None = None
    manhwa_type: str | None = None
    last_read_chapter_id: str | None = None
    last_read_chapter_number: float | None = None
    last_read_at: datetime | None = None


class LibraryGroupOut(CamelModel):
    status: LibraryStatus
    label: str
    count: int
    items: list[LibraryEntryOut]


class LibraryStatusOut(CamelModel):
    manhwa_id: str
    status: LibraryStatus | None = None
