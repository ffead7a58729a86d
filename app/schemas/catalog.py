from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.access.badges import Badge
from app.access.models import DenialReason


class CamelModel(BaseModel):
    """Public API speaks camelCase (client contract); Python side stays snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleDayOut(CamelModel):
    day_big: str
    day_label: str
    note: str = ""


class GateOut(CamelModel):
    vip_only: bool
    vip_early_days: int
    public_available_at: datetime | None = None


class AccessStateOut(CamelModel):
    """Per-unit access state for list views; never carries the gated payload."""

    locked: bool
    reason: DenialReason | None = None
    available_at: datetime | None = None
    badges: list[Badge] = []


class ManhwaCardOut(CamelModel):
    id: str
    title: str
    short_description: str | None = None
    cover_image: str | None = None
    status: str
    type: str
    rating: float
    tags: list[str] = []
    schedule_day: ScheduleDayOut | None = None
    last_chapter_date: datetime | None = None
    chapters_count: int = 0
    gate: GateOut
    access: AccessStateOut


class ChapterSummaryOut(CamelModel):
    id: str
    chapter_number: float
    title: str
    description: str = ""
    pages_count: int
    status: str
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    upcoming: bool = False
    read: bool = False  # only for authenticated viewers with saved progress
    gate: GateOut
    access: AccessStateOut


class ManhwaDetailOut(CamelModel):
    id: str
    title: str
    description: str
    short_description: str | None = None
    cover_image: str | None = None
    bg_image: str | None = None
    char_image: str | None = None
    status: str
    type: str
    publication_type: str | None = None
    rating: float
    rating_count: int
    tags: list[str] = []
    schedule_day: ScheduleDayOut | None = None
    created_at: datetime | None = None
    gate: GateOut
    badges: list[Badge] = []
    chapters: list[ChapterSummaryOut] = []


class PageOut(CamelModel):
    number: int
    image_url: str
    width: int | None = None
    height: int | None = None


class ChapterReadOut(CamelModel):
    id: str
    manhwa_id: str
    chapter_number: float
    title: str
    description: str | None = None
    pages_count: int
    status: str
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    badges: list[Badge] = []
    pages: list[PageOut]
    prev_chapter_id: str | None = None
    next_chapter_id: str | None = None


class ScheduleItemOut(CamelModel):
    manhwa_id: str
    manhwa_title: str
    cover_image: str | None = None
    chapter_id: str
    chapter_number: float
    title: str
    scheduled_at: datetime
    vip_only: bool
    public_available_at: datetime | None = None


class RateIn(CamelModel):
    rating: int


class RateOut(CamelModel):
    success: bool = True
    user_rating: int
    new_average_rating: float
    total_ratings: int


class LockedOut(BaseModel):
    """403 body: {error, message, availableAt?}"""

    error: DenialReason
    message: str
    availableAt: datetime | None = None


class ScheduleGroupOut(CamelModel):
    manhwa_id: str
    manhwa_title: str
    cover_image: str | None = None
    chapters: list[ScheduleItemOut]
