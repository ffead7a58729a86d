"""
Admin API schemas: manhwa / chapters / pages / publish / users / audit.
"""
from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from app.schemas.catalog import CamelModel

PublishAction = Literal["publish", "schedule"]
RoleDurationType = Literal["permanent", "month", "custom_days"]


class PaginatedResponse(CamelModel):
    """Paginated response wrapper."""
    items: list[Any]
    total: int
    page: int
    page_size: int
    pages: int


# ---------- Manhwa ----------
class ManhwaCreateIn(CamelModel):
    id: str = Field(min_length=1, max_length=200, pattern=r"^[a-z0-9][a-z0-9-]*$")
    title: str = Field(min_length=1)
    description: str = ""
    short_description: str | None = None
    cover_image: str | None = None
    bg_image: str | None = None
    char_image: str | None = None
    status: str = "ongoing"
    type: str = "manhwa"
    publication_type: str | None = None
    tags: list[str] = []
    schedule_day: str | None = None
    schedule_label: str | None = None
    schedule_note: str | None = None
    vip_only: bool = False
    vip_early_days: int = Field(0, ge=0)


class ManhwaUpdateIn(CamelModel):
    """Partial update; only fields present in the body are applied."""
    title: str | None = None
    description: str | None = None
    short_description: str | None = None
    cover_image: str | None = None
    bg_image: str | None = None
    char_image: str | None = None
    status: str | None = None
    type: str | None = None
    publication_type: str | None = None
    tags: list[str] | None = None
    schedule_day: str | None = None
    schedule_label: str | None = None
    schedule_note: str | None = None
    vip_only: bool | None = None
    vip_early_days: int | None = Field(None, ge=0)


class ManhwaAdminOut(CamelModel):
    id: str
    title: str
    description: str
    short_description: str | None = None
    cover_image: str | None = None
    status: str
    type: str
    tags: list[str] = []
    rating: float
    schedule_day: str | None = None
    schedule_label: str | None = None
    schedule_note: str | None = None
    vip_only: bool
    vip_early_days: int
    published_at: datetime | None = None
    public_available_at: datetime | None = None
    last_chapter_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------- Chapters ----------
class ChapterCreateIn(CamelModel):
    chapter_number: float = Field(ge=0)
    title: str = ""
    description: str | None = None
    vip_only: bool = False
    vip_early_days: int = Field(0, ge=0)


class ChapterUpdateIn(CamelModel):
    chapter_number: float | None = Field(None, ge=0)
    title: str | None = None
    description: str | None = None
    vip_only: bool | None = None
    vip_early_days: int | None = Field(None, ge=0)


class PageIn(CamelModel):
    image_url: str = Field(min_length=1)
    width: int | None = None
    height: int | None = None


class PagesReplaceIn(CamelModel):
    """Page order = list order; numbering restarts from 1."""
    pages: list[PageIn]


class PageAdminOut(CamelModel):
    id: str
    page_number: int
    image_url: str
    width: int | None = None
    height: int | None = None


class ChapterAdminOut(CamelModel):
    id: str
    manhwa_id: str
    chapter_number: float
    title: str
    description: str | None = None
    pages_count: int
    status: str
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    vip_only: bool
    vip_early_days: int
    public_available_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pages: list[PageAdminOut] | None = None


class PublishIn(CamelModel):
    action: str
    scheduled_at: datetime | None = None
    vip_only: bool | None = None
    vip_early_days: int | None = None


# ---------- Users ----------
class UserAdminOut(CamelModel):
    id: str
    email: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    role: str
    role_duration_type: str
    role_expiration: datetime | None = None
    created_at: datetime | None = None


class RoleChangeIn(CamelModel):
    role: str
    duration_type: str = "permanent"
    custom_days: int | None = None


# ---------- Audit ----------
class AuditLogOut(CamelModel):
    id: str
    actor_id: str | None = None
    action: str
    entity_type: str
    entity_id: str | None = None
    payload: dict[str, Any] = {}
    created_at: datetime


class AdminCheckOut(CamelModel):
    is_admin: bool
    user_id: str | None = None
    role: str
