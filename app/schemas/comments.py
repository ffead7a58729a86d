from __future__ import annotations

from datetime import datetime

from pydantic import Field

from app.schemas.catalog import CamelModel


class CommentIn(CamelModel):
    content: str = Field(..., min_length=1)
    parent_comment_id: str | None = None


class CommentOut(CamelModel):
    id: str
    manhwa_id: str
    chapter_id: str | None = None
    parent_comment_id: str | None = None
    user_id: str
    author_name: str
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    replies: list[CommentOut] = []
