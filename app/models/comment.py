from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from app.db.base import Base


class Comment(Base):
    """Comment on a title (chapter_id is NULL) or on one chapter; replies point at a root comment."""

    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_thread", "manhwa_id", "chapter_id", "created_at"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    manhwa_id = Column(String, ForeignKey("manhwa.id", ondelete="CASCADE"), nullable=False)
    chapter_id = Column(String, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=True)
    # replies go one level deep; deleting a root removes its replies
    parent_comment_id = Column(String, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
