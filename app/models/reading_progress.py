from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import JSONB

from app.db.base import Base


class ReadingProgress(Base):
    __tablename__ = "reading_progress"

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    manhwa_id = Column(String, ForeignKey("manhwa.id", ondelete="CASCADE"), primary_key=True)
    chapter_id = Column(String, nullable=False)
    chapter_number = Column(Float, nullable=False, default=0)
    page_number = Column(Integer, nullable=False, default=1)
    read_chapters = Column(JSONB, nullable=False, default=list)  # chapter ids, oldest first
    archived_ranges = Column(JSONB, nullable=False, default=list)  # [{"s": 1, "e": 120}]
    read_count = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_read_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
