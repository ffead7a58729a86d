from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


CHAPTER_STATUSES = ("draft", "scheduled", "published")


class Chapter(Base):
    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("manhwa_id", "chapter_number", name="uq_chapters_manhwa_number"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    manhwa_id = Column(String, ForeignKey("manhwa.id", ondelete="CASCADE"), nullable=False, index=True)
    chapter_number = Column(Float, nullable=False)  # 12.5 for extra chapters
    title = Column(String, nullable=False, default="")
    description = Column(Text, nullable=True)
    pages_count = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False, default="draft", index=True)  # draft | scheduled | published
    published_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)

    # VIP gating (see app.access.policy)
    vip_only = Column(Boolean, nullable=False, default=False)
    vip_early_days = Column(Integer, nullable=False, default=0)
    public_available_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    manhwa = relationship("Manhwa", back_populates="chapters")
    pages = relationship(
        "ChapterPage",
        back_populates="chapter",
        cascade="all, delete-orphan",
        order_by="ChapterPage.page_number",
    )

    def is_readable(self, now: datetime) -> bool:
        """published, or scheduled with scheduled_at already due."""
        if self.status == "published":
            return True
        if self.status == "scheduled" and self.scheduled_at is not None:
            scheduled_at = self.scheduled_at
            if scheduled_at.tzinfo is None:
                scheduled_at = scheduled_at.replace(tzinfo=timezone.utc)
            return scheduled_at <= now
        return False


class ChapterPage(Base):
    __tablename__ = "chapter_pages"
    __table_args__ = (
        UniqueConstraint("chapter_id", "page_number", name="uq_chapter_pages_chapter_page"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    chapter_id = Column(String, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)
    page_number = Column(Integer, nullable=False)
    image_url = Column(String, nullable=False)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    chapter = relationship("Chapter", back_populates="pages")
