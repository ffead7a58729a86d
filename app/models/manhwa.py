from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from app.db.base import Base


class Manhwa(Base):
    __tablename__ = "manhwa"

    id = Column(String, primary_key=True)  # slug, e.g. "lycar-ta-vidma"
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    short_description = Column(Text, nullable=True)
    cover_image = Column(String, nullable=True)
    bg_image = Column(String, nullable=True)
    char_image = Column(String, nullable=True)
    status = Column(String(32), nullable=False, default="ongoing")  # ongoing | completed | hiatus
    type = Column(String(32), nullable=False, default="manhwa")  # manhwa | manga | manhua
    publication_type = Column(String(32), nullable=True)
    tags = Column(JSONB, nullable=False, default=list)
    rating = Column(Float, nullable=False, default=0.0)
    schedule_day = Column(String(8), nullable=True)  # ПН, ВТ, ...
    schedule_label = Column(String(32), nullable=True)  # Понеділок, ...
    schedule_note = Column(String, nullable=True)
    last_chapter_date = Column(DateTime(timezone=True), nullable=True)

    # VIP gating (see app.access.policy)
    vip_only = Column(Boolean, nullable=False, default=False)
    vip_early_days = Column(Integer, nullable=False, default=0)
    published_at = Column(DateTime(timezone=True), nullable=True)
    public_available_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    chapters = relationship(
        "Chapter",
        back_populates="manhwa",
        cascade="all, delete-orphan",
        order_by="Chapter.chapter_number",
    )
