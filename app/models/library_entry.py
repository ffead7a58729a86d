from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from app.db.base import Base


LIBRARY_STATUSES = ("reading", "planned", "completed", "rereading", "postponed", "dropped")

LIBRARY_STATUS_LABELS = {
    "reading": "Читаю",
    "planned": "В планах",
    "completed": "Прочитано",
    "rereading": "Перечитую",
    "postponed": "Відкладено",
    "dropped": "Покинуто",
}


class LibraryEntry(Base):
    __tablename__ = "user_manhwa_list"
    __table_args__ = (
        UniqueConstraint("user_id", "manhwa_id", name="uq_user_manhwa_list_user_manhwa"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    manhwa_id = Column(String, ForeignKey("manhwa.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
