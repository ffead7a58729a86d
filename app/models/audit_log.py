from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from app.db.base import Base


class AuditLog(Base):
    """Admin actions: role changes, chapter publish/schedule, content edits."""

    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    actor_id = Column(String, nullable=True, index=True)
    action = Column(String, nullable=False)  # role_change | chapter_publish | chapter_schedule | ...
    entity_type = Column(String, nullable=False)  # user | manhwa | chapter
    entity_id = Column(String, nullable=True)
    payload = Column(JSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
