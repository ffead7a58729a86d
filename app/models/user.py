from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class User(Base):
    """Profile row; id is the identity provider's user id."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True, index=True)
    username = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    # user | vip | admin. Never taken from the client; see app.identity.resolver.
    role = Column(String(16), nullable=False, default="user", index=True)
    role_duration_type = Column(String(16), nullable=False, default="permanent")  # permanent | month | custom_days
    role_expiration = Column(DateTime(timezone=True), nullable=True)  # null = no expiry
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def is_role_expired(self, now: datetime) -> bool:
        """Elevated role with a past expiration falls back to 'user'."""
        if self.role_expiration is None:
            return False
        expiration = self.role_expiration
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return now >= expiration
