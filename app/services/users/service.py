import calendar
import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.access.errors import AccessPolicyError
from app.access.models import Role
from app.access.policy import parse_role
from app.models.user import User
from app.services.audit.service import AuditService
from app.services.errors import AdminInputError

logger = logging.getLogger(__name__)

ROLE_DURATION_TYPES = ("permanent", "month", "custom_days")


def add_months(value: datetime, months: int) -> datetime:
    """Calendar months; day clamped to the target month's length (31 Jan + 1 -> 28/29 Feb)."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def compute_role_expiration(duration_type: str, now: datetime, custom_days: int | None = None) -> datetime | None:
    if duration_type == "permanent":
        return None
    if duration_type == "month":
        return add_months(now, 1)
    if duration_type == "custom_days":
        if isinstance(custom_days, bool) or not isinstance(custom_days, int) or custom_days < 1:
            raise AdminInputError("customDays must be a positive integer")
        return now + timedelta(days=custom_days)
    raise AdminInputError(f"Invalid durationType: {duration_type}")


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id).one_or_none()

    def list(
        self,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        role: str | None = None,
    ) -> tuple[list[User], int]:
        q = self.db.query(User)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(User.email.ilike(pattern), User.username.ilike(pattern), User.id.ilike(pattern)))
        if role:
            q = q.filter(User.role == role)
        total = q.count()
        rows = (
            q.order_by(User.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    def set_role(
        self,
        user: User,
        role: str,
        duration_type: str,
        now: datetime,
        custom_days: int | None = None,
        actor_id: str | None = None,
        invalidate: Callable[[str], None] | None = None,
    ) -> User:
        """
        Назначает роль. 'user' всегда бессрочно; vip/admin: permanent, month или custom_days.
        invalidate: сброс кэша ролей, чтобы понижение было видно сразу.
        """
        try:
            new_role = parse_role(role)
        except AccessPolicyError as e:
            raise AdminInputError(str(e)) from None
        if duration_type not in ROLE_DURATION_TYPES:
            raise AdminInputError(f"Invalid durationType: {duration_type}")

        if new_role is Role.USER:
            duration_type, expiration = "permanent", None
        else:
            expiration = compute_role_expiration(duration_type, now, custom_days)

        old_role = user.role
        user.role = new_role.value
        user.role_duration_type = duration_type
        user.role_expiration = expiration
        self.db.add(user)
        AuditService(self.db).log(
            actor_id,
            "role_change",
            "user",
            user.id,
            {
                "old_role": old_role,
                "new_role": new_role.value,
                "duration_type": duration_type,
                "role_expiration": expiration.isoformat() if expiration else None,
            },
            commit=False,
        )
        self.db.commit()
        self.db.refresh(user)

        if invalidate is not None:
            invalidate(user.id)
        logger.info("role_changed", extra={"user_id": user.id, "role": new_role.value, "source": actor_id})
        return user
