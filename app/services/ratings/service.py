import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.manhwa import Manhwa
from app.models.rating import ManhwaRating
from app.utils.metrics import ratings_submitted_total

logger = logging.getLogger(__name__)


class RatingValueError(ValueError):
    pass


class RatingService:
    def __init__(self, db: Session):
        self.db = db

    def validate(self, rating: int) -> int:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise RatingValueError("Rating must be an integer")
        if not settings.rating_min <= rating <= settings.rating_max:
            raise RatingValueError(f"Rating must be between {settings.rating_min} and {settings.rating_max}")
        return rating

    def _get_existing(self, user_id: str, manhwa_id: str) -> ManhwaRating | None:
        return (
            self.db.query(ManhwaRating)
            .filter(ManhwaRating.user_id == user_id, ManhwaRating.manhwa_id == manhwa_id)
            .one_or_none()
        )

    def rate(self, manhwa: Manhwa, user_id: str, rating: int) -> tuple[float, int]:
        """
        Upsert the user's rating, recompute the average (one decimal) and store it on the manhwa.
        Returns (new_average, total_ratings).
        """
        rating = self.validate(rating)
        existing = self._get_existing(user_id, manhwa.id)
        if existing:
            existing.rating = rating
            self.db.add(existing)
        else:
            self.db.add(ManhwaRating(user_id=user_id, manhwa_id=manhwa.id, rating=rating))
        try:
            self.db.flush()
        except IntegrityError:
            # concurrent first vote from the same user
            self.db.rollback()
            existing = self._get_existing(user_id, manhwa.id)
            if existing is None:
                raise
            existing.rating = rating
            self.db.add(existing)
            self.db.flush()

        avg, total = (
            self.db.query(func.avg(ManhwaRating.rating), func.count(ManhwaRating.id))
            .filter(ManhwaRating.manhwa_id == manhwa.id)
            .one()
        )
        new_average = round(float(avg or 0), 1)
        manhwa.rating = new_average
        self.db.add(manhwa)
        self.db.commit()

        ratings_submitted_total.inc()
        logger.info("rating_saved", extra={"manhwa_id": manhwa.id, "user_id": user_id})
        return new_average, int(total or 0)
