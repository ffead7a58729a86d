"""
Public reader API: catalog, schedule, manhwa detail, chapter reader, rating.
Denials surface as 403 {error, message, availableAt?} via the ContentLockedError handler.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.access.guard import enforce_access
from app.access.models import Viewer
from app.api.deps import get_now, get_viewer, require_user
from app.core.config import settings
from app.db.session import get_db
from app.schemas.catalog import (
    ChapterReadOut,
    LockedOut,
    ManhwaCardOut,
    ManhwaDetailOut,
    RateIn,
    RateOut,
    ScheduleGroupOut,
)
from app.services.catalog.service import CatalogService, manhwa_gate
from app.services.ratings.service import RatingService, RatingValueError

router = APIRouter(prefix="/public", tags=["public"])

LOCKED_RESPONSES = {403: {"model": LockedOut, "description": "VIP_ONLY or EARLY_ACCESS"}}


@router.get("", response_model=list[ManhwaCardOut], response_model_by_alias=True)
def list_catalog(
    limit: int = Query(50, ge=1, le=settings.catalog_page_size_max),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
    now: datetime = Depends(get_now),
):
    return CatalogService(db).list_catalog(viewer, now, limit=limit, offset=offset)


# before /{manhwa_id}
@router.get("/schedule", response_model=list[ScheduleGroupOut], response_model_by_alias=True)
def get_schedule(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return CatalogService(db).schedule_by_manhwa(now, limit=limit)


@router.get(
    "/{manhwa_id}",
    response_model=ManhwaDetailOut,
    response_model_by_alias=True,
    responses=LOCKED_RESPONSES,
)
def get_manhwa(
    manhwa_id: str,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
    now: datetime = Depends(get_now),
):
    detail = CatalogService(db).get_manhwa_detail(manhwa_id, viewer, now)
    if detail is None:
        raise HTTPException(404, "Manhwa not found")
    return detail


@router.get(
    "/{manhwa_id}/chapters/{chapter_id}",
    response_model=ChapterReadOut,
    response_model_by_alias=True,
    responses=LOCKED_RESPONSES,
)
def read_chapter(
    manhwa_id: str,
    chapter_id: str,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
    now: datetime = Depends(get_now),
):
    chapter = CatalogService(db).read_chapter(manhwa_id, chapter_id, viewer, now)
    if chapter is None:
        raise HTTPException(404, "Chapter not found")
    return chapter


@router.post(
    "/{manhwa_id}/rate",
    response_model=RateOut,
    response_model_by_alias=True,
    responses=LOCKED_RESPONSES,
)
def rate_manhwa(
    manhwa_id: str,
    body: RateIn,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(require_user),
    now: datetime = Depends(get_now),
):
    manhwa = CatalogService(db).get_manhwa(manhwa_id)
    if manhwa is None:
        raise HTTPException(404, "Manhwa not found")
    enforce_access(manhwa_gate(manhwa), viewer, now)
    try:
        average, total = RatingService(db).rate(manhwa, viewer.user_id, body.rating)
    except RatingValueError as e:
        raise HTTPException(400, str(e))
    return RateOut(success=True, user_rating=body.rating, new_average_rating=average, total_ratings=total)
