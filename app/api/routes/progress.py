"""
Reading progress. Saving requires the same access as reading: a locked chapter
answers 403 and leaves progress untouched.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.access.models import Viewer
from app.api.deps import get_now, require_user
from app.core.config import settings
from app.db.session import get_db
from app.schemas.catalog import LockedOut
from app.schemas.progress import ContinueReadingItemOut, MarkReadIn, ProgressOut, SaveProgressIn
from app.services.catalog.service import CatalogService
from app.services.reading_progress.service import ReadingProgressService

router = APIRouter(prefix="/progress", tags=["progress"])

LOCKED_RESPONSES = {403: {"model": LockedOut}}


def _authorized_chapter(db: Session, manhwa_id: str, chapter_id: str, viewer: Viewer, now: datetime):
    chapter = CatalogService(db).authorize_chapter(manhwa_id, chapter_id, viewer, now)
    if chapter is None:
        raise HTTPException(404, "Chapter not found")
    return chapter


@router.post("", response_model=ProgressOut, response_model_by_alias=True, responses=LOCKED_RESPONSES)
def save_progress(
    body: SaveProgressIn,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(require_user),
    now: datetime = Depends(get_now),
):
    chapter = _authorized_chapter(db, body.manhwa_id, body.chapter_id, viewer, now)
    return ReadingProgressService(db).save_progress(viewer.user_id, chapter, body.page_number, now)


@router.post("/read", response_model=ProgressOut, response_model_by_alias=True, responses=LOCKED_RESPONSES)
def mark_chapter_read(
    body: MarkReadIn,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(require_user),
    now: datetime = Depends(get_now),
):
    chapter = _authorized_chapter(db, body.manhwa_id, body.chapter_id, viewer, now)
    return ReadingProgressService(db).mark_read(viewer.user_id, chapter, now)


# before /{manhwa_id}
@router.get("/continue", response_model=list[ContinueReadingItemOut], response_model_by_alias=True)
def continue_reading(
    limit: int = Query(settings.reading_continue_limit, ge=1, le=50),
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(require_user),
):
    return ReadingProgressService(db).continue_reading(viewer.user_id, limit)


@router.get("/{manhwa_id}", response_model=ProgressOut | None, response_model_by_alias=True)
def get_progress(manhwa_id: str, db: Session = Depends(get_db), viewer: Viewer = Depends(require_user)):
    return ReadingProgressService(db).get(viewer.user_id, manhwa_id)
