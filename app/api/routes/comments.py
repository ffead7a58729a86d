"""
Comments under a title and under a chapter.
Reading or writing a thread needs the same access as the content it hangs on:
title gate for manhwa comments, title + chapter gates for chapter comments.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.access.guard import enforce_access
from app.access.models import Viewer
from app.api.deps import get_now, get_viewer, require_user
from app.db.session import get_db
from app.schemas.catalog import LockedOut
from app.schemas.comments import CommentIn, CommentOut
from app.services.catalog.service import CatalogService, manhwa_gate
from app.services.comments.service import CommentPermissionError, CommentService, CommentValueError

router = APIRouter(tags=["comments"])

LOCKED_RESPONSES = {403: {"model": LockedOut}}


def _accessible_manhwa_id(db: Session, manhwa_id: str, viewer: Viewer, now: datetime) -> str:
    manhwa = CatalogService(db).get_manhwa(manhwa_id)
    if manhwa is None:
        raise HTTPException(404, "Manhwa not found")
    enforce_access(manhwa_gate(manhwa), viewer, now)
    return manhwa.id


def _accessible_chapter_id(db: Session, manhwa_id: str, chapter_id: str, viewer: Viewer, now: datetime) -> str:
    chapter = CatalogService(db).authorize_chapter(manhwa_id, chapter_id, viewer, now)
    if chapter is None:
        raise HTTPException(404, "Chapter not found")
    return chapter.id


def _add(db: Session, viewer: Viewer, manhwa_id: str, body: CommentIn, chapter_id: str | None = None) -> CommentOut:
    try:
        return CommentService(db).add(
            viewer.user_id,
            manhwa_id,
            body.content,
            chapter_id=chapter_id,
            parent_comment_id=body.parent_comment_id,
        )
    except CommentValueError as e:
        raise HTTPException(400, str(e))


@router.get(
    "/public/{manhwa_id}/comments",
    response_model=list[CommentOut],
    response_model_by_alias=True,
    responses=LOCKED_RESPONSES,
)
def list_manhwa_comments(
    manhwa_id: str,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
    now: datetime = Depends(get_now),
):
    manhwa_id = _accessible_manhwa_id(db, manhwa_id, viewer, now)
    return CommentService(db).list_thread(manhwa_id)


@router.post(
    "/public/{manhwa_id}/comments",
    response_model=CommentOut,
    response_model_by_alias=True,
    status_code=201,
    responses=LOCKED_RESPONSES,
)
def add_manhwa_comment(
    manhwa_id: str,
    body: CommentIn,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(require_user),
    now: datetime = Depends(get_now),
):
    manhwa_id = _accessible_manhwa_id(db, manhwa_id, viewer, now)
    return _add(db, viewer, manhwa_id, body)


@router.get(
    "/public/{manhwa_id}/chapters/{chapter_id}/comments",
    response_model=list[CommentOut],
    response_model_by_alias=True,
    responses=LOCKED_RESPONSES,
)
def list_chapter_comments(
    manhwa_id: str,
    chapter_id: str,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(get_viewer),
    now: datetime = Depends(get_now),
):
    chapter_id = _accessible_chapter_id(db, manhwa_id, chapter_id, viewer, now)
    return CommentService(db).list_thread(manhwa_id, chapter_id)


@router.post(
    "/public/{manhwa_id}/chapters/{chapter_id}/comments",
    response_model=CommentOut,
    response_model_by_alias=True,
    status_code=201,
    responses=LOCKED_RESPONSES,
)
def add_chapter_comment(
    manhwa_id: str,
    chapter_id: str,
    body: CommentIn,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(require_user),
    now: datetime = Depends(get_now),
):
    chapter_id = _accessible_chapter_id(db, manhwa_id, chapter_id, viewer, now)
    return _add(db, viewer, manhwa_id, body, chapter_id=chapter_id)


@router.delete("/comments/{comment_id}")
def delete_comment(comment_id: str, db: Session = Depends(get_db), viewer: Viewer = Depends(require_user)):
    service = CommentService(db)
    comment = service.get(comment_id)
    if comment is None:
        raise HTTPException(404, "Comment not found")
    try:
        service.delete(comment, viewer)
    except CommentPermissionError as e:
        raise HTTPException(403, str(e))
    return {"ok": True}
