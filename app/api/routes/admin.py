"""
Admin API: manhwa, chapters, pages, publish/schedule, users and roles, audit.
Order: /users before /users/{id}.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.access.models import Role, Viewer
from app.api.deps import get_identity_resolver, get_now, get_viewer, require_admin
from app.db.session import get_db
from app.identity.resolver import IdentityResolver
from app.models.chapter import Chapter
from app.models.manhwa import Manhwa
from app.models.user import User
from app.schemas.admin import (
    AdminCheckOut,
    AuditLogOut,
    ChapterAdminOut,
    ChapterCreateIn,
    ChapterUpdateIn,
    ManhwaAdminOut,
    ManhwaCreateIn,
    ManhwaUpdateIn,
    PageAdminOut,
    PaginatedResponse,
    PagesReplaceIn,
    PublishIn,
    RoleChangeIn,
    UserAdminOut,
)
from app.services.audit.service import AuditService
from app.services.chapters.service import ChapterAdminService
from app.services.errors import AdminConflictError, AdminInputError
from app.services.manhwa.service import ManhwaAdminService
from app.services.users.service import UserService

# /check is open to any caller; everything else sits behind require_admin
check_router = APIRouter(prefix="/admin", tags=["admin"])
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _pages_total(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size if total else 0


def _manhwa_out(m: Manhwa) -> ManhwaAdminOut:
    return ManhwaAdminOut(
        id=m.id,
        title=m.title,
        description=m.description or "",
        short_description=m.short_description,
        cover_image=m.cover_image,
        status=m.status or "ongoing",
        type=m.type or "manhwa",
        tags=list(m.tags or []),
        rating=m.rating or 0.0,
        schedule_day=m.schedule_day,
        schedule_label=m.schedule_label,
        schedule_note=m.schedule_note,
        vip_only=bool(m.vip_only),
        vip_early_days=m.vip_early_days or 0,
        published_at=m.published_at,
        public_available_at=m.public_available_at,
        last_chapter_date=m.last_chapter_date,
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


def _chapter_out(ch: Chapter, pages: list | None = None) -> ChapterAdminOut:
    return ChapterAdminOut(
        id=ch.id,
        manhwa_id=ch.manhwa_id,
        chapter_number=ch.chapter_number,
        title=ch.title or "",
        description=ch.description,
        pages_count=ch.pages_count or 0,
        status=ch.status,
        published_at=ch.published_at,
        scheduled_at=ch.scheduled_at,
        vip_only=bool(ch.vip_only),
        vip_early_days=ch.vip_early_days or 0,
        public_available_at=ch.public_available_at,
        created_at=ch.created_at,
        updated_at=ch.updated_at,
        pages=[
            PageAdminOut(id=p.id, page_number=p.page_number, image_url=p.image_url, width=p.width, height=p.height)
            for p in pages
        ]
        if pages is not None
        else None,
    )


def _user_out(u: User) -> UserAdminOut:
    return UserAdminOut(
        id=u.id,
        email=u.email,
        username=u.username,
        avatar_url=u.avatar_url,
        role=u.role,
        role_duration_type=u.role_duration_type or "permanent",
        role_expiration=u.role_expiration,
        created_at=u.created_at,
    )


def _get_manhwa_or_404(db: Session, manhwa_id: str) -> Manhwa:
    manhwa = ManhwaAdminService(db).get(manhwa_id)
    if not manhwa:
        raise HTTPException(404, "Manhwa not found")
    return manhwa


def _get_chapter_or_404(db: Session, chapter_id: str) -> Chapter:
    chapter = ChapterAdminService(db).get(chapter_id)
    if not chapter:
        raise HTTPException(404, "Chapter not found")
    return chapter


# ---------- Check ----------
@check_router.get("/check", response_model=AdminCheckOut, response_model_by_alias=True)
def admin_check(viewer: Viewer = Depends(get_viewer)):
    return AdminCheckOut(is_admin=viewer.role is Role.ADMIN, user_id=viewer.user_id, role=viewer.role.value)


# ---------- Manhwa ----------
@router.get("/manhwa", response_model=PaginatedResponse, response_model_by_alias=True)
def manhwa_list(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
):
    rows, total = ManhwaAdminService(db).list(page=page, page_size=page_size, search=search)
    return PaginatedResponse(
        items=[_manhwa_out(m).model_dump(by_alias=True, mode="json") for m in rows],
        total=total,
        page=page,
        page_size=page_size,
        pages=_pages_total(total, page_size),
    )


@router.post("/manhwa", response_model=ManhwaAdminOut, response_model_by_alias=True, status_code=201)
def manhwa_create(
    body: ManhwaCreateIn,
    db: Session = Depends(get_db),
    admin: Viewer = Depends(require_admin),
    now: datetime = Depends(get_now),
):
    try:
        manhwa = ManhwaAdminService(db).create(body.model_dump(), now, actor_id=admin.user_id)
    except AdminConflictError as e:
        raise HTTPException(409, str(e))
    return _manhwa_out(manhwa)


@router.get("/manhwa/{manhwa_id}", response_model=ManhwaAdminOut, response_model_by_alias=True)
def manhwa_get(manhwa_id: str, db: Session = Depends(get_db)):
    return _manhwa_out(_get_manhwa_or_404(db, manhwa_id))


@router.put("/manhwa/{manhwa_id}", response_model=ManhwaAdminOut, response_model_by_alias=True)
def manhwa_update(
    manhwa_id: str,
    body: ManhwaUpdateIn,
    db: Session = Depends(get_db),
    admin: Viewer = Depends(require_admin),
    now: datetime = Depends(get_now),
):
    manhwa = _get_manhwa_or_404(db, manhwa_id)
    manhwa = ManhwaAdminService(db).update(manhwa, body.model_dump(exclude_unset=True), now, actor_id=admin.user_id)
    return _manhwa_out(manhwa)


@router.delete("/manhwa/{manhwa_id}")
def manhwa_delete(manhwa_id: str, db: Session = Depends(get_db), admin: Viewer = Depends(require_admin)):
    manhwa = _get_manhwa_or_404(db, manhwa_id)
    ManhwaAdminService(db).delete(manhwa, actor_id=admin.user_id)
    return {"ok": True}


# ---------- Chapters ----------
@router.get("/manhwa/{manhwa_id}/chapters", response_model=list[ChapterAdminOut], response_model_by_alias=True)
def chapters_list(manhwa_id: str, db: Session = Depends(get_db)):
    _get_manhwa_or_404(db, manhwa_id)
    return [_chapter_out(ch) for ch in ChapterAdminService(db).list_for_manhwa(manhwa_id)]


@router.post(
    "/manhwa/{manhwa_id}/chapters",
    response_model=ChapterAdminOut,
    response_model_by_alias=True,
    status_code=201,
)
def chapter_create(
    manhwa_id: str,
    body: ChapterCreateIn,
    db: Session = Depends(get_db),
    admin: Viewer = Depends(require_admin),
):
    manhwa = _get_manhwa_or_404(db, manhwa_id)
    try:
        chapter = ChapterAdminService(db).create(manhwa, body.model_dump(), actor_id=admin.user_id)
    except AdminConflictError as e:
        raise HTTPException(409, str(e))
    return _chapter_out(chapter, pages=[])


@router.get("/chapters/{chapter_id}", response_model=ChapterAdminOut, response_model_by_alias=True)
def chapter_get(chapter_id: str, db: Session = Depends(get_db)):
    chapter = _get_chapter_or_404(db, chapter_id)
    return _chapter_out(chapter, pages=ChapterAdminService(db).get_pages(chapter.id))


@router.put("/chapters/{chapter_id}", response_model=ChapterAdminOut, response_model_by_alias=True)
def chapter_update(
    chapter_id: str,
    body: ChapterUpdateIn,
    db: Session = Depends(get_db),
    admin: Viewer = Depends(require_admin),
):
    chapter = _get_chapter_or_404(db, chapter_id)
    try:
        chapter = ChapterAdminService(db).update(chapter, body.model_dump(exclude_unset=True), actor_id=admin.user_id)
    except AdminConflictError as e:
        raise HTTPException(409, str(e))
    return _chapter_out(chapter)


@router.delete("/chapters/{chapter_id}")
def chapter_delete(chapter_id: str, db: Session = Depends(get_db), admin: Viewer = Depends(require_admin)):
    chapter = _get_chapter_or_404(db, chapter_id)
    ChapterAdminService(db).delete(chapter, actor_id=admin.user_id)
    return {"ok": True}


@router.put("/chapters/{chapter_id}/pages", response_model=ChapterAdminOut, response_model_by_alias=True)
def chapter_pages_replace(
    chapter_id: str,
    body: PagesReplaceIn,
    db: Session = Depends(get_db),
    admin: Viewer = Depends(require_admin),
):
    chapter = _get_chapter_or_404(db, chapter_id)
    svc = ChapterAdminService(db)
    pages = svc.replace_pages(chapter, [p.model_dump() for p in body.pages], actor_id=admin.user_id)
    return _chapter_out(chapter, pages=pages)


@router.put("/chapters/{chapter_id}/publish", response_model=ChapterAdminOut, response_model_by_alias=True)
def chapter_publish(
    chapter_id: str,
    body: PublishIn,
    db: Session = Depends(get_db),
    admin: Viewer = Depends(require_admin),
    now: datetime = Depends(get_now),
):
    """action=publish -> published now; action=schedule -> scheduled at scheduledAt."""
    chapter = _get_chapter_or_404(db, chapter_id)
    try:
        chapter = ChapterAdminService(db).publish(
            chapter,
            body.action,
            now,
            scheduled_at=body.scheduled_at,
            vip_only=body.vip_only,
            vip_early_days=body.vip_early_days,
            actor_id=admin.user_id,
        )
    except AdminInputError as e:
        raise HTTPException(400, str(e))
    return _chapter_out(chapter)


@router.delete("/chapters/{chapter_id}/publish", response_model=ChapterAdminOut, response_model_by_alias=True)
def chapter_unpublish(chapter_id: str, db: Session = Depends(get_db), admin: Viewer = Depends(require_admin)):
    chapter = _get_chapter_or_404(db, chapter_id)
    return _chapter_out(ChapterAdminService(db).cancel_schedule(chapter, actor_id=admin.user_id))


# ---------- Users ----------
@router.get("/users", response_model=PaginatedResponse, response_model_by_alias=True)
def users_list(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None),
    role: str | None = Query(None),
    db: Session = Depends(get_db),
):
    rows, total = UserService(db).list(page=page, page_size=page_size, search=search, role=role)
    return PaginatedResponse(
        items=[_user_out(u).model_dump(by_alias=True, mode="json") for u in rows],
        total=total,
        page=page,
        page_size=page_size,
        pages=_pages_total(total, page_size),
    )


@router.get("/users/{user_id}", response_model=UserAdminOut, response_model_by_alias=True)
def users_get(user_id: str, db: Session = Depends(get_db)):
    user = UserService(db).get(user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return _user_out(user)


@router.post("/users/{user_id}/role", response_model=UserAdminOut, response_model_by_alias=True)
def users_set_role(
    user_id: str,
    body: RoleChangeIn,
    db: Session = Depends(get_db),
    admin: Viewer = Depends(require_admin),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    now: datetime = Depends(get_now),
):
    svc = UserService(db)
    user = svc.get(user_id)
    if not user:
        raise HTTPException(404, "User not found")
    try:
        user = svc.set_role(
            user,
            body.role,
            body.duration_type,
            now,
            custom_days=body.custom_days,
            actor_id=admin.user_id,
            invalidate=resolver.invalidate,
        )
    except AdminInputError as e:
        raise HTTPException(400, str(e))
    return _user_out(user)


# ---------- Audit ----------
@router.get("/audit", response_model=PaginatedResponse, response_model_by_alias=True)
def audit_list(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    entity_type: str | None = Query(None),
    action: str | None = Query(None),
    db: Session = Depends(get_db),
):
    rows, total = AuditService(db).list_recent(
        limit=page_size,
        offset=(page - 1) * page_size,
        entity_type=entity_type,
        action=action,
    )
    return PaginatedResponse(
        items=[
            AuditLogOut(
                id=r.id,
                actor_id=r.actor_id,
                action=r.action,
                entity_type=r.entity_type,
                entity_id=r.entity_id,
                payload=r.payload or {},
                created_at=r.created_at,
            ).model_dump(by_alias=True, mode="json")
            for r in rows
        ],
        total=total,
        page=page,
        page_size=page_size,
        pages=_pages_total(total, page_size),
    )
