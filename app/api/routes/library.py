from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.access.models import Viewer
from app.api.deps import require_user
from app.db.session import get_db
from app.schemas.library import LibraryEntryOut, LibraryGroupOut, LibraryStatusOut, LibraryUpsertIn
from app.services.catalog.service import CatalogService
from app.services.library.service import LibraryService

router = APIRouter(prefix="/library", tags=["library"])


@router.get("", response_model=list[LibraryGroupOut], response_model_by_alias=True)
def list_library(db: Session = Depends(get_db), viewer: Viewer = Depends(require_user)):
    return LibraryService(db).list_grouped(viewer.user_id)


@router.get("/{manhwa_id}", response_model=LibraryStatusOut, response_model_by_alias=True)
def get_library_status(manhwa_id: str, db: Session = Depends(get_db), viewer: Viewer = Depends(require_user)):
    return LibraryStatusOut(manhwa_id=manhwa_id, status=LibraryService(db).get_status(viewer.user_id, manhwa_id))


@router.put("/{manhwa_id}", response_model=LibraryEntryOut, response_model_by_alias=True)
def upsert_library_entry(
    manhwa_id: str,
    body: LibraryUpsertIn,
    db: Session = Depends(get_db),
    viewer: Viewer = Depends(require_user),
):
    if CatalogService(db).get_manhwa(manhwa_id) is None:
        raise HTTPException(404, "Manhwa not found")
    entry = LibraryService(db).upsert(viewer.user_id, manhwa_id, body.status)
    return LibraryEntryOut(
        id=entry.id,
        manhwa_id=entry.manhwa_id,
        status=entry.status,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


@router.delete("/{manhwa_id}")
def remove_library_entry(manhwa_id: str, db: Session = Depends(get_db), viewer: Viewer = Depends(require_user)):
    if not LibraryService(db).remove(viewer.user_id, manhwa_id):
        raise HTTPException(404, "Library entry not found")
    return {"ok": True}
