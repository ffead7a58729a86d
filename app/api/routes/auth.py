"""
Identity echo for the SPA: who the server thinks the caller is.
Sign-in itself happens against the identity provider, not here.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.access.models import Viewer
from app.access.policy import has_elevated_access
from app.api.deps import get_viewer

router = APIRouter(prefix="/auth", tags=["auth"])


class MeOut(BaseModel):
    authenticated: bool
    userId: str | None = None
    role: str
    isVip: bool


@router.get("/me", response_model=MeOut)
def me(viewer: Viewer = Depends(get_viewer)):
    return MeOut(
        authenticated=viewer.is_authenticated,
        userId=viewer.user_id,
        role=viewer.role.value,
        isVip=has_elevated_access(viewer.role),
    )
