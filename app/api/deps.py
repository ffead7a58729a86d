"""
Request-scoped dependencies: clock, viewer resolution, role guards.
The role is always resolved server-side from the bearer token; nothing the
client sends about its own role is trusted.
"""
from datetime import datetime

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.access.models import Role, Viewer
from app.db.session import get_db
from app.identity.resolver import IdentityResolver, get_identity_provider, get_role_cache
from app.utils.time import utcnow


def get_now() -> datetime:
    return utcnow()


def get_identity_resolver(db: Session = Depends(get_db)) -> IdentityResolver:
    return IdentityResolver(db, get_identity_provider(), get_role_cache())


def get_viewer(
    authorization: str | None = Header(default=None),
    resolver: IdentityResolver = Depends(get_identity_resolver),
    now: datetime = Depends(get_now),
) -> Viewer:
    """Never fails: anonymous / unverifiable requests are Viewer(None, user)."""
    return resolver.resolve(authorization, now)


def require_user(viewer: Viewer = Depends(get_viewer)) -> Viewer:
    if not viewer.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return viewer


def require_admin(viewer: Viewer = Depends(require_user)) -> Viewer:
    if viewer.role is not Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return viewer
