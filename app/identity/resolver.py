"""
IdentityResolver: bearer token -> Viewer(user_id, role).

Fail closed: any failure on the way (provider down, DB error, unknown role
string, expired role) yields the least-privileged role 'user', never an
elevated one. Failures are not cached, so the next request retries.
"""
from __future__ import annotations

import logging
from datetime import datetime

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.access.errors import AccessPolicyError
from app.access.models import Role, Viewer
from app.access.policy import parse_role
from app.core.config import settings
from app.identity.cache import RoleCache, build_role_cache
from app.identity.config import get_role_cache_backend, get_role_cache_ttl_seconds
from app.identity.provider import IdentityProviderClient, IdentityProviderError
from app.models.user import User
from app.utils.metrics import role_lookups_total
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class IdentityResolver:
    def __init__(self, db: Session, provider: IdentityProviderClient, cache: RoleCache) -> None:
        self.db = db
        self.provider = provider
        self.cache = cache

    def resolve(self, authorization: str | None, now: datetime | None = None) -> Viewer:
        token = extract_bearer_token(authorization)
        if token is None:
            role_lookups_total.labels(source="anonymous").inc()
            return Viewer.anonymous()

        try:
            user_id = self.provider.get_user_id(token)
        except IdentityProviderError as e:
            role_lookups_total.labels(source="fallback").inc()
            logger.warning("identity_provider_failed", extra={"error": str(e)})
            return Viewer.anonymous()

        if user_id is None:
            role_lookups_total.labels(source="anonymous").inc()
            return Viewer.anonymous()

        return Viewer(user_id=user_id, role=self.resolve_role(user_id, now or utcnow()))

    def resolve_role(self, user_id: str, now: datetime) -> Role:
        cached, fresh = self._cache_get(user_id)
        if cached is not None and fresh:
            role_lookups_total.labels(source="cache").inc()
            return cached

        try:
            user = self.db.query(User).filter(User.id == user_id).one_or_none()
        except SQLAlchemyError as e:
            self.db.rollback()
            role_lookups_total.labels(source="fallback").inc()
            logger.warning("role_lookup_failed", extra={"user_id": user_id, "error": str(e)})
            return Role.USER

        if user is None:
            role_lookups_total.labels(source="fallback").inc()
            logger.info("role_lookup_no_profile", extra={"user_id": user_id})
            return Role.USER

        try:
            role = parse_role(user.role)
        except AccessPolicyError:
            role_lookups_total.labels(source="fallback").inc()
            logger.warning("role_lookup_invalid_role", extra={"user_id": user_id, "role": str(user.role)})
            return Role.USER

        if role is not Role.USER and user.is_role_expired(now):
            logger.info("role_expired", extra={"user_id": user_id, "role": role.value})
            role = Role.USER

        role_lookups_total.labels(source="db").inc()
        self._cache_set(user_id, role)
        return role

    def invalidate(self, user_id: str) -> None:
        try:
            self.cache.invalidate(user_id)
        except redis.RedisError as e:
            logger.warning("role_cache_invalidate_failed", extra={"user_id": user_id, "error": str(e)})

    def _cache_get(self, user_id: str) -> tuple[Role | None, bool]:
        try:
            return self.cache.get(user_id)
        except redis.RedisError as e:
            logger.warning("role_cache_unavailable", extra={"user_id": user_id, "error": str(e)})
            return None, False

    def _cache_set(self, user_id: str, role: Role) -> None:
        try:
            self.cache.set(user_id, role)
        except redis.RedisError as e:
            logger.warning("role_cache_unavailable", extra={"user_id": user_id, "error": str(e)})


_role_cache: RoleCache | None = None
_provider: IdentityProviderClient | None = None


def get_role_cache() -> RoleCache:
    """Process-wide cache; built lazily from settings."""
    global _role_cache
    if _role_cache is None:
        _role_cache = build_role_cache(
            get_role_cache_backend(),
            get_role_cache_ttl_seconds(),
            redis_url=settings.redis_url,
        )
    return _role_cache


def get_identity_provider() -> IdentityProviderClient:
    global _provider
    if _provider is None:
        _provider = IdentityProviderClient()
    return _provider
