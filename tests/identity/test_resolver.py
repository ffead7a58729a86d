"""Tests for IdentityResolver: fail closed to 'user' on every failure path."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pybreaker
import pytest
import redis
from sqlalchemy.exc import OperationalError

from app.access.models import Role, Viewer
from app.identity.cache import InMemoryRoleCache
from app.identity.provider import IdentityProviderClient, IdentityProviderError
from app.identity.resolver import IdentityResolver, extract_bearer_token

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _make_user(role="vip", expiration=None):
    user = SimpleNamespace(id="u1", role=role, role_expiration=expiration)
    user.is_role_expired = lambda now: expiration is not None and now >= expiration
    return user


def _make_db(user=None, error=None):
    db = MagicMock()
    query = db.query.return_value.filter.return_value
    if error is not None:
        query.one_or_none.side_effect = error
    else:
        query.one_or_none.return_value = user
    return db


def _make_resolver(db, user_id="u1", cache=None):
    provider = MagicMock()
    provider.get_user_id.return_value = user_id
    return IdentityResolver(db, provider, cache or InMemoryRoleCache(300))


class TestExtractBearerToken:
    def test_valid(self):
        assert extract_bearer_token("Bearer abc") == "abc"
        assert extract_bearer_token("bearer  abc ") == "abc"

    def test_invalid(self):
        assert extract_bearer_token(None) is None
        assert extract_bearer_token("") is None
        assert extract_bearer_token("Basic abc") is None
        assert extract_bearer_token("Bearer ") is None


class TestResolve:
    def test_no_header_is_anonymous_user(self):
        resolver = _make_resolver(_make_db())
        assert resolver.resolve(None, NOW) == Viewer.anonymous()
        resolver.provider.get_user_id.assert_not_called()

    def test_invalid_token_is_anonymous_user(self):
        resolver = _make_resolver(_make_db(), user_id=None)
        assert resolver.resolve("Bearer bad", NOW) == Viewer.anonymous()

    def test_provider_failure_is_anonymous_user(self):
        resolver = _make_resolver(_make_db(_make_user("admin")))
        resolver.provider.get_user_id.side_effect = IdentityProviderError("down")
        assert resolver.resolve("Bearer tok", NOW) == Viewer.anonymous()

    @pytest.mark.parametrize(
        "response",
        [httpx.Response(200, text="<html>proxy</html>"), httpx.Response(200, json=["x"])],
    )
    def test_unreadable_provider_body_is_anonymous_user(self, response):
        provider = IdentityProviderClient(
            base_url="https://auth.example.test",
            anon_key="anon",
            client=httpx.Client(transport=httpx.MockTransport(lambda request: response)),
            breaker=pybreaker.CircuitBreaker(fail_max=5, reset_timeout=60),
        )
        db = _make_db(_make_user("admin"))
        resolver = IdentityResolver(db, provider, InMemoryRoleCache(300))
        assert resolver.resolve("Bearer tok", NOW) == Viewer.anonymous()
        db.query.assert_not_called()

    def test_role_from_profile(self):
        resolver = _make_resolver(_make_db(_make_user("vip")))
        assert resolver.resolve("Bearer tok", NOW) == Viewer(user_id="u1", role=Role.VIP)


class TestResolveRole:
    def test_db_error_falls_back_to_user_and_is_not_cached(self):
        db = _make_db(error=OperationalError("SELECT", {}, Exception("conn refused")))
        cache = InMemoryRoleCache(300)
        resolver = _make_resolver(db, cache=cache)
        assert resolver.resolve_role("u1", NOW) is Role.USER
        db.rollback.assert_called_once()
        assert cache.get("u1") == (None, False)

    def test_missing_profile_is_user(self):
        assert _make_resolver(_make_db(None)).resolve_role("u1", NOW) is Role.USER

    def test_unknown_role_string_is_user(self):
        cache = InMemoryRoleCache(300)
        resolver = _make_resolver(_make_db(_make_user("superadmin")), cache=cache)
        assert resolver.resolve_role("u1", NOW) is Role.USER
        assert cache.get("u1") == (None, False)

    def test_expired_role_is_user(self):
        user = _make_user("vip", expiration=NOW - timedelta(seconds=1))
        assert _make_resolver(_make_db(user)).resolve_role("u1", NOW) is Role.USER

    def test_unexpired_role_kept(self):
        user = _make_user("admin", expiration=NOW + timedelta(days=1))
        assert _make_resolver(_make_db(user)).resolve_role("u1", NOW) is Role.ADMIN

    def test_fresh_cache_hit_skips_db(self):
        cache = InMemoryRoleCache(300)
        cache.set("u1", Role.ADMIN)
        db = _make_db(_make_user("user"))
        assert _make_resolver(db, cache=cache).resolve_role("u1", NOW) is Role.ADMIN
        db.query.assert_not_called()

    def test_db_result_is_cached(self):
        cache = InMemoryRoleCache(300)
        _make_resolver(_make_db(_make_user("vip")), cache=cache).resolve_role("u1", NOW)
        assert cache.get("u1") == (Role.VIP, True)

    def test_redis_outage_reads_through_to_db(self):
        cache = MagicMock()
        cache.get.side_effect = redis.ConnectionError("down")
        cache.set.side_effect = redis.ConnectionError("down")
        resolver = _make_resolver(_make_db(_make_user("vip")), cache=cache)
        assert resolver.resolve_role("u1", NOW) is Role.VIP

    def test_invalidate_forces_fresh_lookup(self):
        cache = InMemoryRoleCache(300)
        cache.set("u1", Role.ADMIN)
        resolver = _make_resolver(_make_db(_make_user("user")), cache=cache)
        resolver.invalidate("u1")
        assert resolver.resolve_role("u1", NOW) is Role.USER
