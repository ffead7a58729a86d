"""
Identity config: typed wrappers over app.core.config.settings.
"""
from __future__ import annotations

from app.core.config import settings


def get_role_cache_backend() -> str:
    return settings.role_cache_backend


def get_role_cache_ttl_seconds() -> int:
    return settings.role_cache_ttl_seconds


def get_auth_provider_url() -> str:
    return settings.auth_provider_url


def get_auth_provider_anon_key() -> str:
    return settings.auth_provider_anon_key


def get_http_timeout() -> float:
    return settings.http_client_timeout
