"""
Hosted identity provider client using httpx sync client.
Only verifies a bearer token and returns the provider user id; sessions,
sign-up and passwords stay with the provider.
"""
import logging
import time

import httpx
import pybreaker

from app.identity.config import get_auth_provider_anon_key, get_auth_provider_url, get_http_timeout
from app.services.circuit_breaker import identity_provider_breaker
from app.utils.metrics import (
    identity_provider_request_duration_seconds,
    identity_provider_requests_total,
)


logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Provider unreachable, answered with a server error or with an unreadable body."""


class IdentityProviderClient:
    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        client: httpx.Client | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
    ) -> None:
        self._base_url = (base_url or get_auth_provider_url()).rstrip("/")
        self._anon_key = anon_key or get_auth_provider_anon_key()
        self._client = client
        self._breaker = breaker or identity_provider_breaker

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=get_http_timeout())
        return self._client

    def _fetch_user(self, token: str) -> dict | None:
        resp = self.client.get(
            f"{self._base_url}/auth/v1/user",
            headers={"apikey": self._anon_key, "Authorization": f"Bearer {token}"},
        )
        if resp.status_code in (401, 403):
            return None
        if resp.status_code >= 500:
            raise IdentityProviderError(f"identity provider returned {resp.status_code}")
        if resp.status_code != 200:
            return None
        try:
            data = resp.json()
        except ValueError as e:
            raise IdentityProviderError("identity provider returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise IdentityProviderError(f"identity provider returned {type(data).__name__}, expected object")
        return data

    def get_user_id(self, token: str) -> str | None:
        """
        Provider user id for a valid token, None for an invalid one.
        Raises IdentityProviderError when the provider cannot answer.
        """
        start = time.time()
        try:
            data = self._breaker.call(self._fetch_user, token)
        except pybreaker.CircuitBreakerError as e:
            identity_provider_requests_total.labels(status="circuit_open").inc()
            raise IdentityProviderError("identity provider circuit open") from e
        except httpx.HTTPError as e:
            identity_provider_requests_total.labels(status="error").inc()
            raise IdentityProviderError(str(e)) from e
        except IdentityProviderError:
            identity_provider_requests_total.labels(status="error").inc()
            raise
        finally:
            identity_provider_request_duration_seconds.observe(time.time() - start)

        if not data or not data.get("id"):
            identity_provider_requests_total.labels(status="invalid_token").inc()
            return None
        identity_provider_requests_total.labels(status="success").inc()
        return str(data["id"])

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
