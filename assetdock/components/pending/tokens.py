"""
Security token providers for pending assets.

Each provider binds one opaque hex token to one pending id and stores it in
its own channel:

- SessionPendingSecurityToken: server-side session temp data
- CookiePendingSecurityToken: one HTTP cookie per pending id
- RequestPendingSecurityToken: supplied by the client on each request
  (header or query field); nothing is stored server-side

Invariants:
- Comparison is constant time (hmac.compare_digest)
- validate_token never raises; any failure is False
- After delete_token(id), validation for that id is False on this provider
"""

from __future__ import annotations

import hmac
import logging
import secrets
from typing import TYPE_CHECKING

from assetdock.core.errors import InvalidArgumentError

from .models import PendingAsset

if TYPE_CHECKING:
    from fastapi import Request, Response

    from assetdock.adapters.session_store import InMemorySessionStore
    from assetdock.core.ports.clock import ClockPort

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = 604800  # one week
DEFAULT_TOKEN_BYTES = 16
MAX_TOKEN_BYTES = 64


class AbstractPendingSecurityToken:
    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TOKEN_TTL,
        length_bytes: int = DEFAULT_TOKEN_BYTES,
    ) -> None:
        if ttl_seconds <= 0:
            raise InvalidArgumentError(f"Token TTL must be positive, got {ttl_seconds}")
        if not 1 <= length_bytes <= MAX_TOKEN_BYTES:
            raise InvalidArgumentError(
                f"Token length must be between 1 and {MAX_TOKEN_BYTES} bytes, got {length_bytes}"
            )
        self.ttl_seconds = ttl_seconds
        self.length_bytes = length_bytes
        self._revoked: set[str] = set()

    def generate_token(self, pending_id: str) -> str:
        token = secrets.token_hex(self.length_bytes)
        self._revoked.discard(pending_id)
        self._store_token(pending_id, token)
        return token

    def retrieve_token(self, pending_id: str) -> str | None:
        raise NotImplementedError

    def delete_token(self, pending_id: str) -> None:
        self._revoked.add(pending_id)
        self._remove_token(pending_id)

    def validate_token(self, pending: PendingAsset, provided: str | None = None) -> bool:
        if pending.id in self._revoked:
            return False
        try:
            candidate = provided if provided is not None else self.retrieve_token(pending.id)
            expected = self._expected_token(pending)
        except Exception:
            logger.exception("Token lookup failed for pending asset %s", pending.id)
            return False

        if not candidate or not expected:
            return False
        return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))

    # --- Channel hooks ---

    def _store_token(self, pending_id: str, token: str) -> None:
        return None

    def _remove_token(self, pending_id: str) -> None:
        return None

    def _expected_token(self, pending: PendingAsset) -> str | None:
        return pending.security_token


class SessionPendingSecurityToken(AbstractPendingSecurityToken):
    """Keeps the token in the caller's session with its own expiry."""

    KEY_PREFIX = "__pending_security_token_"

    def __init__(
        self,
        session_store: InMemorySessionStore,
        session_id: str,
        clock: ClockPort,
        ttl_seconds: int = DEFAULT_TOKEN_TTL,
        length_bytes: int = DEFAULT_TOKEN_BYTES,
    ) -> None:
        super().__init__(ttl_seconds, length_bytes)
        self._sessions = session_store
        self._session_id = session_id
        self._clock = clock

    def _key(self, pending_id: str) -> str:
        return f"{self.KEY_PREFIX}{pending_id}"

    def retrieve_token(self, pending_id: str) -> str | None:
        return self._sessions.get_temp(self._session_id, self._key(pending_id), self._clock.now_utc())

    def _store_token(self, pending_id: str, token: str) -> None:
        self._sessions.set_temp(
            self._session_id, self._key(pending_id), token, self.ttl_seconds, self._clock.now_utc()
        )

    def _remove_token(self, pending_id: str) -> None:
        self._sessions.remove(self._session_id, self._key(pending_id))

    def _expected_token(self, pending: PendingAsset) -> str | None:
        # The session copy is authoritative; it expires on its own TTL
        return self.retrieve_token(pending.id)


class CookiePendingSecurityToken(AbstractPendingSecurityToken):
    """Hands the token to the browser as an HttpOnly cookie."""

    def __init__(
        self,
        request: Request | None = None,
        response: Response | None = None,
        cookie_name: str = "__asset_pending_security_token_",
        ttl_seconds: int = DEFAULT_TOKEN_TTL,
        length_bytes: int = DEFAULT_TOKEN_BYTES,
        *,
        secure: bool = True,
    ) -> None:
        super().__init__(ttl_seconds, length_bytes)
        self._request = request
        self._response = response
        self._cookie_name = cookie_name
        self._secure = secure

    def _cookie(self, pending_id: str) -> str:
        return f"{self._cookie_name}{pending_id}"

    def retrieve_token(self, pending_id: str) -> str | None:
        if self._request is None:
            return None
        return self._request.cookies.get(self._cookie(pending_id))

    def _store_token(self, pending_id: str, token: str) -> None:
        if self._response is None:
            raise InvalidArgumentError("A response is required to issue a cookie token")
        self._response.set_cookie(
            self._cookie(pending_id),
            token,
            max_age=self.ttl_seconds,
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )

    def _remove_token(self, pending_id: str) -> None:
        if self._response is not None:
            self._response.delete_cookie(self._cookie(pending_id))


class RequestPendingSecurityToken(AbstractPendingSecurityToken):
    """Reads the token from a request header or query field."""

    def __init__(
        self,
        request: Request | None = None,
        header_name: str = "X-Pending-Token",
        request_key: str = "pending_token",
        ttl_seconds: int = DEFAULT_TOKEN_TTL,
        length_bytes: int = DEFAULT_TOKEN_BYTES,
    ) -> None:
        super().__init__(ttl_seconds, length_bytes)
        self._request = request
        self._header_name = header_name
        self._request_key = request_key

    def retrieve_token(self, pending_id: str) -> str | None:
        if self._request is None:
            return None
        return self._request.headers.get(self._header_name) or self._request.query_params.get(
            self._request_key
        )
