"""
Temporary asset URL tokens.

Signed JWTs (python-jose, HS256 by default) that grant time-limited access
to one asset or one of its variants without the owner's authorization check.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from jose import jwt

from assetdock.core.errors import TokenInvalidError

if TYPE_CHECKING:
    from assetdock.core.ports.clock import ClockPort

TOKEN_SUBJECT = "asset-temp-url"


@dataclass(frozen=True)
class TempUrlToken:
    asset_id: int
    variant: str | None
    expires_at: datetime


class TempUrlTokenService:
    def __init__(
        self,
        secret_key: str,
        clock: ClockPort,
        *,
        algorithm: str = "HS256",
        default_ttl_seconds: int = 3600,
    ) -> None:
        self._secret_key = secret_key
        self._clock = clock
        self._algorithm = algorithm
        self._default_ttl = default_ttl_seconds

    def issue(
        self, asset_id: int, variant: str | None = None, expires_in: int | None = None
    ) -> str:
        expires_at = self._clock.now_utc() + timedelta(seconds=expires_in or self._default_ttl)
        claims: dict[str, Any] = {
            "sub": TOKEN_SUBJECT,
            "asset_id": asset_id,
            "variant": variant,
            "exp": int(expires_at.timestamp()),
        }
        encoded: str = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        return encoded

    def verify(self, token: str) -> TempUrlToken:
        """Decode and check a token. Raises TokenInvalidError."""
        try:
            # Expiry is checked against the injected clock below
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except jwt.JWTError as e:
            raise TokenInvalidError("malformed") from e

        if claims.get("sub") != TOKEN_SUBJECT or not isinstance(claims.get("asset_id"), int):
            raise TokenInvalidError("wrong subject")

        exp = claims.get("exp")
        if not isinstance(exp, int):
            raise TokenInvalidError("missing expiry")
        expires_at = datetime.fromtimestamp(exp, UTC)
        if self._clock.now_utc() >= expires_at:
            raise TokenInvalidError("expired")

        return TempUrlToken(
            asset_id=claims["asset_id"],
            variant=claims.get("variant"),
            expires_at=expires_at,
        )
