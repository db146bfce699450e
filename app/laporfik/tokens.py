"""
Stateless bearer tokens (HS256 JWT).

A token carries the identity id (sub), its role, and iat/exp. Nothing is stored
server-side; rotating JWT_SECRET is the only way to invalidate issued tokens.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from app.laporfik.errors import TokenExpired, TokenMalformed, TokenMissing
from app.laporfik.models import Role

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=30)
_REQUIRED_CLAIMS = ["sub", "role", "iat", "exp"]


@dataclass(frozen=True)
class TokenClaims:
    id: int
    role: Role
    login_key: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta = TOKEN_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._ttl = ttl
        self._clock = clock

    def issue(self, identity) -> str:
        now = self._clock()
        payload = {
            "sub": str(identity.id),
            "role": Role(identity.role).value,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        login_key = getattr(identity, "login_key", None)
        if login_key:
            payload["login_key"] = login_key
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str | None) -> TokenClaims:
        token = (token or "").strip()
        if not token:
            raise TokenMissing("Access token required")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError:
            raise TokenMalformed("Invalid token") from None

        # Expiry is judged against the injected clock, the same one issue() stamps with.
        try:
            exp = int(payload["exp"])
        except (TypeError, ValueError):
            raise TokenMalformed("Invalid token") from None
        if exp <= self._clock().timestamp():
            raise TokenExpired("Token expired")

        try:
            return TokenClaims(
                id=int(payload["sub"]),
                role=Role(payload["role"]),
                login_key=payload.get("login_key"),
            )
        except (TypeError, ValueError):
            raise TokenMalformed("Invalid token") from None

    def verify_header(self, authorization: str | None) -> TokenClaims:
        """Verify an `Authorization: Bearer <token>` header value."""
        authorization = (authorization or "").strip()
        prefix = "Bearer "
        if not authorization or not authorization.startswith(prefix):
            raise TokenMissing("Access token required")
        return self.verify(authorization[len(prefix):])
