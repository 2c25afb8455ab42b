"""
Signed, time-limited bearer tokens (HS256 JWT).

Tokens are stateless: validity depends only on signature, issuer,
audience and expiration. There is no revocation list and no refresh.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

JWT_ALGORITHM = "HS256"
USER_ID_CLAIM = "idUser"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InvalidTokenError(Exception):
    """Raised when a bearer token fails validation."""


class TokenIssuer:
    def __init__(
        self,
        secret: str,
        issuer: str,
        audience: str,
        ttl_seconds: int = 3600,
        clock: Clock = utc_now,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        self.secret = secret
        self.issuer = issuer
        self.audience = audience
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    def issue(self, user_id: str) -> str:
        issued_at = self.clock()
        payload = {
            USER_ID_CLAIM: user_id,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def validate(self, token: str) -> str:
        """
        Verify the token and return the user identity it carries.

        Expiration is checked against ``self.clock`` rather than the
        library's wall clock so it can be driven from tests.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "require": ["exp", "iss", "aud"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        try:
            expires_at = int(claims["exp"])
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("Invalid exp claim") from exc
        if self.clock().timestamp() >= expires_at:
            raise InvalidTokenError("Token has expired")

        user_id = claims.get(USER_ID_CLAIM)
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError(f"Missing {USER_ID_CLAIM} claim")
        return user_id
