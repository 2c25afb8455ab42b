"""
Bearer-token resolution at the request boundary.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from attivita.dependencies import get_token_issuer
from attivita.tokens import InvalidTokenError, TokenIssuer

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> str:
    """Validate the bearer token and return the caller's user id."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    try:
        return tokens.validate(credentials.credentials)
    except InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise _unauthorized("Invalid or expired token") from exc
