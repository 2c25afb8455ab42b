"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from fastapi import Depends

from attivita.config import Settings, get_settings
from attivita.db import DbClient, InMemoryDbClient, SqlDbClient
from attivita.security import BcryptPasswordHasher
from attivita.services import ActivityService, AuthService
from attivita.tokens import TokenIssuer

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_password_hasher: BcryptPasswordHasher | None = None
_token_issuer: TokenIssuer | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory database")
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_password_hasher() -> BcryptPasswordHasher:
    global _password_hasher
    if _password_hasher:
        return _password_hasher

    settings = get_settings()
    _password_hasher = BcryptPasswordHasher(rounds=settings.bcrypt_rounds)
    return _password_hasher


def get_token_issuer() -> TokenIssuer:
    global _token_issuer
    if _token_issuer:
        return _token_issuer

    settings = get_settings()
    _token_issuer = TokenIssuer(
        secret=settings.jwt_secret,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        ttl_seconds=settings.jwt_ttl_seconds,
    )
    return _token_issuer


def get_auth_service(
    db: DbClient = Depends(get_db_client),
    hasher: BcryptPasswordHasher = Depends(get_password_hasher),
    tokens: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        db,
        hasher,
        tokens,
        reject_duplicate_emails=settings.reject_duplicate_emails,
    )


def get_activity_service(
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
) -> ActivityService:
    return ActivityService(db, enforce_owner_scope=settings.enforce_owner_scope)


def reset_dependencies() -> None:
    """Drop cached singletons so the next request rebuilds them."""
    global _db_client, _password_hasher, _token_issuer
    _db_client = None
    _password_hasher = None
    _token_issuer = None
