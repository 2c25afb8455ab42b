"""
Authentication and owner-scoped activity services.

Both services receive their storage handle and settings at construction
and take the caller identity as an explicit argument. Domain outcomes are
returned as ``Result`` values; storage exceptions never leak past here.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from attivita.db import ActivityDraft, ActivityRecord, DbClient, UserRecord
from attivita.errors import ConcurrencyError, ErrorKind, Result, StorageError
from attivita.security import BcryptPasswordHasher
from attivita.tokens import TokenIssuer

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


def _storage_failure(action: str, exc: StorageError) -> Result:
    logger.exception("Storage failure while %s", action)
    return Result.fail(ErrorKind.STORAGE_FAILURE, f"Error {action}: {exc}")


class AuthService:
    def __init__(
        self,
        db: DbClient,
        hasher: BcryptPasswordHasher,
        tokens: TokenIssuer,
        *,
        reject_duplicate_emails: bool = False,
    ):
        self.db = db
        self.hasher = hasher
        self.tokens = tokens
        self.reject_duplicate_emails = reject_duplicate_emails

    def register(self, email: str, password: str) -> Result[UserRecord]:
        """Create a user with a fresh identity and a bcrypt password hash."""
        try:
            if self.reject_duplicate_emails and self.db.find_user_by_email(email):
                return Result.fail(ErrorKind.EMAIL_TAKEN, "Email already registered")
            user = self.db.create_user(email, self.hasher.hash(password))
        except StorageError as exc:
            return _storage_failure("registering user", exc)
        logger.info("Registered user %s", user.id)
        return Result.ok(user)

    def login(self, email: str, password: str) -> Result[str]:
        """
        Return a bearer token for valid credentials.

        Unknown email and wrong password produce the same failure so that
        callers cannot tell which emails are registered.
        """
        try:
            user = self.db.find_user_by_email(email)
        except StorageError as exc:
            return _storage_failure("looking up user", exc)
        if user is None or not self.hasher.verify(password, user.password_hash):
            logger.info("Rejected login attempt")
            return Result.fail(
                ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE
            )
        logger.info("User %s logged in", user.id)
        return Result.ok(self.tokens.issue(user.id))


class ActivityService:
    def __init__(self, db: DbClient, *, enforce_owner_scope: bool = False):
        self.db = db
        self.enforce_owner_scope = enforce_owner_scope

    def list_mine(self, caller_id: str) -> Result[list[ActivityRecord]]:
        if not caller_id:
            return Result.fail(
                ErrorKind.UNAUTHENTICATED, "User ID not found in token"
            )
        try:
            return Result.ok(self.db.list_activities_for_owner(caller_id))
        except StorageError as exc:
            return _storage_failure("listing activities", exc)

    def create(self, caller_id: str, draft: ActivityDraft) -> Result[ActivityRecord]:
        if not draft.owner_id:
            return Result.fail(ErrorKind.INVALID_INPUT, "User ID is required")
        if self.enforce_owner_scope and draft.owner_id != caller_id:
            return Result.fail(ErrorKind.INVALID_OWNER, "User ID is invalid")
        try:
            if not self.db.user_exists(draft.owner_id):
                return Result.fail(ErrorKind.INVALID_OWNER, "User ID is invalid")
            record = self.db.create_activity(draft)
        except StorageError as exc:
            return _storage_failure("creating new activity", exc)
        logger.info(
            "User %s created activity %s for %s", caller_id, record.id, record.owner_id
        )
        return Result.ok(record)

    def update(
        self,
        caller_id: str,
        activity_id: int,
        draft: ActivityDraft,
        body_id: Optional[int] = None,
    ) -> Result[ActivityRecord]:
        """Replace every mutable field of an existing activity."""
        if body_id != activity_id:
            return Result.fail(ErrorKind.ID_MISMATCH, "Activity ID mismatch")
        if not draft.owner_id:
            return Result.fail(ErrorKind.INVALID_INPUT, "User ID is required")
        if self.enforce_owner_scope and draft.owner_id != caller_id:
            return Result.fail(ErrorKind.INVALID_OWNER, "User ID is invalid")
        try:
            existing = self.db.get_activity(activity_id)
            if existing is None or not self._visible_to(existing, caller_id):
                return Result.fail(ErrorKind.NOT_FOUND, "Activity not found")
            if not self.db.user_exists(draft.owner_id):
                return Result.fail(ErrorKind.INVALID_OWNER, "User ID is invalid")
            updated = replace(
                existing,
                title=draft.title,
                description=draft.description,
                due=draft.due,
                status=draft.status,
                owner_id=draft.owner_id,
            )
            saved = self.db.update_activity(updated)
        except ConcurrencyError:
            return self._conflict_outcome(activity_id)
        except StorageError as exc:
            return _storage_failure("updating activity", exc)
        logger.info("User %s updated activity %s", caller_id, activity_id)
        return Result.ok(saved)

    def delete(self, caller_id: str, activity_id: int) -> Result[None]:
        """Delete by identifier alone; owner-checked when scope is enforced."""
        try:
            if self.enforce_owner_scope:
                deleted = self.delete_owned(activity_id, caller_id)
            else:
                deleted = self.db.delete_activity(activity_id)
        except StorageError as exc:
            return _storage_failure("deleting activity", exc)
        if not deleted:
            return Result.fail(ErrorKind.NOT_FOUND, "Activity not found")
        logger.info("User %s deleted activity %s", caller_id, activity_id)
        return Result.ok()

    def delete_owned(self, activity_id: int, owner_id: str) -> bool:
        """Delete only when both identifier and owner match."""
        return self.db.delete_activity_for_owner(activity_id, owner_id)

    def _visible_to(self, activity: ActivityRecord, caller_id: str) -> bool:
        return not self.enforce_owner_scope or activity.owner_id == caller_id

    def _conflict_outcome(self, activity_id: int) -> Result:
        try:
            still_there = self.db.get_activity(activity_id) is not None
        except StorageError as exc:
            return _storage_failure("updating activity", exc)
        if not still_there:
            return Result.fail(ErrorKind.NOT_FOUND, "Activity not found")
        logger.warning("Concurrent update conflict on activity %s", activity_id)
        return Result.fail(
            ErrorKind.CONCURRENCY_CONFLICT, "Error while updating the activity"
        )
