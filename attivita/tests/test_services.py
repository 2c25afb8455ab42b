import unittest
from datetime import datetime
from unittest.mock import MagicMock

from attivita.db import ActivityDraft, ActivityRecord, InMemoryDbClient
from attivita.errors import ConcurrencyError, ErrorKind, StorageError
from attivita.security import BcryptPasswordHasher
from attivita.services import ActivityService, AuthService
from attivita.tokens import TokenIssuer


def make_draft(owner_id, title="Relazione di fisica", status="da fare"):
    return ActivityDraft(
        title=title,
        description="",
        due=datetime(2024, 5, 1, 10, 0, 0),
        status=status,
        owner_id=owner_id,
    )


class AuthServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.tokens = TokenIssuer(
            secret="service-test-secret-0123456789abcdef",
            issuer="iss",
            audience="aud",
        )
        self.auth = AuthService(self.db, BcryptPasswordHasher(rounds=4), self.tokens)

    def test_register_hashes_password(self):
        result = self.auth.register("anna@example.com", "password1")
        self.assertTrue(result.is_ok)
        self.assertNotIn("password1", result.value.password_hash)
        self.assertTrue(result.value.password_hash.startswith("$2"))

    def test_register_duplicate_email_allowed_by_default(self):
        first = self.auth.register("anna@example.com", "a").value
        second = self.auth.register("anna@example.com", "b").value
        self.assertNotEqual(first.id, second.id)

    def test_register_duplicate_email_rejected_when_configured(self):
        auth = AuthService(
            self.db,
            BcryptPasswordHasher(rounds=4),
            self.tokens,
            reject_duplicate_emails=True,
        )
        auth.register("anna@example.com", "a")
        result = auth.register("anna@example.com", "b")
        self.assertEqual(result.error, ErrorKind.EMAIL_TAKEN)

    def test_login_success_returns_token_for_user(self):
        user = self.auth.register("anna@example.com", "password1").value
        result = self.auth.login("anna@example.com", "password1")
        self.assertTrue(result.is_ok)
        self.assertEqual(self.tokens.validate(result.value), user.id)

    def test_login_failures_look_the_same(self):
        self.auth.register("anna@example.com", "password1")
        wrong = self.auth.login("anna@example.com", "nope")
        missing = self.auth.login("ghost@example.com", "password1")
        self.assertEqual(wrong.error, ErrorKind.INVALID_CREDENTIALS)
        self.assertEqual(missing.error, ErrorKind.INVALID_CREDENTIALS)
        self.assertEqual(wrong.message, missing.message)

    def test_login_storage_failure(self):
        db = MagicMock()
        db.find_user_by_email.side_effect = StorageError("connection lost")
        auth = AuthService(db, BcryptPasswordHasher(rounds=4), self.tokens)
        result = auth.login("anna@example.com", "password1")
        self.assertEqual(result.error, ErrorKind.STORAGE_FAILURE)


class ActivityServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.alice = self.db.create_user("alice@example.com", "x")
        self.bob = self.db.create_user("bob@example.com", "x")
        self.service = ActivityService(self.db)

    def test_list_mine_never_leaks_other_owners(self):
        owners = [self.alice.id, self.bob.id, self.bob.id, self.alice.id, self.bob.id]
        for i, owner in enumerate(owners):
            self.service.create(owner, make_draft(owner, title=f"t{i}"))

        alice_items = self.service.list_mine(self.alice.id).value
        bob_items = self.service.list_mine(self.bob.id).value
        self.assertEqual(len(alice_items), 2)
        self.assertEqual(len(bob_items), 3)
        self.assertTrue(all(a.owner_id == self.alice.id for a in alice_items))
        self.assertTrue(all(a.owner_id == self.bob.id for a in bob_items))

    def test_list_mine_without_identity(self):
        self.assertEqual(
            self.service.list_mine("").error, ErrorKind.UNAUTHENTICATED
        )

    def test_create_with_unknown_owner(self):
        result = self.service.create(self.alice.id, make_draft("nobody"))
        self.assertEqual(result.error, ErrorKind.INVALID_OWNER)

    def test_create_requires_owner(self):
        result = self.service.create(self.alice.id, make_draft(None))
        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)

    def test_created_id_usable_for_update_and_delete(self):
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        updated = self.service.update(
            self.alice.id,
            created.id,
            make_draft(self.alice.id, title="nuovo", status="in corso"),
            body_id=created.id,
        )
        self.assertTrue(updated.is_ok)
        self.assertEqual(self.db.get_activity(created.id).title, "nuovo")
        self.assertEqual(self.db.get_activity(created.id).status, "in corso")
        self.assertTrue(self.service.delete(self.alice.id, created.id).is_ok)
        self.assertIsNone(self.db.get_activity(created.id))

    def test_update_can_reassign_owner(self):
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        self.service.update(
            self.alice.id, created.id, make_draft(self.bob.id), body_id=created.id
        )
        self.assertEqual(self.db.get_activity(created.id).owner_id, self.bob.id)

    def test_update_without_owner_is_rejected(self):
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        result = self.service.update(
            self.alice.id, created.id, make_draft(None), body_id=created.id
        )
        self.assertEqual(result.error, ErrorKind.INVALID_INPUT)
        self.assertEqual(self.db.get_activity(created.id).owner_id, self.alice.id)

    def test_update_with_unknown_owner_is_rejected(self):
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        result = self.service.update(
            self.alice.id, created.id, make_draft("ghost"), body_id=created.id
        )
        self.assertEqual(result.error, ErrorKind.INVALID_OWNER)
        self.assertEqual(self.db.get_activity(created.id).owner_id, self.alice.id)

    def test_update_id_mismatch_skips_storage(self):
        db = MagicMock()
        service = ActivityService(db)
        result = service.update(self.alice.id, 1, make_draft(self.alice.id), body_id=2)
        self.assertEqual(result.error, ErrorKind.ID_MISMATCH)
        self.assertEqual(db.method_calls, [])

    def test_update_missing(self):
        result = self.service.update(
            self.alice.id, 42, make_draft(self.alice.id), body_id=42
        )
        self.assertEqual(result.error, ErrorKind.NOT_FOUND)

    def _conflicting_db(self, still_exists):
        record = ActivityRecord(
            id=7,
            title="t",
            description="",
            due=datetime(2024, 5, 1),
            status=None,
            owner_id=self.alice.id,
        )
        db = MagicMock()
        db.get_activity.side_effect = [record, record if still_exists else None]
        db.update_activity.side_effect = ConcurrencyError("version mismatch")
        return db

    def test_concurrency_conflict(self):
        service = ActivityService(self._conflicting_db(still_exists=True))
        result = service.update(self.alice.id, 7, make_draft(self.alice.id), body_id=7)
        self.assertEqual(result.error, ErrorKind.CONCURRENCY_CONFLICT)

    def test_concurrency_conflict_on_deleted_row_is_not_found(self):
        service = ActivityService(self._conflicting_db(still_exists=False))
        result = service.update(self.alice.id, 7, make_draft(self.alice.id), body_id=7)
        self.assertEqual(result.error, ErrorKind.NOT_FOUND)

    def test_stale_version_in_memory_raises_conflict(self):
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        self.db.update_activity(created)
        with self.assertRaises(ConcurrencyError):
            self.db.update_activity(created)

    def test_delete_missing_then_twice(self):
        self.assertEqual(self.service.delete(self.alice.id, 5).error, ErrorKind.NOT_FOUND)
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        self.assertTrue(self.service.delete(self.alice.id, created.id).is_ok)
        self.assertEqual(
            self.service.delete(self.alice.id, created.id).error, ErrorKind.NOT_FOUND
        )

    def test_delete_by_id_ignores_owner(self):
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        self.assertTrue(self.service.delete(self.bob.id, created.id).is_ok)

    def test_delete_owned_checks_owner(self):
        created = self.service.create(self.alice.id, make_draft(self.alice.id)).value
        self.assertFalse(self.service.delete_owned(created.id, self.bob.id))
        self.assertTrue(self.service.delete_owned(created.id, self.alice.id))
        self.assertFalse(self.service.delete_owned(created.id, self.alice.id))

    def test_storage_failure_on_delete(self):
        db = MagicMock()
        db.delete_activity.side_effect = StorageError("locked")
        result = ActivityService(db).delete(self.alice.id, 1)
        self.assertEqual(result.error, ErrorKind.STORAGE_FAILURE)
        self.assertIn("locked", result.message)


class OwnerScopedActivityServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.alice = self.db.create_user("alice@example.com", "x")
        self.bob = self.db.create_user("bob@example.com", "x")
        self.service = ActivityService(self.db, enforce_owner_scope=True)

    def test_create_for_other_user_rejected(self):
        result = self.service.create(self.alice.id, make_draft(self.bob.id))
        self.assertEqual(result.error, ErrorKind.INVALID_OWNER)

    def test_update_of_foreign_activity_is_not_found(self):
        created = self.service.create(self.bob.id, make_draft(self.bob.id)).value
        result = self.service.update(
            self.alice.id, created.id, make_draft(self.alice.id), body_id=created.id
        )
        self.assertEqual(result.error, ErrorKind.NOT_FOUND)

    def test_delete_of_foreign_activity_is_not_found(self):
        created = self.service.create(self.bob.id, make_draft(self.bob.id)).value
        self.assertEqual(
            self.service.delete(self.alice.id, created.id).error, ErrorKind.NOT_FOUND
        )
        self.assertIsNotNone(self.db.get_activity(created.id))


if __name__ == "__main__":
    unittest.main()
