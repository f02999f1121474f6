import unittest

from scripts.create_account import provision_account
from storefront.auth import verify_password
from storefront.changes import InMemoryChangeFeed
from storefront.db import InMemoryDbClient


class CreateAccountScriptTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.changes = InMemoryChangeFeed()

    def test_creates_user_with_password(self):
        self.assertTrue(
            provision_account(self.db, self.changes, "a@x.com", "pw", name="Admin")
        )
        user = self.db.get_user_by_email("a@x.com")
        self.assertEqual(user.name, "Admin")
        self.assertTrue(verify_password("pw", user.password_hash))
        self.assertEqual(self.changes.versions()["users"], 1)

    def test_attaches_password_to_existing_admin_row(self):
        existing = self.db.insert_user(email="a@x.com", name="Admin")
        provision_account(self.db, self.changes, "a@x.com", "pw")
        self.assertEqual(len(self.db.users), 1)
        self.assertTrue(verify_password("pw", self.db.get_user(existing.id).password_hash))

    def test_keeps_existing_password_unless_forced(self):
        provision_account(self.db, self.changes, "a@x.com", "old")
        self.assertFalse(provision_account(self.db, self.changes, "a@x.com", "new"))
        user = self.db.get_user_by_email("a@x.com")
        self.assertTrue(verify_password("old", user.password_hash))

        self.assertTrue(
            provision_account(self.db, self.changes, "a@x.com", "new", force=True)
        )
        self.assertTrue(verify_password("new", user.password_hash))


if __name__ == "__main__":
    unittest.main()
