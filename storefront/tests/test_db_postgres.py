import time
import unittest
from unittest.mock import patch

from storefront import auth
from storefront.changes import InMemoryChangeFeed
from storefront.config import Settings
from storefront.db import PostgresDbClient
from storefront.errors import DuplicateUser


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def _product(self, **overrides):
        fields = {
            "name": "Lamp",
            "description": "Desk lamp",
            "price": 20.0,
            "category": "Home",
            "in_stock": True,
        }
        fields.update(overrides)
        return self.db.insert_product(**fields)

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            PostgresDbClient("")

    def test_create_and_get_product(self):
        product = self._product(featured=True, image_id="product-images/abc")
        fetched = self.db.get_product(product.id)
        self.assertIsNotNone(fetched)
        self.assertEqual(fetched.name, "Lamp")
        self.assertTrue(fetched.featured)
        self.assertEqual(fetched.image_id, "product-images/abc")
        self.assertIsNone(self.db.get_product("missing"))

    def test_patch_product_only_touches_given_fields(self):
        product = self._product()
        patched = self.db.patch_product(product.id, {"price": 25.0, "in_stock": False})
        self.assertEqual(patched.price, 25.0)
        self.assertFalse(patched.in_stock)
        self.assertEqual(patched.name, "Lamp")
        self.assertIsNone(self.db.patch_product("missing", {"price": 1.0}))

    def test_delete_product(self):
        product = self._product()
        self.assertTrue(self.db.delete_product(product.id))
        self.assertFalse(self.db.delete_product(product.id))
        self.assertIsNone(self.db.get_product(product.id))

    def test_list_products_filters(self):
        lamp = self._product()
        self._product(name="Shade", in_stock=False)
        mug = self._product(name="Mug", category="Kitchen", featured=True)

        in_stock = self.db.list_products(in_stock=True)
        self.assertEqual([p.id for p in in_stock], [lamp.id, mug.id])

        home = self.db.list_products(in_stock=True, category="Home")
        self.assertEqual([p.id for p in home], [lamp.id])

        featured = self.db.list_products(in_stock=True, featured=True, limit=6)
        self.assertEqual([p.id for p in featured], [mug.id])

    def test_search_products_ranks_by_name(self):
        self._product(name="Floor Lamp")
        desk = self._product(name="Desk Lamp")
        self._product(name="Desk Lamp Spare", in_stock=False)
        self._product(name="Mug")

        results = self.db.search_products("desk lamp", in_stock=True)
        self.assertEqual(results[0].id, desk.id)
        self.assertEqual(len(results), 2)

        self.assertEqual(self.db.search_products("  ", in_stock=True), [])
        self.assertEqual(self.db.search_products("kettle", in_stock=True), [])
        prefix = self.db.search_products("mu", in_stock=True)
        self.assertEqual([p.name for p in prefix], ["Mug"])

    def test_categories_include_out_of_stock(self):
        self._product(category="Home")
        self._product(category="Garden", in_stock=False)
        self._product(category="Home")
        self.assertEqual(self.db.list_categories(), ["Home", "Garden"])

    def test_orders_listed_by_status_then_newest(self):
        first = self.db.insert_order(
            product_id="p1",
            customer_name="A",
            customer_email="a@x.com",
            quantity=1,
            total_price=10.0,
            status="pending",
        )
        second = self.db.insert_order(
            product_id="p1",
            customer_name="B",
            customer_email="b@x.com",
            quantity=2,
            total_price=20.0,
            status="pending",
        )
        shipped = self.db.insert_order(
            product_id="p2",
            customer_name="C",
            customer_email="c@x.com",
            quantity=1,
            total_price=5.0,
            status="shipped",
        )
        ordered = [o.id for o in self.db.list_orders_by_status()]
        self.assertEqual(ordered, [shipped.id, second.id, first.id])

        updated = self.db.update_order_status(first.id, "delivered")
        self.assertEqual(updated.status, "delivered")
        self.assertIsNone(self.db.update_order_status("missing", "pending"))

    def test_contacts_roundtrip(self):
        contact = self.db.insert_contact(
            name="B", email="b@x.com", message="hi", status="new"
        )
        self.assertEqual(self.db.get_contact(contact.id).status, "new")
        self.db.update_contact_status(contact.id, "replied")
        listed = self.db.list_contacts_by_status()
        self.assertEqual(listed[0].status, "replied")

    def test_duplicate_user_email_rejected(self):
        first = self.db.insert_user(email="admin@x.com", name="Admin")
        with self.assertRaises(DuplicateUser):
            self.db.insert_user(email="admin@x.com")
        self.assertEqual(self.db.get_user_by_email("admin@x.com").id, first.id)
        # The failed insert leaves the client usable.
        self.assertIsNotNone(self.db.insert_user(email="other@x.com"))

    def test_admin_check_tolerates_concurrent_insert(self):
        settings = Settings(admin_email="admin@x.com", admin_password="pw")
        changes = InMemoryChangeFeed()
        existing = self.db.insert_user(email="admin@x.com", name="Admin")
        with patch.object(self.db, "get_user_by_email", return_value=None):
            result = auth.admin_sign_in(self.db, settings, changes, "admin@x.com", "pw")
        self.assertEqual(result, {"success": True})
        self.assertEqual(self.db.get_user_by_email("admin@x.com").id, existing.id)
        self.assertEqual(changes.versions()["users"], 0)

    def test_users_and_sessions(self):
        user = self.db.insert_user(email="admin@x.com", name="Admin")
        self.assertEqual(self.db.get_user_by_email("admin@x.com").id, user.id)
        self.assertIsNone(self.db.get_user_by_email("other@x.com"))

        self.db.set_password_hash(user.id, "hash")
        self.assertEqual(self.db.get_user(user.id).password_hash, "hash")

        anon_a = self.db.insert_user(email=None, is_anonymous=True)
        anon_b = self.db.insert_user(email=None, is_anonymous=True)
        self.assertNotEqual(anon_a.id, anon_b.id)

        session = self.db.create_session(user.id, time.time() + 60)
        self.assertEqual(self.db.get_session(session.session_id).user_id, user.id)
        self.assertTrue(self.db.delete_session(session.session_id))
        self.assertIsNone(self.db.get_session(session.session_id))


if __name__ == "__main__":
    unittest.main()
