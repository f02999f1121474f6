import unittest

from storefront import catalog, contacts, orders
from storefront.changes import InMemoryChangeFeed
from storefront.db import InMemoryDbClient
from storefront.errors import NotFound, Unauthorized
from storefront.storage import InMemoryStorageClient

ADMIN = "user-1"


class OrderIntakeTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()
        self.changes = InMemoryChangeFeed()
        self.product_id = catalog.create_product(
            self.db,
            self.changes,
            ADMIN,
            name="Lamp",
            description="Desk lamp",
            price=20.0,
            category="Home",
        )

    def _order(self, quantity=3):
        return orders.create_order(
            self.db,
            self.changes,
            product_id=self.product_id,
            customer_name="A",
            customer_email="a@x.com",
            quantity=quantity,
        )

    def test_total_is_price_times_quantity(self):
        order = self.db.get_order(self._order())
        self.assertEqual(order.total_price, 60.0)
        self.assertEqual(order.status, "pending")

    def test_total_survives_price_change(self):
        order_id = self._order()
        catalog.update_product(
            self.db, self.changes, ADMIN, self.product_id, price=100.0
        )
        self.assertEqual(self.db.get_order(order_id).total_price, 60.0)

    def test_no_stock_reservation(self):
        catalog.update_product(
            self.db, self.changes, ADMIN, self.product_id, in_stock=False
        )
        order_id = self._order(quantity=1000)
        self.assertEqual(self.db.get_order(order_id).quantity, 1000)
        self.assertFalse(self.db.get_product(self.product_id).in_stock)

    def test_missing_product(self):
        with self.assertRaises(NotFound):
            orders.create_order(
                self.db,
                self.changes,
                product_id="missing",
                customer_name="A",
                customer_email="a@x.com",
                quantity=1,
            )
        self.assertEqual(self.db.list_orders_by_status(), [])

    def test_non_positive_quantity(self):
        with self.assertRaises(ValueError):
            self._order(quantity=0)

    def test_list_requires_identity_and_joins_product(self):
        order_id = self._order()
        with self.assertRaises(Unauthorized):
            orders.list_orders(self.db, self.storage, None)

        listed = orders.list_orders(self.db, self.storage, ADMIN)
        self.assertEqual(listed[0]["id"], order_id)
        self.assertEqual(listed[0]["product"]["name"], "Lamp")

        catalog.delete_product(self.db, self.changes, ADMIN, self.product_id)
        listed = orders.list_orders(self.db, self.storage, ADMIN)
        self.assertEqual(listed[0]["id"], order_id)
        self.assertIsNone(listed[0]["product"])

    def test_list_order(self):
        first = self._order()
        second = self._order()
        confirmed = self._order()
        orders.update_order_status(self.db, self.changes, ADMIN, confirmed, "confirmed")
        ids = [o["id"] for o in orders.list_orders(self.db, self.storage, ADMIN)]
        # pending > confirmed when scanning the status index descending
        self.assertEqual(ids, [second, first, confirmed])

    def test_status_transitions_unrestricted(self):
        order_id = self._order()
        orders.update_order_status(self.db, self.changes, ADMIN, order_id, "delivered")
        orders.update_order_status(self.db, self.changes, ADMIN, order_id, "pending")
        self.assertEqual(self.db.get_order(order_id).status, "pending")

    def test_status_update_errors(self):
        order_id = self._order()
        with self.assertRaises(Unauthorized):
            orders.update_order_status(self.db, self.changes, None, order_id, "shipped")
        with self.assertRaises(ValueError):
            orders.update_order_status(self.db, self.changes, ADMIN, order_id, "lost")
        with self.assertRaises(NotFound):
            orders.update_order_status(self.db, self.changes, ADMIN, "missing", "shipped")


class ContactIntakeTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.changes = InMemoryChangeFeed()

    def test_submit_and_reply(self):
        contact_id = contacts.submit_contact(
            self.db, self.changes, name="B", email="b@x.com", message="hi"
        )
        self.assertEqual(self.db.get_contact(contact_id).status, "new")

        contacts.update_contact_status(
            self.db, self.changes, ADMIN, contact_id, "replied"
        )
        listed = contacts.list_contacts(self.db, ADMIN)
        self.assertEqual([(c.id, c.status) for c in listed], [(contact_id, "replied")])
        self.assertEqual(self.changes.versions()["contacts"], 2)

    def test_backwards_transition(self):
        contact_id = contacts.submit_contact(
            self.db, self.changes, name="B", email="b@x.com", message="hi"
        )
        contacts.update_contact_status(self.db, self.changes, ADMIN, contact_id, "replied")
        contacts.update_contact_status(self.db, self.changes, ADMIN, contact_id, "new")
        self.assertEqual(self.db.get_contact(contact_id).status, "new")

    def test_admin_only(self):
        with self.assertRaises(Unauthorized):
            contacts.list_contacts(self.db, None)
        with self.assertRaises(Unauthorized):
            contacts.update_contact_status(self.db, self.changes, None, "x", "read")
        with self.assertRaises(NotFound):
            contacts.update_contact_status(self.db, self.changes, ADMIN, "x", "read")


if __name__ == "__main__":
    unittest.main()
