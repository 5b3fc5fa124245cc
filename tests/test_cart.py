import json
import os
import tempfile
import unittest

from storefront.config import settings
from storefront.models.schemas import OrderCreate
from storefront.services.cart import CART_STORAGE_KEY, Cart, JSONFileStore, MemoryStore
from tests.support import BILLING

PENCIL = {"id": 1, "name": "Pencil Set", "price": 100.0, "stock_quantity": 5, "image_url": "/images/pencil.png"}
RULER = {"id": 2, "name": "Steel Ruler", "price": 45.5, "stock_quantity": 2}
SOLD_OUT = {"id": 3, "name": "Glitter Pens", "price": 80.0, "stock_quantity": 0}


class CartTestCase(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.cart = Cart(self.store)

    # ---------- Mutations ----------

    def test_add_merges_lines_and_clamps_to_stock(self):
        self.cart.add(PENCIL, 2)
        self.cart.add(PENCIL, 2)
        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.cart.lines[0].quantity, 4)

        self.cart.add(PENCIL, 10)
        self.assertEqual(self.cart.lines[0].quantity, 5)

        line = self.cart.add(RULER, 0)
        self.assertEqual(line.quantity, 1)

    def test_sold_out_products_cannot_be_added(self):
        with self.assertRaises(ValueError):
            self.cart.add(SOLD_OUT)
        self.assertTrue(self.cart.is_empty)

    def test_update_quantity(self):
        self.cart.add(PENCIL)
        self.assertEqual(self.cart.update_quantity(1, 9).quantity, 5)
        self.assertEqual(self.cart.update_quantity(1, 3).quantity, 3)

        # Stock dropped since the product was added
        self.assertEqual(self.cart.update_quantity(1, 3, stock_quantity=2).quantity, 2)

        self.assertIsNone(self.cart.update_quantity(1, 0))
        self.assertTrue(self.cart.is_empty)
        self.assertIsNone(self.cart.update_quantity(99, 1))

    def test_update_removes_line_when_stock_runs_out(self):
        self.cart.add(RULER)
        self.assertIsNone(self.cart.update_quantity(2, 1, stock_quantity=0))
        self.assertTrue(self.cart.is_empty)

    def test_remove_and_clear(self):
        self.cart.add(PENCIL)
        self.cart.add(RULER)
        self.cart.remove(1)
        self.assertEqual([line.product_id for line in self.cart], [2])

        self.cart.clear()
        self.assertTrue(self.cart.is_empty)
        self.assertIsNone(self.store.get(CART_STORAGE_KEY))

    # ---------- Totals ----------

    def test_totals(self):
        self.assertEqual(self.cart.delivery, 0.0)
        self.assertEqual(self.cart.total, 0.0)

        self.cart.add(PENCIL, 2)
        self.cart.add(RULER, 2)
        self.assertEqual(self.cart.subtotal, 291.0)
        self.assertEqual(self.cart.delivery, 60.0)
        self.assertEqual(self.cart.total, 351.0)

    def test_delivery_fee_comes_from_settings_unless_given(self):
        self.assertEqual(self.cart.delivery_fee, settings.delivery_fee)

        free_delivery = Cart(MemoryStore(), delivery_fee=0.0)
        free_delivery.add(PENCIL)
        self.assertEqual(free_delivery.total, 100.0)

    def test_order_payload_is_a_valid_checkout_request(self):
        with self.assertRaises(ValueError):
            self.cart.to_order_payload(BILLING, "COD")

        self.cart.add(PENCIL, 2)
        payload = self.cart.to_order_payload(
            BILLING, "GCash", {"account_name": "Maria Santos", "gcash_number": "09171234567"}
        )
        order = OrderCreate.model_validate(payload)
        self.assertEqual(order.items[0].quantity, 2)
        self.assertEqual(order.total, 260.0)
        self.assertEqual(order.payment_details.gcash_number, "09171234567")

    # ---------- Persistence ----------

    def test_every_mutation_is_written_back(self):
        self.cart.add(PENCIL, 3)
        stored = json.loads(self.store.get(CART_STORAGE_KEY))
        self.assertEqual(stored[0]["quantity"], 3)

        reloaded = Cart(self.store)
        self.assertEqual(reloaded.lines[0].name, "Pencil Set")
        self.assertEqual(reloaded.lines[0].image_url, "/images/pencil.png")

    def test_unreadable_stored_cart_is_discarded(self):
        store = MemoryStore({CART_STORAGE_KEY: "{not json"})
        cart = Cart(store)
        self.assertTrue(cart.is_empty)
        self.assertIsNone(store.get(CART_STORAGE_KEY))

    def test_json_file_store_survives_a_new_session(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "session.json")

            Cart(JSONFileStore(path)).add(RULER, 2)
            reloaded = Cart(JSONFileStore(path))
            self.assertEqual(reloaded.lines[0].quantity, 2)

            reloaded.clear()
            self.assertTrue(Cart(JSONFileStore(path)).is_empty)


if __name__ == "__main__":
    unittest.main()
