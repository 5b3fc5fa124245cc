import os
import tempfile
import unittest

from fastapi.testclient import TestClient

from storefront.db import database as db_database
from storefront.main import app
from storefront.models.order import Order, OrderFeedback, OrderItem, OrderStatus
from storefront.models.product import Product, ProductStock
from storefront.models.user import User
from storefront.services.auth import create_access_token

BILLING = {
    "full_name": "Maria Santos",
    "phone_number": "09171234567",
    "address": "12 Rizal St",
    "city": "Davao City",
    "state_province": "Davao del Sur",
    "postal_code": "8000",
    "delivery_address": "Home",
}

DELIVERY_FEE = 60.0


class StorefrontTestCase(unittest.TestCase):
    """Runs every test against a fresh SQLite database in a temp dir"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.init_database(f"sqlite:///{db_path}")
        db_database.create_tables()
        # Not used as a context manager, so the app lifespan (and its own
        # database setup) does not run
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        db_database.engine.dispose()
        self.temp_dir.cleanup()

    # ---------- fixtures ----------

    def session(self):
        return db_database.SessionLocal()

    def add_user(self, email="maria@example.com", is_admin=False, is_active=True) -> int:
        with self.session() as db:
            user = User(
                first_name="Maria",
                last_name="Santos",
                address="12 Rizal St",
                mobile="09171234567",
                email=email,
                hashed_password="not-a-real-hash",
                is_admin=is_admin,
                is_active=is_active,
            )
            db.add(user)
            db.commit()
            return user.id

    def add_product(self, name, price, stock, category="Notebooks", deleted=False) -> int:
        with self.session() as db:
            product = Product(
                name=name,
                description=f"{name} for school",
                price=price,
                image_url=f"/images/{name.lower().replace(' ', '-')}.png",
                category=category,
                deleted=deleted,
            )
            db.add(product)
            db.flush()
            db.add(ProductStock(product_id=product.id, quantity=stock))
            db.commit()
            return product.id

    def auth(self, user_id) -> dict:
        token = create_access_token({"sub": str(user_id), "user_id": user_id})
        return {"Authorization": f"Bearer {token}"}

    def order_payload(self, lines, payment_method="COD", **overrides) -> dict:
        """lines: (product_id, quantity, unit_price) tuples"""
        subtotal = sum(qty * price for _, qty, price in lines)
        payload = {
            "billing_info": dict(BILLING),
            "payment_method": payment_method,
            "items": [
                {"product_id": pid, "quantity": qty, "price": price}
                for pid, qty, price in lines
            ],
            "subtotal": subtotal,
            "delivery": DELIVERY_FEE,
            "total": subtotal + DELIVERY_FEE,
        }
        payload.update(overrides)
        return payload

    def place(self, user_id, lines, **overrides):
        return self.client.post(
            "/api/v1/orders",
            json=self.order_payload(lines, **overrides),
            headers=self.auth(user_id),
        )

    def place_ok(self, user_id, lines) -> int:
        resp = self.place(user_id, lines)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["order_id"]

    def force_status(self, order_id, status: OrderStatus):
        with self.session() as db:
            db.query(Order).filter(Order.id == order_id).update({Order.status: status})
            db.commit()

    # ---------- inspection ----------

    def stock_of(self, product_id) -> int:
        with self.session() as db:
            return db.query(ProductStock).filter(ProductStock.product_id == product_id).one().quantity

    def status_of(self, order_id) -> OrderStatus:
        with self.session() as db:
            return db.query(Order).filter(Order.id == order_id).one().status

    def count(self, model) -> int:
        with self.session() as db:
            return db.query(model).count()

    def feedback_of(self, order_id):
        with self.session() as db:
            rows = db.query(OrderFeedback).filter(OrderFeedback.order_id == order_id).all()
            return [row.feedback for row in rows]

    def items_of(self, order_id):
        with self.session() as db:
            rows = db.query(OrderItem).filter(OrderItem.order_id == order_id).all()
            return [(row.product_id, row.name, row.quantity, row.price) for row in rows]
