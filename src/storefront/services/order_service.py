# src/storefront/services/order_service.py
"""
Order placement and lifecycle business logic
"""
import secrets
from sqlalchemy.orm import Session, joinedload
from storefront.config import settings
from storefront.db.database import atomic
from storefront.errors import ConflictError, NotFoundError, ValidationError
from storefront.models.order import (
    Order,
    OrderFeedback,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    ReturnReason,
)
from storefront.models.product import Product, ProductStock
from storefront.models.schemas import OrderCreate, ReturnRequest
from storefront.services import order_state
from storefront.services.order_state import Transition
from typing import Dict, List, Optional, Tuple
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Tolerance when comparing client-computed money amounts
AMOUNT_TOLERANCE = 0.01


def generate_tracking_number() -> str:
    """Opaque customer-facing order code (16 upper-case hex characters)"""
    return secrets.token_hex(8).upper()


def format_return_reasons(reasons: List[ReturnReason], other_reason: Optional[str] = None) -> str:
    """Render reason codes as the display text stored with the order's feedback"""
    labels = []
    for reason in dict.fromkeys(reasons):
        if reason is ReturnReason.OTHER:
            continue
        labels.append(reason.label)

    if ReturnReason.OTHER in reasons and other_reason and other_reason.strip():
        labels.append(f"Other: {other_reason.strip()}")

    return "; ".join(labels)


class OrderService:
    """Order service for business logic"""

    @staticmethod
    def _capture_products(db: Session, order_data: OrderCreate) -> Dict[int, Product]:
        product_ids = {item.product_id for item in order_data.items}
        products = (
            db.query(Product)
            .filter(Product.id.in_(product_ids), Product.deleted.is_(False))
            .all()
        )
        by_id = {product.id: product for product in products}

        for item in order_data.items:
            if item.product_id not in by_id:
                raise ConflictError(f"Product {item.name or item.product_id} is not available")

        return by_id

    @staticmethod
    def _check_amounts(order_data: OrderCreate, products: Dict[int, Product]) -> None:
        subtotal = sum(products[item.product_id].price * item.quantity for item in order_data.items)

        if abs(subtotal - order_data.subtotal) > AMOUNT_TOLERANCE:
            raise ValidationError(
                f"Subtotal {order_data.subtotal:.2f} does not match cart contents ({subtotal:.2f})"
            )

        if abs(order_data.delivery - settings.delivery_fee) > AMOUNT_TOLERANCE:
            raise ValidationError(f"Delivery fee must be {settings.delivery_fee:.2f}")

        if abs(order_data.subtotal + order_data.delivery - order_data.total) > AMOUNT_TOLERANCE:
            raise ValidationError("Total must equal subtotal plus delivery fee")

    @staticmethod
    def _reserve_stock(db: Session, product_id: int, quantity: int) -> bool:
        """Decrement stock only if enough is available; False when it is not"""
        updated = (
            db.query(ProductStock)
            .filter(ProductStock.product_id == product_id, ProductStock.quantity >= quantity)
            .update(
                {ProductStock.quantity: ProductStock.quantity - quantity},
                synchronize_session=False
            )
        )
        return updated > 0

    @staticmethod
    def _release_stock(db: Session, order_id: int) -> List[Tuple[int, int]]:
        """Add every line item's quantity of an order back to stock"""
        items = db.query(OrderItem).filter(OrderItem.order_id == order_id).all()

        for item in items:
            db.query(ProductStock).filter(ProductStock.product_id == item.product_id).update(
                {ProductStock.quantity: ProductStock.quantity + item.quantity},
                synchronize_session=False
            )

        return [(item.product_id, item.quantity) for item in items]

    @staticmethod
    def _apply_transition(db: Session, order_id: int, user_id: int, transition: Transition) -> None:
        """
        Move an owned order to the transition's target state

        Uses a single conditional UPDATE so ownership, current state and the
        write are checked together.
        """
        updated = (
            db.query(Order)
            .filter(
                Order.id == order_id,
                Order.user_id == user_id,
                Order.status.in_(list(transition.sources))
            )
            .update({Order.status: transition.target}, synchronize_session=False)
        )

        if not updated:
            logger.warning(f"Order {order_id} cannot be {transition.action}")
            raise ConflictError(f"Order not found or cannot be {transition.action}")

    @staticmethod
    def place_order(db: Session, user_id: int, order_data: OrderCreate) -> Order:
        """
        Create an order with its line items, reserving stock

        Process:
        1. Capture current name and price of every product
        2. Verify subtotal and total against the captured prices
        3. Insert the order header
        4. For each line item, reserve stock then insert the line item

        Steps 3 and 4 run in one transaction; a shortage on any line item
        rolls everything back.
        """
        with tracer.start_as_current_span("order_service.place_order") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("items.count", len(order_data.items))

            logger.info(f"Placing order for user {user_id} with {len(order_data.items)} items")

            if order_data.payment_method == PaymentMethod.GCASH and not order_data.payment_details:
                raise ValidationError("GCash payment requires an account name and GCash number")

            products = OrderService._capture_products(db, order_data)
            OrderService._check_amounts(order_data, products)

            billing = order_data.billing_info
            order = Order(
                user_id=user_id,
                tracking_number=generate_tracking_number(),
                status=order_state.INITIAL_STATUS,
                full_name=billing.full_name,
                phone_number=billing.phone_number,
                address=billing.address,
                city=billing.city,
                state_province=billing.state_province,
                postal_code=billing.postal_code,
                delivery_address=billing.delivery_address,
                payment_method=order_data.payment_method,
                subtotal=order_data.subtotal,
                delivery_fee=order_data.delivery,
                total=order_data.total
            )

            with atomic(db, "the order"):
                db.add(order)
                db.flush()  # Get order ID

                for item in order_data.items:
                    product = products[item.product_id]

                    if not OrderService._reserve_stock(db, product.id, item.quantity):
                        logger.warning(
                            f"Insufficient stock for product {product.id}: requested {item.quantity}"
                        )
                        raise ConflictError(f"Not enough stock for product: {product.name}")

                    db.add(OrderItem(
                        order_id=order.id,
                        product_id=product.id,
                        name=product.name,
                        quantity=item.quantity,
                        price=product.price
                    ))

            db.refresh(order)

            span.set_attribute("order.id", order.id)
            logger.info(f"Order {order.id} placed with tracking number {order.tracking_number}")

            return order

    @staticmethod
    def cancel_order(db: Session, order_id: int, user_id: int) -> None:
        """Cancel a placed order and release its reserved stock"""
        with tracer.start_as_current_span("order_service.cancel_order") as span:
            span.set_attribute("order.id", order_id)

            with atomic(db, "the cancellation"):
                OrderService._apply_transition(db, order_id, user_id, order_state.CANCEL)
                released = OrderService._release_stock(db, order_id)

            logger.info(f"Order {order_id} cancelled, released stock for {len(released)} items")

    @staticmethod
    def mark_received(db: Session, order_id: int, user_id: int) -> None:
        """Confirm receipt of a delivered order"""
        with tracer.start_as_current_span("order_service.mark_received") as span:
            span.set_attribute("order.id", order_id)

            with atomic(db, "the order update"):
                OrderService._apply_transition(db, order_id, user_id, order_state.MARK_RECEIVED)

            logger.info(f"Order {order_id} marked as received")

    @staticmethod
    def request_return(db: Session, order_id: int, user_id: int, request: ReturnRequest) -> bool:
        """
        Return a delivered or received order

        The reason text is appended to the order's feedback. Goods go back to
        stock unless a cited reason rules that out (defective or incomplete).
        Returns whether stock was replenished.
        """
        with tracer.start_as_current_span("order_service.request_return") as span:
            span.set_attribute("order.id", order_id)

            if ReturnReason.OTHER in request.reasons and not (request.other_reason or "").strip():
                raise ValidationError("Please describe the other reason for the return")

            reason_text = format_return_reasons(request.reasons, request.other_reason)
            if not reason_text:
                raise ValidationError("Return reason is required")

            restock = all(reason.restock for reason in request.reasons)
            span.set_attribute("return.restock", restock)

            with atomic(db, "the return"):
                OrderService._apply_transition(db, order_id, user_id, order_state.REQUEST_RETURN)
                db.add(OrderFeedback(order_id=order_id, feedback=reason_text))
                if restock:
                    OrderService._release_stock(db, order_id)

            logger.info(f"Order {order_id} returned (restocked={restock})")
            return restock

    @staticmethod
    def get_order(db: Session, order_id: int, user_id: int) -> Order:
        """Get an order owned by the user, with its line items"""
        with tracer.start_as_current_span("order_service.get_order") as span:
            span.set_attribute("order.id", order_id)

            order = (
                db.query(Order)
                .options(joinedload(Order.items).joinedload(OrderItem.product))
                .filter(Order.id == order_id, Order.user_id == user_id)
                .first()
            )
            if not order:
                raise NotFoundError("Order not found")
            return order

    @staticmethod
    def get_order_by_tracking_number(db: Session, tracking_number: str, user_id: int) -> Order:
        order = (
            db.query(Order)
            .options(joinedload(Order.items).joinedload(OrderItem.product))
            .filter(Order.tracking_number == tracking_number.upper(), Order.user_id == user_id)
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    def list_orders(db: Session, user_id: int) -> List[Order]:
        """All orders of a user, newest first"""
        with tracer.start_as_current_span("order_service.list_orders") as span:
            span.set_attribute("user.id", user_id)
            return (
                db.query(Order)
                .filter(Order.user_id == user_id)
                .order_by(Order.order_date.desc(), Order.id.desc())
                .all()
            )

    @staticmethod
    def order_history(db: Session, user_id: int) -> List[Dict]:
        """Orders with their product names joined for display"""
        orders = (
            db.query(Order)
            .options(joinedload(Order.items))
            .filter(Order.user_id == user_id)
            .order_by(Order.order_date.desc(), Order.id.desc())
            .all()
        )

        return [
            {
                "id": order.id,
                "tracking_number": order.tracking_number,
                "status": order.status,
                "order_date": order.order_date,
                "total": order.total,
                "is_rated": order.is_rated,
                "products": ", ".join(item.name for item in order.items),
            }
            for order in orders
            if order.items
        ]

    @staticmethod
    def list_feedback(db: Session, order_id: int, user_id: int) -> List[OrderFeedback]:
        """Feedback and return reasons recorded on an owned order"""
        OrderService.get_order(db, order_id, user_id)
        return (
            db.query(OrderFeedback)
            .filter(OrderFeedback.order_id == order_id)
            .order_by(OrderFeedback.id)
            .all()
        )

    @staticmethod
    def update_status(db: Session, order_id: int, status: OrderStatus) -> Order:
        """Back-office status change (fulfilment and return resolution)"""
        with tracer.start_as_current_span("order_service.update_status") as span:
            span.set_attribute("order.id", order_id)
            span.set_attribute("status.new", status.value)

            order = db.query(Order).filter(Order.id == order_id).first()
            if not order:
                raise NotFoundError(f"Order with id {order_id} not found")

            old_status = order.status
            if not order_state.can_admin_transition(old_status, status):
                raise ConflictError(f"Cannot change order status from {old_status.value} to {status.value}")

            with atomic(db, "the status update"):
                updated = (
                    db.query(Order)
                    .filter(Order.id == order_id, Order.status == old_status)
                    .update({Order.status: status}, synchronize_session=False)
                )
                if not updated:
                    raise ConflictError("Order status changed concurrently, please retry")

            db.refresh(order)

            span.set_attribute("status.old", old_status.value)
            logger.info(f"Order {order_id} status updated: {old_status.value} -> {status.value}")

            return order
