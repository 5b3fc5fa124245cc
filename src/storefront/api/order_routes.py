# src/storefront/api/order_routes.py
"""
FastAPI routes for order placement, tracking and lifecycle actions
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from storefront.api.dependencies import get_active_user_id, get_current_admin
from storefront.db.database import get_db
from storefront.models.user import User
from storefront.services.order_service import OrderService
from storefront.services.rating_service import RatingService
from storefront.models.schemas import (
    FeedbackResponse,
    MessageResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderHistoryEntry,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummaryResponse,
    RatingsSubmission,
    ReturnRequest,
)
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["orders"])


@router.post(
    "/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED
)
def place_order(
    order: OrderCreate,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """
    Place an order from the cart contents

    This endpoint:
    1. Captures current product names and prices
    2. Checks subtotal and total
    3. Creates the order header
    4. Reserves stock and inserts each line item

    A shortage on any product fails the whole order with a 400 naming it.
    """
    logger.info(f"Placing order for user {user_id}")

    new_order = OrderService.place_order(db, user_id, order)
    return OrderCreateResponse(order_id=new_order.id, tracking_number=new_order.tracking_number)


@router.get("/orders", response_model=List[OrderSummaryResponse])
def list_orders(user_id: int = Depends(get_active_user_id), db: Session = Depends(get_db)):
    """All orders of the signed-in user, newest first"""
    return OrderService.list_orders(db, user_id)


@router.get("/orders/history", response_model=List[OrderHistoryEntry])
def order_history(user_id: int = Depends(get_active_user_id), db: Session = Depends(get_db)):
    """Order history with product names and rating state"""
    return OrderService.order_history(db, user_id)


@router.get("/orders/tracking/{tracking_number}", response_model=OrderResponse)
def track_order(
    tracking_number: str,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """Look up an order by its tracking number"""
    order = OrderService.get_order_by_tracking_number(db, tracking_number, user_id)
    return OrderResponse.from_order(order)


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """
    Get a specific order by ID

    Orders of other users are reported as not found.
    """
    logger.info(f"Getting order {order_id}")

    order = OrderService.get_order(db, order_id, user_id)
    return OrderResponse.from_order(order)


@router.get("/orders/{order_id}/feedback", response_model=List[FeedbackResponse])
def list_order_feedback(
    order_id: int,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """Feedback and return reasons recorded on the order"""
    return OrderService.list_feedback(db, order_id, user_id)


@router.post("/orders/{order_id}/cancel", response_model=MessageResponse)
def cancel_order(
    order_id: int,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """
    Cancel an order

    Only orders still in "Order Placed" can be cancelled.
    """
    logger.info(f"Cancelling order {order_id}")

    OrderService.cancel_order(db, order_id, user_id)
    return MessageResponse(message="Order cancelled successfully")


@router.post("/orders/{order_id}/received", response_model=MessageResponse)
def mark_order_received(
    order_id: int,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """Confirm that a delivered order was received"""
    OrderService.mark_received(db, order_id, user_id)
    return MessageResponse(message="Order marked as received successfully")


@router.post("/orders/{order_id}/return", response_model=MessageResponse)
def return_order(
    order_id: int,
    request: ReturnRequest,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """
    Return a delivered or received order

    - **reasons**: one or more reason codes
    - **other_reason**: required when "other" is among the reasons
    """
    logger.info(f"Return requested for order {order_id}")

    OrderService.request_return(db, order_id, user_id, request)
    return MessageResponse(message="Order marked as returned successfully")


@router.post("/orders/{order_id}/ratings", response_model=MessageResponse)
def submit_ratings(
    order_id: int,
    submission: RatingsSubmission,
    user_id: int = Depends(get_active_user_id),
    db: Session = Depends(get_db)
):
    """Rate the products of a received order, once"""
    RatingService.submit_ratings(db, order_id, user_id, submission)
    return MessageResponse(message="Ratings submitted successfully")


@router.patch("/admin/orders/{order_id}/status", response_model=OrderSummaryResponse)
def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Update order status (back office)

    Allowed moves:
    - Order Placed -> Processing -> Shipped -> Delivered
    - Returned -> Refunded or Return Cancelled
    """
    logger.info(f"Admin {admin.id} updating order {order_id} status to {status_update.status.value}")

    return OrderService.update_status(db, order_id, status_update.status)
