# src/storefront/models/schemas.py
"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Annotated, Dict, List, Optional
from datetime import datetime
from storefront.models.order import (
    DeliveryAddressLabel,
    Order,
    OrderStatus,
    PaymentMethod,
    ReturnReason,
)
from storefront.services import order_state


class MessageResponse(BaseModel):
    """Generic success acknowledgement"""
    success: bool = True
    message: str


# ---------------------------
# Auth
# ---------------------------


class SignupRequest(BaseModel):
    """Schema for registering an account"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=500)
    mobile: str = Field(..., min_length=7, max_length=20)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)


class SigninRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Schema for signup/signin response"""
    success: bool = True
    message: str
    token: str
    token_type: str = "bearer"
    first_name: str


class AuthenticatedUser(BaseModel):
    id: int


class CheckAuthResponse(BaseModel):
    is_authenticated: bool
    user: Optional[AuthenticatedUser] = None


class UserProfileResponse(BaseModel):
    success: bool = True
    first_name: str
    email: str


# ---------------------------
# Catalog
# ---------------------------


class ProductResponse(BaseModel):
    """Product with its rating aggregate and stock level"""
    id: int
    name: str
    description: Optional[str] = None
    price: float
    image_url: Optional[str] = None
    category: str
    avg_rating: float
    rating_count: int
    stock_quantity: int


class CategoryResponse(BaseModel):
    id: str
    name: str


class ProductRatingResponse(BaseModel):
    order_id: int
    product_id: int
    rating: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------
# Orders
# ---------------------------


class BillingInfo(BaseModel):
    """Billing and delivery snapshot captured on the order"""
    full_name: str = Field(..., min_length=1, max_length=255)
    phone_number: str = Field(..., min_length=7, max_length=20)
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    state_province: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    delivery_address: DeliveryAddressLabel = DeliveryAddressLabel.HOME


class GCashPaymentDetails(BaseModel):
    account_name: str = Field(..., min_length=1, max_length=255)
    gcash_number: str = Field(..., pattern=r"^09\d{9}$", description="11-digit mobile number")


class OrderItemCreate(BaseModel):
    """One cart entry submitted at checkout"""
    product_id: int = Field(..., gt=0, description="Product ID")
    quantity: int = Field(..., gt=0, description="Quantity")
    name: Optional[str] = Field(None, description="Name shown in the cart")
    price: Optional[float] = Field(None, ge=0, description="Price shown in the cart")


class OrderCreate(BaseModel):
    """Schema for placing an order"""
    billing_info: BillingInfo
    payment_method: PaymentMethod
    payment_details: Optional[GCashPaymentDetails] = None
    items: List[OrderItemCreate] = Field(..., min_length=1, description="At least one item required")
    subtotal: float = Field(..., ge=0)
    delivery: float = Field(..., ge=0)
    total: float = Field(..., ge=0)


class OrderCreateResponse(BaseModel):
    success: bool = True
    order_id: int
    tracking_number: str


class OrderItemResponse(BaseModel):
    product_id: int
    name: str
    quantity: int
    price: float
    image_url: Optional[str] = None


class OrderResponse(BaseModel):
    """Full order detail"""
    id: int
    tracking_number: str
    status: OrderStatus
    billing_info: BillingInfo
    payment_method: PaymentMethod
    items: List[OrderItemResponse]
    subtotal: float
    delivery_fee: float
    total: float
    is_rated: bool
    is_terminal: bool
    tracking_step: int = Field(..., description="Position on the tracking timeline, -1 when off it")
    order_date: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            tracking_number=order.tracking_number,
            status=order.status,
            billing_info=BillingInfo(
                full_name=order.full_name,
                phone_number=order.phone_number,
                address=order.address,
                city=order.city,
                state_province=order.state_province,
                postal_code=order.postal_code,
                delivery_address=order.delivery_address,
            ),
            payment_method=order.payment_method,
            items=[
                OrderItemResponse(
                    product_id=item.product_id,
                    name=item.name,
                    quantity=item.quantity,
                    price=item.price,
                    image_url=item.product.image_url if item.product else None,
                )
                for item in order.items
            ],
            subtotal=order.subtotal,
            delivery_fee=order.delivery_fee,
            total=order.total,
            is_rated=order.is_rated,
            is_terminal=order_state.is_terminal(order.status),
            tracking_step=order_state.tracking_progress(order.status),
            order_date=order.order_date,
        )


class OrderSummaryResponse(BaseModel):
    id: int
    tracking_number: str
    status: OrderStatus
    order_date: datetime
    total: float

    model_config = ConfigDict(from_attributes=True)


class OrderHistoryEntry(OrderSummaryResponse):
    """Order summary with the captured product names"""
    is_rated: bool
    products: str


class ReturnRequest(BaseModel):
    """Schema for requesting a return"""
    reasons: List[ReturnReason] = Field(..., min_length=1)
    other_reason: Optional[str] = Field(None, max_length=1000)


class RatingsSubmission(BaseModel):
    """Per-product scores keyed by product id, plus optional feedback"""
    ratings: Dict[int, Annotated[int, Field(ge=1, le=5)]] = Field(..., min_length=1)
    feedback: Optional[str] = Field(None, max_length=2000)


class FeedbackResponse(BaseModel):
    id: int
    order_id: int
    feedback: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderStatusUpdate(BaseModel):
    """Schema for admin status changes"""
    status: OrderStatus


class HealthResponse(BaseModel):
    """Liveness and readiness probe response"""
    status: str
    service: str
    version: str
    timestamp: datetime
    database: Optional[str] = None
