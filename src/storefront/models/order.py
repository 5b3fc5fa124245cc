"""
Order database models
"""
from sqlalchemy import Boolean, Column, Integer, String, Float, DateTime, Enum as SQLEnum, ForeignKey, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from storefront.db.database import Base
import enum


class OrderStatus(str, enum.Enum):
    """Order status enum"""
    ORDER_PLACED = "Order Placed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    RECEIVED = "Received"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"
    REFUNDED = "Refunded"
    RETURN_CANCELLED = "Return Cancelled"


class PaymentMethod(str, enum.Enum):
    """Payment methods offered at checkout"""
    GCASH = "GCash"
    COD = "COD"


class DeliveryAddressLabel(str, enum.Enum):
    HOME = "Home"
    WORK = "Work"


class ReturnReason(str, enum.Enum):
    """Reason codes a customer can cite when returning an order"""
    DEFECTIVE = "defective"
    WRONG_ITEM = "wrong_item"
    QUALITY = "quality"
    INCOMPLETE = "incomplete"
    SIZE_ISSUE = "size_issue"
    PACKAGING = "packaging"
    DUPLICATE = "duplicate"
    PERFORMANCE = "performance"
    OTHER = "other"

    @property
    def label(self) -> str:
        return RETURN_REASON_LABELS[self]

    @property
    def restock(self) -> bool:
        """Whether goods returned for this reason go back on the shelf"""
        return self not in NO_RESTOCK_REASONS


RETURN_REASON_LABELS = {
    ReturnReason.DEFECTIVE: "Defective or Damaged Product",
    ReturnReason.WRONG_ITEM: "Received Wrong Item",
    ReturnReason.QUALITY: "Quality Not as Expected",
    ReturnReason.INCOMPLETE: "Incomplete Set/Missing Parts",
    ReturnReason.SIZE_ISSUE: "Size/Dimension Issue",
    ReturnReason.PACKAGING: "Damaged Packaging",
    ReturnReason.DUPLICATE: "Duplicate/Multiple Orders",
    ReturnReason.PERFORMANCE: "Poor Performance/Not Working as Described",
    ReturnReason.OTHER: "Other Reason",
}

NO_RESTOCK_REASONS = frozenset({ReturnReason.DEFECTIVE, ReturnReason.INCOMPLETE})


class Order(Base):
    """Order header model"""
    __tablename__ = "orders"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    tracking_number = Column(String(32), unique=True, nullable=False, index=True)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.ORDER_PLACED, nullable=False)
    
    # Billing snapshot
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(20), nullable=False)
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False)
    state_province = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)
    delivery_address = Column(SQLEnum(DeliveryAddressLabel), nullable=False)
    
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    subtotal = Column(Float, nullable=False)
    delivery_fee = Column(Float, nullable=False)
    total = Column(Float, nullable=False)
    is_rated = Column(Boolean, default=False, nullable=False)
    
    order_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    
    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status}, total={self.total})>"


class OrderItem(Base):
    """Order line item; name and price are captured at checkout"""
    __tablename__ = "ordered_products"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    
    order = relationship("Order", back_populates="items")
    product = relationship("Product")
    
    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, qty={self.quantity})>"


class OrderFeedback(Base):
    """Free-text feedback or return reason attached to an order"""
    __tablename__ = "order_feedback"
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    feedback = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
