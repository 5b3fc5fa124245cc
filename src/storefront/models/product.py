"""
Catalog database models
"""
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from storefront.db.database import Base


class Product(Base):
    """Product model"""
    __tablename__ = "products"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(Float, nullable=False)
    image_url = Column(String(500))
    category = Column(String(100), nullable=False, index=True)
    supplier_id = Column(Integer)
    deleted = Column(Boolean, default=False, nullable=False)
    
    stock = relationship("ProductStock", back_populates="product", uselist=False)
    
    def __repr__(self):
        return f"<Product(id={self.id}, name={self.name}, price={self.price})>"


class ProductStock(Base):
    """Available quantity of one product"""
    __tablename__ = "product_stocks"
    
    product_id = Column(Integer, ForeignKey("products.id"), primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), server_default=func.now())
    
    product = relationship("Product", back_populates="stock")
    
    def __repr__(self):
        return f"<ProductStock(product_id={self.product_id}, quantity={self.quantity})>"


class ProductRating(Base):
    """One customer's score for a product bought in a given order"""
    __tablename__ = "product_ratings"
    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_product_ratings_order_product"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    def __repr__(self):
        return f"<ProductRating(order_id={self.order_id}, product_id={self.product_id}, rating={self.rating})>"
