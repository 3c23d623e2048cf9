"""
SQLAlchemy models for customers, catalog products, orders and order items.
All model and enum definitions live here for simplicity and to avoid circular imports.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric, Enum as SQLEnum, JSON, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum

# Enums
class PaymentMode(str, enum.Enum):
    PAID = "PAID"
    COD = "COD"

# Workflow flags on Order; all default to False on create and on every upsert
ORDER_FLAG_FIELDS = (
    "process_order",
    "order_packed",
    "rto_received",
    "damaged",
    "delivered",
    "is_rto",
    "is_return",
    "return_initiated",
    "return_picked",
    "return_delivered",
)

# Free-text workflow fields on Order; default to ""
ORDER_TEXT_FIELDS = (
    "order_confirmation",
    "comments",
    "review_taken",
    "customer_review",
    "product_review",
    "return_reason",
    "shipping_adjustment",
    "return_status",
    "exchange_status",
    "whatsapp_notification_failed_reason",
    "tracking_url",
)

# Models
class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_name = Column("customer_name", String, nullable=False)
    contact_no = Column("contact_no", String, unique=True, nullable=True, index=True)
    shopify_customer_id = Column("shopify_customer_id", String, unique=True, nullable=True, index=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    state = Column(String, nullable=True)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    orders = relationship("Order", back_populates="customer")

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_code = Column("product_code", String, unique=True, nullable=False, index=True)
    product_name = Column("product_name", String, nullable=False)
    category = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    base_price = Column("base_price", Numeric(10, 2), nullable=False, default=0)
    available_colors = Column("available_colors", JSON, nullable=False, default=list)
    available_sizes = Column("available_sizes", JSON, nullable=False, default=list)
    is_active = Column("is_active", Boolean, default=True, nullable=False)
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    order_items = relationship("OrderItem", back_populates="product")

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column("order_id", String, unique=True, nullable=False, index=True)
    customer_id = Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False)
    order_date = Column("order_date", DateTime, nullable=True)
    state = Column(String, nullable=True)
    total_amount = Column("total_amount", Numeric(10, 2), nullable=False, default=0)
    payment_mode = Column("payment_mode", SQLEnum(PaymentMode), nullable=False, default=PaymentMode.PAID)
    order_status = Column("order_status", String, nullable=False, default="New")

    order_confirmation = Column("order_confirmation", String, default="")
    comments = Column(String, default="")
    review_taken = Column("review_taken", String, default="")
    customer_review = Column("customer_review", String, default="")
    product_review = Column("product_review", String, default="")
    return_reason = Column("return_reason", String, default="")
    shipping_adjustment = Column("shipping_adjustment", String, default="")
    return_status = Column("return_status", String, default="")
    exchange_status = Column("exchange_status", String, default="")
    whatsapp_notification_failed_reason = Column("whatsapp_notification_failed_reason", String, default="")
    tracking_url = Column("tracking_url", String, default="")

    process_order = Column("process_order", Boolean, default=False)
    order_packed = Column("order_packed", Boolean, default=False)
    rto_received = Column("rto_received", Boolean, default=False)
    damaged = Column(Boolean, default=False)
    delivered = Column(Boolean, default=False)
    is_rto = Column("is_rto", Boolean, default=False)
    is_return = Column("is_return", Boolean, default=False)
    return_initiated = Column("return_initiated", Boolean, default=False)
    return_picked = Column("return_picked", Boolean, default=False)
    return_delivered = Column("return_delivered", Boolean, default=False)

    meta_data = Column("meta_data", JSON, nullable=True)  # raw source payload
    created_at = Column("created_at", DateTime, server_default=func.now())
    updated_at = Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}  # never reuse ids of replaced items

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column("order_id", Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column("product_id", Integer, ForeignKey("products.id"), nullable=False)
    selected_colors = Column("selected_colors", JSON, nullable=False, default=list)
    selected_sizes = Column("selected_sizes", JSON, nullable=False, default=list)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column("unit_price", Numeric(10, 2), nullable=False, default=0)
    total_price = Column("total_price", Numeric(10, 2), nullable=False, default=0)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", back_populates="order_items")
