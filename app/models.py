"""
SQLAlchemy Database Models

Mirrors the restaurant store schema:
- menu_items: the authoritative catalog (read-only for order intake)
- tables: dine-in tables looked up by number
- customers: upserted by phone number
- orders / order_items: created together by the intake service
- payments: recorded against an order's authoritative total
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryType(str, enum.Enum):
    """Fulfillment mode chosen at checkout."""
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class OrderStatus(str, enum.Enum):
    """Kitchen workflow. COMPLETED and CANCELLED are terminal."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Shared by orders and payments so PostgreSQL creates a single enum type
payment_status_enum = Enum(PaymentStatus, values_callable=_enum_values, name="payment_status")


class MenuItem(Base):
    """Catalog entry. ``name`` is the lookup key used by checkout."""
    __tablename__ = "menu_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, default="mains")
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, default=True)
    is_vegetarian = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<MenuItem {self.name} - {self.price}>"


class RestaurantTable(Base):
    __tablename__ = "tables"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    table_number = Column(Integer, nullable=False, unique=True, index=True)
    qr_code = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Table {self.table_number} active={self.is_active}>"


class Customer(Base):
    """
    Customer keyed by phone number.

    ``total_orders`` and ``total_spent`` are aggregates owned by the store;
    the intake service never writes them.
    """
    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    phone_number = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    total_orders = Column(Integer, default=0)
    total_spent = Column(Numeric(12, 2), default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Customer {self.id}>"


class Order(Base):
    """
    Order header. Monetary columns always hold server-computed figures.
    """
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number = Column(String(50), nullable=False, unique=True, index=True)

    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=True)
    table_id = Column(Uuid, ForeignKey("tables.id"), nullable=True)
    phone_number = Column(String(20), nullable=False, index=True)

    delivery_type = Column(
        Enum(DeliveryType, values_callable=_enum_values, name="delivery_type"),
        nullable=False,
        default=DeliveryType.DINE_IN,
    )
    delivery_address = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, values_callable=_enum_values, name="order_status"),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )
    payment_status = Column(
        payment_status_enum,
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    # Set client-side for sub-second ordering of the kitchen queue
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    table = relationship("RestaurantTable", lazy="joined")

    def __repr__(self):
        return f"<Order {self.order_number} - {self.delivery_type.value} - {self.status.value}>"


class OrderItem(Base):
    """Line snapshot: the name and catalog price at the time of ordering."""
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    item_name = Column(String(200), nullable=False)
    item_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    special_instructions = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x {self.item_name}>"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(20), nullable=False)
    transaction_id = Column(String(64), nullable=True, unique=True)
    status = Column(
        payment_status_enum,
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Payment {self.transaction_id} - {self.amount}>"
