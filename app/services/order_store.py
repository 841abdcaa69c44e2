"""
Order Store

Thin async data-access layer over the restaurant schema. Each write method
commits its own unit of work so the intake service can compensate for a
partially completed checkout step by step.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    Customer,
    DeliveryType,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    RestaurantTable,
)
from app.services.pricing import CatalogEntry, OrderTotals, PricedLine
from app.utils.text import sanitize_for_storage

logger = logging.getLogger(__name__)

ACTIVE_KITCHEN_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)


def generate_order_number(now: Optional[datetime] = None) -> str:
    """Server-side order number, e.g. ``ORD-20261018-4F9A1C``."""
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderStore:
    """Database operations used by the order services."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # CATALOG & TABLES
    # =========================================================================

    async def fetch_catalog(self, names: Iterable[str]) -> dict[str, CatalogEntry]:
        """Catalog entries for the given names; unknown names are simply absent."""
        distinct_names = sorted(set(names))
        result = await self.session.execute(
            select(MenuItem.name, MenuItem.price, MenuItem.is_available)
            .where(MenuItem.name.in_(distinct_names))
        )
        return {
            row.name: CatalogEntry(
                name=row.name,
                price=row.price,
                is_available=row.is_available is not False,
            )
            for row in result
        }

    async def list_menu(self, include_unavailable: bool = False) -> list[MenuItem]:
        query = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
        if not include_unavailable:
            query = query.where(MenuItem.is_available.is_not(False))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_table(self, table_number: int) -> Optional[RestaurantTable]:
        result = await self.session.execute(
            select(RestaurantTable).where(RestaurantTable.table_number == table_number)
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    async def get_customer_by_phone(self, phone: str) -> Optional[Customer]:
        result = await self.session.execute(
            select(Customer).where(Customer.phone_number == phone)
        )
        return result.scalar_one_or_none()

    async def get_or_create_customer(self, phone: str) -> Customer:
        """
        Return the customer for ``phone``, creating it on first order.

        A concurrent checkout may insert the same phone first; the unique
        constraint then fails and the row it created is read back instead.
        """
        customer = await self.get_customer_by_phone(phone)
        if customer is not None:
            return customer

        customer = Customer(phone_number=phone)
        self.session.add(customer)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            customer = await self.get_customer_by_phone(phone)
            if customer is None:
                raise
        return customer

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def add_order(
        self,
        *,
        customer_id: UUID,
        table_id: Optional[UUID],
        phone: str,
        delivery_type: DeliveryType,
        totals: OrderTotals,
        special_instructions: Optional[str],
        delivery_address: Optional[str],
    ) -> Order:
        order = Order(
            order_number=generate_order_number(),
            customer_id=customer_id,
            table_id=table_id,
            phone_number=phone,
            delivery_type=delivery_type,
            subtotal=totals.subtotal,
            tax=totals.tax,
            delivery_fee=totals.delivery_fee,
            total=totals.total,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            special_instructions=sanitize_for_storage(special_instructions),
            delivery_address=sanitize_for_storage(delivery_address),
        )
        self.session.add(order)
        await self.session.commit()
        await self.session.refresh(order)
        return order

    async def add_order_items(self, order_id: UUID, lines: Iterable[PricedLine]) -> list[OrderItem]:
        items = [
            OrderItem(
                order_id=order_id,
                item_name=line.name,
                item_price=line.unit_price,
                quantity=line.quantity,
                special_instructions=sanitize_for_storage(line.special_instructions),
            )
            for line in lines
        ]
        self.session.add_all(items)
        await self.session.commit()
        return items

    async def delete_order(self, order_id: UUID) -> None:
        await self.session.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
        await self.session.execute(delete(Order).where(Order.id == order_id))
        await self.session.commit()

    async def get_order(self, order_id: UUID) -> Optional[Order]:
        result = await self.session.execute(select(Order).where(Order.id == order_id))
        return result.scalar_one_or_none()

    async def find_latest_order(
        self,
        order_number: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Optional[Order]:
        query = select(Order)
        if order_number:
            query = query.where(Order.order_number == order_number.upper())
        if phone:
            query = query.where(Order.phone_number == phone)
        result = await self.session.execute(
            query.order_by(Order.created_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def list_kitchen_orders(self) -> list[Order]:
        result = await self.session.execute(
            select(Order)
            .where(Order.status.in_(ACTIVE_KITCHEN_STATUSES))
            .order_by(Order.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_recent_orders(self, limit: int = 10) -> list[Order]:
        result = await self.session.execute(
            select(Order).order_by(Order.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def save(self, instance) -> None:
        self.session.add(instance)
        await self.session.commit()

    async def add_payment(self, order: Order, payment: Payment) -> Payment:
        """Record ``payment`` and mark the order paid in one commit."""
        order.payment_status = PaymentStatus.COMPLETED
        self.session.add_all([payment, order])
        await self.session.commit()
        return payment

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def count_orders(self, status: Optional[OrderStatus] = None) -> int:
        query = select(func.count(Order.id))
        if status is not None:
            query = query.where(Order.status == status)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def count_customers(self) -> int:
        result = await self.session.execute(select(func.count(Customer.id)))
        return result.scalar() or 0

    async def revenue_since(self, since: datetime):
        result = await self.session.execute(
            select(func.sum(Order.total)).where(
                Order.created_at >= since,
                Order.payment_status == PaymentStatus.COMPLETED,
            )
        )
        return result.scalar() or 0
