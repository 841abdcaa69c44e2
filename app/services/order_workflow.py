"""
Order Workflow Service

Everything that happens to an order after checkout: the kitchen queue,
status transitions, customer tracking lookups, payment recording and the
admin dashboard figures.

Status flow:
    pending → confirmed → preparing → ready → served → completed
    any non-terminal status → cancelled
    completed and cancelled are terminal
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import redact_phone
from app.core.errors import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    PaymentConflictError,
    ValidationFailedError,
)
from app.models import MenuItem, Order, OrderStatus, Payment, PaymentStatus
from app.services.order_store import OrderStore

logger = logging.getLogger(__name__)

NEXT_STATUS = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.SERVED,
    OrderStatus.SERVED: OrderStatus.COMPLETED,
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Whether an order in ``current`` may move to ``target``."""
    if current in TERMINAL_STATUSES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return NEXT_STATUS.get(current) == target


def generate_transaction_id() -> str:
    return f"TXN-{uuid.uuid4().hex[:16].upper()}"


class OrderWorkflowService:
    """Read and update operations used by the kitchen display, tracking page and admin."""

    def __init__(self, session: AsyncSession):
        self.store = OrderStore(session)

    async def list_menu(self) -> list[MenuItem]:
        return await self.store.list_menu()

    async def get_order(self, order_id: UUID) -> Order:
        order = await self.store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError()
        return order

    async def track_order(
        self,
        order_number: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Order:
        """Most recent order matching the order number and/or phone."""
        order_number = (order_number or "").strip() or None
        phone = (phone or "").strip() or None
        if not order_number and not phone:
            raise ValidationFailedError(
                details=["Please enter order number or phone number"]
            )

        order = await self.store.find_latest_order(order_number=order_number, phone=phone)
        if order is None:
            logger.info(
                f"Tracking lookup found nothing (order={order_number}, phone={redact_phone(phone)})"
            )
            raise OrderNotFoundError()
        return order

    async def kitchen_queue(self) -> list[Order]:
        """Orders the kitchen still has to act on, oldest first."""
        return await self.store.list_kitchen_orders()

    async def update_status(self, order_id: UUID, new_status: OrderStatus) -> Order:
        order = await self.get_order(order_id)

        if not can_transition(order.status, new_status):
            logger.warning(
                f"Rejected status change for order {order_id}: "
                f"{order.status.value} → {new_status.value}"
            )
            raise InvalidStatusTransitionError(
                f"Cannot change order from {order.status.value} to {new_status.value}"
            )

        previous = order.status
        order.status = new_status
        await self.store.save(order)
        logger.info(f"Order {order_id} status {previous.value} → {new_status.value}")
        return order

    async def record_payment(self, order_id: UUID, payment_method: str) -> Payment:
        """Record a completed payment for the order's own total."""
        order = await self.get_order(order_id)

        if order.status == OrderStatus.CANCELLED:
            raise PaymentConflictError("Cancelled orders cannot be paid")
        if order.payment_status == PaymentStatus.COMPLETED:
            raise PaymentConflictError("Order is already paid")

        payment = Payment(
            order_id=order.id,
            amount=order.total,
            payment_method=payment_method,
            transaction_id=generate_transaction_id(),
            status=PaymentStatus.COMPLETED,
        )
        await self.store.add_payment(order, payment)
        logger.info(f"Payment {payment.transaction_id} recorded for order {order_id}")
        return payment

    async def dashboard_data(self) -> dict[str, Any]:
        """Aggregated figures for the admin overview."""
        today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        return {
            "total_orders": await self.store.count_orders(),
            "pending_orders": await self.store.count_orders(OrderStatus.PENDING),
            "total_customers": await self.store.count_customers(),
            "today_revenue": float(await self.store.revenue_since(today_start)),
            "recent_orders": await self.store.list_recent_orders(limit=10),
        }
