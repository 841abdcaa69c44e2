"""
Order Intake Service

Turns an untrusted checkout submission into a priced, persisted order, or
rejects it with a specific ``OrderSystemError``.

Request lifecycle:
    validated request (pydantic, before this service runs)
      → rate limit (per phone)
      → catalog check → price check → totals check   (app.services.pricing)
      → table check (dine-in only)
      → customer lookup / creation
      → order insert → order items insert
         └─ items failed: delete the order again, then report the failure

Nothing is written before the customer step, so every rejection up to the
table check leaves the database untouched.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings, redact_phone
from app.core.errors import (
    CatalogUnavailableError,
    CustomerPersistError,
    ItemsPersistError,
    OrderPersistError,
    RateLimitedError,
    TableInactiveError,
    TableNotFoundError,
)
from app.models import DeliveryType, Order
from app.schemas import DeliveryTypeEnum, OrderRequest
from app.services.order_store import OrderStore
from app.services.pricing import PricedOrder, PricingPolicy, price_order
from app.services.rate_limit import BaseRateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderConfirmation:
    """What the caller gets back: authoritative figures only."""
    order_id: UUID
    order_number: str
    total: Decimal


class OrderIntakeService:
    """
    Checkout handler. One instance per request; holds no state of its own
    beyond the shared rate limiter.
    """

    def __init__(
        self,
        session: AsyncSession,
        rate_limiter: BaseRateLimiter = None,
        settings: Settings = None,
    ):
        self.settings = settings or get_settings()
        self.store = OrderStore(session)
        self.session = session
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self.policy = PricingPolicy.from_settings(self.settings)

    async def create_order(self, request: OrderRequest) -> OrderConfirmation:
        phone_hint = redact_phone(request.phone)
        logger.info(f"Processing order for phone: {phone_hint}")

        await self._check_rate_limit(request.phone)

        try:
            catalog = await self.store.fetch_catalog(item.name for item in request.items)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching menu items: {e}")
            raise CatalogUnavailableError() from e

        priced = price_order(request, catalog, self.policy)

        table_id = None
        if request.delivery_type == DeliveryTypeEnum.DINE_IN:
            table_id = await self._resolve_table(int(request.table_number))

        customer_id = await self._resolve_customer(request.phone)

        order = await self._insert_order(request, priced, customer_id, table_id)
        await self._insert_items(order, priced)

        logger.info(
            f"Order created successfully: {order.id} ({order.order_number}) "
            f"total={priced.totals.total} phone={phone_hint}"
        )
        return OrderConfirmation(
            order_id=order.id,
            order_number=order.order_number,
            total=priced.totals.total,
        )

    # =========================================================================
    # STEPS
    # =========================================================================

    async def _check_rate_limit(self, phone: str) -> None:
        decision = await self.rate_limiter.hit(phone)
        if not decision.allowed:
            logger.warning(
                f"Rate limit exceeded for phone: {redact_phone(phone)} "
                f"({decision.count} orders, retry in {decision.retry_after_seconds}s)"
            )
            raise RateLimitedError()

    async def _resolve_table(self, table_number: int) -> UUID:
        table = await self.store.get_table(table_number)
        if table is None:
            logger.warning(f"Table not found: {table_number}")
            raise TableNotFoundError()
        if not table.is_active:
            logger.warning(f"Table not active: {table_number}")
            raise TableInactiveError()
        return table.id

    async def _resolve_customer(self, phone: str) -> UUID:
        try:
            customer = await self.store.get_or_create_customer(phone)
        except SQLAlchemyError as e:
            logger.error(f"Error creating customer for {redact_phone(phone)}: {e}")
            await self.session.rollback()
            raise CustomerPersistError() from e
        return customer.id

    async def _insert_order(
        self,
        request: OrderRequest,
        priced: PricedOrder,
        customer_id: UUID,
        table_id: UUID,
    ) -> Order:
        is_delivery = request.delivery_type == DeliveryTypeEnum.DELIVERY
        try:
            return await self.store.add_order(
                customer_id=customer_id,
                table_id=table_id,
                phone=request.phone,
                delivery_type=DeliveryType(request.delivery_type.value),
                totals=priced.totals,
                special_instructions=request.special_requests,
                delivery_address=request.address if is_delivery else None,
            )
        except SQLAlchemyError as e:
            logger.error(f"Error creating order for {redact_phone(request.phone)}: {e}")
            await self.session.rollback()
            raise OrderPersistError() from e

    async def _insert_items(self, order: Order, priced: PricedOrder) -> None:
        # Rollback expires loaded instances; keep the id as a plain value
        order_id = order.id
        try:
            await self.store.add_order_items(order_id, priced.lines)
        except SQLAlchemyError as e:
            logger.error(f"Error creating order items for order {order_id}: {e}")
            await self.session.rollback()
            await self._compensate(order_id)
            raise ItemsPersistError() from e

    async def _compensate(self, order_id: UUID) -> None:
        """Delete an order whose items could not be stored."""
        try:
            await self.store.delete_order(order_id)
            logger.info(f"Compensating delete removed order {order_id}")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.critical(
                f"Compensating delete failed, order {order_id} is orphaned "
                f"and needs manual cleanup: {e}"
            )
