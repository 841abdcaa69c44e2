"""
FastAPI Application Entry Point

Restaurant Order Intake - checkout, kitchen relay and order workflow API.
Supports both Mock services (development) and Real APIs (production).

Endpoints:
    - POST /api/orders: Create an order from a checkout cart
    - POST /api/notifications/kitchen: Relay a new order to the kitchen via WhatsApp
    - GET /api/menu: Available menu items
    - GET /api/orders/track: Latest order by order number and/or phone
    - GET /api/orders/{order_id}: Order with its items
    - PATCH /api/orders/{order_id}/status: Move an order through the kitchen flow
    - POST /api/orders/{order_id}/payments: Record a payment
    - GET /api/kitchen/orders: Active kitchen queue
    - GET /api/dashboard-data: Admin overview figures
    - GET /health: System health check
"""

import asyncio
import re
import sys
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from app.core.config import get_settings, setup_logging
from app.core.errors import (
    MalformedRequestError,
    NotificationConfigError,
    OrderSystemError,
    UpstreamNotifyError,
    ValidationFailedError,
)
from app.database import get_db, init_db, engine
from app.models import OrderStatus
from app.schemas import (
    CreatedOrder,
    ErrorResponse,
    HealthResponse,
    KitchenNotificationRequest,
    MenuItemResponse,
    NotificationResponse,
    OrderCreateResponse,
    OrderRequest,
    OrderResponse,
    OrderStatusUpdate,
    PaymentCreate,
    PaymentResponse,
)
from app.services.notifications import BaseKitchenNotifier, get_kitchen_notifier
from app.services.order_intake import OrderIntakeService
from app.services.order_workflow import OrderWorkflowService
from app.services.rate_limit import get_rate_limiter

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    rate_limiter = get_rate_limiter()
    logger.info(f"✅ Rate Limiter: {rate_limiter.backend_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Checkout intake for a restaurant ordering app. Prices, taxes and totals "
        "are re-derived from the menu catalog; the client's figures are only checked."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍛 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except SQLAlchemyError as e:
        db_status = "unhealthy"
        logger.error(f"Database health check failed: {e}")

    limiter_status = "healthy" if await get_rate_limiter().health_check() else "unhealthy"

    try:
        notifier = get_kitchen_notifier()
        notification_status = "healthy" if await notifier.health_check() else "unhealthy"
    except NotificationConfigError:
        notification_status = "unconfigured"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, limiter_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        rate_limiter=limiter_status,
        notification_service=notification_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER INTAKE
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    responses={**ERROR_RESPONSES, 429: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Create Order (Checkout)",
)
async def create_order(
    order_data: OrderRequest,
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """
    Create an order from a checkout cart.

    Item prices and all totals are recomputed from the menu catalog. The
    request is rejected when any claimed figure disagrees.
    """
    service = OrderIntakeService(db)
    confirmation = await service.create_order(order_data)

    return OrderCreateResponse(
        success=True,
        order=CreatedOrder(
            id=confirmation.order_id,
            order_number=confirmation.order_number,
            total=confirmation.total,
        ),
    )


# =============================================================================
# KITCHEN NOTIFICATION RELAY
# =============================================================================

@app.post(
    "/api/notifications/kitchen",
    response_model=NotificationResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    tags=["Notifications"],
    summary="Notify Kitchen via WhatsApp",
)
async def notify_kitchen(
    notification: KitchenNotificationRequest,
    notifier: BaseKitchenNotifier = Depends(get_kitchen_notifier),
) -> NotificationResponse:
    """
    Send a new-order summary to the kitchen's WhatsApp number.

    A failure here never affects the order itself; clients treat it as
    non-fatal.
    """
    result = await notifier.notify_kitchen(notification)

    if not result.success:
        logger.error(
            f"Kitchen notification failed for order {notification.order_id}: "
            f"{result.error_message}"
        )
        raise UpstreamNotifyError()

    return NotificationResponse(
        success=True,
        message="Chef notified via WhatsApp",
        message_sid=result.message_id,
    )


# =============================================================================
# ORDER WORKFLOW ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu",
    response_model=list[MenuItemResponse],
    tags=["Menu"],
)
async def list_menu(
    db: AsyncSession = Depends(get_db),
) -> list[MenuItemResponse]:
    """Menu items currently available for ordering."""
    items = await OrderWorkflowService(db).list_menu()
    return [MenuItemResponse.model_validate(item) for item in items]


@app.get(
    "/api/orders/track",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def track_order(
    order_number: Optional[str] = Query(None, alias="orderNumber", max_length=50),
    phone: Optional[str] = Query(None, max_length=20),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Latest order matching an order number and/or phone number."""
    order = await OrderWorkflowService(db).track_order(order_number=order_number, phone=phone)
    return OrderResponse.from_order(order)


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await OrderWorkflowService(db).get_order(order_id)
    return OrderResponse.from_order(order)


@app.patch(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
)
async def update_order_status(
    order_id: UUID,
    update: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Advance an order one step, or cancel it."""
    order = await OrderWorkflowService(db).update_status(
        order_id, OrderStatus(update.status.value)
    )
    return OrderResponse.from_order(order)


@app.post(
    "/api/orders/{order_id}/payments",
    response_model=PaymentResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def record_payment(
    order_id: UUID,
    payment_data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
) -> PaymentResponse:
    """Record a completed payment for the order's total."""
    payment = await OrderWorkflowService(db).record_payment(
        order_id, payment_data.payment_method.value
    )
    return PaymentResponse.from_payment(payment)


@app.get(
    "/api/kitchen/orders",
    response_model=list[OrderResponse],
    tags=["Kitchen"],
)
async def kitchen_orders(
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    """Orders waiting on the kitchen, oldest first."""
    orders = await OrderWorkflowService(db).kitchen_queue()
    return [OrderResponse.from_order(order) for order in orders]


@app.get(
    "/api/dashboard-data",
    tags=["Dashboard"],
)
async def dashboard_data(
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get aggregated dashboard statistics."""
    data = await OrderWorkflowService(db).dashboard_data()
    data["environment"] = settings.env_mode.value
    data["recent_orders"] = [
        OrderResponse.from_order(order).model_dump(by_alias=True, mode="json")
        for order in data["recent_orders"]
    ]
    return data


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _field_label(loc) -> str:
    """``("path", "order_id")`` or ``("body", "orderId")`` -> ``order id``."""
    name = next((str(part) for part in reversed(loc) if isinstance(part, str)), "value")
    return re.sub(r"(?<!^)(?=[A-Z])", " ", name).replace("_", " ").lower()


def _first_error_message(exc: RequestValidationError) -> str:
    error = exc.errors()[0]
    error_type = error.get("type", "")

    # Our own validators raise ValueError with a client-facing message
    if error_type == "value_error":
        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return str(ctx_error)

    # Parser and pattern errors carry internals in their text
    if error_type.startswith("uuid_") or error_type == "string_pattern_mismatch":
        return f"Invalid {_field_label(error.get('loc', ()))}"

    return error.get("msg", "Invalid value")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report only the first validation problem, as a 400."""
    errors = exc.errors()
    if errors and errors[0].get("type") == "json_invalid":
        error = MalformedRequestError()
    else:
        error = ValidationFailedError(details=[_first_error_message(exc)] if errors else None)

    logger.warning(f"Rejected {request.method} {request.url.path}: {error.details or error.message}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(OrderSystemError)
async def order_system_exception_handler(request: Request, exc: OrderSystemError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )
