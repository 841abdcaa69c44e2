"""
Order Pricing Service

Re-derives every monetary figure of a checkout from the catalog and compares
the client's claims against it. The client's numbers are never used for
anything except that comparison.

Order of checks (each step only runs when the previous one passed):
    1. every referenced name exists in the catalog and is available
    2. every claimed unit price is within ``price_tolerance`` of the catalog
    3. claimed subtotal / tax / delivery fee / total match the derived figures

Rejections carry generic messages; the real prices only go to the log.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Optional, Sequence

from app.core.config import Settings
from app.core.errors import ItemUnavailableError, PriceMismatchError, TotalsMismatchError
from app.schemas import CartLine, DeliveryTypeEnum, OrderRequest

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
WHOLE_UNIT = Decimal("1")


@dataclass(frozen=True)
class CatalogEntry:
    """Authoritative price and availability for one menu item name."""
    name: str
    price: Decimal
    is_available: bool = True


@dataclass(frozen=True)
class PricingPolicy:
    """Business parameters used to derive order totals."""
    tax_rate: Decimal = Decimal("0.05")
    delivery_fee: Decimal = Decimal("50")
    price_tolerance: Decimal = CENT
    total_tolerance: Decimal = WHOLE_UNIT

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingPolicy":
        return cls(
            tax_rate=settings.tax_rate,
            delivery_fee=settings.delivery_fee,
            price_tolerance=settings.price_tolerance,
            total_tolerance=settings.total_tolerance,
        )


@dataclass(frozen=True)
class PricedLine:
    name: str
    unit_price: Decimal
    quantity: int
    special_instructions: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENT)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal


@dataclass(frozen=True)
class PricedOrder:
    lines: list[PricedLine]
    totals: OrderTotals


def verify_catalog(lines: Sequence[CartLine], catalog: Mapping[str, CatalogEntry]) -> None:
    """Reject the first cart line whose item is unknown or switched off."""
    for line in lines:
        entry = catalog.get(line.name)
        if entry is None:
            logger.warning(f"Item not found in catalog: {line.name!r}")
            raise ItemUnavailableError(line.name)
        if not entry.is_available:
            logger.warning(f"Item currently unavailable: {line.name!r}")
            raise ItemUnavailableError(line.name, known=True)


def price_lines(
    lines: Sequence[CartLine],
    catalog: Mapping[str, CatalogEntry],
    policy: PricingPolicy,
) -> list[PricedLine]:
    """Price each line at the catalog price after checking the client's claim."""
    priced = []
    for line in lines:
        entry = catalog[line.name]
        if abs(entry.price - line.price) > policy.price_tolerance:
            logger.warning(
                f"Price mismatch for {line.name!r}: expected {entry.price}, got {line.price}"
            )
            raise PriceMismatchError()
        priced.append(
            PricedLine(
                name=entry.name,
                unit_price=entry.price,
                quantity=line.quantity,
                special_instructions=line.special_instructions,
            )
        )
    return priced


def compute_tax(subtotal: Decimal, policy: PricingPolicy) -> Decimal:
    """Tax rounded to whole currency units, halves rounded up."""
    return (subtotal * policy.tax_rate).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def compute_totals(
    lines: Sequence[PricedLine],
    delivery_type: DeliveryTypeEnum,
    policy: PricingPolicy,
) -> OrderTotals:
    subtotal = sum((line.line_total for line in lines), Decimal("0"))
    tax = compute_tax(subtotal, policy)
    delivery_fee = policy.delivery_fee if delivery_type == DeliveryTypeEnum.DELIVERY else Decimal("0")
    return OrderTotals(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=delivery_fee,
        total=subtotal + tax + delivery_fee,
    )


def verify_claimed_totals(request: OrderRequest, totals: OrderTotals, policy: PricingPolicy) -> None:
    """Compare the client's aggregate claims against the derived totals."""
    checks = (
        ("subtotal", totals.subtotal, request.subtotal),
        ("tax", totals.tax, request.tax),
        ("total", totals.total, request.total),
    )
    for label, expected, claimed in checks:
        if abs(expected - claimed) > policy.total_tolerance:
            logger.warning(f"{label.capitalize()} mismatch: expected {expected}, got {claimed}")
            raise TotalsMismatchError()

    if request.delivery_fee != totals.delivery_fee:
        logger.warning(
            f"Delivery fee mismatch: expected {totals.delivery_fee}, got {request.delivery_fee}"
        )
        raise TotalsMismatchError()


def price_order(
    request: OrderRequest,
    catalog: Mapping[str, CatalogEntry],
    policy: PricingPolicy,
) -> PricedOrder:
    """Run every pricing check for a checkout and return the authoritative figures."""
    verify_catalog(request.items, catalog)
    lines = price_lines(request.items, catalog, policy)
    totals = compute_totals(lines, request.delivery_type, policy)
    verify_claimed_totals(request, totals, policy)
    return PricedOrder(lines=lines, totals=totals)
