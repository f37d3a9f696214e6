"""
Order helpers: numbering, pricing and date windows.

Pricing rules:
    unit_price  = (variant price or base price) + sum(addon prices)
    total_price = unit_price * quantity
    subtotal    = sum(total_price)
    tax         = subtotal * tax_rate
    total       = subtotal - discount + tax
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models import (
    Addon,
    MenuItem,
    Order,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PriceVariant,
    utcnow,
)
from app.schemas import OrderItemIn

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "DF"


# =============================================================================
# DATES
# =============================================================================

def today() -> date:
    return utcnow().date()


def day_key(day: Optional[date] = None) -> str:
    """Business-day key in ``YYYY-MM-DD`` form."""
    return (day or today()).isoformat()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Start (inclusive) and end (exclusive) of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def parse_date(value: str, field_name: str = "date") -> date:
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}. Use YYYY-MM-DD")


def date_range(
    start_date: Optional[str],
    end_date: Optional[str],
) -> tuple[datetime, datetime]:
    """
    Resolve an optional ``start_date``/``end_date`` pair to a window.

    Missing values default to today; the end day is inclusive.
    """
    start_day = parse_date(start_date, "start_date") if start_date else today()
    end_day = parse_date(end_date, "end_date") if end_date else (
        start_day if start_date else today()
    )
    if end_day < start_day:
        raise ValidationError("end_date must not be before start_date")
    return day_bounds(start_day)[0], day_bounds(end_day)[1]


# =============================================================================
# ORDER NUMBERS
# =============================================================================

async def generate_order_number(db: AsyncSession, now: Optional[datetime] = None) -> str:
    """
    Next order number for the day, e.g. ``DF-20250114-00007``.

    Falls back to ``DF-<epoch ms>`` when the last number of the day
    cannot be parsed.
    """
    now = now or utcnow()
    prefix = f"{ORDER_NUMBER_PREFIX}-{now:%Y%m%d}-"

    result = await db.execute(
        select(Order.order_number)
        .where(Order.order_number.like(f"{prefix}%"))
        .order_by(Order.order_number.desc())
        .limit(1)
    )
    last_number = result.scalar_one_or_none()

    if last_number is None:
        return f"{prefix}{1:05d}"

    try:
        sequence = int(last_number.rsplit("-", 1)[1]) + 1
    except (IndexError, ValueError):
        logger.warning(f"Unparsable order number {last_number!r}, using timestamp")
        return f"{ORDER_NUMBER_PREFIX}-{int(now.timestamp() * 1000)}"

    return f"{prefix}{sequence:05d}"


# =============================================================================
# PRICING
# =============================================================================

@dataclass
class PricedLine:
    """One validated order line with its resolved prices."""
    menu_item: MenuItem
    quantity: int
    unit_price: float
    total_price: float
    variant: Optional[PriceVariant] = None
    addons: list[Addon] = field(default_factory=list)
    notes: Optional[str] = None


@dataclass
class OrderTotals:
    subtotal: float
    discount: float
    tax: float
    total: float

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discount": self.discount,
            "tax": self.tax,
            "total": self.total,
        }


def line_prices(
    base_price: float,
    quantity: int,
    variant_price: Optional[float] = None,
    addon_prices: Iterable[float] = (),
) -> tuple[float, float]:
    """Return ``(unit_price, total_price)`` for one line."""
    price = variant_price if variant_price is not None else base_price
    unit_price = round(price + sum(addon_prices), 2)
    return unit_price, round(unit_price * quantity, 2)


def calculate_totals(
    line_totals: Iterable[float],
    tax_rate: float,
    discount: float = 0.0,
) -> OrderTotals:
    subtotal = round(sum(line_totals), 2)
    if discount > subtotal:
        raise ValidationError("Discount cannot exceed subtotal")
    tax = round(subtotal * tax_rate, 2)
    total = round(subtotal - discount + tax, 2)
    return OrderTotals(subtotal=subtotal, discount=round(discount, 2), tax=tax, total=total)


async def price_order_items(db: AsyncSession, items: list[OrderItemIn]) -> list[PricedLine]:
    """
    Validate requested lines against the menu and price them.

    Raises:
        ValidationError: Unknown or unavailable item, or unknown variant

    Unknown addon ids are ignored.
    """
    menu_ids = {line.menu_item_id for line in items}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(menu_ids)))
    menu = {item.id: item for item in result.scalars().all()}

    priced = []
    for line in items:
        item = menu.get(line.menu_item_id)
        if item is None:
            raise ValidationError(f"Menu item {line.menu_item_id} not found")
        if not item.is_available:
            raise ValidationError(f"{item.name} is not available")

        variant = None
        if line.variant_id:
            variant = next((v for v in item.variants if v.id == line.variant_id), None)
            if variant is None:
                raise ValidationError(f"Invalid variant for {item.name}")

        wanted = set(line.addon_ids)
        addons = [a for a in item.addons if a.id in wanted]

        unit_price, total_price = line_prices(
            item.base_price,
            line.quantity,
            variant_price=variant.price if variant else None,
            addon_prices=[a.price for a in addons],
        )
        priced.append(
            PricedLine(
                menu_item=item,
                quantity=line.quantity,
                unit_price=unit_price,
                total_price=total_price,
                variant=variant,
                addons=addons,
                notes=line.notes,
            )
        )
    return priced


# =============================================================================
# LOADING
# =============================================================================

async def load_order(db: AsyncSession, order_id: str) -> Order:
    """Fetch an order with lines and payment freshly loaded."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = result.unique().scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def order_event_payload(order: Order) -> dict:
    """Compact order description pushed over the realtime channel."""
    return {
        "id": order.id,
        "order_number": order.order_number,
        "order_type": order.order_type.value,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "payment_method": order.payment_method.value if order.payment_method else None,
        "table_number": order.table_number,
        "total": order.total,
        "customer_id": order.customer_id,
        "prepared_by_id": order.prepared_by_id,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "items": [
            {
                "name": line.menu_item.name if line.menu_item else None,
                "variant": line.variant.name if line.variant else None,
                "quantity": line.quantity,
                "addons": [a.addon.name for a in line.addons if a.addon],
                "notes": line.notes,
            }
            for line in order.items
        ],
    }


# =============================================================================
# PAYMENT
# =============================================================================

def mark_order_paid(
    order: Order,
    method: PaymentMethod,
    amount: float,
    reference: Optional[str] = None,
    provider_data: Optional[dict] = None,
) -> Payment:
    """
    Flag ``order`` as PAID/CONFIRMED and create or update its payment row.

    The caller commits. ``order.payment`` must already be loaded.
    """
    order.payment_status = PaymentStatus.PAID
    order.payment_method = method
    order.status = OrderStatus.CONFIRMED

    payment = order.payment
    if payment is None:
        payment = Payment(
            order_id=order.id,
            amount=round(amount, 2),
            method=method,
            status=PaymentStatus.PAID,
            paystack_ref=reference,
            paystack_data=provider_data,
        )
        order.payment = payment
    else:
        payment.status = PaymentStatus.PAID
        payment.method = method
        if reference:
            payment.paystack_ref = reference
        if provider_data is not None:
            payment.paystack_data = provider_data
    return payment
