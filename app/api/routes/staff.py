"""Front-of-house staff routes."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_roles
from app.models import Order, OrderType, PaymentMethod, PaymentStatus, Role, User
from app.schemas import OrderResponse, SalesStats, StaffDashboardResponse
from app.services.orders import day_bounds, today

router = APIRouter(prefix="/api/staff", tags=["Staff"])
logger = logging.getLogger(__name__)

COUNTER_METHODS = (PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.MOMO)


@router.get("/dashboard", response_model=StaffDashboardResponse)
async def staff_dashboard(
    user: User = Depends(require_roles(Role.RECEPTIONIST, Role.CASHIER, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> StaffDashboardResponse:
    """Today's paid orders taken by the caller."""
    start, end = day_bounds(today())
    result = await db.execute(
        select(Order)
        .where(
            Order.created_by_id == user.id,
            Order.created_at >= start,
            Order.created_at < end,
            Order.payment_status == PaymentStatus.PAID,
        )
        .order_by(Order.created_at.desc())
    )
    orders = result.unique().scalars().all()

    total_sales = round(sum(o.total for o in orders), 2)
    payment_methods = {m.value: 0.0 for m in COUNTER_METHODS}
    order_types = {t.value: 0 for t in OrderType}
    for order in orders:
        if order.payment_method in COUNTER_METHODS:
            key = order.payment_method.value
            payment_methods[key] = round(payment_methods[key] + order.total, 2)
        order_types[order.order_type.value] += 1

    return StaffDashboardResponse(
        stats=SalesStats(
            total_sales=total_sales,
            total_orders=len(orders),
            total_items=sum(line.quantity for o in orders for line in o.items),
            average_order_value=round(total_sales / len(orders), 2) if orders else 0.0,
        ),
        payment_methods=payment_methods,
        order_types=order_types,
        recent_orders=[OrderResponse.model_validate(o) for o in orders[:10]],
    )
