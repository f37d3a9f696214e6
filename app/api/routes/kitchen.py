"""Kitchen display routes: per-cook dashboard and preparation reports."""

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_roles
from app.models import Order, OrderStatus, Role, User
from app.schemas import (
    KitchenDashboardResponse,
    KitchenReportResponse,
    KitchenStats,
    OrderResponse,
    ReportPeriod,
    ReportStats,
    StaffStat,
    UserBrief,
)
from app.services.orders import date_range, day_bounds, today

router = APIRouter(prefix="/api/kitchen", tags=["Kitchen"])
logger = logging.getLogger(__name__)

kitchen_access = require_roles(Role.KITCHEN_STAFF, Role.ADMIN)


def prepared_between(start: datetime, end: datetime):
    """READY orders that became ready in the window, or COMPLETED orders finished or readied in it."""
    return or_(
        and_(Order.status == OrderStatus.READY, Order.ready_at >= start, Order.ready_at < end),
        and_(
            Order.status == OrderStatus.COMPLETED,
            or_(
                and_(Order.completed_at >= start, Order.completed_at < end),
                and_(Order.ready_at >= start, Order.ready_at < end),
            ),
        ),
    )


def _item_count(order: Order) -> int:
    return sum(line.quantity for line in order.items)


def average_prep_minutes(orders: Sequence[Order]) -> float:
    """Mean minutes from creation to READY over ``orders``, one decimal."""
    if not orders:
        return 0.0
    total = sum(
        (order.ready_at - order.created_at).total_seconds() / 60
        for order in orders
        if order.ready_at and order.created_at
    )
    return round(total / len(orders), 1)


@router.get("/dashboard", response_model=KitchenDashboardResponse)
async def kitchen_dashboard(
    user: User = Depends(kitchen_access),
    db: AsyncSession = Depends(get_db),
) -> KitchenDashboardResponse:
    start, end = day_bounds(today())
    result = await db.execute(
        select(Order)
        .where(prepared_between(start, end), Order.prepared_by_id == user.id)
        .order_by(Order.ready_at.desc(), Order.completed_at.desc())
    )
    orders = result.unique().scalars().all()

    return KitchenDashboardResponse(
        stats=KitchenStats(
            total_prepared=len(orders),
            total_items_prepared=sum(_item_count(o) for o in orders),
            total_value=round(sum(o.total for o in orders), 2),
            avg_prep_time=average_prep_minutes(orders),
        ),
        recent_orders=[OrderResponse.model_validate(o) for o in orders[:20]],
    )


@router.get("/reports", response_model=KitchenReportResponse)
async def kitchen_reports(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, defaults to today"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    staff_id: Optional[str] = Query(None, description="Admins only"),
    user: User = Depends(kitchen_access),
    db: AsyncSession = Depends(get_db),
) -> KitchenReportResponse:
    """
    Orders prepared in a date window.

    Kitchen staff always see their own work; admins see everyone (or
    one cook with ``staff_id``) plus a per-cook breakdown.
    """
    is_admin = user.role == Role.ADMIN
    start, end = date_range(start_date, end_date)

    conditions = [prepared_between(start, end)]
    if not is_admin:
        conditions.append(Order.prepared_by_id == user.id)
    elif staff_id:
        conditions.append(Order.prepared_by_id == staff_id)

    result = await db.execute(select(Order).where(*conditions).order_by(Order.ready_at.desc()))
    orders = result.unique().scalars().all()

    staff_stats: dict[str, StaffStat] = {}
    if is_admin:
        for order in orders:
            cook = order.prepared_by
            if cook is None:
                continue
            stat = staff_stats.setdefault(
                cook.id,
                StaffStat(staff=UserBrief.model_validate(cook), total_orders=0, total_items=0, total_value=0.0),
            )
            stat.total_orders += 1
            stat.total_items += _item_count(order)
            stat.total_value = round(stat.total_value + order.total, 2)

    return KitchenReportResponse(
        period=ReportPeriod(start_date=start, end_date=end - timedelta(microseconds=1)),
        stats=ReportStats(
            total_orders=len(orders),
            total_items=sum(_item_count(o) for o in orders),
            total_value=round(sum(o.total for o in orders), 2),
        ),
        staff_stats=list(staff_stats.values()),
        orders=[OrderResponse.model_validate(o) for o in orders],
    )
