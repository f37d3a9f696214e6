"""
Business-day sessions.

A day is open until staff close it; closing freezes the day's totals in
``day_sessions`` and blocks new orders until an admin reopens it.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import (
    DaySession,
    Order,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)
from app.services.orders import day_bounds, day_key, today

logger = logging.getLogger(__name__)


async def get_session(db: AsyncSession, key: Optional[str] = None) -> Optional[DaySession]:
    result = await db.execute(select(DaySession).where(DaySession.date == (key or day_key())))
    return result.scalar_one_or_none()


async def get_or_create_session(db: AsyncSession, key: Optional[str] = None) -> DaySession:
    """Return the session for ``key`` (today by default), opening it if missing."""
    key = key or day_key()
    session = await get_session(db, key)
    if session is not None:
        return session

    session = DaySession(date=key, is_closed=False)
    db.add(session)
    try:
        await db.commit()
    except IntegrityError:
        # Created concurrently by another request
        await db.rollback()
        session = await get_session(db, key)
    else:
        logger.info(f"Opened day session {key}")
    return session


async def is_day_closed(db: AsyncSession) -> bool:
    session = await get_session(db)
    return bool(session and session.is_closed)


async def compute_day_summary(db: AsyncSession, day: Optional[date] = None) -> dict[str, Any]:
    """
    Aggregate the orders created on ``day``.

    Revenue only counts PAID orders, broken down by payment method.
    """
    day = day or today()
    start, end = day_bounds(day)
    in_day = (Order.created_at >= start, Order.created_at < end)

    revenue_rows = await db.execute(
        select(Order.payment_method, func.count(Order.id), func.coalesce(func.sum(Order.total), 0.0))
        .where(*in_day, Order.payment_status == PaymentStatus.PAID)
        .group_by(Order.payment_method)
    )
    revenue = {method.value: 0.0 for method in PaymentMethod}
    paid_orders = 0
    for method, count, amount in revenue_rows.all():
        paid_orders += count
        if method is not None:
            revenue[method.value] = round(float(amount), 2)

    status_rows = await db.execute(
        select(Order.status, func.count(Order.id)).where(*in_day).group_by(Order.status)
    )
    by_status = {s.value: 0 for s in OrderStatus}
    for status, count in status_rows.all():
        by_status[status.value] = count

    type_rows = await db.execute(
        select(Order.order_type, func.count(Order.id)).where(*in_day).group_by(Order.order_type)
    )
    by_type = {t.value: 0 for t in OrderType}
    for order_type, count in type_rows.all():
        by_type[order_type.value] = count

    total_orders = sum(by_status.values())

    return {
        "date": day.isoformat(),
        "total_orders": total_orders,
        "paid_orders": paid_orders,
        "unpaid_orders": total_orders - paid_orders,
        "total_revenue": round(sum(revenue.values()), 2),
        "total_cash": revenue[PaymentMethod.CASH.value],
        "total_card": revenue[PaymentMethod.CARD.value],
        "total_momo": revenue[PaymentMethod.MOMO.value],
        "total_paystack": revenue[PaymentMethod.PAYSTACK.value],
        "orders_by_status": by_status,
        "orders_by_type": by_type,
    }


def session_to_dict(session: DaySession) -> dict[str, Any]:
    """Plain representation for spreadsheet export and realtime events."""
    return {
        "id": session.id,
        "date": session.date,
        "is_closed": session.is_closed,
        "opened_at": session.opened_at.isoformat() if session.opened_at else None,
        "closed_at": session.closed_at.isoformat() if session.closed_at else None,
        "closed_by_id": session.closed_by_id,
        "total_orders": session.total_orders,
        "total_revenue": session.total_revenue,
        "total_cash": session.total_cash,
        "total_card": session.total_card,
        "total_momo": session.total_momo,
        "total_paystack": session.total_paystack,
        "notes": session.notes,
    }


async def day_export_rows(db: AsyncSession, day: Optional[date] = None) -> list[dict[str, Any]]:
    """Flat rows for every order of ``day``, one per order, for the spreadsheet archive."""
    start, end = day_bounds(day or today())
    result = await db.execute(
        select(Order)
        .where(Order.created_at >= start, Order.created_at < end)
        .order_by(Order.created_at)
    )

    rows = []
    for order in result.unique().scalars().all():
        rows.append({
            "order_number": order.order_number,
            "created_at": order.created_at.isoformat(),
            "order_type": order.order_type.value,
            "status": order.status.value,
            "payment_status": order.payment_status.value,
            "payment_method": order.payment_method.value if order.payment_method else None,
            "table_number": order.table_number,
            "items": ", ".join(
                f"{line.quantity}x {line.menu_item.name if line.menu_item else line.menu_item_id}"
                for line in order.items
            ),
            "subtotal": order.subtotal,
            "discount": order.discount,
            "tax": order.tax,
            "total": order.total,
        })
    return rows
