"""Order routes: creation at the POS or customer app, listing and kitchen status updates."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DayClosedError, NotFoundError, ValidationError
from app.database import get_db
from app.dependencies import get_current_user, require_roles
from app.models import (
    Order,
    OrderItem,
    OrderItemAddon,
    OrderStatus,
    OrderType,
    Role,
    User,
    utcnow,
)
from app.realtime import KITCHEN_ROOM, POS_ROOM, manager
from app.schemas import OrderCreate, OrderEnvelope, OrderListResponse, OrderResponse, OrderStatusUpdate
from app.services.audit import record_audit
from app.services.day_session import is_day_closed
from app.services.orders import (
    calculate_totals,
    date_range,
    day_bounds,
    generate_order_number,
    load_order,
    order_event_payload,
    price_order_items,
    today,
)
from app.services.settings import get_or_create_settings

router = APIRouter(prefix="/api/orders", tags=["Orders"])
logger = logging.getLogger(__name__)

COUNTER_ROLES = (Role.RECEPTIONIST, Role.CASHIER, Role.ADMIN)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# =============================================================================
# CREATE
# =============================================================================

@router.post(
    "",
    response_model=OrderEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
)
async def create_order(
    payload: OrderCreate,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """
    Create an order from the customer app or a staff terminal.

    Prices are always resolved from the menu; client-supplied prices are
    never trusted. New orders start PENDING/unpaid.
    """
    if await is_day_closed(db):
        raise DayClosedError("Day is closed. Cannot create new orders.")

    if payload.order_type == OrderType.ONLINE:
        if _blank(payload.delivery_address):
            raise ValidationError("Delivery address is required for online orders")
        if _blank(payload.contact_phone):
            raise ValidationError("Contact phone is required for online orders")
    elif payload.order_type == OrderType.DINE_IN and _blank(payload.table_number):
        raise ValidationError("Table number is required for dine-in orders")

    lines = await price_order_items(db, payload.items)
    settings_row = await get_or_create_settings(db)
    totals = calculate_totals(
        [line.total_price for line in lines],
        settings_row.tax_rate,
        payload.discount,
    )

    is_online = payload.order_type == OrderType.ONLINE
    order = Order(
        order_number=await generate_order_number(db),
        customer_id=user.id if user.role == Role.CUSTOMER else None,
        created_by_id=user.id if user.role in COUNTER_ROLES else None,
        order_type=payload.order_type,
        status=OrderStatus.PENDING,
        table_number=payload.table_number or None,
        delivery_address=payload.delivery_address if is_online else None,
        contact_phone=payload.contact_phone if is_online else None,
        notes=payload.notes or None,
        **totals.to_dict(),
        items=[
            OrderItem(
                menu_item_id=line.menu_item.id,
                variant_id=line.variant.id if line.variant else None,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
                notes=line.notes or None,
                addons=[OrderItemAddon(addon_id=a.id, price=a.price) for a in line.addons],
            )
            for line in lines
        ],
    )
    db.add(order)
    await db.commit()

    order = await load_order(db, order.id)
    logger.info(f"Order {order.order_number} created by {user.id} ({order.order_type.value}, {order.total:.2f})")

    await manager.emit("order:new", order_event_payload(order), KITCHEN_ROOM, POS_ROOM)
    await record_audit(
        db, user.id, "CREATE_ORDER", "Order", order.id,
        details={"order_number": order.order_number, "total": order.total},
        request=request,
    )

    return OrderEnvelope(message="Order created successfully", order=OrderResponse.model_validate(order))


# =============================================================================
# READ
# =============================================================================

@router.get("", response_model=OrderListResponse, summary="List orders visible to the caller")
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    order_type: Optional[OrderType] = Query(None),
    period: Optional[str] = Query(None, description="'today' or 'all'"),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    conditions = []

    if user.role == Role.CUSTOMER:
        conditions.append(Order.customer_id == user.id)

    window = None
    if user.role == Role.KITCHEN_STAFF or period == "today":
        window = day_bounds(today())
    elif start_date or end_date:
        window = date_range(start_date or end_date, end_date)
    if window:
        conditions.extend([Order.created_at >= window[0], Order.created_at < window[1]])

    if status_filter:
        conditions.append(Order.status == status_filter)
    if order_type:
        conditions.append(Order.order_type == order_type)

    total = (await db.execute(select(func.count(Order.id)).where(*conditions))).scalar() or 0
    result = await db.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    orders = result.unique().scalars().all()

    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await load_order(db, order_id)
    if user.role == Role.CUSTOMER and order.customer_id != user.id:
        raise NotFoundError("Order not found")
    return OrderResponse.model_validate(order)


# =============================================================================
# STATUS
# =============================================================================

@router.put("/{order_id}/status", response_model=OrderEnvelope)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    request: Request,
    user: User = Depends(require_roles(Role.KITCHEN_STAFF, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """
    Move an order to any status.

    Side effects:
        PREPARING by kitchen staff -> prepared_by is the caller
        READY -> ready_at now, prepared_by is the caller
        COMPLETED -> completed_at now; ready_at and prepared_by filled if unset
    """
    order = await load_order(db, order_id)
    new_status = payload.status
    now = utcnow()

    order.status = new_status
    if new_status == OrderStatus.COMPLETED:
        order.completed_at = now
        if order.ready_at is None:
            order.ready_at = now
        if order.prepared_by_id is None:
            order.prepared_by_id = user.id
    elif new_status == OrderStatus.READY:
        order.ready_at = now
        order.prepared_by_id = user.id
    elif new_status == OrderStatus.PREPARING and user.role == Role.KITCHEN_STAFF:
        order.prepared_by_id = user.id

    await db.commit()
    order = await load_order(db, order_id)
    logger.info(f"Order {order.order_number} -> {new_status.value} by {user.id}")

    # Broadcast reaches the customer's own room as well
    await manager.emit(
        "order:status-updated",
        {"order_id": order.id, "status": order.status.value, "order": order_event_payload(order)},
    )
    await record_audit(
        db, user.id, "UPDATE_ORDER_STATUS", "Order", order.id,
        details={"status": new_status.value, "order_number": order.order_number},
        request=request,
    )

    return OrderEnvelope(
        message="Order status updated successfully",
        order=OrderResponse.model_validate(order),
    )
