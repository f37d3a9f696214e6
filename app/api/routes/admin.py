"""
Admin routes.

Dashboard statistics, staff account management, order notifications
and the audit trail. Every route requires the ADMIN role.
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.security import hash_password
from app.database import get_db
from app.dependencies import require_roles
from app.models import (
    AuditLog,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Role,
    User,
    utcnow,
)
from app.schemas import (
    AdminDashboardResponse,
    AdminNotification,
    AuditLogListResponse,
    AuditLogResponse,
    BestSeller,
    NotificationListResponse,
    StaffCreate,
    UserEnvelope,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.services.audit import record_audit
from app.services.orders import date_range, day_bounds, today
from app.services.users import find_user_by_contact

admin_only = require_roles(Role.ADMIN)

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(admin_only)])
logger = logging.getLogger(__name__)

URGENT_AFTER = timedelta(minutes=15)
RECENT_COMPLETION = timedelta(hours=1)


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/dashboard", response_model=AdminDashboardResponse)
async def admin_dashboard(
    period: Optional[str] = Query(None, description="'all' disables the date filter"),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    db: AsyncSession = Depends(get_db),
) -> AdminDashboardResponse:
    """
    Sales overview, today by default.

    Sales come from PAID payments; best sellers only count READY and
    COMPLETED orders.
    """
    if start_date or end_date:
        window = date_range(start_date or end_date, end_date)
        label = "range"
    elif period == "all":
        window = None
        label = "all"
    else:
        window = day_bounds(today())
        label = "today"

    order_filter = []
    payment_filter = []
    if window:
        order_filter = [Order.created_at >= window[0], Order.created_at < window[1]]
        payment_filter = [Payment.created_at >= window[0], Payment.created_at < window[1]]

    payment_rows = await db.execute(
        select(Payment.method, func.coalesce(func.sum(Payment.amount), 0.0))
        .where(*payment_filter, Payment.status == PaymentStatus.PAID)
        .group_by(Payment.method)
    )
    breakdown = {m.value: 0.0 for m in PaymentMethod}
    for method, amount in payment_rows.all():
        breakdown[method.value] = round(float(amount), 2)
    total_sales = round(sum(breakdown.values()), 2)

    status_rows = await db.execute(
        select(Order.status, func.count(Order.id)).where(*order_filter).group_by(Order.status)
    )
    by_status = {s.value: 0 for s in OrderStatus}
    for order_status, count in status_rows.all():
        by_status[order_status.value] = count

    type_rows = await db.execute(
        select(Order.order_type, func.count(Order.id)).where(*order_filter).group_by(Order.order_type)
    )
    by_type = {t.value: 0 for t in OrderType}
    for order_type, count in type_rows.all():
        by_type[order_type.value] = count

    quantity = func.sum(OrderItem.quantity).label("quantity")
    seller_rows = await db.execute(
        select(OrderItem.menu_item_id, MenuItem.name, quantity, func.sum(OrderItem.total_price))
        .join(Order, OrderItem.order_id == Order.id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .where(*order_filter, Order.status.in_([OrderStatus.READY, OrderStatus.COMPLETED]))
        .group_by(OrderItem.menu_item_id, MenuItem.name)
        .order_by(quantity.desc())
        .limit(10)
    )
    best_sellers = [
        BestSeller(menu_item_id=item_id, name=name, quantity=int(qty), revenue=round(float(revenue), 2))
        for item_id, name, qty, revenue in seller_rows.all()
    ]

    total_orders = sum(by_status.values())
    return AdminDashboardResponse(
        period=label,
        total_sales=total_sales,
        total_orders=total_orders,
        completed_orders=by_status[OrderStatus.COMPLETED.value],
        average_order_value=round(total_sales / total_orders, 2) if total_orders else 0.0,
        payment_breakdown=breakdown,
        best_sellers=best_sellers,
        orders_by_status=by_status,
        orders_by_type=by_type,
    )


# =============================================================================
# USERS
# =============================================================================

@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[Role] = Query(None),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    conditions = []
    if role:
        conditions.append(User.role == role)
    if is_active is not None:
        conditions.append(User.is_active.is_(is_active))

    total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar() or 0
    result = await db.execute(
        select(User).where(*conditions).order_by(User.created_at.desc()).limit(limit).offset(offset)
    )
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/users", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def create_staff_user(
    payload: StaffCreate,
    request: Request,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    if await find_user_by_contact(db, payload.email, payload.phone):
        raise ValidationError("User already exists")

    user = User(
        email=payload.email,
        phone=payload.phone,
        password=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Staff account {user.id} ({user.role.value}) created by {admin.id}")
    await record_audit(
        db, admin.id, "CREATE_USER", "User", user.id,
        details={"role": user.role.value}, request=request,
    )
    return UserEnvelope(message="User created successfully", user=UserResponse.model_validate(user))


@router.put("/users/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    request: Request,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    changes = payload.model_dump(exclude_unset=True)
    for key in ("email", "phone"):
        value = changes.get(key)
        if value and value != getattr(user, key):
            other = await find_user_by_contact(db, **{key: value})
            if other is not None and other.id != user.id:
                raise ValidationError(f"{key.capitalize()} already in use")

    password = changes.pop("password", None)
    for key, value in changes.items():
        setattr(user, key, value)
    if password:
        user.password = hash_password(password)
    if not user.email and not user.phone:
        raise ValidationError("Email or phone is required")

    await db.commit()
    await db.refresh(user)

    fields = sorted(changes) + (["password"] if password else [])
    await record_audit(
        db, admin.id, "UPDATE_USER", "User", user.id,
        details={"fields": fields}, request=request,
    )
    return UserEnvelope(message="User updated successfully", user=UserResponse.model_validate(user))


# =============================================================================
# NOTIFICATIONS & AUDIT
# =============================================================================

@router.get("/notifications", response_model=NotificationListResponse)
async def admin_notifications(db: AsyncSession = Depends(get_db)) -> NotificationListResponse:
    """Open orders (urgent after 15 minutes) and orders completed in the last hour."""
    now = utcnow()

    pending = await db.execute(
        select(Order)
        .where(Order.status.in_([OrderStatus.PENDING, OrderStatus.CONFIRMED]))
        .order_by(Order.created_at.desc())
        .limit(5)
    )
    notifications = []
    for order in pending.unique().scalars().all():
        who = order.customer.full_name if order.customer else "Guest"
        notifications.append(
            AdminNotification(
                type="order",
                title=f"New Order #{order.order_number}",
                message=f"{order.order_type.value.replace('_', ' ')} order from {who}",
                urgent=now - order.created_at > URGENT_AFTER,
                order_id=order.id,
                order_number=order.order_number,
                status=order.status,
                created_at=order.created_at,
            )
        )

    completed = await db.execute(
        select(Order)
        .where(Order.status == OrderStatus.COMPLETED, Order.completed_at >= now - RECENT_COMPLETION)
        .order_by(Order.completed_at.desc())
        .limit(3)
    )
    for order in completed.unique().scalars().all():
        notifications.append(
            AdminNotification(
                type="success",
                title=f"Order #{order.order_number} Completed",
                message="Order completed successfully",
                order_id=order.id,
                order_number=order.order_number,
                status=order.status,
                created_at=order.completed_at,
            )
        )

    notifications.sort(key=lambda n: n.created_at, reverse=True)
    notifications = notifications[:10]
    return NotificationListResponse(notifications=notifications, unread_count=len(notifications))


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    user_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    entity: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    conditions = []
    if user_id:
        conditions.append(AuditLog.user_id == user_id)
    if action:
        conditions.append(AuditLog.action == action)
    if entity:
        conditions.append(AuditLog.entity == entity)
    if start_date or end_date:
        window_start, window_end = date_range(start_date or end_date, end_date)
        conditions.extend([AuditLog.created_at >= window_start, AuditLog.created_at < window_end])

    total = (await db.execute(select(func.count(AuditLog.id)).where(*conditions))).scalar() or 0
    result = await db.execute(
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in result.unique().scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )
