"""
Payment routes.

Online orders are paid through Paystack (or instantly in test mode when
no usable key is configured); counter orders are settled at the POS in
cash, by card or mobile money.
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.database import get_db
from app.dependencies import require_roles
from app.models import (
    Order,
    OrderType,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Role,
    User,
)
from app.realtime import KITCHEN_ROOM, POS_ROOM, manager, user_room
from app.schemas import (
    OrderEnvelope,
    OrderResponse,
    PaymentInitializeRequest,
    PaymentInitializeResponse,
    PaymentVerifyRequest,
    PosPaymentRequest,
    TransactionListResponse,
    TransactionResponse,
)
from app.services.audit import record_audit
from app.services.orders import date_range, load_order, mark_order_paid, order_event_payload
from app.services.payment import get_payment_service
from app.services.settings import get_or_create_settings, paystack_secret_key

router = APIRouter(prefix="/api/payments", tags=["Payments"])
logger = logging.getLogger(__name__)

customer_only = require_roles(Role.CUSTOMER)


def _checkout_email(user: User) -> str:
    """Paystack needs an email; phone-only customers get a synthetic one."""
    return user.email or f"{user.phone}@customers.defusionflame.com"


async def _announce_paid(order: Order, online: bool) -> None:
    payload = order_event_payload(order)
    await manager.emit("order:new", payload, KITCHEN_ROOM, POS_ROOM)
    if online:
        if order.customer_id:
            await manager.emit("order:paid", payload, user_room(order.customer_id))
    else:
        await manager.emit("order:paid", payload, POS_ROOM)


# =============================================================================
# ONLINE (PAYSTACK)
# =============================================================================

@router.post("/initialize", response_model=PaymentInitializeResponse)
async def initialize_payment(
    payload: PaymentInitializeRequest,
    request: Request,
    user: User = Depends(customer_only),
    db: AsyncSession = Depends(get_db),
) -> PaymentInitializeResponse:
    """
    Start checkout for one of the caller's unpaid online orders.

    Without a usable Paystack key the order is marked paid immediately
    and the customer is sent back to their orders page.
    """
    result = await db.execute(
        select(Order.id).where(
            Order.id == payload.order_id,
            Order.customer_id == user.id,
            Order.order_type == OrderType.ONLINE,
            Order.payment_status == PaymentStatus.PENDING,
        )
    )
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Order not found or already paid")

    order = await load_order(db, payload.order_id)
    settings_row = await get_or_create_settings(db)
    service = get_payment_service(paystack_secret_key(settings_row))
    frontend_url = get_settings().frontend_customer_url.rstrip("/")

    reference = f"DF-{order.order_number}-{int(time.time() * 1000)}"
    transaction = await service.initialize_transaction(
        email=_checkout_email(user),
        amount=order.total,
        reference=reference,
        callback_url=f"{frontend_url}/order-confirmation?orderId={order.id}",
        currency=settings_row.currency,
        metadata={
            "order_id": order.id,
            "order_number": order.order_number,
            "customer_id": user.id,
        },
    )
    if not transaction.success:
        raise ValidationError("Failed to initialize payment", details=transaction.error_message)

    if transaction.test_mode:
        mark_order_paid(
            order,
            PaymentMethod.PAYSTACK,
            order.total,
            reference=transaction.reference,
            provider_data=transaction.raw,
        )
        order.paystack_ref = transaction.reference
        await db.commit()
        order = await load_order(db, order.id)

        logger.info(f"Test mode payment for order {order.order_number}")
        await _announce_paid(order, online=True)
        await record_audit(
            db, user.id, "INITIALIZE_PAYMENT", "Payment", order.id,
            details=transaction.to_dict(), request=request,
        )
        return PaymentInitializeResponse(
            message="Order paid (test mode, Paystack not configured)",
            test_mode=True,
            redirect_url=f"{frontend_url}/orders",
            order=OrderResponse.model_validate(order),
        )

    order.paystack_ref = transaction.reference
    await db.commit()
    await record_audit(
        db, user.id, "INITIALIZE_PAYMENT", "Payment", order.id,
        details=transaction.to_dict(), request=request,
    )

    return PaymentInitializeResponse(
        message="Payment initialized successfully",
        reference=transaction.reference,
        authorization_url=transaction.authorization_url,
        access_code=transaction.access_code,
    )


@router.post("/verify", response_model=OrderEnvelope)
async def verify_payment(
    payload: PaymentVerifyRequest,
    request: Request,
    user: User = Depends(customer_only),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    settings_row = await get_or_create_settings(db)
    service = get_payment_service(paystack_secret_key(settings_row))

    transaction = await service.verify_transaction(payload.reference)
    if not transaction.success:
        raise ValidationError("Payment verification failed", details=transaction.error_message)

    result = await db.execute(
        select(Order.id).where(
            Order.paystack_ref == payload.reference,
            Order.customer_id == user.id,
        )
    )
    order_id = result.scalar_one_or_none()
    if order_id is None:
        raise NotFoundError("Order not found")

    order = await load_order(db, order_id)
    if order.payment_status == PaymentStatus.PAID:
        return OrderEnvelope(message="Payment already verified", order=OrderResponse.model_validate(order))

    mark_order_paid(
        order,
        PaymentMethod.PAYSTACK,
        transaction.amount if transaction.amount is not None else order.total,
        reference=payload.reference,
        provider_data=transaction.raw,
    )
    await db.commit()
    order = await load_order(db, order_id)

    logger.info(f"Payment verified for order {order.order_number}")
    await manager.emit("order:new", order_event_payload(order), KITCHEN_ROOM, POS_ROOM)
    await record_audit(
        db, user.id, "VERIFY_PAYMENT", "Payment", order.id,
        details={"reference": payload.reference, "amount": transaction.amount}, request=request,
    )
    return OrderEnvelope(message="Payment verified successfully", order=OrderResponse.model_validate(order))


# =============================================================================
# POINT OF SALE
# =============================================================================

@router.post("/pos", response_model=OrderEnvelope)
async def process_pos_payment(
    payload: PosPaymentRequest,
    request: Request,
    user: User = Depends(require_roles(Role.RECEPTIONIST, Role.CASHIER, Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    order = await load_order(db, payload.order_id)

    if order.payment_status == PaymentStatus.PAID:
        raise ValidationError("Order is already paid")
    if abs(payload.amount - order.total) > 0.01:
        raise ValidationError("Payment amount does not match order total")

    mark_order_paid(order, payload.payment_method, payload.amount)
    await db.commit()
    order = await load_order(db, order.id)

    logger.info(
        f"POS payment {payload.payment_method.value} {payload.amount:.2f} "
        f"for order {order.order_number}"
    )
    await _announce_paid(order, online=False)
    await record_audit(
        db, user.id, "PROCESS_POS_PAYMENT", "Payment", order.id,
        details={
            "method": payload.payment_method.value,
            "amount": payload.amount,
            "order_number": order.order_number,
        },
        request=request,
    )
    return OrderEnvelope(message="Payment processed successfully", order=OrderResponse.model_validate(order))


# =============================================================================
# REPORTING
# =============================================================================

@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    method: Optional[PaymentMethod] = Query(None),
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> TransactionListResponse:
    conditions = []
    if method:
        conditions.append(Payment.method == method)
    if status_filter:
        conditions.append(Payment.status == status_filter)
    if start_date or end_date:
        window_start, window_end = date_range(start_date or end_date, end_date)
        conditions.extend([Payment.created_at >= window_start, Payment.created_at < window_end])

    total = (await db.execute(select(func.count(Payment.id)).where(*conditions))).scalar() or 0
    total_amount = (
        await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0.0)).where(
                *conditions, Payment.status == PaymentStatus.PAID
            )
        )
    ).scalar() or 0.0

    rows = await db.execute(
        select(Payment, Order.order_number, Order.order_type, Order.customer_id)
        .join(Order, Payment.order_id == Order.id)
        .where(*conditions)
        .order_by(Payment.created_at.desc())
        .limit(limit)
        .offset(offset)
    )

    payments = []
    for payment, order_number, order_type, customer_id in rows.all():
        payments.append(
            TransactionResponse(
                id=payment.id,
                order_id=payment.order_id,
                amount=payment.amount,
                method=payment.method,
                status=payment.status,
                paystack_ref=payment.paystack_ref,
                created_at=payment.created_at,
                order_number=order_number,
                order_type=order_type,
                customer_id=customer_id,
            )
        )

    return TransactionListResponse(
        payments=payments,
        total=total,
        total_amount=round(float(total_amount), 2),
        limit=limit,
        offset=offset,
    )
