"""
Payment gateway webhooks.

Paystack signs the raw request body with HMAC-SHA512 and sends the hex
digest in ``x-paystack-signature``. Only ``charge.success`` changes
state; every other verified event is acknowledged and ignored.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.database import get_db
from app.models import Order, PaymentMethod, PaymentStatus
from app.realtime import KITCHEN_ROOM, POS_ROOM, manager, user_room
from app.services.orders import load_order, mark_order_paid, order_event_payload
from app.services.payment import verify_webhook_signature
from app.services.settings import get_or_create_settings, paystack_webhook_secret

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])
logger = logging.getLogger(__name__)


@router.post("/paystack", response_class=PlainTextResponse)
async def paystack_webhook(request: Request, db: AsyncSession = Depends(get_db)) -> str:
    body = await request.body()

    settings_row = await get_or_create_settings(db)
    secret = paystack_webhook_secret(settings_row)
    signature = request.headers.get("x-paystack-signature")
    if not secret or not verify_webhook_signature(body, signature, secret):
        logger.warning("Paystack webhook rejected: invalid signature")
        raise ValidationError("Invalid signature")

    try:
        event = json.loads(body)
    except ValueError:
        raise ValidationError("Invalid payload")

    if event.get("event") != "charge.success":
        logger.debug(f"Ignoring Paystack event {event.get('event')}")
        return "OK"

    transaction = event.get("data") or {}
    reference = transaction.get("reference")
    if not reference:
        raise ValidationError("Invalid transaction data")

    result = await db.execute(select(Order.id).where(Order.paystack_ref == reference))
    order_id = result.scalar_one_or_none()
    if order_id is None:
        logger.warning(f"Paystack webhook for unknown reference {reference}")
        return "OK"

    order = await load_order(db, order_id)
    if order.payment_status == PaymentStatus.PAID:
        return "OK"

    amount = transaction.get("amount")
    mark_order_paid(
        order,
        PaymentMethod.PAYSTACK,
        amount / 100.0 if amount is not None else order.total,
        reference=reference,
        provider_data=transaction,
    )
    await db.commit()
    order = await load_order(db, order_id)
    logger.info(f"Paystack webhook marked order {order.order_number} paid")

    payload = order_event_payload(order)
    await manager.emit("order:new", payload, KITCHEN_ROOM, POS_ROOM)
    if order.customer_id:
        await manager.emit("order:paid", payload, user_room(order.customer_id))

    return "OK"
