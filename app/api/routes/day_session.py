"""
Business-day routes.

Closing the day freezes its totals, blocks new orders and queues the
spreadsheet export; only an admin can reopen it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from kombu.exceptions import OperationalError as BrokerError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.database import get_db
from app.dependencies import get_current_user, require_roles
from app.models import DaySession, Role, User, utcnow
from app.realtime import manager
from app.schemas import (
    DayCloseRequest,
    DaySessionEnvelope,
    DaySessionHistoryResponse,
    DaySessionResponse,
    DaySummaryResponse,
)
from app.services.audit import record_audit
from app.services.day_session import (
    compute_day_summary,
    day_export_rows,
    get_or_create_session,
    session_to_dict,
)
from app.tasks import export_day_report

router = APIRouter(prefix="/api/day-session", tags=["Day Session"])
logger = logging.getLogger(__name__)

day_staff = require_roles(Role.KITCHEN_STAFF, Role.CASHIER, Role.RECEPTIONIST, Role.ADMIN)


async def _reload(db: AsyncSession, session_id: str) -> DaySession:
    result = await db.execute(
        select(DaySession)
        .where(DaySession.id == session_id)
        .execution_options(populate_existing=True)
    )
    return result.unique().scalar_one()


def _actor(user: User) -> dict:
    return {"id": user.id, "first_name": user.first_name, "last_name": user.last_name}


@router.get("/status", response_model=DaySessionResponse)
async def day_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DaySessionResponse:
    session = await get_or_create_session(db)
    return DaySessionResponse.model_validate(session)


@router.get("/summary", response_model=DaySummaryResponse)
async def day_summary(
    user: User = Depends(day_staff),
    db: AsyncSession = Depends(get_db),
) -> DaySummaryResponse:
    return DaySummaryResponse(**await compute_day_summary(db))


@router.post("/close", response_model=DaySessionEnvelope)
async def close_day(
    request: Request,
    payload: Optional[DayCloseRequest] = None,
    user: User = Depends(day_staff),
    db: AsyncSession = Depends(get_db),
) -> DaySessionEnvelope:
    session = await get_or_create_session(db)
    if session.is_closed:
        raise ValidationError("Day is already closed")

    summary = await compute_day_summary(db)
    session.is_closed = True
    session.closed_at = utcnow()
    session.closed_by_id = user.id
    session.notes = (payload.notes if payload else None) or None
    for key in ("total_orders", "total_revenue", "total_cash", "total_card", "total_momo", "total_paystack"):
        setattr(session, key, summary[key])

    await db.commit()
    session = await _reload(db, session.id)
    logger.info(
        f"Day {session.date} closed by {user.id}: "
        f"{session.total_orders} orders, {session.total_revenue:.2f} revenue"
    )

    rows = await day_export_rows(db)
    try:
        export_day_report.delay(session_to_dict(session), rows)
    except BrokerError as e:
        logger.warning(f"Could not queue export for day {session.date}: {e}")

    await record_audit(
        db, user.id, "CLOSE_DAY", "DaySession", session.id,
        details={
            "date": session.date,
            "total_orders": session.total_orders,
            "total_revenue": session.total_revenue,
            "notes": session.notes,
        },
        request=request,
    )
    await manager.emit("day:closed", {"date": session.date, "closed_by": _actor(user)})

    return DaySessionEnvelope(
        message="Day closed successfully",
        day_session=DaySessionResponse.model_validate(session),
    )


@router.post("/open", response_model=DaySessionEnvelope)
async def open_day(
    request: Request,
    user: User = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> DaySessionEnvelope:
    session = await get_or_create_session(db)
    if not session.is_closed:
        raise ValidationError("Day is already open")

    session.is_closed = False
    session.closed_at = None
    session.closed_by_id = None
    session.notes = None
    await db.commit()
    session = await _reload(db, session.id)
    logger.info(f"Day {session.date} reopened by {user.id}")

    await record_audit(
        db, user.id, "OPEN_DAY", "DaySession", session.id,
        details={"date": session.date}, request=request,
    )
    await manager.emit("day:opened", {"date": session.date, "opened_by": _actor(user)})

    return DaySessionEnvelope(
        message="Day opened successfully",
        day_session=DaySessionResponse.model_validate(session),
    )


@router.get("/history", response_model=DaySessionHistoryResponse)
async def day_history(
    limit: int = Query(30, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> DaySessionHistoryResponse:
    total = (await db.execute(select(func.count(DaySession.id)))).scalar() or 0
    result = await db.execute(
        select(DaySession).order_by(DaySession.date.desc()).limit(limit).offset(offset)
    )
    sessions = result.unique().scalars().all()

    return DaySessionHistoryResponse(
        day_sessions=[DaySessionResponse.model_validate(s) for s in sessions],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + limit < total,
    )
