"""
Audit trail helper.

Every state-changing action by a user is recorded in ``audit_logs``.
Callers commit their own change first; a failed audit write is rolled
back and logged without breaking the request that triggered it.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AuditLog

logger = logging.getLogger(__name__)


async def record_audit(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    entity: str,
    entity_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> Optional[AuditLog]:
    """
    Store an audit entry and commit it.

    Args:
        db: Active session
        user_id: Acting user (None for system actions)
        action: Upper-case action name, e.g. ``CREATE_ORDER``
        entity: Entity type, e.g. ``Order``
        entity_id: Primary key of the affected row
        details: JSON-serialisable context
        request: Incoming request, for client address and user agent

    Returns:
        The stored entry, or None if it could not be written
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=details,
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
    )
    try:
        db.add(entry)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Audit log failed for {action} {entity}:{entity_id}: {e}")
        return None
    return entry
