"""System settings routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_optional_user, require_roles
from app.models import Role, User
from app.schemas import AdminSettingsResponse, SettingsResponse, SettingsUpdate
from app.services.audit import record_audit
from app.services.settings import get_or_create_settings

router = APIRouter(prefix="/api/settings", tags=["Settings"])
logger = logging.getLogger(__name__)

SECRET_FIELDS = ("paystack_secret_key", "paystack_webhook_secret")


@router.get("", response_model=None, summary="Public restaurant settings")
async def read_settings(
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> SettingsResponse:
    """
    Settings needed by every front-end.

    Paystack secrets are only included for an authenticated admin.
    """
    settings_row = await get_or_create_settings(db)
    if user is not None and user.role == Role.ADMIN:
        return AdminSettingsResponse.model_validate(settings_row)
    return SettingsResponse.model_validate(settings_row)


@router.put("", response_model=AdminSettingsResponse)
async def update_settings(
    payload: SettingsUpdate,
    request: Request,
    admin: User = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> AdminSettingsResponse:
    settings_row = await get_or_create_settings(db)
    changes = payload.model_dump(exclude_unset=True)

    for key, value in changes.items():
        setattr(settings_row, key, value)
    await db.commit()
    await db.refresh(settings_row)

    logger.info(f"System settings updated by {admin.id}: {sorted(changes)}")
    await record_audit(
        db, admin.id, "UPDATE_SYSTEM_SETTINGS", "SystemSettings", settings_row.id,
        details={
            "fields": sorted(changes),
            "secrets_changed": [key for key in SECRET_FIELDS if key in changes],
        },
        request=request,
    )
    return AdminSettingsResponse.model_validate(settings_row)
