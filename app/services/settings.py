"""
System settings access.

The ``system_settings`` table holds a single row that is created with
defaults on first read.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models import SETTINGS_ID, SystemSettings

logger = logging.getLogger(__name__)

# Values shipped in sample .env files; treated as "not configured"
PLACEHOLDER_MARKERS = ("your_", "xxx", "placeholder", "changeme")


async def get_or_create_settings(db: AsyncSession) -> SystemSettings:
    settings_row = await db.get(SystemSettings, SETTINGS_ID)
    if settings_row is None:
        settings_row = SystemSettings(id=SETTINGS_ID)
        db.add(settings_row)
        await db.commit()
        await db.refresh(settings_row)
        logger.info("Created default system settings")
    return settings_row


def is_usable_key(key: Optional[str]) -> bool:
    """A Paystack key counts only when set and not a sample placeholder."""
    if not key or not key.strip():
        return False
    lowered = key.lower()
    return not any(marker in lowered for marker in PLACEHOLDER_MARKERS)


def paystack_secret_key(settings_row: SystemSettings) -> Optional[str]:
    """Secret key from the database first, then the environment."""
    key = settings_row.paystack_secret_key or get_settings().paystack_secret_key
    return key if is_usable_key(key) else None


def paystack_webhook_secret(settings_row: SystemSettings) -> Optional[str]:
    """Webhook signing secret, defaulting to the secret key like Paystack does."""
    env = get_settings()
    for key in (
        settings_row.paystack_webhook_secret,
        env.paystack_webhook_secret,
        settings_row.paystack_secret_key,
        env.paystack_secret_key,
    ):
        if is_usable_key(key):
            return key
    return None
