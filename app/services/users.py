"""User lookups shared by the auth and admin routes."""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import User


async def find_user_by_contact(
    db: AsyncSession,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Optional[User]:
    """First user matching either the email or the phone number."""
    conditions = []
    if email:
        conditions.append(User.email == email)
    if phone:
        conditions.append(User.phone == phone)
    if not conditions:
        return None
    result = await db.execute(select(User).where(or_(*conditions)).limit(1))
    return result.scalar_one_or_none()
