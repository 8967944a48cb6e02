"""
Platform account resolver.

Hosting fees and become-star payments are paid to the platform. The
receiving user is `settings.platform_account_id` when set, otherwise the
oldest ADMIN user.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import PlatformAccountMissingError
from backend.app.models.enums import UserRole
from backend.app.models.user import User


async def resolve_platform_account_id(db: AsyncSession) -> int:
    if settings.platform_account_id is not None:
        return settings.platform_account_id

    result = await db.execute(
        select(User.id).where(User.role == UserRole.ADMIN).order_by(User.id).limit(1)
    )
    admin_id = result.scalar_one_or_none()
    if admin_id is None:
        raise PlatformAccountMissingError()
    return admin_id
