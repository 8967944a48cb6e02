"""
Authentication dependencies for FastAPI.

Turns a bearer token into the principal context (user id + role) that the
booking and ledger services act on.
"""

from dataclasses import dataclass
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from backend.app.core.jwt import token_user_id
from backend.app.db.session import get_db
from backend.app.models.enums import UserRole
from backend.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    """The authenticated caller."""
    user_id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """
    FastAPI dependency for JWT authentication.

    1. Validates the token signature, expiry and type
    2. Verifies user still exists and is active (real-time check)
    3. Takes the role from the database, so a fan who became a star
       acts as a star without a new token

    Raises:
        HTTPException: 401 if authentication fails, 403 if account inactive
    """
    user_id = token_user_id(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User.id, User.role, User.is_active).where(User.id == user_id))
    row = result.one_or_none()

    if row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not row.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return Principal(user_id=row.id, role=row.role)
