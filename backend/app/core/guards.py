"""
Role and ownership guards.

Route-level guards are FastAPI dependencies; `ensure_actor` is called from the
booking services once the booking row is loaded. All of them fail with
InsufficientPermissionsError (403, ERR_PERM_001).
"""

from typing import List
from fastapi import Depends
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.core.exceptions import InsufficientPermissionsError


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/live-shows")
        async def create_show(current_user: Principal = Depends(require_role([UserRole.STAR]))):
            ...
    """
    allowed = [role.value for role in allowed_roles]

    async def role_checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        if current_user.role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join(allowed)}",
                details={"required_roles": allowed, "role": current_user.role.value}
            )
        return current_user

    return role_checker


def require_admin(current_user: Principal = Depends(get_current_user)) -> Principal:
    if not current_user.is_admin:
        raise InsufficientPermissionsError("Admin access required")
    return current_user


def ensure_actor(actor: Principal, *owner_ids: int, message: str = "Access denied") -> None:
    """Pass if the actor is one of `owner_ids` or an admin."""
    if actor.is_admin:
        return
    if actor.user_id not in owner_ids:
        raise InsufficientPermissionsError(message, details={"user_id": actor.user_id})
