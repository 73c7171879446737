from fastapi import Depends, HTTPException, status

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.schemas import CurrentUser

ADMIN_ROLES = ("SUPER_ADMIN", "PLATFORM_ADMIN", "ADMIN")


def require_roles(*roles: str):
    """
    Dependency factory restricting an endpoint to the given roles. Admin roles always pass.

    Example:
        Depends(require_roles("BURSAR"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role in ADMIN_ROLES or current_user.role in roles:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return _checker
