from fastapi import Depends, HTTPException, status

from partpulse.middleware.auth import get_current_user

# Roles allowed to raise requests and solicit quotes
REQUESTER_ROLES = ("technician", "coordinator", "building_tech", "god_admin")
PROCUREMENT_ROLES = ("coordinator", "maintenance_org", "tech_director", "god_admin")


def require_roles(*allowed_roles: str):
    """
    FastAPI dependency factory for role-based access control.

    Usage:
        @router.post("/suppliers")
        async def create_supplier(
            current_user: dict = Depends(get_current_user),
            _auth: None = Depends(require_roles("coordinator", "god_admin")),
        ):
    """
    async def check_role(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": {
                        "code": "INSUFFICIENT_PERMISSIONS",
                        "message": (
                            f"Role '{current_user['role']}' cannot perform this action. "
                            f"Required: {allowed_roles}"
                        ),
                    }
                },
            )
        return None

    return check_role
