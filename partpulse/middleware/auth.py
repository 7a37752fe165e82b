from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
import structlog

from partpulse.services.auth_service import verify_access_token
from partpulse.services.lifecycle import normalize_role

logger = structlog.get_logger()

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """FastAPI dependency: extract and verify JWT, return user claims dict."""
    token = credentials.credentials
    try:
        payload = verify_access_token(token)
    except JWTError as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "AUTH_TOKEN_INVALID",
                    "message": "Invalid or expired token",
                }
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = normalize_role(payload.get("role"))
    return {
        "user_id": payload["sub"],
        # Legacy display names ("Building 2 Technician") map onto workflow roles
        "role": role.value if role else payload.get("role"),
        "email": payload.get("email"),
        "building_id": payload.get("building_id"),
    }
