from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from loguru import logger

from app.core.security.auth import decode_access_token
from app.models.user import User

jwt_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(jwt_bearer)
) -> User:
    """Resolve the acting operator from the bearer token"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as e:
        logger.warning(f"Authentication error: {e}")
        raise credentials_exception

    try:
        user_id = UUID(str(payload.get("user_id")))
    except ValueError:
        logger.warning("Authentication error: token carries a malformed user_id")
        raise credentials_exception

    user = await User.get_or_none(id=user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user"
        )
    return user


def permission_required(permission: str):
    """Dependency factory: the operator must hold ``permission`` through a role"""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if not await user.has_permission(permission):
            logger.warning(f"Permission {permission} denied for operator {user.email}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission '{permission}' required"
            )
        return user

    return checker
