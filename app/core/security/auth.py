from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from app.core.config import settings


def create_access_token(
    user_id: str,
    email: str,
    scopes: Optional[list[str]] = None,
    expires_delta: Optional[timedelta] = None
) -> dict:
    """
    Create a signed JWT for an operator.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "user_id": str(user_id),
        "sub": email,
        "scopes": scopes or ["user"],
        "exp": expire
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)
    return {
        "access_token": token,
        "token_type": "bearer",
        "user_id": str(user_id)
    }


def decode_access_token(token: str) -> dict:
    """Decode and validate a JWT; raises JWTError when invalid or expired"""
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if not payload.get("user_id"):
        raise JWTError("Token has no user_id claim")
    return payload
