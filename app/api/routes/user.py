from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from app.api.dependencies import get_current_user
from app.core.security.auth import create_access_token
from app.models import User
from app.schemas.user import TokenResponse, UserResponse

router = APIRouter()


@router.post("/token", response_model=TokenResponse)
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    """
    Password login for back-office operators.

    Returns a bearer token carrying the operator id; permissions are checked
    per request from the operator's roles.
    """
    user = await User.authenticate(form_data.username, form_data.password)
    if user is None:
        logger.warning(f"Failed login attempt for operator {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user"
        )

    scopes = ["user"]
    if await user.has_role("admin"):
        scopes.append("admin")

    return create_access_token(user_id=str(user.id), email=user.email, scopes=scopes)


@router.get("/me", response_model=UserResponse)
async def read_user_me(user: User = Depends(get_current_user)):
    """Current operator"""
    return user
