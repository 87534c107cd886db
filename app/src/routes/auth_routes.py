"""
Authentication API routes.

Endpoints:
    POST   /auth/register — create a password account
    POST   /auth/token    — exchange credentials for a bearer token
    GET    /auth/me       — profile of the authenticated user
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from commons import limiter
from src.database.user_repository import UserRepository
from src.auth.tokens import get_password_hash, verify_password, create_access_token, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register_user(
    request: Request, form_data: OAuth2PasswordRequestForm = Depends()
) -> Dict[str, Any]:
    """Register a new user with email (username) and password."""
    user_repo = UserRepository()

    existing_user = user_repo.get_user_by_email(form_data.username)
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    hashed_password = get_password_hash(form_data.password)
    user = user_repo.create_user(email=form_data.username, hashed_password=hashed_password)

    return {"message": "User created successfully", "email": user["email"]}


@router.post("/token")
@limiter.limit("10/minute")
def login_for_access_token(
    request: Request, form_data: OAuth2PasswordRequestForm = Depends()
) -> Dict[str, Any]:
    """Login with email and password to get a JWT access token."""
    user_repo = UserRepository()
    user = user_repo.get_user_by_email(form_data.username)

    if not user or not verify_password(form_data.password, user["hashed_password"]):
        logger.warning("Failed login attempt for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": user["email"]})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me")
async def get_current_logged_in_user(current_user: Dict[str, Any] = Depends(get_current_user)):
    """Return the profile of the currently logged-in user."""
    # Sanitize the output (don't send password hash back)
    user_data = current_user.copy()
    user_data.pop("hashed_password", None)
    return user_data
