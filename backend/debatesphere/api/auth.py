"""
Authentication API endpoints.
"""

import logging
from datetime import timedelta
from uuid import uuid4

from fastapi import APIRouter, Depends, status

from ..config import settings
from ..core.errors import ConflictError, UnauthorizedError
from ..models import Token, User, UserCreate, UserInDB, UserLogin
from ..services import DebateServices
from ..utils.auth import authenticate_user, create_access_token, get_password_hash
from .common import get_current_user, get_services, success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def _public(user: UserInDB) -> User:
    """Client view of a stored user, without the password hash."""
    return User(**user.model_dump(exclude={"hashed_password"}))


def _issue_token(user: UserInDB) -> Token:
    access_token = create_access_token(
        data={"sub": user.user_id, "username": user.username},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return Token(access_token=access_token, token_type="bearer")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, services: DebateServices = Depends(get_services)):
    """
    Register a new user.

    Returns:
        The created user and an access token

    Raises:
        ConflictError: If the username is already registered
    """
    if await services.users.get_user_by_username(user_data.username):
        raise ConflictError("Username already registered")

    user = await services.users.create_user(
        user_id=uuid4().hex,
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        email=user_data.email,
        full_name=user_data.full_name,
    )
    token = _issue_token(user)
    return success({
        "user": _public(user),
        **token.model_dump(),
    })


@router.post("/login")
async def login(credentials: UserLogin, services: DebateServices = Depends(get_services)):
    """
    Login and get access token.

    Raises:
        UnauthorizedError: Wrong credentials or deactivated account
    """
    user = await authenticate_user(services.users, credentials.username, credentials.password)
    if not user:
        logger.warning(
            "Failed login attempt",
            extra={"extra_fields": {"username": credentials.username}}
        )
        raise UnauthorizedError("Incorrect username or password")
    if not user.is_active:
        raise UnauthorizedError("User account is deactivated")

    token = _issue_token(user)
    return success({
        "user": _public(user),
        **token.model_dump(),
    })


@router.get("/me")
async def get_me(user: UserInDB = Depends(get_current_user)):
    """Get current user information."""
    return success(_public(user))
