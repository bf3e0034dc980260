"""
Authentication utilities - JWT token handling and password hashing.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import bcrypt
from jose import JWTError, jwt

from ..config import settings
from ..core.errors import UnauthorizedError
from ..models import TokenData, UserInDB
from ..storage.user_storage import UserStorage


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash a password."""
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token
        expires_delta: Optional expiration time delta

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and verify a JWT access token.

    Expired or tampered tokens decode to None.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None
    return TokenData(user_id=user_id, username=payload.get("username"))


async def authenticate_user(
    users: UserStorage, username: str, password: str
) -> Optional[UserInDB]:
    """
    Authenticate a user by username and password.

    Returns:
        Optional[UserInDB]: User if the credentials match, None otherwise
    """
    user = await users.get_user_by_username(username)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


async def resolve_active_user(users: UserStorage, token: Optional[str]) -> UserInDB:
    """
    Resolve a bearer token to an active user.

    Raises:
        UnauthorizedError: Missing, invalid or expired token, unknown or inactive user
    """
    if not token:
        raise UnauthorizedError("Access token required")
    token_data = decode_access_token(token)
    if token_data is None or token_data.user_id is None:
        raise UnauthorizedError("Could not validate credentials")

    user = await users.get_user(token_data.user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise UnauthorizedError("User account is deactivated")
    return user
