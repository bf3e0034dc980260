"""
Shared API plumbing - response envelope and request dependencies.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..models import UserInDB
from ..services import DebateServices
from ..utils.auth import resolve_active_user

# Bearer token security; missing tokens surface as UnauthorizedError
security = HTTPBearer(auto_error=False)


def success(data: Any = None) -> Dict[str, Any]:
    """Wrap a payload in the ``{"success": true, "data": ...}`` envelope."""
    return {"success": True, "data": data}


def get_services(request: Request) -> DebateServices:
    return request.app.state.services


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: DebateServices = Depends(get_services),
) -> UserInDB:
    """
    Dependency resolving the bearer credential to an active user.

    Raises:
        UnauthorizedError: If the token is missing, invalid or expired, or
            the account is inactive
    """
    token = credentials.credentials if credentials else None
    user = await resolve_active_user(services.users, token)
    request.state.user_id = user.user_id
    return user


async def get_current_user_id(user: UserInDB = Depends(get_current_user)) -> str:
    return user.user_id
