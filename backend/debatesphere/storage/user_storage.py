"""
User Storage - Persistent debater accounts on top of StorageInterface.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import InternalError
from ..models import UserInDB
from .interface import StorageInterface

logger = logging.getLogger(__name__)


class UserStorage:
    """
    Manages persistent storage of user accounts.
    One JSON file per user in users/, plus a username -> user_id index.
    """

    def __init__(self, storage: StorageInterface):
        """
        Initialize user storage.

        Args:
            storage: StorageInterface implementation (typically LocalStorage)
        """
        self.storage = storage
        self.users_dir = "users"
        self._username_index_path = f"{self.users_dir}/username_index.json"
        self._index_lock = asyncio.Lock()

    def _user_path(self, user_id: str) -> str:
        return f"{self.users_dir}/{user_id}.json"

    async def _load_username_index(self) -> Dict[str, str]:
        content = await self.storage.load(self._username_index_path)
        if content is None:
            return {}
        try:
            return json.loads(content.decode('utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Corrupt username index: {e}")
            return {}

    async def get_user(self, user_id: str) -> Optional[UserInDB]:
        """
        Get user by user_id.

        Returns:
            Optional[UserInDB]: Stored user or None if not found
        """
        try:
            content = await self.storage.load(self._user_path(user_id))
        except ValueError:
            return None
        if content is None:
            return None

        try:
            return UserInDB.model_validate_json(content)
        except PydanticValidationError as e:
            logger.error(f"Error loading user {user_id}: {e}")
            return None

    async def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        index = await self._load_username_index()
        user_id = index.get(username.lower())
        if user_id is None:
            return None
        return await self.get_user(user_id)

    async def create_user(
        self,
        user_id: str,
        username: str,
        hashed_password: str,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> UserInDB:
        """
        Create a new user and register the username in the index.

        Raises:
            InternalError: If the account could not be written
        """
        now = datetime.now(timezone.utc)
        user = UserInDB(
            user_id=user_id,
            username=username,
            email=email,
            full_name=full_name,
            hashed_password=hashed_password,
            created_at=now,
            updated_at=now,
            is_active=True,
        )

        if not await self.storage.save(self._user_path(user_id), user.model_dump_json(indent=2)):
            raise InternalError("Failed to persist user")

        async with self._index_lock:
            index = await self._load_username_index()
            index[username.lower()] = user_id
            await self.storage.save(self._username_index_path, json.dumps(index, indent=2))

        logger.info(
            f"User created: {username}",
            extra={"extra_fields": {"user_id": user_id}}
        )
        return user

    async def set_active(self, user_id: str, is_active: bool) -> Optional[UserInDB]:
        """Activate or deactivate an account."""
        user = await self.get_user(user_id)
        if user is None:
            return None
        user.is_active = is_active
        user.updated_at = datetime.now(timezone.utc)
        await self.storage.save(self._user_path(user_id), user.model_dump_json(indent=2))
        return user
