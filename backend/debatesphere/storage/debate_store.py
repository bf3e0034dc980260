"""
Debate Store - Persistence for sessions, their message ledgers and
performance metrics.

Layout:
    sessions/<session_id>/session.json
    sessions/<session_id>/messages.json          ordered by turn number
    sessions/<session_id>/performance/<user_id>.json
    messages/<message_id>.json                   message -> session pointer
    users/<user_id>/sessions.json                user's session ids, oldest first

The store performs no locking; callers serialize writes per session.
"""

import json
import logging
import re
from typing import List, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import InternalError
from ..models import DebateMessage, DebateSession, PerformanceMetrics
from .interface import StorageInterface

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_MESSAGES = TypeAdapter(List[DebateMessage])


def is_valid_id(value: str) -> bool:
    """Ids are path components; anything else can't name a stored document."""
    return bool(_ID_PATTERN.match(value or ""))


class DebateStore:
    """Document repository for the debate domain."""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    async def _write(self, path: str, content: str) -> None:
        if not await self.storage.save(path, content):
            raise InternalError("Failed to persist debate data", details={"path": path})

    # Sessions

    async def get_session(self, session_id: str) -> Optional[DebateSession]:
        if not is_valid_id(session_id):
            return None
        content = await self.storage.load(f"sessions/{session_id}/session.json")
        if content is None:
            return None
        try:
            return DebateSession.model_validate_json(content)
        except PydanticValidationError as e:
            logger.error(
                f"Corrupt session document: {e}",
                extra={"extra_fields": {"session_id": session_id}}
            )
            raise InternalError("Stored session is unreadable") from e

    async def save_session(self, session: DebateSession) -> DebateSession:
        await self._write(
            f"sessions/{session.session_id}/session.json",
            session.model_dump_json(indent=2),
        )
        return session

    async def add_user_session(self, user_id: str, session_id: str) -> None:
        ids = await self.list_user_session_ids(user_id)
        if session_id not in ids:
            ids.append(session_id)
            await self._write(f"users/{user_id}/sessions.json", json.dumps(ids))

    async def list_user_session_ids(self, user_id: str) -> List[str]:
        if not is_valid_id(user_id):
            return []
        content = await self.storage.load(f"users/{user_id}/sessions.json")
        if content is None:
            return []
        return json.loads(content.decode("utf-8"))

    async def list_session_ids(self) -> List[str]:
        paths = await self.storage.list("sessions", pattern="session.json", recursive=True)
        return [path.replace("\\", "/").split("/")[-2] for path in paths]

    # Ledger

    async def load_messages(self, session_id: str) -> List[DebateMessage]:
        if not is_valid_id(session_id):
            return []
        content = await self.storage.load(f"sessions/{session_id}/messages.json")
        if content is None:
            return []
        try:
            return _MESSAGES.validate_json(content)
        except PydanticValidationError as e:
            logger.error(
                f"Corrupt message ledger: {e}",
                extra={"extra_fields": {"session_id": session_id}}
            )
            raise InternalError("Stored messages are unreadable") from e

    async def save_messages(self, session_id: str, messages: List[DebateMessage]) -> None:
        await self._write(
            f"sessions/{session_id}/messages.json",
            _MESSAGES.dump_json(messages, indent=2).decode("utf-8"),
        )

    async def index_message(self, message_id: str, session_id: str) -> None:
        await self._write(f"messages/{message_id}.json", json.dumps({"session_id": session_id}))

    async def find_message_session(self, message_id: str) -> Optional[str]:
        if not is_valid_id(message_id):
            return None
        content = await self.storage.load(f"messages/{message_id}.json")
        if content is None:
            return None
        return json.loads(content.decode("utf-8")).get("session_id")

    # Performance

    async def get_performance(self, session_id: str, user_id: str) -> Optional[PerformanceMetrics]:
        if not (is_valid_id(session_id) and is_valid_id(user_id)):
            return None
        content = await self.storage.load(f"sessions/{session_id}/performance/{user_id}.json")
        if content is None:
            return None
        try:
            return PerformanceMetrics.model_validate_json(content)
        except PydanticValidationError as e:
            logger.error(
                f"Corrupt performance document: {e}",
                extra={"extra_fields": {"session_id": session_id, "user_id": user_id}}
            )
            return None

    async def save_performance(self, metrics: PerformanceMetrics) -> PerformanceMetrics:
        await self._write(
            f"sessions/{metrics.session_id}/performance/{metrics.user_id}.json",
            metrics.model_dump_json(indent=2),
        )
        return metrics
