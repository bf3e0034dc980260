"""
Topic Storage - Debate topics as JSON documents under topics/.
"""

import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import InternalError
from ..models import Topic, TopicCreate
from .interface import StorageInterface

logger = logging.getLogger(__name__)


class TopicStorage:
    """Read/write access to debate topics."""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.topics_dir = "topics"

    def _topic_path(self, topic_id: str) -> str:
        return f"{self.topics_dir}/{topic_id}.json"

    async def get(self, topic_id: str) -> Optional[Topic]:
        try:
            content = await self.storage.load(self._topic_path(topic_id))
        except ValueError:
            return None
        if content is None:
            return None
        try:
            return Topic.model_validate_json(content)
        except PydanticValidationError as e:
            logger.error(f"Error loading topic {topic_id}: {e}")
            return None

    async def save(self, topic: Topic) -> Topic:
        if not await self.storage.save(self._topic_path(topic.topic_id), topic.model_dump_json(indent=2)):
            raise InternalError("Failed to persist topic")
        return topic

    async def create(
        self,
        data: TopicCreate,
        created_by: Optional[str] = None,
        approval_status: str = "approved",
    ) -> Topic:
        """
        Store a new topic.

        Args:
            data: Validated topic payload
            created_by: Submitting user id
            approval_status: "approved" unless the caller seeds a pending topic
        """
        topic = Topic(
            **data.model_dump(),
            topic_id=uuid4().hex,
            approval_status=approval_status,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
        )
        await self.save(topic)
        logger.info(
            f"Topic created: {topic.title}",
            extra={"extra_fields": {"topic_id": topic.topic_id, "created_by": created_by}}
        )
        return topic

    async def list(
        self,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        approved_only: bool = True,
    ) -> List[Topic]:
        """List topics, newest first."""
        topics = []
        for path in await self.storage.list(self.topics_dir, pattern="*.json"):
            topic_id = Path(path).stem
            topic = await self.get(topic_id)
            if topic is None:
                continue
            if approved_only and not topic.approved:
                continue
            if category and topic.category != category:
                continue
            if difficulty and topic.difficulty != difficulty:
                continue
            topics.append(topic)
        topics.sort(key=lambda t: t.created_at, reverse=True)
        return topics
