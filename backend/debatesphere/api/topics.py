"""
Topic API endpoints - the reference data debates are started from.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..core.errors import NotFoundError
from ..models import TopicCreate
from ..services import DebateServices
from .common import get_current_user_id, get_services, success

router = APIRouter(prefix="/api/topics", tags=["topics"])


@router.get("")
async def list_topics(
    category: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    services: DebateServices = Depends(get_services),
):
    """List approved topics, newest first."""
    topics = await services.topics.list(category=category, difficulty=difficulty)
    return success({"topics": topics, "total": len(topics)})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_topic(
    topic_data: TopicCreate,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """Create a topic; it is available for debates immediately."""
    topic = await services.topics.create(topic_data, created_by=user_id)
    return success({"topic": topic})


@router.get("/{topic_id}")
async def get_topic(topic_id: str, services: DebateServices = Depends(get_services)):
    topic = await services.topics.get(topic_id)
    if topic is None:
        raise NotFoundError("Topic not found")
    return success({"topic": topic})
