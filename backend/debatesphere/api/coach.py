"""
Coaching API endpoints - on-demand AI coaching outside the live debate.
"""

from collections import Counter
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..config import DEBATE_CONSTRAINTS as C
from ..core.errors import ValidationError
from ..models import (
    CoachingFeedbackRequest, ImproveArgumentRequest, Topic, TopicSuggestionRequest,
    ValidateEvidenceRequest
)
from ..models.coaching import SkillLevel
from ..services import DebateServices
from .common import get_current_user_id, get_services, success

router = APIRouter(prefix="/api/ai", tags=["ai"])


async def _completed_topics(
    services: DebateServices,
    user_id: str,
    exclude: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Topic]:
    """Topics of the user's completed debates, newest first."""
    sessions, _ = await services.sessions.list_for_user(user_id, status="completed", limit=None)
    topics = []
    for session in sessions:
        if session.session_id == exclude:
            continue
        topic = await services.topics.get(session.topic_id)
        if topic is not None:
            topics.append(topic)
        if limit is not None and len(topics) >= limit:
            break
    return topics


@router.post("/generate-feedback")
async def generate_feedback(
    request: CoachingFeedbackRequest,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """Personalized feedback on a completed, scored session."""
    session, metrics = await services.sessions.get_analysis(request.session_id, user_id)
    if metrics is None:
        raise ValidationError("Performance metrics not found. Complete the session first.")

    history = await _completed_topics(services, user_id, exclude=session.session_id)
    feedback = await services.coach.generate_feedback(
        session,
        await services.topics.get(session.topic_id),
        metrics,
        previous_debates=len(history),
        focus_areas=request.focus_areas,
        skill_level=request.skill_level,
    )
    return success({"session_id": session.session_id, "feedback": feedback})


@router.post("/suggest-topics")
async def suggest_topics(
    request: TopicSuggestionRequest,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    previous = await _completed_topics(services, user_id, limit=10)
    suggestions = await services.coach.suggest_topics(
        interests=request.interests,
        skill_level=request.skill_level,
        category=request.category,
        count=request.count,
        previous_topics=[t.title for t in previous],
    )
    return success({"suggestions": suggestions, "total": len(suggestions)})


@router.post("/improve-argument")
async def improve_argument(
    request: ImproveArgumentRequest,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    improvement = await services.coach.improve_argument(
        request.argument, request.topic, side=request.side, focus_areas=request.focus_areas
    )
    return success(improvement)


@router.post("/validate-evidence")
async def validate_evidence(
    request: ValidateEvidenceRequest,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    validation = await services.coach.validate_evidence(
        request.argument, request.topic, existing_evidence=request.existing_evidence
    )
    return success(validation)


@router.get("/learning-path")
async def learning_path(
    skill_level: SkillLevel = Query("beginner"),
    interests: Optional[str] = Query(None, description="Comma-separated interests"),
    goals: Optional[str] = Query(None, max_length=C.goals_max_length),
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """Learning path built from the user's completed debates."""
    stats = await services.sessions.stats_for_user(user_id)
    topics = await _completed_topics(services, user_id)
    categories = [category for category, _ in Counter(t.category for t in topics).most_common()]
    interest_list = [i.strip() for i in (interests or "").split(",") if i.strip()]

    path = await services.coach.learning_path(
        skill_level=skill_level,
        interests=interest_list[:C.interests_max],
        goals=goals,
        total_debates=stats.completed_sessions,
        average_score=stats.average_score,
        preferred_categories=categories,
    )
    return success({
        "learning_path": path,
        "stats": {
            "total_debates": stats.completed_sessions,
            "average_score": stats.average_score,
            "preferred_categories": categories,
        },
    })
