"""
Debate session API endpoints - lifecycle, messages, reactions and analysis.

Every route requires a bearer token of an active user and only operates on
that user's own sessions. State changes are also published on the fan-out
channel so connected WebSocket clients see them.
"""

import asyncio
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from ..config import DEBATE_CONSTRAINTS as C
from ..core.errors import NotFoundError
from ..models import (
    EndSessionRequest, FeedbackRequest, FlagRequest, ReactionRequest, SendMessageRequest,
    StartSessionRequest, UserInDB
)
from ..services import DebateServices
from .common import get_current_user, get_current_user_id, get_services, success

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

SessionStatusFilter = Literal["active", "paused", "completed", "abandoned"]
SenderFilter = Literal["user", "ai"]


def _session_view(session, now: datetime) -> dict:
    return {
        "session": session,
        "remaining_seconds": session.remaining_seconds(now),
        "elapsed_seconds": session.elapsed_active_seconds(now),
    }


async def _owned_message(services: DebateServices, session_id: str, message_id: str, user_id: str):
    await services.sessions.get(session_id, user_id)
    message = await services.ledger.get(message_id)
    if message.session_id != session_id:
        raise NotFoundError("Message not found")
    return message


# Lifecycle

@router.post("", status_code=status.HTTP_201_CREATED)
async def start_session(
    request: StartSessionRequest,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """Start a debate on an approved topic."""
    session = await services.sessions.start(
        user_id,
        request.topic_id,
        request.chosen_side,
        time_limit=request.time_limit,
        ai_difficulty=request.ai_difficulty,
        ai_personality=request.ai_personality,
    )
    topic = await services.sessions.get_topic(session.topic_id)
    return success({"session": session, "topic": topic})


@router.get("")
async def list_sessions(
    status_filter: Optional[SessionStatusFilter] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=C.page_size_max),
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """Debate history, newest first."""
    sessions, total = await services.sessions.list_for_user(
        user_id, status=status_filter, skip=(page - 1) * limit, limit=limit
    )
    return success({
        "sessions": sessions,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    })


@router.get("/active")
async def active_sessions(
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    return success({"sessions": await services.sessions.active_for_user(user_id)})


@router.get("/stats")
async def session_stats(
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    return success(await services.sessions.stats_for_user(user_id))


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    session = await services.sessions.get(session_id, user_id)
    return success(_session_view(session, services.sessions.clock()))


@router.post("/{session_id}/pause")
async def pause_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    session = await services.sessions.pause(session_id, user_id)
    await services.channel.publish_paused(session)
    return success(_session_view(session, services.sessions.clock()))


@router.post("/{session_id}/resume")
async def resume_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    session = await services.sessions.resume(session_id, user_id)
    await services.channel.publish_resumed(session)
    return success(_session_view(session, services.sessions.clock()))


@router.post("/{session_id}/end")
async def end_session(
    session_id: str,
    request: Optional[EndSessionRequest] = None,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """End the debate; a completed debate comes back scored."""
    reason = request.reason if request else "completed"
    session = await services.sessions.end(session_id, user_id, reason)
    return success({"session": session})


# Messages

@router.get("/{session_id}/messages")
async def list_messages(
    session_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(C.page_size_default, ge=1, le=C.page_size_max),
    before: Optional[datetime] = Query(None),
    sender: Optional[SenderFilter] = Query(None),
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """One page of the ledger, oldest-first within the page."""
    await services.sessions.get(session_id, user_id)
    result = await services.ledger.page(
        session_id, limit=limit, before=before, sender=sender, page=page
    )
    return success(result)


@router.get("/{session_id}/messages/search")
async def search_messages(
    session_id: str,
    q: str = Query(..., min_length=C.search_term_min_length, max_length=C.search_term_max_length),
    sender: Optional[SenderFilter] = Query(None),
    limit: int = Query(20, ge=1, le=C.page_size_max),
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    await services.sessions.get(session_id, user_id)
    messages = await services.ledger.search(session_id, q, sender=sender, limit=limit)
    return success({"messages": messages, "total": len(messages), "term": q})


@router.post("/{session_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    session_id: str,
    request: SendMessageRequest,
    ai_reply: bool = Query(True, description="Queue the AI opponent's reply"),
    user: UserInDB = Depends(get_current_user),
    services: DebateServices = Depends(get_services),
):
    """
    Append the user's message and publish it.

    The AI reply is produced in the background and arrives as a
    ``new-message`` event (or via ``POST /ai-turn``).
    """
    message = await services.sessions.send_message(
        session_id,
        user.user_id,
        request.content,
        message_type=request.message_type,
        parent_message=request.parent_message,
        reply_to=request.reply_to,
    )
    await services.channel.publish_message(
        message, user_id=user.user_id, name=user.full_name or user.username
    )
    scheduled = services.orchestrator.schedule_ai_turn(session_id) if ai_reply else None
    return success({"message": message, "ai_reply_pending": scheduled is not None})


@router.post("/{session_id}/ai-turn", status_code=status.HTTP_201_CREATED)
async def ai_turn(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """
    Generate the AI reply to the latest user message and wait for it.

    When a background turn is already queued, its reply is returned
    instead of generating a second one.
    """
    await services.sessions.get(session_id, user_id)
    pending = services.orchestrator.pending(session_id)
    if pending is not None:
        await asyncio.wait([pending])
        if not pending.cancelled() and pending.result() is not None:
            return success({"message": pending.result()})
    message = await services.orchestrator.run_ai_turn(session_id)
    return success({"message": message})


@router.post("/{session_id}/messages/{message_id}/react")
async def react_to_message(
    session_id: str,
    message_id: str,
    request: ReactionRequest,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    await _owned_message(services, session_id, message_id, user_id)
    message = await services.ledger.react(message_id, user_id, request.reaction)
    return success({
        "message_id": message.message_id,
        "reactions": message.reaction_counts,
        "total_reactions": message.total_reactions,
    })


@router.delete("/{session_id}/messages/{message_id}/react")
async def remove_reaction(
    session_id: str,
    message_id: str,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    await _owned_message(services, session_id, message_id, user_id)
    message = await services.ledger.unreact(message_id, user_id)
    return success({
        "message_id": message.message_id,
        "reactions": message.reaction_counts,
        "total_reactions": message.total_reactions,
    })


@router.post("/{session_id}/messages/{message_id}/flag")
async def flag_message(
    session_id: str,
    message_id: str,
    request: Optional[FlagRequest] = None,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    await _owned_message(services, session_id, message_id, user_id)
    reported = request is not None and request.action == "report"
    message = await services.ledger.flag(message_id, reported=reported)
    return success({"message_id": message.message_id, "flags": message.flags})


# Analysis and feedback

@router.get("/{session_id}/analysis")
async def get_analysis(
    session_id: str,
    refresh: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    """Performance metrics; completed sessions are scored on demand."""
    session, metrics = await services.sessions.get_analysis(session_id, user_id, refresh=refresh)
    return success({
        "session": session,
        "metrics": metrics,
        "performance_level": metrics.performance_level if metrics else None,
        "insights": metrics.insights() if metrics else None,
        "message_stats": await services.ledger.stats(session_id),
    })


@router.post("/{session_id}/feedback")
async def submit_feedback(
    session_id: str,
    request: FeedbackRequest,
    user_id: str = Depends(get_current_user_id),
    services: DebateServices = Depends(get_services),
):
    session = await services.sessions.submit_feedback(
        session_id,
        user_id,
        rating=request.rating,
        comments=request.comments,
        ai_quality=request.ai_quality,
        topic_quality=request.topic_quality,
    )
    return success({"session": session})
