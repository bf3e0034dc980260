"""
Session State Machine - Lifecycle of a debate session.

    active --pause--> paused --resume--> active
    active --send_message--> active        (while time remains)
    active --time expired--> completed
    active/paused --end(reason)--> completed | abandoned

completed and abandoned are terminal. The transition functions below are
pure: they validate against the current state and return an updated copy,
so a failed guard never leaves a partial mutation behind. SessionManager
applies them under the per-session lock and persists the result.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from ..config import DEBATE_CONSTRAINTS
from ..models import (
    AIResponseMeta, DebateMessage, DebateSession, PerformanceMetrics, SessionStats,
    Topic, UserFeedback
)
from ..models.debate import OPEN_STATUSES, TERMINAL_STATUSES
from ..storage import DebateStore, TopicStorage
from .clock import Clock, utcnow
from .errors import (
    ConflictError, DebateError, ForbiddenError, InvalidTransition, NotFoundError,
    ReplySuperseded, SessionExpired, ValidationError
)
from .ledger import MessageLedger
from .locks import KeyedLock
from .logging_config import session_logger

logger = logging.getLogger(__name__)

SessionListener = Callable[[DebateSession], Awaitable[None]]


# Pure transitions

def _guard_not_terminal(session: DebateSession, event: str) -> None:
    if session.status in TERMINAL_STATUSES:
        raise InvalidTransition(event, session.status)


def pause(session: DebateSession, now: datetime) -> DebateSession:
    _guard_not_terminal(session, "pause")
    if session.status != "active":
        raise InvalidTransition("pause", session.status)
    updated = session.model_copy(deep=True)
    updated.status = "paused"
    updated.pause_time = now
    updated.last_activity = now
    return updated


def resume(session: DebateSession, now: datetime) -> DebateSession:
    _guard_not_terminal(session, "resume")
    if session.status != "paused" or session.pause_time is None:
        raise InvalidTransition("resume", session.status)
    updated = session.model_copy(deep=True)
    updated.total_pause_seconds += max(0.0, (now - session.pause_time).total_seconds())
    updated.pause_time = None
    updated.status = "active"
    updated.last_activity = now
    return updated


def end(session: DebateSession, now: datetime, reason: str = "completed") -> DebateSession:
    """Close the session; ``abandoned`` abandons, any other reason completes."""
    _guard_not_terminal(session, "end")
    if reason not in DEBATE_CONSTRAINTS.end_reasons:
        raise ValidationError(f"Invalid end reason: {reason}")
    updated = session.model_copy(deep=True)
    if updated.pause_time is not None:
        updated.total_pause_seconds += max(0.0, (now - updated.pause_time).total_seconds())
        updated.pause_time = None
    updated.status = "abandoned" if reason == "abandoned" else "completed"
    updated.end_reason = reason
    updated.end_time = now
    updated.last_activity = now
    return updated


def expire(session: DebateSession, now: datetime) -> DebateSession:
    """Complete a session whose active time has run out."""
    if session.status != "active" or not session.is_time_expired(now):
        raise InvalidTransition("expire", session.status)
    return end(session, now, reason="time_expired")


def check_accepts_message(session: DebateSession, now: datetime) -> None:
    """
    Raise unless the session can take a message right now.

    Raises:
        InvalidTransition: Session is paused or terminal
        SessionExpired: Active time has reached the time limit
    """
    if session.status != "active":
        raise InvalidTransition(
            "send_message", session.status,
            f"Cannot send a message in a session that is {session.status}",
        )
    if session.is_time_expired(now):
        raise SessionExpired(session.session_id)


class SessionManager:
    """
    Applies lifecycle transitions and persists them.

    Every mutation of a session and its ledger runs under the session's
    lock from the shared KeyedLock.

    Args:
        store: DebateStore for sessions and metrics
        ledger: MessageLedger sharing ``locks``
        topics: TopicStorage for topic lookups
        locks: Per-session locks
        scorer: Object with ``async analyze(session, messages, topic) -> PerformanceMetrics``
        clock: Source of "now"
        default_time_limit: Seconds used when a start request omits the limit
    """

    def __init__(
        self,
        store: DebateStore,
        ledger: MessageLedger,
        topics: TopicStorage,
        locks: KeyedLock,
        scorer=None,
        clock: Clock = utcnow,
        default_time_limit: int = 1800,
    ):
        self.store = store
        self.ledger = ledger
        self.topics = topics
        self.locks = locks
        self.scorer = scorer
        self.clock = clock
        self.default_time_limit = default_time_limit
        self._end_listeners: List[SessionListener] = []

    def add_end_listener(self, listener: SessionListener) -> None:
        """Called with the final session whenever a session reaches a terminal state."""
        self._end_listeners.append(listener)

    async def _load(self, session_id: str) -> DebateSession:
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        return session

    async def _load_owned(self, session_id: str, user_id: str) -> DebateSession:
        session = await self._load(session_id)
        if session.user_id != user_id:
            raise ForbiddenError("Not authorized to access this session")
        return session

    async def get_topic(self, topic_id: str) -> Topic:
        topic = await self.topics.get(topic_id)
        if topic is None:
            raise NotFoundError("Topic not found")
        return topic

    # Lifecycle

    async def start(
        self,
        user_id: str,
        topic_id: str,
        chosen_side: str,
        time_limit: Optional[int] = None,
        ai_difficulty: str = "medium",
        ai_personality: str = "analytical",
    ) -> DebateSession:
        """
        Open a new session for ``user_id``.

        Raises:
            ValidationError: Bad side/limit or unapproved topic
            NotFoundError: Unknown topic
            ConflictError: The user already has an active or paused session
        """
        limit = self.default_time_limit if time_limit is None else time_limit
        if not (DEBATE_CONSTRAINTS.time_limit_min_seconds <= limit
                <= DEBATE_CONSTRAINTS.time_limit_max_seconds):
            raise ValidationError(
                f"Time limit must be between {DEBATE_CONSTRAINTS.time_limit_min_seconds} "
                f"and {DEBATE_CONSTRAINTS.time_limit_max_seconds} seconds"
            )
        if chosen_side not in DEBATE_CONSTRAINTS.sides:
            raise ValidationError(f"Invalid side: {chosen_side}")

        topic = await self.get_topic(topic_id)
        if not topic.approved:
            raise ValidationError("Topic is not approved")

        async with self.locks.hold(f"user:{user_id}"):
            for existing in await self.active_for_user(user_id):
                if existing.status == "active" and existing.is_time_expired(self.clock()):
                    await self._expire(existing.session_id)
                    continue
                raise ConflictError("You already have an active debate session")

            now = self.clock()
            session = DebateSession(
                session_id=uuid4().hex,
                user_id=user_id,
                topic_id=topic.topic_id,
                chosen_side=chosen_side,
                start_time=now,
                time_limit=limit,
                ai_difficulty=ai_difficulty,
                ai_personality=ai_personality,
                last_activity=now,
            )
            await self.store.save_session(session)
            await self.store.add_user_session(user_id, session.session_id)

        session_logger(logger, session.session_id, user_id).info(
            f"Debate session started on topic {topic.topic_id}",
            extra={"extra_fields": {
                "topic_id": topic.topic_id,
                "chosen_side": chosen_side,
                "time_limit": limit,
                "ai_difficulty": ai_difficulty,
            }}
        )
        return session

    async def _transition(
        self,
        session_id: str,
        user_id: Optional[str],
        apply: Callable[[DebateSession, datetime], DebateSession],
    ) -> DebateSession:
        async with self.locks.hold(session_id):
            if user_id is None:
                session = await self._load(session_id)
            else:
                session = await self._load_owned(session_id, user_id)
            updated = apply(session, self.clock())
            return await self.store.save_session(updated)

    async def pause(self, session_id: str, user_id: str) -> DebateSession:
        session = await self._transition(session_id, user_id, pause)
        session_logger(logger, session_id, user_id).info("Session paused")
        return session

    async def resume(self, session_id: str, user_id: str) -> DebateSession:
        session = await self._transition(session_id, user_id, resume)
        session_logger(logger, session_id, user_id).info(
            "Session resumed",
            extra={"extra_fields": {"total_pause_seconds": session.total_pause_seconds}}
        )
        return session

    async def end(self, session_id: str, user_id: str, reason: str = "completed") -> DebateSession:
        """End the session; completed sessions are scored before returning."""
        session = await self._transition(
            session_id, user_id, lambda s, now: end(s, now, reason)
        )
        session_logger(logger, session_id, user_id).info(
            f"Session ended: {session.status}",
            extra={"extra_fields": {"reason": reason}}
        )
        return await self._after_end(session)

    async def _expire(self, session_id: str) -> DebateSession:
        session = await self._transition(session_id, None, expire)
        session_logger(logger, session_id, session.user_id).info(
            "Session time limit reached",
            extra={"extra_fields": {"time_limit": session.time_limit}}
        )
        return await self._after_end(session)

    async def _after_end(self, session: DebateSession) -> DebateSession:
        if session.status == "completed":
            session = await self.score(session)
        for listener in self._end_listeners:
            try:
                await listener(session)
            except Exception as e:
                session_logger(logger, session.session_id, session.user_id).error(
                    f"Session end listener failed: {e}", exc_info=True
                )
        return session

    # Messages

    async def send_message(
        self,
        session_id: str,
        user_id: str,
        content: str,
        message_type: str = "general",
        parent_message: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> DebateMessage:
        """
        Append a user message if the session can take one.

        A message arriving after the time limit completes the session and
        fails with SessionExpired.
        """
        async with self.locks.hold(session_id):
            session = await self._load_owned(session_id, user_id)
            now = self.clock()
            try:
                check_accepts_message(session, now)
            except SessionExpired:
                await self.store.save_session(expire(session, now))
            else:
                message = await self.ledger.append_locked(
                    session, "user", content, message_type,
                    parent_message=parent_message, reply_to=reply_to,
                )
                await self.store.save_session(session)
                return message

        session_logger(logger, session_id, user_id).warning("Message rejected: time limit exceeded")
        await self._after_end(await self._load(session_id))
        raise SessionExpired(session_id)

    async def append_ai_message(
        self,
        session_id: str,
        content: str,
        message_type: str = "general",
        ai_response: Optional[AIResponseMeta] = None,
        reply_to: Optional[str] = None,
    ) -> DebateMessage:
        """
        Append the opponent's reply.

        Accepted while the session is active or paused so a reply already in
        flight is not lost; a terminal session rejects it.

        Raises:
            ReplySuperseded: ``reply_to`` is no longer the newest message
        """
        async with self.locks.hold(session_id):
            session = await self._load(session_id)
            _guard_not_terminal(session, "append_ai_message")
            if reply_to is not None:
                newest = await self.ledger.tail(session_id, 1)
                if not newest or newest[-1].message_id != reply_to:
                    raise ReplySuperseded(session_id, reply_to)
            message = await self.ledger.append_locked(
                session, "ai", content, message_type,
                ai_response=ai_response, reply_to=reply_to,
            )
            await self.store.save_session(session)
            return message

    # Scoring

    async def score(self, session: DebateSession) -> DebateSession:
        """
        Run the scoring engine and copy its result onto the session.

        A failure is logged and leaves ``final_score`` unset.
        """
        log = session_logger(logger, session.session_id, session.user_id)
        if self.scorer is None:
            return session
        try:
            topic = await self.topics.get(session.topic_id)
            messages = await self.ledger.all(session.session_id)
            metrics: PerformanceMetrics = await self.scorer.analyze(session, messages, topic)
            await self.store.save_performance(metrics)
        except DebateError as e:
            log.error(
                f"Scoring failed: {e.message}",
                extra={"extra_fields": {"error_kind": e.kind}}
            )
            return session
        except Exception as e:
            log.error(f"Scoring crashed: {e}", exc_info=True)
            return session

        async with self.locks.hold(session.session_id):
            current = await self._load(session.session_id)
            current.final_score = metrics.overall_score
            current.performance = metrics.scores()
            current.feedback = metrics.feedback
            session = await self.store.save_session(current)

        log.info(
            "Session scored",
            extra={"extra_fields": {
                "final_score": metrics.overall_score,
                "degraded": metrics.provenance.degraded,
            }}
        )
        return session

    async def get_analysis(
        self, session_id: str, user_id: str, refresh: bool = False
    ) -> Tuple[DebateSession, Optional[PerformanceMetrics]]:
        """
        Session plus its metrics; completed sessions without metrics (or with
        ``refresh``) are scored on demand.
        """
        session = await self._load_owned(session_id, user_id)
        metrics = await self.store.get_performance(session_id, user_id)
        if session.status == "completed" and (metrics is None or refresh):
            session = await self.score(session)
            metrics = await self.store.get_performance(session_id, user_id)
        return session, metrics

    # Reads

    async def get(self, session_id: str, user_id: str) -> DebateSession:
        return await self._load_owned(session_id, user_id)

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = 20,
    ) -> Tuple[List[DebateSession], int]:
        """User's sessions, newest first, with the total before paging."""
        sessions = []
        for session_id in await self.store.list_user_session_ids(user_id):
            session = await self.store.get_session(session_id)
            if session is None:
                continue
            if status is not None and session.status != status:
                continue
            sessions.append(session)
        sessions.sort(key=lambda s: s.start_time, reverse=True)
        end_index = None if limit is None else skip + limit
        return sessions[skip:end_index], len(sessions)

    async def active_for_user(self, user_id: str) -> List[DebateSession]:
        sessions, _ = await self.list_for_user(user_id, limit=None)
        return [s for s in sessions if s.status in OPEN_STATUSES]

    async def stats_for_user(self, user_id: str) -> SessionStats:
        sessions, total = await self.list_for_user(user_id, limit=None)
        scores = [s.final_score for s in sessions if s.final_score is not None]
        durations = [
            s.active_duration_minutes for s in sessions if s.active_duration_minutes is not None
        ]
        counts: Dict[str, int] = {}
        for s in sessions:
            counts[s.status] = counts.get(s.status, 0) + 1
        return SessionStats(
            total_sessions=total,
            active_sessions=counts.get("active", 0) + counts.get("paused", 0),
            completed_sessions=counts.get("completed", 0),
            abandoned_sessions=counts.get("abandoned", 0),
            average_score=round(sum(scores) / len(scores), 2) if scores else None,
            best_score=max(scores) if scores else None,
            average_duration_minutes=round(sum(durations) / len(durations), 2) if durations else None,
            total_time_spent_minutes=round(sum(durations), 2),
        )

    async def submit_feedback(
        self,
        session_id: str,
        user_id: str,
        rating: int,
        comments: Optional[str] = None,
        ai_quality: Optional[int] = None,
        topic_quality: Optional[int] = None,
    ) -> DebateSession:
        async with self.locks.hold(session_id):
            session = await self._load_owned(session_id, user_id)
            session.user_feedback = UserFeedback(
                rating=rating,
                comments=comments,
                ai_quality=ai_quality,
                topic_quality=topic_quality,
                submitted_at=self.clock(),
            )
            session = await self.store.save_session(session)
        session_logger(logger, session_id, user_id).info(
            "Feedback submitted", extra={"extra_fields": {"rating": rating}}
        )
        return session

    async def expire_idle(self) -> List[DebateSession]:
        """Complete every active session whose time limit has passed."""
        expired = []
        for session_id in await self.store.list_session_ids():
            session = await self.store.get_session(session_id)
            if session is None or session.status != "active":
                continue
            if not session.is_time_expired(self.clock()):
                continue
            try:
                expired.append(await self._expire(session_id))
            except InvalidTransition:
                # changed state between the scan and the lock
                continue
        return expired
