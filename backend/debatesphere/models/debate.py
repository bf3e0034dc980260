"""
Debate Session Model - One user's practice debate against the AI.

Durations are derived on read from the stored timestamps and the
accumulated pause time; nothing derived is persisted.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field

from .performance import PerformanceFeedback, PerformanceScores

SessionStatus = Literal["active", "paused", "completed", "abandoned"]
Side = Literal["pro", "con"]
Difficulty = Literal["easy", "medium", "hard", "expert"]
Personality = Literal["analytical", "passionate", "skeptical", "diplomatic", "challenging"]
EndReason = Literal["completed", "abandoned", "time_expired"]

TERMINAL_STATUSES = frozenset({"completed", "abandoned"})
OPEN_STATUSES = frozenset({"active", "paused"})


def opposite_side(side: str) -> str:
    return "con" if side == "pro" else "pro"


class MessageCount(BaseModel):
    user: int = 0
    ai: int = 0


class UserFeedback(BaseModel):
    """Rating the debater leaves after a session."""
    rating: int = Field(..., ge=1, le=5)
    comments: Optional[str] = None
    ai_quality: Optional[int] = Field(default=None, ge=1, le=5)
    topic_quality: Optional[int] = Field(default=None, ge=1, le=5)
    submitted_at: datetime


class DebateSession(BaseModel):
    """Persisted session record."""
    session_id: str
    user_id: str
    topic_id: str
    chosen_side: Side
    status: SessionStatus = "active"
    start_time: datetime
    end_time: Optional[datetime] = None
    pause_time: Optional[datetime] = None
    total_pause_seconds: float = 0.0
    message_count: MessageCount = Field(default_factory=MessageCount)
    turn_count: int = 0
    time_limit: int = 1800  # seconds
    ai_difficulty: Difficulty = "medium"
    ai_personality: Personality = "analytical"
    end_reason: Optional[EndReason] = None
    final_score: Optional[float] = None
    performance: Optional[PerformanceScores] = None
    feedback: Optional[PerformanceFeedback] = None
    user_feedback: Optional[UserFeedback] = None
    last_activity: datetime

    @property
    def ai_side(self) -> str:
        return opposite_side(self.chosen_side)

    @computed_field
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @computed_field
    @property
    def total_messages(self) -> int:
        return self.message_count.user + self.message_count.ai

    @computed_field
    @property
    def session_duration_minutes(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return round((self.end_time - self.start_time).total_seconds() / 60, 2)

    @computed_field
    @property
    def active_duration_minutes(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return round(self.elapsed_active_seconds(self.end_time) / 60, 2)

    def elapsed_active_seconds(self, now: datetime) -> float:
        """
        Wall time since start minus all pauses.

        The clock stops at ``end_time`` once the session is over and at
        ``pause_time`` while it is paused.
        """
        reference = now
        if self.end_time is not None:
            reference = self.end_time
        elif self.pause_time is not None:
            reference = self.pause_time
        return max(0.0, (reference - self.start_time).total_seconds() - self.total_pause_seconds)

    def remaining_seconds(self, now: datetime) -> float:
        return max(0.0, self.time_limit - self.elapsed_active_seconds(now))

    def is_time_expired(self, now: datetime) -> bool:
        return self.elapsed_active_seconds(now) >= self.time_limit


class SessionStats(BaseModel):
    """Aggregates over one user's session history."""
    total_sessions: int = 0
    active_sessions: int = 0
    completed_sessions: int = 0
    abandoned_sessions: int = 0
    average_score: Optional[float] = None
    best_score: Optional[float] = None
    average_duration_minutes: Optional[float] = None
    total_time_spent_minutes: float = 0.0
