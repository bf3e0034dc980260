"""
Debate Message Model - One turn in a session's exchange.
"""

import math
import re
from collections import Counter
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

SenderType = Literal["user", "ai"]
MessageType = Literal["opening", "argument", "rebuttal", "evidence", "closing", "general"]
ReactionType = Literal["like", "dislike", "insightful", "confusing", "strong", "weak"]
ResponseKind = Literal["question", "rebuttal", "clarification", "argument"]

_EVIDENCE_PATTERN = re.compile(r"evidence|study|research|data|statistics", re.IGNORECASE)
_REBUTTAL_PATTERN = re.compile(
    r"however|but|although|nevertheless|on the other hand", re.IGNORECASE
)

# Average reading speed, words per minute
READING_SPEED_WPM = 200


class TokenUsage(BaseModel):
    prompt: int = 0
    completion: int = 0
    total: int = 0


class AIResponseMeta(BaseModel):
    """Generation metadata attached to AI-authored messages."""
    model: str = ""
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    response_time_ms: float = 0.0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    response_kind: ResponseKind = "argument"
    reasoning: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)


class MessageAnalysis(BaseModel):
    """Optional per-message scores, each in [0, 100]."""
    argument_strength: Optional[float] = Field(default=None, ge=0, le=100)
    logical_consistency: Optional[float] = Field(default=None, ge=0, le=100)
    evidence_quality: Optional[float] = Field(default=None, ge=0, le=100)
    emotional_appeal: Optional[float] = Field(default=None, ge=0, le=100)
    clarity: Optional[float] = Field(default=None, ge=0, le=100)
    relevance: Optional[float] = Field(default=None, ge=0, le=100)


class MessageMetadata(BaseModel):
    word_count: int = 0
    sentence_count: int = 0
    paragraph_count: int = 0
    reading_time_seconds: int = 0
    complexity: int = Field(default=5, ge=1, le=10)


class MessageFlags(BaseModel):
    edited: bool = False
    flagged: bool = False
    reported: bool = False
    contains_evidence: bool = False
    contains_rebuttal: bool = False


class Reaction(BaseModel):
    user_id: str
    type: ReactionType
    timestamp: datetime


class DebateMessage(BaseModel):
    """
    A single ledger entry.

    Content is immutable once appended; only ``reactions`` and the
    flagged/reported flags change afterwards.
    """
    message_id: str
    session_id: str
    sender_type: SenderType
    content: str
    turn_number: int = Field(..., ge=1)
    timestamp: datetime
    message_type: MessageType = "general"
    ai_response: Optional[AIResponseMeta] = None
    analysis: Optional[MessageAnalysis] = None
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)
    flags: MessageFlags = Field(default_factory=MessageFlags)
    reactions: List[Reaction] = Field(default_factory=list)
    parent_message: Optional[str] = None
    reply_to: Optional[str] = None

    def recompute_derived_fields(self) -> "DebateMessage":
        """
        Recalculate text metadata and content flags from ``content``.

        Called by the ledger's write path right before a message is persisted.
        """
        words = self.content.split()
        word_count = len(words)
        sentence_count = len([s for s in re.split(r"[.!?]+", self.content) if s.strip()])
        paragraph_count = len([p for p in re.split(r"\n\s*\n", self.content) if p.strip()])

        complexity = 5
        if words:
            avg_word_length = sum(len(w) for w in words) / word_count
            long_word_ratio = len([w for w in words if len(w) > 6]) / word_count
            if avg_word_length > 5:
                complexity += 1
            if avg_word_length > 6:
                complexity += 1
            if long_word_ratio > 0.2:
                complexity += 1
            if long_word_ratio > 0.3:
                complexity += 1
        if sentence_count > 5:
            complexity += 1

        self.metadata = MessageMetadata(
            word_count=word_count,
            sentence_count=sentence_count,
            paragraph_count=paragraph_count,
            reading_time_seconds=math.ceil(word_count / READING_SPEED_WPM * 60),
            complexity=max(1, min(10, complexity)),
        )
        self.flags.contains_evidence = bool(_EVIDENCE_PATTERN.search(self.content))
        self.flags.contains_rebuttal = bool(_REBUTTAL_PATTERN.search(self.content))
        return self

    @property
    def reaction_counts(self) -> Dict[str, int]:
        return dict(Counter(r.type for r in self.reactions))

    @property
    def total_reactions(self) -> int:
        return len(self.reactions)

    @property
    def reading_time_minutes(self) -> int:
        return math.ceil(self.metadata.reading_time_seconds / 60)

    @property
    def average_analysis_score(self) -> Optional[int]:
        if self.analysis is None:
            return None
        scores = [s for s in self.analysis.model_dump().values() if s is not None]
        if not scores:
            return None
        return round(sum(scores) / len(scores))

    def user_reaction(self, user_id: str) -> Optional[str]:
        """Reaction tag held by ``user_id``, if any."""
        for reaction in self.reactions:
            if reaction.user_id == user_id:
                return reaction.type
        return None

    def has_user_reaction(self, user_id: str) -> bool:
        return self.user_reaction(user_id) is not None


class MessagePage(BaseModel):
    """One page of ledger messages, oldest first."""
    messages: List[DebateMessage]
    total: int
    page: int
    limit: int
    total_pages: int


class SenderStats(BaseModel):
    count: int = 0
    total_words: int = 0
    total_reading_time_seconds: int = 0
    average_complexity: float = 0.0
