"""
Request schemas for the debate endpoints.

Bounds and enumerations come from DEBATE_CONSTRAINTS so the schemas, the
generated OpenAPI document and the ledger's own checks agree.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEBATE_CONSTRAINTS as C
from .coaching import EvidenceItem, SkillLevel
from .debate import Difficulty, Personality, Side
from .message import MessageType, ReactionType
from .topic import TopicCategory


class StartSessionRequest(BaseModel):
    topic_id: str = Field(..., min_length=1)
    chosen_side: Side
    time_limit: Optional[int] = Field(
        default=None,
        ge=C.time_limit_min_seconds,
        le=C.time_limit_max_seconds,
        description="Seconds; server default when omitted",
    )
    ai_difficulty: Difficulty = "medium"
    ai_personality: Personality = "analytical"


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=C.content_min_length, max_length=C.content_max_length)
    message_type: MessageType = "argument"
    parent_message: Optional[str] = None
    reply_to: Optional[str] = None


class EndSessionRequest(BaseModel):
    reason: Literal["completed", "abandoned"] = "completed"


class FeedbackRequest(BaseModel):
    rating: int = Field(..., ge=C.rating_min, le=C.rating_max)
    comments: Optional[str] = Field(default=None, max_length=C.feedback_text_max_length)
    ai_quality: Optional[int] = Field(default=None, ge=C.rating_min, le=C.rating_max)
    topic_quality: Optional[int] = Field(default=None, ge=C.rating_min, le=C.rating_max)


class ReactionRequest(BaseModel):
    reaction: ReactionType


class FlagRequest(BaseModel):
    action: Literal["flag", "report"] = "flag"


# Coaching

FeedbackFocus = Literal["argumentation", "evidence", "logic", "rebuttal", "delivery"]
ImprovementFocus = Literal["clarity", "evidence", "logic", "structure", "persuasiveness"]


class CoachingFeedbackRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    focus_areas: List[FeedbackFocus] = Field(default_factory=list)
    skill_level: SkillLevel = "beginner"


class TopicSuggestionRequest(BaseModel):
    interests: List[str] = Field(default_factory=list, max_length=C.interests_max)
    skill_level: SkillLevel = "beginner"
    category: Optional[TopicCategory] = None
    count: int = Field(default=C.topic_suggestions_default, ge=1, le=C.topic_suggestions_max)


class ImproveArgumentRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    argument: str = Field(..., min_length=C.argument_min_length, max_length=C.content_max_length)
    topic: str = Field(..., min_length=1, max_length=C.topic_title_max_length)
    side: Optional[Side] = None
    focus_areas: List[ImprovementFocus] = Field(default_factory=list)


class ValidateEvidenceRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    argument: str = Field(..., min_length=C.argument_min_length, max_length=C.content_max_length)
    topic: str = Field(..., min_length=1, max_length=C.topic_title_max_length)
    existing_evidence: List[EvidenceItem] = Field(
        default_factory=list, max_length=C.existing_evidence_max
    )
