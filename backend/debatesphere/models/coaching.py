"""
Coaching Models - Results of the on-demand AI coaching calls.

Every field has a default so a partially filled reply still validates; the
defaults double as the fallback when a reply cannot be parsed at all.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

SkillLevel = Literal["beginner", "intermediate", "advanced", "expert"]


class FocusedSuggestion(BaseModel):
    area: str = "general"
    suggestion: str
    example: Optional[str] = None


class CoachingFeedback(BaseModel):
    """Personalized feedback on one scored session."""
    summary: str = "Feedback generated successfully"
    strengths: List[str] = Field(default_factory=lambda: ["Good effort in the debate"])
    areas_for_improvement: List[str] = Field(default_factory=lambda: ["Continue practicing"])
    specific_suggestions: List[FocusedSuggestion] = Field(default_factory=list)
    practice_recommendations: List[str] = Field(default_factory=lambda: ["Practice regularly"])
    degraded: bool = False


class TopicSuggestion(BaseModel):
    title: str
    description: str = ""
    category: str = "general"
    difficulty: str = "medium"
    reasoning: str = ""


class ArgumentSuggestion(BaseModel):
    type: str = "general"
    description: str
    example: Optional[str] = None


class ArgumentImprovement(BaseModel):
    improved_argument: str
    suggestions: List[ArgumentSuggestion] = Field(default_factory=list)
    reasoning: str = "Improvement suggestions generated"
    degraded: bool = False


class EvidenceItem(BaseModel):
    source: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1, max_length=1000)


class EvidenceCheck(BaseModel):
    evidence: EvidenceItem
    is_valid: bool
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class SuggestedEvidence(BaseModel):
    source: str
    description: str
    relevance: float = Field(default=0.0, ge=0, le=10)
    credibility: float = Field(default=0.0, ge=0, le=10)


class EvidenceValidation(BaseModel):
    validation: List[EvidenceCheck] = Field(default_factory=list)
    suggestions: List[SuggestedEvidence] = Field(default_factory=list)
    degraded: bool = False


class Milestone(BaseModel):
    title: str
    description: str = ""
    difficulty: str = "medium"
    estimated_time: Optional[str] = None
    topics: List[str] = Field(default_factory=list)


class LearningPath(BaseModel):
    current_level: str = "beginner"
    target_level: str = "intermediate"
    milestones: List[Milestone] = Field(default_factory=list)
    recommended_topics: List[str] = Field(default_factory=list)
    practice_exercises: List[str] = Field(default_factory=list)
    degraded: bool = False
