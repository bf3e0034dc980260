"""
Performance Metrics Model - Post-session scores for one (session, user) pair.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

# Weights of the six sub-scores in the overall score; they sum to 1.0
SCORE_WEIGHTS: Dict[str, float] = {
    "argument_strength": 0.25,
    "rebuttal_quality": 0.20,
    "clarity": 0.15,
    "evidence_use": 0.15,
    "logical_consistency": 0.15,
    "emotional_appeal": 0.10,
}

SCORE_LABELS: Dict[str, str] = {
    "argument_strength": "Argument Strength",
    "rebuttal_quality": "Rebuttal Quality",
    "clarity": "Clarity",
    "evidence_use": "Evidence Use",
    "logical_consistency": "Logical Consistency",
    "emotional_appeal": "Emotional Appeal",
}

RECOMMENDATIONS: Dict[str, str] = {
    "argument_strength": "Focus on developing stronger, more compelling arguments with clear reasoning",
    "rebuttal_quality": "Practice identifying and addressing counterarguments more effectively",
    "clarity": "Work on expressing your ideas more clearly and concisely",
    "evidence_use": "Incorporate more relevant evidence and examples to support your points",
    "logical_consistency": "Ensure your arguments follow a logical structure and avoid contradictions",
    "emotional_appeal": "Consider how to make your arguments more emotionally engaging",
}


def weighted_overall(scores: Dict[str, float]) -> float:
    """Fixed-weight combination of the six sub-scores, rounded to 2 decimals."""
    return round(sum(scores[name] * weight for name, weight in SCORE_WEIGHTS.items()), 2)


class PerformanceScores(BaseModel):
    """The six sub-scores as copied onto a session."""
    argument_strength: float = Field(..., ge=0, le=100)
    rebuttal_quality: float = Field(..., ge=0, le=100)
    clarity: float = Field(..., ge=0, le=100)
    evidence_use: float = Field(..., ge=0, le=100)
    logical_consistency: float = Field(..., ge=0, le=100)
    emotional_appeal: float = Field(..., ge=0, le=100)


class PerformanceFeedback(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    overall_feedback: str = ""


class SessionMetrics(BaseModel):
    total_messages: int = 0
    user_messages: int = 0
    ai_messages: int = 0
    average_message_length: float = 0.0
    session_duration_minutes: Optional[float] = None
    side_chosen: Optional[str] = None


class Provenance(BaseModel):
    """Which engine produced the scores and how."""
    engine_version: str
    model: Optional[str] = None
    analysis_time_ms: float = 0.0
    degraded: bool = False


class PerformanceMetrics(PerformanceScores):
    """
    Normalized multi-dimensional score for a finished debate.

    ``overall_score`` is never stored independently; it is computed from the
    sub-scores every time it is read, so it cannot drift from them.
    """
    model_config = ConfigDict(validate_assignment=True)

    metrics_id: str
    session_id: str
    user_id: str
    topic_id: Optional[str] = None
    feedback: PerformanceFeedback = Field(default_factory=PerformanceFeedback)
    session_metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    provenance: Provenance
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def overall_score(self) -> float:
        return weighted_overall(self.sub_scores())

    def sub_scores(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in SCORE_WEIGHTS}

    def scores(self) -> PerformanceScores:
        return PerformanceScores(**self.sub_scores())

    @property
    def performance_level(self) -> str:
        score = self.overall_score
        if score >= 90:
            return "excellent"
        if score >= 80:
            return "very good"
        if score >= 70:
            return "good"
        if score >= 60:
            return "fair"
        if score >= 50:
            return "below average"
        return "poor"

    @property
    def improvement_potential(self) -> float:
        return round(100 - self.overall_score, 2)

    @property
    def balanced_score(self) -> int:
        """Unweighted mean of the six sub-scores."""
        values = list(self.sub_scores().values())
        return round(sum(values) / len(values))

    def insights(self) -> Dict[str, List[str]]:
        """
        Summarize strengths, weaknesses and recommendations.

        Returns:
            Dict with ``top_strengths`` (up to three dimensions >= 80),
            ``top_weaknesses`` (up to three dimensions < 60) and
            ``recommendations`` for the two lowest dimensions.
        """
        ranked = sorted(self.sub_scores().items(), key=lambda item: item[1], reverse=True)
        return {
            "top_strengths": [SCORE_LABELS[n] for n, s in ranked if s >= 80][:3],
            "top_weaknesses": [SCORE_LABELS[n] for n, s in ranked if s < 60][:3],
            "recommendations": [RECOMMENDATIONS[n] for n, _ in ranked[-2:]],
        }
