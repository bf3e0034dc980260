"""
Debate constraint table.

One place for the length bounds and enumerations that request schemas,
the generated OpenAPI document and the message ledger all validate against.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class DebateConstraints:
    """Enumerated limits for debate sessions and messages."""

    # Messages
    content_min_length: int = 1
    content_max_length: int = 2000
    message_types: Tuple[str, ...] = (
        "opening", "argument", "rebuttal", "evidence", "closing", "general"
    )
    sender_types: Tuple[str, ...] = ("user", "ai")
    reaction_types: Tuple[str, ...] = (
        "like", "dislike", "insightful", "confusing", "strong", "weak"
    )

    # Sessions
    sides: Tuple[str, ...] = ("pro", "con")
    difficulties: Tuple[str, ...] = ("easy", "medium", "hard", "expert")
    personalities: Tuple[str, ...] = (
        "analytical", "passionate", "skeptical", "diplomatic", "challenging"
    )
    end_reasons: Tuple[str, ...] = ("completed", "abandoned", "time_expired")
    time_limit_min_seconds: int = 600
    time_limit_max_seconds: int = 3600

    # Pagination / search
    page_size_default: int = 50
    page_size_max: int = 100
    search_term_min_length: int = 1
    search_term_max_length: int = 100

    # Feedback
    rating_min: int = 1
    rating_max: int = 5
    feedback_text_max_length: int = 1000
    feedback_item_max_length: int = 200

    # Topics
    topic_title_max_length: int = 200
    topic_description_max_length: int = 2000

    # Coaching
    skill_levels: Tuple[str, ...] = ("beginner", "intermediate", "advanced", "expert")
    feedback_focus_areas: Tuple[str, ...] = (
        "argumentation", "evidence", "logic", "rebuttal", "delivery"
    )
    improvement_focus_areas: Tuple[str, ...] = (
        "clarity", "evidence", "logic", "structure", "persuasiveness"
    )
    argument_min_length: int = 10
    topic_suggestions_default: int = 5
    topic_suggestions_max: int = 10
    interests_max: int = 10
    goals_max_length: int = 500
    existing_evidence_max: int = 10


DEBATE_CONSTRAINTS = DebateConstraints()
