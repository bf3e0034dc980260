"""
Debate Topic Model - Reference data a session argues about.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..config import DEBATE_CONSTRAINTS

TopicCategory = Literal[
    "politics", "economics", "social-issues", "technology", "environment",
    "education", "health", "ethics", "international-relations", "science",
    "culture", "sports", "entertainment", "business", "law", "philosophy",
]
ApprovalStatus = Literal["pending", "approved", "rejected"]


class Evidence(BaseModel):
    title: str
    description: str
    source: str
    url: Optional[str] = None
    side: Literal["pro", "con", "neutral"] = "neutral"


class TopicCreate(BaseModel):
    """Topic submission payload."""
    title: str = Field(..., min_length=10, max_length=DEBATE_CONSTRAINTS.topic_title_max_length)
    description: str = Field(
        ..., min_length=20, max_length=DEBATE_CONSTRAINTS.topic_description_max_length
    )
    category: TopicCategory
    difficulty: Literal["easy", "medium", "hard", "expert"] = "medium"
    tags: List[str] = Field(default_factory=list)
    pro_arguments: List[str] = Field(default_factory=list)
    con_arguments: List[str] = Field(default_factory=list)
    evidence: List[Evidence] = Field(default_factory=list)


class Topic(TopicCreate):
    """Stored topic."""
    topic_id: str
    approval_status: ApprovalStatus = "approved"
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: datetime

    @property
    def approved(self) -> bool:
        return self.approval_status == "approved" and self.is_active

    def arguments_for(self, side: str) -> List[str]:
        return self.pro_arguments if side == "pro" else self.con_arguments

    def evidence_for(self, side: str) -> List[Evidence]:
        return [e for e in self.evidence if e.side in (side, "neutral")]
