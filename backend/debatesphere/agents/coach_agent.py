"""
Coach Agent - On-demand coaching outside the live debate.

Personalized session feedback, topic suggestions, argument improvement,
evidence validation and learning paths. A failed generation call raises
GenerationUnavailable; a reply that is not the requested JSON degrades to
the fixed fallback of its result model.
"""

import json
import logging
import re
from typing import Any, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..config import DEBATE_CONSTRAINTS
from ..models import (
    ArgumentImprovement, CoachingFeedback, DebateSession, EvidenceItem, EvidenceValidation,
    LearningPath, PerformanceMetrics, Topic, TopicSuggestion
)
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def extract_json(text: str, pattern: "re.Pattern[str]" = _JSON_OBJECT) -> Optional[Any]:
    """First JSON object (or array, with ``_JSON_ARRAY``) embedded in ``text``."""
    match = pattern.search(text or "")
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return None


def next_skill_level(level: str) -> str:
    levels = DEBATE_CONSTRAINTS.skill_levels
    if level not in levels:
        return levels[0]
    return levels[min(levels.index(level) + 1, len(levels) - 1)]


def _listing(values: Sequence[str], default: str) -> str:
    return ", ".join(values) if values else default


class CoachAgent(BaseAgent):
    """Debate coach answering one-off coaching requests."""

    def __init__(self, timeout_seconds: float = 30.0):
        system_prompt = (
            "You are an experienced debate coach. You give specific, actionable advice "
            "and always answer in the exact JSON format requested, with no extra text."
        )
        super().__init__("CoachAgent", system_prompt, timeout_seconds)

    async def _ask(self, instructions: str, request: str, temperature: float, max_tokens: int) -> str:
        response = await self.call_llm(
            [
                {"role": "system", "content": f"{self.system_prompt}\n\n{instructions}"},
                {"role": "user", "content": request},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.content

    def _parse(self, text: str, model: Type[ResultT], what: str, **fallback: Any) -> ResultT:
        data = extract_json(text)
        if isinstance(data, dict):
            try:
                return model.model_validate(data)
            except PydanticValidationError as e:
                logger.debug(f"Coaching reply for {what} failed validation: {e.error_count()} errors")
        logger.warning(
            f"Could not parse coaching reply for {what}; using fallback",
            extra={"extra_fields": {"agent": self.name, "reply_preview": (text or "")[:200]}}
        )
        return model(degraded=True, **fallback)

    async def generate_feedback(
        self,
        session: DebateSession,
        topic: Optional[Topic],
        metrics: PerformanceMetrics,
        previous_debates: int = 0,
        focus_areas: Sequence[str] = (),
        skill_level: str = "beginner",
    ) -> CoachingFeedback:
        """Personalized feedback on a scored session."""
        instructions = f"""Generate personalized feedback for a debate session.

Session Details:
- Topic: {topic.title if topic else session.topic_id}
- User's Side: {session.chosen_side}
- Final Score: {metrics.overall_score}/100
- Skill Level: {skill_level}

Performance Metrics (0-100):
- Argument Strength: {metrics.argument_strength}
- Rebuttal Quality: {metrics.rebuttal_quality}
- Clarity: {metrics.clarity}
- Evidence Use: {metrics.evidence_use}
- Logical Consistency: {metrics.logical_consistency}
- Emotional Appeal: {metrics.emotional_appeal}

User History: {previous_debates} previous completed debates
Focus Areas: {_listing(focus_areas, "General improvement")}

Respond with ONLY a JSON object in this format:
{{
  "summary": "overall performance summary",
  "strengths": ["strength1", "strength2"],
  "areas_for_improvement": ["area1", "area2"],
  "specific_suggestions": [
    {{"area": "argumentation", "suggestion": "specific suggestion", "example": "example or explanation"}}
  ],
  "practice_recommendations": ["recommendation1", "recommendation2"]
}}

Focus on actionable advice tailored to the user's skill level and focus areas."""
        text = await self._ask(
            instructions, "Generate personalized feedback for this debate session.",
            temperature=0.4, max_tokens=800,
        )
        return self._parse(text, CoachingFeedback, "feedback")

    async def suggest_topics(
        self,
        interests: Sequence[str] = (),
        skill_level: str = "beginner",
        category: Optional[str] = None,
        count: int = 5,
        previous_topics: Sequence[str] = (),
    ) -> List[TopicSuggestion]:
        """
        Up to ``count`` topic suggestions.

        Entries that do not validate are skipped; an unparseable reply yields
        an empty list.
        """
        instructions = f"""Suggest debate topics based on the following criteria:

User Interests: {_listing(interests, "General topics")}
Skill Level: {skill_level}
Preferred Category: {category or "Any"}
Number of Suggestions: {count}
Previous Topics: {_listing(previous_topics, "None")}

Respond with ONLY a JSON array in this format:
[
  {{
    "title": "Debate topic title",
    "description": "Brief description of the topic",
    "category": "topic category",
    "difficulty": "easy/medium/hard",
    "reasoning": "Why this topic is suitable"
  }}
]

Avoid repeating previous topics."""
        text = await self._ask(
            instructions, "Suggest debate topics based on the provided criteria.",
            temperature=0.7, max_tokens=600,
        )
        data = extract_json(text, _JSON_ARRAY)
        if not isinstance(data, list):
            logger.warning(
                "Could not parse topic suggestions; returning none",
                extra={"extra_fields": {"agent": self.name, "reply_preview": (text or "")[:200]}}
            )
            return []

        suggestions = []
        for item in data:
            try:
                suggestions.append(TopicSuggestion.model_validate(item))
            except PydanticValidationError:
                continue
        return suggestions[:count]

    async def improve_argument(
        self,
        argument: str,
        topic: str,
        side: Optional[str] = None,
        focus_areas: Sequence[str] = (),
    ) -> ArgumentImprovement:
        """A stronger version of ``argument`` with the changes explained."""
        instructions = f"""Improve the debate argument the user sends.

Topic: {topic}
Side: {side or "unspecified"}
Focus Areas: {_listing(focus_areas, "General improvement")}

Respond with ONLY a JSON object in this format:
{{
  "improved_argument": "enhanced version of the argument",
  "suggestions": [
    {{"type": "clarity/evidence/logic/structure/persuasiveness", "description": "specific suggestion", "example": "example or explanation"}}
  ],
  "reasoning": "explanation of improvements made"
}}

Make the argument more persuasive, logical and well-supported while keeping its original intent."""
        text = await self._ask(instructions, argument, temperature=0.4, max_tokens=600)
        return self._parse(
            text, ArgumentImprovement, "argument improvement",
            improved_argument=(text or "").strip() or argument,
        )

    async def validate_evidence(
        self,
        argument: str,
        topic: str,
        existing_evidence: Sequence[EvidenceItem] = (),
    ) -> EvidenceValidation:
        """Judge the evidence already cited and propose more."""
        evidence = json.dumps([e.model_dump() for e in existing_evidence])
        instructions = f"""Validate and suggest evidence for the following argument.

Argument: {argument}
Topic: {topic}
Existing Evidence: {evidence}

Respond with ONLY a JSON object in this format:
{{
  "validation": [
    {{
      "evidence": {{"source": "...", "description": "..."}},
      "is_valid": true,
      "issues": ["issue1"],
      "suggestions": ["suggestion1"]
    }}
  ],
  "suggestions": [
    {{"source": "evidence source", "description": "evidence description", "relevance": 0-10, "credibility": 0-10}}
  ]
}}

Evaluate the quality, relevance and credibility of each existing item and suggest additional evidence."""
        text = await self._ask(
            instructions, "Validate and suggest evidence for this argument.",
            temperature=0.3, max_tokens=800,
        )
        return self._parse(text, EvidenceValidation, "evidence validation")

    async def learning_path(
        self,
        skill_level: str = "beginner",
        interests: Sequence[str] = (),
        goals: Optional[str] = None,
        total_debates: int = 0,
        average_score: Optional[float] = None,
        preferred_categories: Sequence[str] = (),
    ) -> LearningPath:
        """Milestones from the user's current level to the next."""
        instructions = f"""Generate a personalized learning path for debate improvement.

Current Status:
- Skill Level: {skill_level}
- Interests: {_listing(interests, "General")}
- Goals: {goals or "Improve debate skills"}
- Total Debates: {total_debates}
- Average Score: {average_score if average_score is not None else "n/a"}
- Topic Preferences: {_listing(preferred_categories, "None yet")}

Respond with ONLY a JSON object in this format:
{{
  "current_level": "beginner/intermediate/advanced/expert",
  "target_level": "next level to achieve",
  "milestones": [
    {{"title": "milestone title", "description": "milestone description", "difficulty": "easy/medium/hard", "estimated_time": "time estimate", "topics": ["topic1"]}}
  ],
  "recommended_topics": ["topic1", "topic2"],
  "practice_exercises": ["exercise1", "exercise2"]
}}"""
        text = await self._ask(
            instructions, "Generate a personalized learning path for debate improvement.",
            temperature=0.4, max_tokens=1000,
        )
        return self._parse(
            text, LearningPath, "learning path",
            current_level=skill_level,
            target_level=next_skill_level(skill_level),
        )
