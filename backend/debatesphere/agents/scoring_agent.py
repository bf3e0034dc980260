"""
Scoring Agent - Post-session performance analysis.

Turns the user's side of the ledger into a PerformanceMetrics record. Once
the generation call has succeeded the analysis never fails; an unparseable
reply degrades to neutral scores.
"""

import json
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..models import (
    DebateMessage, DebateSession, PerformanceFeedback, PerformanceMetrics, Provenance,
    SessionMetrics, Topic
)
from ..models.performance import SCORE_WEIGHTS
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50.0
DEGRADED_NOTE = "Automated analysis was degraded; neutral scores were assigned."

# camelCase keys the rubric asks for, mapped to model fields
_RUBRIC_KEYS = {
    "argumentStrength": "argument_strength",
    "rebuttalQuality": "rebuttal_quality",
    "clarity": "clarity",
    "evidenceUse": "evidence_use",
    "logicalConsistency": "logical_consistency",
    "emotionalAppeal": "emotional_appeal",
}

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def _clamp(value: Any) -> float:
    score = float(value)
    if score != score:  # NaN
        raise ValueError("score is NaN")
    return max(0.0, min(100.0, score))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()]


def parse_analysis(text: str) -> Optional[Dict[str, Any]]:
    """
    Extract scores and feedback from a rubric reply.

    Returns None when no usable JSON object with all six scores is found.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    feedback_data = data.get("feedback") if isinstance(data.get("feedback"), dict) else data
    try:
        scores = {field: _clamp(data[key]) for key, field in _RUBRIC_KEYS.items()}
    except (KeyError, TypeError, ValueError):
        return None

    return {
        "scores": scores,
        "feedback": PerformanceFeedback(
            strengths=_string_list(feedback_data.get("strengths")),
            weaknesses=_string_list(feedback_data.get("weaknesses")),
            suggestions=_string_list(feedback_data.get("suggestions")),
            overall_feedback=str(
                feedback_data.get("overallFeedback")
                or feedback_data.get("detailedAnalysis")
                or ""
            ),
        ),
    }


class ScoringAgent(BaseAgent):
    """Rubric-based scorer for completed debate sessions."""

    def __init__(self, engine_version: str = "1.0", timeout_seconds: float = 30.0):
        system_prompt = """You are a debate coach producing a performance analysis of one debater.

Score each dimension from 0 to 100:
- argumentStrength: quality and persuasiveness of arguments
- rebuttalQuality: effectiveness of counter-arguments
- clarity: how clearly and concisely ideas are expressed
- evidenceUse: appropriate use of facts and examples
- logicalConsistency: coherence and logical flow
- emotionalAppeal: how engaging the arguments are

Respond with ONLY a JSON object in this format:
{
  "argumentStrength": <0-100>,
  "rebuttalQuality": <0-100>,
  "clarity": <0-100>,
  "evidenceUse": <0-100>,
  "logicalConsistency": <0-100>,
  "emotionalAppeal": <0-100>,
  "strengths": ["..."],
  "weaknesses": ["..."],
  "suggestions": ["..."],
  "overallFeedback": "..."
}
"""
        super().__init__("ScoringAgent", system_prompt, timeout_seconds)
        self.engine_version = engine_version

    def _session_metrics(
        self, session: DebateSession, messages: List[DebateMessage]
    ) -> SessionMetrics:
        user_messages = [m for m in messages if m.sender_type == "user"]
        average = (
            round(sum(len(m.content) for m in user_messages) / len(user_messages), 2)
            if user_messages else 0.0
        )
        return SessionMetrics(
            total_messages=len(messages),
            user_messages=len(user_messages),
            ai_messages=len(messages) - len(user_messages),
            average_message_length=average,
            session_duration_minutes=session.session_duration_minutes,
            side_chosen=session.chosen_side,
        )

    def _metrics(
        self,
        session: DebateSession,
        messages: List[DebateMessage],
        scores: Dict[str, float],
        feedback: PerformanceFeedback,
        provenance: Provenance,
    ) -> PerformanceMetrics:
        now = datetime.now(timezone.utc)
        return PerformanceMetrics(
            metrics_id=uuid4().hex,
            session_id=session.session_id,
            user_id=session.user_id,
            topic_id=session.topic_id,
            feedback=feedback,
            session_metrics=self._session_metrics(session, messages),
            provenance=provenance,
            created_at=now,
            updated_at=now,
            **scores,
        )

    async def analyze(
        self,
        session: DebateSession,
        messages: List[DebateMessage],
        topic: Optional[Topic] = None,
    ) -> PerformanceMetrics:
        """
        Score the user's performance in ``session``.

        Raises:
            GenerationUnavailable: The rubric call itself failed
        """
        user_messages = [m for m in messages if m.sender_type == "user"]
        if not user_messages:
            logger.info(
                f"No user messages in session {session.session_id}, returning zero scores"
            )
            return self._metrics(
                session, messages,
                scores={name: 0.0 for name in SCORE_WEIGHTS},
                feedback=PerformanceFeedback(
                    strengths=[],
                    weaknesses=["No arguments provided"],
                    suggestions=["Start by providing your main argument"],
                    overall_feedback="No debate content to analyze.",
                ),
                provenance=Provenance(engine_version=self.engine_version),
            )

        debate_content = "\n\n".join(m.content for m in user_messages)
        topic_line = topic.title if topic else session.topic_id
        start_time = time.time()
        llm_response = await self.call_llm(
            [
                {"role": "system", "content": self.system_prompt},
                {
                    "role": "user",
                    "content": (
                        f"Topic: {topic_line}\n"
                        f"User's Side: {session.chosen_side}\n"
                        f"Debate Content:\n{debate_content}"
                    ),
                },
            ],
            temperature=0.3,
            max_tokens=1000,
        )
        analysis_time_ms = round((time.time() - start_time) * 1000, 2)

        parsed = parse_analysis(llm_response.content)
        degraded = parsed is None
        if degraded:
            logger.warning(
                f"Could not parse performance analysis for session {session.session_id}",
                extra={"extra_fields": {
                    "session_id": session.session_id,
                    "reply_preview": llm_response.content[:200],
                }}
            )
            parsed = {
                "scores": {name: NEUTRAL_SCORE for name in SCORE_WEIGHTS},
                "feedback": PerformanceFeedback(overall_feedback=DEGRADED_NOTE),
            }

        metrics = self._metrics(
            session, messages,
            scores=parsed["scores"],
            feedback=parsed["feedback"],
            provenance=Provenance(
                engine_version=self.engine_version,
                model=llm_response.model or self.model_name,
                analysis_time_ms=analysis_time_ms,
                degraded=degraded,
            ),
        )
        logger.info(
            f"Performance analyzed for session {session.session_id}: {metrics.overall_score}",
            extra={"extra_fields": {
                "session_id": session.session_id,
                "overall_score": metrics.overall_score,
                "degraded": degraded,
            }}
        )
        return metrics
