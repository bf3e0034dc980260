"""
Opponent Agent - Generates the AI side of a practice debate.
Argues the side opposite the user's, tuned by difficulty and personality.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.errors import GenerationUnavailable
from ..models import AIResponseMeta, DebateMessage, DebateSession, Topic, TokenUsage
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)

DIFFICULTY_DESCRIPTIONS = {
    "easy": "Beginner-friendly responses with clear explanations",
    "medium": "Balanced responses with moderate complexity",
    "hard": "Advanced responses with sophisticated arguments",
    "expert": "Expert-level responses that test every weakness with rigorous evidence",
}

PERSONALITY_DESCRIPTIONS = {
    "analytical": "Methodical and data-driven; dissects claims step by step",
    "passionate": "Energetic and persuasive; appeals to values as well as facts",
    "skeptical": "Questions assumptions and demands support for every claim",
    "diplomatic": "Courteous and measured; acknowledges fair points before countering",
    "challenging": "Direct and relentless; presses hard on contradictions",
}

DIFFICULTY_TEMPERATURES = {
    "easy": 0.7,
    "medium": 0.5,
    "hard": 0.3,
    "expert": 0.2,
}

REPLY_MAX_TOKENS = 500

REASONING_FALLBACK = "Response generated based on debate context and topic information."
SUGGESTIONS_FALLBACK = [
    "Continue the debate with your next argument.",
    "Consider addressing the counter-points raised.",
]

_EVIDENCE_MARKERS = re.compile(r"study|research|data", re.IGNORECASE)
_LOGIC_MARKERS = re.compile(r"because|therefore|since", re.IGNORECASE)
_LIST_PREFIX = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def classify_response(text: str) -> str:
    """Rhetorical kind of a reply: question, rebuttal, clarification or argument."""
    lowered = text.lower()
    if "question" in lowered or "?" in text:
        return "question"
    if "rebuttal" in lowered or "counter" in lowered or "however" in lowered:
        return "rebuttal"
    if "clarify" in lowered or "explain" in lowered:
        return "clarification"
    return "argument"


def estimate_confidence(text: str) -> float:
    """Heuristic confidence in [0.5, 0.95] from length and evidentiary markers."""
    confidence = 0.5
    words = len(text.split())
    if words > 50:
        confidence += 0.1
    if words > 100:
        confidence += 0.1
    if _EVIDENCE_MARKERS.search(text):
        confidence += 0.2
    if _LOGIC_MARKERS.search(text):
        confidence += 0.1
    return round(min(confidence, 0.95), 2)


class OpponentAgent(BaseAgent):
    """
    AI debate opponent.

    ``respond`` surfaces GenerationUnavailable from the main reply; the
    optional reasoning and suggestion calls fall back to fixed text.
    """

    def __init__(self, timeout_seconds: float = 30.0, context_messages: int = 10,
                 enrichment_enabled: bool = True):
        system_prompt = """You are an AI debate opponent in a formal debate setting.

Guidelines:
- Stay in character as a debate opponent
- Use logical arguments and evidence when available
- Respond directly to the user's latest arguments
- Maintain a respectful and professional tone
- Keep responses concise but substantive
- Ask clarifying questions when needed
- Provide counter-arguments and rebuttals
- Use the provided evidence and arguments from the topic when relevant

Respond naturally to the user's message while following these guidelines.
"""
        super().__init__("OpponentAgent", system_prompt, timeout_seconds)
        self.context_messages = context_messages
        self.enrichment_enabled = enrichment_enabled

    def build_system_prompt(self, session: DebateSession, topic: Topic) -> str:
        ai_side = session.ai_side
        evidence = [e.model_dump(exclude_none=True) for e in topic.evidence_for(ai_side)]
        return (
            f"{self.system_prompt}\n"
            f"Topic: \"{topic.title}\"\n"
            f"Topic Description: {topic.description}\n"
            f"Your Side: {ai_side} (the user argues {session.chosen_side})\n"
            f"Difficulty Level: {DIFFICULTY_DESCRIPTIONS[session.ai_difficulty]}\n"
            f"Personality: {PERSONALITY_DESCRIPTIONS[session.ai_personality]}\n\n"
            f"Available evidence for your side: {json.dumps(evidence)}\n"
            f"Available arguments for your side: {json.dumps(topic.arguments_for(ai_side))}\n"
        )

    def build_window(
        self,
        latest_user_message: DebateMessage,
        recent_context: List[DebateMessage],
    ) -> List[Dict[str, str]]:
        """Most recent messages oldest-first as chat roles, ending with the latest user message."""
        history = [m for m in recent_context if m.message_id != latest_user_message.message_id]
        window = history[-max(self.context_messages - 1, 0):] if self.context_messages > 1 else []
        messages = [
            {"role": "user" if m.sender_type == "user" else "assistant", "content": m.content}
            for m in window
        ]
        messages.append({"role": "user", "content": latest_user_message.content})
        return messages

    async def respond(
        self,
        session: DebateSession,
        topic: Topic,
        latest_user_message: DebateMessage,
        recent_context: Optional[List[DebateMessage]] = None,
    ) -> Dict[str, Any]:
        """
        Generate the opponent's reply to ``latest_user_message``.

        Returns:
            Dict with ``response`` (text), ``message_type`` and ``ai_response``
            (AIResponseMeta)

        Raises:
            GenerationUnavailable: The main generation call failed
        """
        messages = [{"role": "system", "content": self.build_system_prompt(session, topic)}]
        messages.extend(self.build_window(latest_user_message, recent_context or []))

        llm_response = await self.call_llm(
            messages,
            temperature=DIFFICULTY_TEMPERATURES.get(session.ai_difficulty, 0.5),
            max_tokens=REPLY_MAX_TOKENS,
        )
        content = llm_response.content.strip()
        if not content:
            raise GenerationUnavailable("AI service returned an empty response")

        response_kind = classify_response(content)
        reasoning: Optional[str] = None
        suggestions: List[str] = []
        if self.enrichment_enabled:
            reasoning = await self.generate_reasoning(content, latest_user_message.content, topic)
            suggestions = await self.generate_suggestions(content, topic, session.ai_side)

        meta = AIResponseMeta(
            model=llm_response.model or (self.model_name or ""),
            tokens=TokenUsage(
                prompt=llm_response.prompt_tokens,
                completion=llm_response.completion_tokens,
                total=llm_response.total_tokens,
            ),
            response_time_ms=llm_response.latency_ms,
            confidence=estimate_confidence(content),
            response_kind=response_kind,
            reasoning=reasoning,
            suggestions=suggestions,
        )

        logger.info(
            f"Opponent reply generated: kind={response_kind}, confidence={meta.confidence}",
            extra={"extra_fields": {
                "session_id": session.session_id,
                "model": meta.model,
                "total_tokens": meta.tokens.total,
                "response_time_ms": meta.response_time_ms,
            }}
        )

        return {
            "agent": "opponent",
            "response": content,
            "message_type": "rebuttal" if response_kind == "rebuttal" else "argument",
            "ai_response": meta,
            "timestamp": datetime.now().isoformat(),
        }

    async def generate_reasoning(self, reply: str, user_message: str, topic: Topic) -> str:
        try:
            llm_response = await self.call_llm(
                [
                    {
                        "role": "system",
                        "content": "Provide a brief explanation of the reasoning behind this debate response.",
                    },
                    {
                        "role": "user",
                        "content": (
                            f"Topic: {topic.title}\n"
                            f"User said: {user_message}\n"
                            f"AI responded: {reply}"
                        ),
                    },
                ],
                temperature=0.3,
                max_tokens=100,
            )
        except GenerationUnavailable:
            logger.warning("Reasoning generation unavailable, using fallback")
            return REASONING_FALLBACK
        return llm_response.content.strip() or REASONING_FALLBACK

    async def generate_suggestions(self, reply: str, topic: Topic, ai_side: str) -> List[str]:
        try:
            llm_response = await self.call_llm(
                [
                    {
                        "role": "system",
                        "content": "Suggest 2-3 follow-up points or questions for the debate.",
                    },
                    {
                        "role": "user",
                        "content": (
                            f"Topic: {topic.title}\n"
                            f"AI side: {ai_side}\n"
                            f"Latest AI response: {reply}"
                        ),
                    },
                ],
                temperature=0.6,
                max_tokens=150,
            )
        except GenerationUnavailable:
            logger.warning("Suggestion generation unavailable, using fallback")
            return list(SUGGESTIONS_FALLBACK)

        lines = [
            _LIST_PREFIX.sub("", line).strip()
            for line in llm_response.content.splitlines()
        ]
        suggestions = [line for line in lines if line][:3]
        return suggestions or list(SUGGESTIONS_FALLBACK)
