"""
Mock LLM Provider - Deterministic replies for local development and tests.
"""

import json
from typing import Any, Dict, List, Optional

from .base import LLMMessage, LLMProvider, LLMResponse

# Marker the scoring prompt carries; the mock answers it with a rubric JSON
SCORING_MARKER = "performance analysis"


class MockProvider(LLMProvider):
    """
    Provider that never leaves the process.

    Replies are derived from the last user message so that the same
    conversation always yields the same answer. Every call is recorded in
    ``calls`` for inspection.
    """

    provider_name = "mock"

    def __init__(self, api_key: str = "", model: Optional[str] = None, **kwargs):
        super().__init__(api_key, model or "mock-debate-1")
        self.calls: List[List[LLMMessage]] = []

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        self.calls.append(list(messages))
        system = " ".join(m.content for m in messages if m.role == "system").lower()
        last_user = next((m.content for m in reversed(messages) if m.role == "user"), "")

        if SCORING_MARKER in system or SCORING_MARKER in last_user.lower():
            content = json.dumps(self._scores(last_user))
        else:
            content = self._reply(last_user)

        prompt_tokens = sum(len(m.content.split()) for m in messages)
        completion_tokens = len(content.split())
        return LLMResponse(
            content=content,
            model=self.model,
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
            latency_ms=0.0,
        )

    @staticmethod
    def _reply(text: str) -> str:
        excerpt = " ".join(text.split()[:12])
        if not excerpt:
            return "Could you state your main argument?"
        return (
            f'You claim "{excerpt}". However, the evidence points the other way, '
            "because the costs of that position outweigh its benefits. "
            "What data supports your view?"
        )

    @staticmethod
    def _scores(text: str) -> Dict[str, Any]:
        words = len(text.split())
        base = min(90, 50 + words // 10)
        return {
            "argumentStrength": base,
            "rebuttalQuality": max(0, base - 5),
            "clarity": min(100, base + 5),
            "evidenceUse": max(0, base - 10),
            "logicalConsistency": base,
            "emotionalAppeal": max(0, base - 15),
            "strengths": ["Clear statement of position"],
            "weaknesses": ["Limited supporting evidence"],
            "suggestions": ["Cite a concrete study or statistic"],
            "overallFeedback": "A solid start; back your claims with evidence.",
        }
