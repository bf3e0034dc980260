"""
Base Agent Class - Abstract base for the debate AI agents.
"""

import asyncio
import logging
import time
from abc import ABC
from datetime import datetime
from typing import Dict, List, Optional

from ..core.errors import GenerationUnavailable
from ..llm.base import LLMProvider, LLMMessage, LLMResponse

logger = logging.getLogger(__name__)


class BaseAgent(ABC):
    """
    Abstract base class for all AI agents.

    Agents talk to the generation service only through ``call_llm``, which
    bounds every call by ``timeout_seconds`` and reports any failure as
    GenerationUnavailable.
    """

    def __init__(self, name: str, system_prompt: str = "", timeout_seconds: float = 30.0):
        """
        Initialize base agent.

        Args:
            name: Agent name
            system_prompt: Fixed part of the system prompt
            timeout_seconds: Upper bound on one generation call
        """
        self.name = name
        self.system_prompt = system_prompt
        self.timeout_seconds = timeout_seconds
        self.created_at = datetime.now()
        self._llm_provider: Optional[LLMProvider] = None

    def set_llm_provider(self, provider: Optional[LLMProvider]) -> None:
        self._llm_provider = provider

    @property
    def has_provider(self) -> bool:
        return self._llm_provider is not None

    @property
    def model_name(self) -> Optional[str]:
        return self._llm_provider.model if self._llm_provider else None

    async def call_llm(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Call the LLM provider.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Temperature for generation
            max_tokens: Completion budget (provider default if None)

        Returns:
            LLMResponse from the provider

        Raises:
            GenerationUnavailable: No provider, timeout, or provider failure
        """
        if self._llm_provider is None:
            raise GenerationUnavailable(
                f"LLM not configured for {self.name}. "
                f"Set LLM_API_KEY and LLM_PROVIDER in environment to enable AI responses."
            )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Agent {self.name} calling LLM: {len(messages)} messages, "
                f"temperature={temperature}"
            )

        llm_messages = [LLMMessage.text(m["role"], m["content"]) for m in messages]
        start_time = time.time()
        try:
            response = await asyncio.wait_for(
                self._llm_provider.chat_completion(
                    llm_messages, temperature=temperature, max_tokens=max_tokens
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"Agent {self.name} LLM call timed out after {self.timeout_seconds}s",
                extra={"extra_fields": {"agent": self.name, "timeout_seconds": self.timeout_seconds}}
            )
            raise GenerationUnavailable("AI service timed out", cause=e) from e
        except Exception as e:
            logger.error(
                f"Agent {self.name} LLM call failed: {str(e)}",
                exc_info=True,
                extra={"extra_fields": {"agent": self.name, "error": str(e)}}
            )
            raise GenerationUnavailable(cause=e) from e

        if not response.latency_ms:
            response.latency_ms = round((time.time() - start_time) * 1000, 2)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Agent {self.name} received LLM response: length={len(response.content)} chars"
            )
        return response
