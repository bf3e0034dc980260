"""
Debate Orchestrator - Turns a user message into the AI opponent's reply.

A turn loads the recent window from the ledger, asks the OpponentAgent for
a reply, appends it through the SessionManager and publishes it on the
fan-out channel. Scheduled turns run as asyncio tasks chained per session,
so replies for one session are produced one at a time in send order.
"""

import asyncio
import logging
from typing import Dict, Optional, TYPE_CHECKING

from ..core.errors import (
    ConflictError, DebateError, InternalError, NotFoundError, ReplySuperseded, ValidationError
)
from ..core.ledger import MessageLedger
from ..core.logging_config import session_logger
from ..core.session_machine import SessionManager
from ..models import DebateMessage
from .opponent_agent import OpponentAgent

if TYPE_CHECKING:
    from ..realtime.channel import Connection, FanOutChannel

logger = logging.getLogger(__name__)


class DebateOrchestrator:
    """
    Coordinates the AI side of each debate.

    Args:
        sessions: SessionManager used to append AI messages
        ledger: MessageLedger for the context window
        opponent: OpponentAgent generating replies
        channel: Optional FanOutChannel replies are published on
        context_messages: Window size N
        enabled: When False, ``schedule_ai_turn`` does nothing
        max_attempts: Generations per turn when newer user messages keep
            arriving mid-generation
    """

    def __init__(
        self,
        sessions: SessionManager,
        ledger: MessageLedger,
        opponent: OpponentAgent,
        channel: Optional["FanOutChannel"] = None,
        context_messages: int = 10,
        enabled: bool = True,
        max_attempts: int = 3,
    ):
        self.sessions = sessions
        self.ledger = ledger
        self.opponent = opponent
        self.channel = channel
        self.context_messages = context_messages
        self.enabled = enabled
        self.max_attempts = max_attempts
        self._chains: Dict[str, asyncio.Task] = {}

    async def run_ai_turn(self, session_id: str) -> DebateMessage:
        """
        Generate, append and publish one AI reply.

        A reply is only appended while the message it answers is still the
        newest; otherwise it is regenerated against the fresh window.

        Raises:
            NotFoundError: Unknown session
            ValidationError: No user message to respond to
            ConflictError: The latest message is already the AI's
            InvalidTransition: The session is terminal
            GenerationUnavailable: The generation service failed
        """
        session = await self.sessions.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        log = session_logger(logger, session_id, session.user_id)
        topic = await self.sessions.get_topic(session.topic_id)

        for attempt in range(1, self.max_attempts + 1):
            recent = await self.ledger.tail(session_id, self.context_messages)
            if not recent:
                raise ValidationError("No user message to respond to")
            latest = recent[-1]
            if latest.sender_type != "user":
                raise ConflictError("The AI has already responded to the latest message")

            log.info(f"AI turn starting for turn {latest.turn_number}")
            reply = await self.opponent.respond(session, topic, latest, recent)
            try:
                message = await self.sessions.append_ai_message(
                    session_id,
                    reply["response"],
                    message_type=reply["message_type"],
                    ai_response=reply["ai_response"],
                    reply_to=latest.message_id,
                )
                break
            except ReplySuperseded:
                log.info(
                    f"Reply to turn {latest.turn_number} superseded by a newer message",
                    extra={"extra_fields": {"attempt": attempt}}
                )
        else:
            raise ConflictError("The conversation kept moving while the reply was generated")

        if self.channel is not None:
            await self.channel.publish_message(message)

        log.info(
            f"AI turn completed: turn {message.turn_number}",
            extra={"extra_fields": {
                "message_id": message.message_id,
                "response_kind": message.ai_response.response_kind if message.ai_response else None,
            }}
        )
        return message

    def schedule_ai_turn(
        self, session_id: str, origin: Optional["Connection"] = None
    ) -> Optional[asyncio.Task]:
        """
        Queue an AI turn behind any turn already pending for the session.

        Failures are logged and, when ``origin`` is given, reported to that
        connection as an ``error`` event.
        """
        if not self.enabled:
            return None
        previous = self._chains.get(session_id)
        task = asyncio.create_task(
            self._chained(previous, session_id, origin),
            name=f"ai-turn-{session_id}",
        )
        self._chains[session_id] = task
        task.add_done_callback(lambda t: self._forget(session_id, t))
        return task

    def _forget(self, session_id: str, task: asyncio.Task) -> None:
        if self._chains.get(session_id) is task:
            del self._chains[session_id]

    async def _chained(
        self,
        previous: Optional[asyncio.Task],
        session_id: str,
        origin: Optional["Connection"],
    ) -> Optional[DebateMessage]:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        log = session_logger(logger, session_id)
        try:
            return await self.run_ai_turn(session_id)
        except ConflictError:
            log.info("AI turn skipped: latest message already answered")
            return None
        except DebateError as e:
            log.error(
                f"AI turn failed: {e.message}",
                extra={"extra_fields": {"error_kind": e.kind}}
            )
            await self._report(origin, e)
            return None
        except Exception as e:
            log.error(f"AI turn crashed: {e}", exc_info=True)
            await self._report(origin, InternalError("Failed to generate AI response"))
            return None

    async def _report(self, origin: Optional["Connection"], error: DebateError) -> None:
        if origin is not None and self.channel is not None:
            await self.channel.send_error(origin, error)

    def pending(self, session_id: str) -> Optional[asyncio.Task]:
        """The most recently scheduled turn for the session, if unfinished."""
        return self._chains.get(session_id)

    async def shutdown(self) -> None:
        """Cancel every pending turn."""
        tasks = list(self._chains.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._chains.clear()
