"""
Message Ledger - Append-only, turn-numbered message store per session.

Turn numbers are assigned as one greater than the highest existing turn for
the session, under the session's lock, so concurrent appends never collide.
Timestamps are forced strictly increasing within a session, which keeps
timestamp order and turn order identical.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import uuid4

from ..config import DEBATE_CONSTRAINTS
from ..models import (
    AIResponseMeta, DebateMessage, DebateSession, MessagePage, Reaction, SenderStats
)
from ..storage import DebateStore
from .clock import Clock, utcnow
from .errors import ConflictError, NotFoundError, ValidationError
from .locks import KeyedLock
from .logging_config import session_logger

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


class MessageLedger:
    """
    Turn-ordered message log for debate sessions.

    Args:
        store: DebateStore used for persistence
        locks: KeyedLock shared with the session manager
        clock: Source of "now"
    """

    def __init__(self, store: DebateStore, locks: KeyedLock, clock: Clock = utcnow):
        self.store = store
        self.locks = locks
        self.clock = clock

    # Writes

    async def append(
        self,
        session_id: str,
        sender: str,
        content: str,
        message_type: str = "general",
        ai_response: Optional[AIResponseMeta] = None,
        parent_message: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> DebateMessage:
        """
        Append a message and bump the owning session's counters.

        Raises:
            ValidationError: Content, sender or message type out of bounds
            NotFoundError: Unknown session
        """
        async with self.locks.hold(session_id):
            session = await self.store.get_session(session_id)
            if session is None:
                raise NotFoundError("Session not found")
            message = await self.append_locked(
                session, sender, content, message_type,
                ai_response=ai_response, parent_message=parent_message, reply_to=reply_to,
            )
            await self.store.save_session(session)
            return message

    async def append_locked(
        self,
        session: DebateSession,
        sender: str,
        content: str,
        message_type: str = "general",
        ai_response: Optional[AIResponseMeta] = None,
        parent_message: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> DebateMessage:
        """
        Append while the caller already holds the session's lock.

        Mutates ``session`` counters in place; the caller persists it.
        """
        content = self.validate_content(content)
        if sender not in DEBATE_CONSTRAINTS.sender_types:
            raise ValidationError(f"Invalid sender type: {sender}")
        if message_type not in DEBATE_CONSTRAINTS.message_types:
            raise ValidationError(f"Invalid message type: {message_type}")

        messages = await self.store.load_messages(session.session_id)
        turn_number = 1 + max((m.turn_number for m in messages), default=0)

        timestamp = self.clock()
        if messages and timestamp <= messages[-1].timestamp:
            timestamp = messages[-1].timestamp + _TICK

        message = DebateMessage(
            message_id=uuid4().hex,
            session_id=session.session_id,
            sender_type=sender,
            content=content,
            turn_number=turn_number,
            timestamp=timestamp,
            message_type=message_type,
            ai_response=ai_response,
            parent_message=parent_message,
            reply_to=reply_to,
        ).recompute_derived_fields()

        messages.append(message)
        await self.store.save_messages(session.session_id, messages)
        await self.store.index_message(message.message_id, session.session_id)

        if sender == "user":
            session.message_count.user += 1
        else:
            session.message_count.ai += 1
        session.turn_count += 1
        session.last_activity = timestamp

        session_logger(logger, session.session_id, session.user_id).info(
            f"Message appended: turn {turn_number} ({sender})",
            extra={"extra_fields": {
                "message_id": message.message_id,
                "turn_number": turn_number,
                "sender_type": sender,
                "message_type": message_type,
                "word_count": message.metadata.word_count,
            }}
        )
        return message

    @staticmethod
    def validate_content(content: Optional[str]) -> str:
        text = (content or "").strip()
        if len(text) < DEBATE_CONSTRAINTS.content_min_length:
            raise ValidationError("Message content is required")
        if len(text) > DEBATE_CONSTRAINTS.content_max_length:
            raise ValidationError(
                f"Message content cannot exceed {DEBATE_CONSTRAINTS.content_max_length} characters"
            )
        return text

    async def react(self, message_id: str, user_id: str, reaction: str) -> DebateMessage:
        """
        Record ``user_id``'s reaction on a message.

        A user holds at most one reaction per message; a second call fails
        with ConflictError rather than replacing the first. Use ``unreact``
        to change it.
        """
        if reaction not in DEBATE_CONSTRAINTS.reaction_types:
            raise ValidationError(f"Invalid reaction type: {reaction}")

        def add(message: DebateMessage) -> None:
            if message.has_user_reaction(user_id):
                raise ConflictError("You have already reacted to this message")
            message.reactions.append(
                Reaction(user_id=user_id, type=reaction, timestamp=self.clock())
            )

        message = await self._update_message(message_id, add)
        logger.info(
            f"Reaction added to message {message_id}",
            extra={"extra_fields": {"message_id": message_id, "user_id": user_id, "reaction": reaction}}
        )
        return message

    async def unreact(self, message_id: str, user_id: str) -> DebateMessage:
        def remove(message: DebateMessage) -> None:
            if not message.has_user_reaction(user_id):
                raise NotFoundError("No reaction to remove")
            message.reactions = [r for r in message.reactions if r.user_id != user_id]

        return await self._update_message(message_id, remove)

    async def flag(self, message_id: str, reported: bool = False) -> DebateMessage:
        """Mark a message flagged for review, or reported."""
        def mark(message: DebateMessage) -> None:
            if reported:
                message.flags.reported = True
            else:
                message.flags.flagged = True

        message = await self._update_message(message_id, mark)
        logger.info(
            f"Message {'reported' if reported else 'flagged'}: {message_id}",
            extra={"extra_fields": {"message_id": message_id, "session_id": message.session_id}}
        )
        return message

    async def _update_message(self, message_id: str, mutate) -> DebateMessage:
        session_id = await self.store.find_message_session(message_id)
        if session_id is None:
            raise NotFoundError("Message not found")

        async with self.locks.hold(session_id):
            messages = await self.store.load_messages(session_id)
            for message in messages:
                if message.message_id == message_id:
                    mutate(message)
                    await self.store.save_messages(session_id, messages)
                    return message
        raise NotFoundError("Message not found")

    # Reads

    async def get(self, message_id: str) -> DebateMessage:
        session_id = await self.store.find_message_session(message_id)
        if session_id is not None:
            for message in await self.store.load_messages(session_id):
                if message.message_id == message_id:
                    return message
        raise NotFoundError("Message not found")

    async def all(self, session_id: str) -> List[DebateMessage]:
        """Every message of the session, in turn order."""
        return await self.store.load_messages(session_id)

    async def tail(self, session_id: str, n: int) -> List[DebateMessage]:
        """The most recent ``n`` messages, oldest first."""
        if n <= 0:
            return []
        return (await self.store.load_messages(session_id))[-n:]

    async def page(
        self,
        session_id: str,
        limit: int = DEBATE_CONSTRAINTS.page_size_default,
        before: Optional[datetime] = None,
        sender: Optional[str] = None,
        page: int = 1,
    ) -> MessagePage:
        """
        One page of messages, counted back from the newest.

        ``before`` is an exclusive timestamp cursor; ``page`` skips whole
        pages below it. The returned messages are always oldest-first.
        """
        if not 1 <= limit <= DEBATE_CONSTRAINTS.page_size_max:
            raise ValidationError(
                f"limit must be between 1 and {DEBATE_CONSTRAINTS.page_size_max}"
            )
        if page < 1:
            raise ValidationError("page must be at least 1")
        if sender is not None and sender not in DEBATE_CONSTRAINTS.sender_types:
            raise ValidationError(f"Invalid sender type: {sender}")

        messages = await self.store.load_messages(session_id)
        if sender is not None:
            messages = [m for m in messages if m.sender_type == sender]
        if before is not None:
            messages = [m for m in messages if m.timestamp < before]

        newest_first = sorted(messages, key=lambda m: m.timestamp, reverse=True)
        skip = (page - 1) * limit
        selected = newest_first[skip:skip + limit]
        selected.reverse()

        total = len(messages)
        return MessagePage(
            messages=selected,
            total=total,
            page=page,
            limit=limit,
            total_pages=(total + limit - 1) // limit,
        )

    async def search(
        self,
        session_id: str,
        term: str,
        sender: Optional[str] = None,
        limit: int = 20,
    ) -> List[DebateMessage]:
        """
        Case-insensitive substring search.

        Ranked by number of occurrences of ``term``, ties newest first.
        """
        needle = (term or "").strip().lower()
        if not (DEBATE_CONSTRAINTS.search_term_min_length <= len(needle)
                <= DEBATE_CONSTRAINTS.search_term_max_length):
            raise ValidationError(
                f"Search term must be {DEBATE_CONSTRAINTS.search_term_min_length}-"
                f"{DEBATE_CONSTRAINTS.search_term_max_length} characters"
            )
        if not 1 <= limit <= DEBATE_CONSTRAINTS.page_size_max:
            raise ValidationError(
                f"limit must be between 1 and {DEBATE_CONSTRAINTS.page_size_max}"
            )

        hits = []
        for message in await self.store.load_messages(session_id):
            if sender is not None and message.sender_type != sender:
                continue
            occurrences = message.content.lower().count(needle)
            if occurrences:
                hits.append((occurrences, message))

        hits.sort(key=lambda hit: (hit[0], hit[1].timestamp), reverse=True)
        return [message for _, message in hits[:limit]]

    async def stats(self, session_id: str) -> Dict[str, SenderStats]:
        """Per-sender totals over the session's ledger."""
        messages = await self.store.load_messages(session_id)
        result: Dict[str, SenderStats] = {}
        for sender in DEBATE_CONSTRAINTS.sender_types:
            sent = [m for m in messages if m.sender_type == sender]
            if not sent:
                continue
            result[sender] = SenderStats(
                count=len(sent),
                total_words=sum(m.metadata.word_count for m in sent),
                total_reading_time_seconds=sum(m.metadata.reading_time_seconds for m in sent),
                average_complexity=round(sum(m.metadata.complexity for m in sent) / len(sent), 2),
            )
        return result
