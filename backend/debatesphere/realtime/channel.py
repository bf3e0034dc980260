"""
Real-Time Fan-Out Channel - Delivers session events to subscribed sockets.

One FanOutChannel exists per process (on ``app.state``). It is the only
owner of the session -> subscribers map and the session -> snapshot map.

Delivery is fire-and-forget: no acknowledgment, no retry and nothing is
kept for a client that missed an event; clients recover by re-reading the
message ledger. Publishes for one session are serialized by a per-session
lock, so every subscriber sees that session's events in publish order.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import uuid4

from starlette.websockets import WebSocket, WebSocketState

from ..core.errors import DebateError
from ..core.locks import KeyedLock
from ..core.logging_config import session_logger
from ..core.session_machine import SessionManager
from ..models import DebateMessage, DebateSession, UserInDB
from ..storage import UserStorage
from ..utils.auth import resolve_active_user

logger = logging.getLogger(__name__)


class Connection:
    """An accepted WebSocket bound to its authenticated user."""

    def __init__(self, websocket: WebSocket, user: UserInDB):
        self.connection_id = uuid4().hex
        self.websocket = websocket
        self.user = user
        self.sessions: Set[str] = set()
        self.current_session: Optional[str] = None
        self._send_lock = asyncio.Lock()

    @property
    def user_id(self) -> str:
        return self.user.user_id

    @property
    def name(self) -> str:
        return self.user.full_name or self.user.username

    @property
    def connected(self) -> bool:
        return self.websocket.client_state == WebSocketState.CONNECTED

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        """Send one ``{"event", "data"}`` frame; frames never interleave."""
        async with self._send_lock:
            await self.websocket.send_json({"event": event, "data": data})


def message_payload(
    message: DebateMessage,
    user_id: Optional[str] = None,
    name: Optional[str] = None,
) -> Dict[str, Any]:
    """``new-message`` body for a ledger entry."""
    is_ai = message.sender_type == "ai"
    return {
        "sessionId": message.session_id,
        "message": message.model_dump(mode="json"),
        "sender": {
            "type": message.sender_type,
            "userId": None if is_ai else user_id,
            "name": "AI Opponent" if is_ai else name,
        },
    }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class FanOutChannel:
    """
    Per-process registry of live connections and session subscriptions.

    Args:
        sessions: SessionManager used for ownership checks on subscribe
        users: UserStorage used to resolve credentials
    """

    def __init__(self, sessions: SessionManager, users: UserStorage):
        self.sessions = sessions
        self.users = users
        self._subscribers: Dict[str, Set[Connection]] = defaultdict(set)
        self._snapshots: Dict[str, DebateSession] = {}
        self._connections: Dict[str, Set[Connection]] = defaultdict(set)
        self._publish_locks = KeyedLock()
        self._departed: List[Tuple[Connection, str]] = []

    # Connections

    async def authenticate(self, token: Optional[str]) -> UserInDB:
        """
        Resolve a handshake credential to an active user.

        Raises:
            UnauthorizedError: Invalid, expired or inactive credential
        """
        return await resolve_active_user(self.users, token)

    def register(self, connection: Connection) -> None:
        self._connections[connection.user_id].add(connection)
        logger.info(
            f"WebSocket connected: user {connection.user_id}",
            extra={"extra_fields": {
                "connection_id": connection.connection_id,
                "user_id": connection.user_id,
            }}
        )

    async def on_disconnect(self, connection: Connection) -> None:
        """Drop every subscription the connection held and notify peers."""
        for session_id in list(connection.sessions):
            await self.unsubscribe(connection, session_id)

        peers = self._connections.get(connection.user_id)
        if peers is not None:
            peers.discard(connection)
            if not peers:
                del self._connections[connection.user_id]

        logger.info(
            f"WebSocket disconnected: user {connection.user_id}",
            extra={"extra_fields": {
                "connection_id": connection.connection_id,
                "user_id": connection.user_id,
            }}
        )

    # Subscriptions

    async def subscribe(self, connection: Connection, session_id: str) -> DebateSession:
        """
        Add ``connection`` to the session's subscribers.

        The joining connection receives ``session-joined``; everyone else
        already subscribed receives ``user-joined``.

        Raises:
            NotFoundError: Unknown session
            ForbiddenError: The connection's user does not own the session
        """
        session = await self.sessions.get(session_id, connection.user_id)
        topic = await self.sessions.topics.get(session.topic_id)

        self._subscribers[session_id].add(connection)
        connection.sessions.add(session_id)
        self.update_snapshot(session)

        await self.send_to(connection, "session-joined", {
            "sessionId": session.session_id,
            "status": session.status,
            "topic": topic.model_dump(mode="json") if topic else None,
            "chosenSide": session.chosen_side,
            "startTime": _iso(session.start_time),
        })
        await self.publish(
            session_id, "user-joined",
            {"userId": connection.user_id, "name": connection.name},
            exclude=connection,
        )
        session_logger(logger, session_id, connection.user_id).info(
            "Connection joined session",
            extra={"extra_fields": {"connection_id": connection.connection_id}}
        )
        return session

    async def unsubscribe(self, connection: Connection, session_id: str) -> None:
        """Idempotent; remaining subscribers receive ``user-left``."""
        subscribers = self._subscribers.get(session_id)
        connection.sessions.discard(session_id)
        if not subscribers or connection not in subscribers:
            return
        subscribers.discard(connection)
        if not subscribers:
            self._forget_session(session_id)
            return
        await self.publish(
            session_id, "user-left",
            {"userId": connection.user_id, "name": connection.name},
        )

    def subscribers(self, session_id: str) -> List[Connection]:
        return list(self._subscribers.get(session_id, ()))

    # Delivery

    async def publish(
        self,
        session_id: str,
        event: str,
        data: Dict[str, Any],
        exclude: Optional[Connection] = None,
    ) -> int:
        """
        Deliver an event to every current subscriber of ``session_id``.

        Returns:
            Number of connections the event was handed to
        """
        if not self._subscribers.get(session_id):
            return 0
        async with self._publish_locks.hold(session_id):
            targets = [
                c for c in self._subscribers.get(session_id, ())
                if c is not exclude
            ]
            if not targets:
                return 0
            results = await asyncio.gather(
                *(self._deliver(c, event, data) for c in targets)
            )

        delivered = sum(1 for ok in results if ok)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Published {event} to {delivered}/{len(targets)} subscribers of {session_id}"
            )
        await self._announce_departures()
        return delivered

    async def _deliver(self, connection: Connection, event: str, data: Dict[str, Any]) -> bool:
        if not connection.connected:
            self._drop(connection)
            return False
        try:
            await connection.send(event, data)
        except Exception as e:
            logger.warning(
                f"Dropping subscriber after failed send: {e}",
                extra={"extra_fields": {
                    "connection_id": connection.connection_id,
                    "user_id": connection.user_id,
                    "event": event,
                }}
            )
            self._drop(connection)
            return False
        return True

    def _drop(self, connection: Connection) -> None:
        """
        Unsubscribe a dead connection everywhere.

        May run while a publish lock is held, so the ``user-left`` events for
        the remaining peers are queued and sent by ``_announce_departures``.
        """
        for session_id in list(connection.sessions):
            subscribers = self._subscribers.get(session_id)
            if subscribers is None or connection not in subscribers:
                continue
            subscribers.discard(connection)
            if subscribers:
                self._departed.append((connection, session_id))
            else:
                self._forget_session(session_id)
        connection.sessions.clear()

    async def _announce_departures(self) -> None:
        while self._departed:
            connection, session_id = self._departed.pop(0)
            await self.publish(
                session_id, "user-left",
                {"userId": connection.user_id, "name": connection.name},
            )

    def _forget_session(self, session_id: str) -> None:
        self._subscribers.pop(session_id, None)
        self._snapshots.pop(session_id, None)

    async def send_to(self, connection: Connection, event: str, data: Dict[str, Any]) -> bool:
        """Send to a single connection; used for acks and ``error`` events."""
        delivered = await self._deliver(connection, event, data)
        await self._announce_departures()
        return delivered

    async def send_error(self, connection: Connection, error: DebateError) -> bool:
        return await self.send_to(connection, "error", error.to_dict())

    async def notify_user(self, user_id: str, event: str, data: Dict[str, Any]) -> int:
        """Send to every connection of ``user_id`` regardless of subscriptions."""
        connections = list(self._connections.get(user_id, ()))
        results = await asyncio.gather(*(self._deliver(c, event, data) for c in connections))
        await self._announce_departures()
        return sum(1 for ok in results if ok)

    # Session events

    async def publish_message(
        self,
        message: DebateMessage,
        user_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> int:
        return await self.publish(
            message.session_id, "new-message", message_payload(message, user_id, name)
        )

    async def publish_paused(self, session: DebateSession) -> int:
        self.update_snapshot(session)
        return await self.publish(session.session_id, "session-paused", {
            "sessionId": session.session_id,
            "pausedAt": _iso(session.pause_time),
        })

    async def publish_resumed(self, session: DebateSession) -> int:
        self.update_snapshot(session)
        return await self.publish(session.session_id, "session-resumed", {
            "sessionId": session.session_id,
            "resumedAt": _iso(session.last_activity),
        })

    async def publish_ended(self, session: DebateSession) -> int:
        """End listener registered with the SessionManager."""
        self.update_snapshot(session)
        return await self.publish(session.session_id, "session-ended", {
            "sessionId": session.session_id,
            "status": session.status,
            "reason": session.end_reason,
            "endedAt": _iso(session.end_time),
            "finalScore": session.final_score,
        })

    # Introspection

    def update_snapshot(self, session: DebateSession) -> None:
        """Cache the latest state of a session that has live subscribers."""
        if session.session_id in self._subscribers:
            self._snapshots[session.session_id] = session

    def snapshot(self, session_id: str) -> Optional[DebateSession]:
        return self._snapshots.get(session_id)

    def active_sessions(self) -> List[str]:
        return [sid for sid, subs in self._subscribers.items() if subs]

    def connected_users(self) -> List[str]:
        return list(self._connections)

    def is_user_connected(self, user_id: str) -> bool:
        return bool(self._connections.get(user_id))

    def stats(self) -> Dict[str, Any]:
        return {
            "connections": sum(len(c) for c in self._connections.values()),
            "users": len(self._connections),
            "sessions": len(self.active_sessions()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
