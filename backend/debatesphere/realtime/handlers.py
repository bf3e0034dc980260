"""
WebSocket endpoint - the real-time surface of a debate.

Frames in both directions are JSON objects ``{"event": ..., "data": {...}}``.
Credentials come from the ``token`` query parameter or an
``Authorization: Bearer`` header; connections without a valid credential
are closed with code 1008 before they are accepted.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..core.errors import DebateError, InternalError, UnauthorizedError, ValidationError
from ..core.logging_config import session_logger
from ..models import EndSessionRequest, SendMessageRequest
from ..services import DebateServices
from .channel import Connection

logger = logging.getLogger(__name__)

router = APIRouter()

Handler = Callable[[DebateServices, Connection, Dict[str, Any]], Awaitable[None]]


class SocketFrame(BaseModel):
    event: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


def extract_token(websocket: WebSocket) -> Optional[str]:
    auth_header = (websocket.headers.get("authorization") or "").strip()
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return (websocket.query_params.get("token") or "").strip() or None


def _validation_message(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def _session_id(connection: Connection, data: Dict[str, Any], required: bool = True) -> str:
    session_id = data.get("sessionId") or connection.current_session
    if not session_id and required:
        raise ValidationError("sessionId is required")
    return session_id


# Event handlers

async def on_join(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    session_id = data.get("sessionId")
    if not session_id:
        raise ValidationError("sessionId is required")
    await services.channel.subscribe(connection, session_id)
    connection.current_session = session_id


async def on_leave(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    session_id = _session_id(connection, data)
    await services.channel.unsubscribe(connection, session_id)
    if connection.current_session == session_id:
        connection.current_session = None


async def on_send_message(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    session_id = _session_id(connection, data)
    try:
        request = SendMessageRequest(
            content=data.get("content", ""),
            message_type=data.get("messageType", "general"),
            parent_message=data.get("parentMessage"),
            reply_to=data.get("replyTo"),
        )
    except PydanticValidationError as e:
        raise ValidationError(_validation_message(e)) from e

    message = await services.sessions.send_message(
        session_id,
        connection.user_id,
        request.content,
        message_type=request.message_type,
        parent_message=request.parent_message,
        reply_to=request.reply_to,
    )
    await services.channel.publish_message(
        message, user_id=connection.user_id, name=connection.name
    )
    services.orchestrator.schedule_ai_turn(session_id, origin=connection)


async def on_typing(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    session_id = _session_id(connection, data)
    if session_id not in connection.sessions:
        return
    await services.channel.publish(
        session_id, "user-typing",
        {
            "userId": connection.user_id,
            "name": connection.name,
            "isTyping": bool(data.get("isTyping", False)),
        },
        exclude=connection,
    )


async def on_pause(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    session = await services.sessions.pause(_session_id(connection, data), connection.user_id)
    await services.channel.publish_paused(session)


async def on_resume(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    session = await services.sessions.resume(_session_id(connection, data), connection.user_id)
    await services.channel.publish_resumed(session)


async def on_end(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    try:
        request = EndSessionRequest(reason=data.get("reason", "completed"))
    except PydanticValidationError as e:
        raise ValidationError(_validation_message(e)) from e
    # session-ended is published by the session manager's end listener
    await services.sessions.end(_session_id(connection, data), connection.user_id, request.reason)


async def on_ping(services: DebateServices, connection: Connection, data: Dict[str, Any]) -> None:
    await services.channel.send_to(
        connection, "pong", {"timestamp": datetime.now(timezone.utc).isoformat()}
    )


EVENT_HANDLERS: Dict[str, Handler] = {
    "join-debate": on_join,
    "leave-debate": on_leave,
    "send-message": on_send_message,
    "typing": on_typing,
    "pause-session": on_pause,
    "resume-session": on_resume,
    "end-session": on_end,
    "ping": on_ping,
}


async def dispatch(services: DebateServices, connection: Connection, raw: str) -> None:
    """Handle one inbound frame; errors go only to this connection."""
    session_id = connection.current_session
    try:
        try:
            frame = SocketFrame.model_validate(json.loads(raw))
        except json.JSONDecodeError as e:
            raise ValidationError("Frames must be JSON objects") from e
        except PydanticValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        session_id = frame.data.get("sessionId") or session_id
        handler = EVENT_HANDLERS.get(frame.event)
        if handler is None:
            raise ValidationError(f"Unknown event: {frame.event}")
        await handler(services, connection, frame.data)
    except DebateError as e:
        session_logger(logger, session_id, connection.user_id).warning(
            f"WebSocket event rejected: {e.message}",
            extra={"extra_fields": {"error_kind": e.kind, "connection_id": connection.connection_id}}
        )
        await services.channel.send_error(connection, e)
    except Exception as e:
        session_logger(logger, session_id, connection.user_id).error(
            f"WebSocket event failed: {e}", exc_info=True
        )
        await services.channel.send_error(connection, InternalError("Internal server error"))


@router.websocket("/ws")
async def debate_socket(websocket: WebSocket):
    services: DebateServices = websocket.app.state.services
    channel = services.channel

    try:
        user = await channel.authenticate(extract_token(websocket))
    except UnauthorizedError as e:
        logger.warning(f"WebSocket connection refused: {e.message}")
        await websocket.close(code=1008, reason="Unauthorized")
        return

    await websocket.accept()
    connection = Connection(websocket, user)
    channel.register(connection)
    try:
        while True:
            raw = await websocket.receive_text()
            await dispatch(services, connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await channel.on_disconnect(connection)
