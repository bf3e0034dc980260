"""
Debate error taxonomy.

Every error a client can see carries a stable machine-readable ``kind``, the
HTTP status used when it crosses the REST boundary and a human-readable
message. The WebSocket layer sends the same ``kind``/``message`` pair in its
``error`` event.
"""

from typing import Any, Dict, Optional


class DebateError(Exception):
    """Base class for all domain errors."""

    kind: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Client-facing error payload."""
        return {"kind": self.kind, "message": self.message}


class ValidationError(DebateError):
    """Malformed input."""
    kind = "validation_error"
    status_code = 400


class UnauthorizedError(DebateError):
    """Missing, invalid or expired credential, or inactive user."""
    kind = "unauthorized"
    status_code = 401


class ForbiddenError(DebateError):
    """Authenticated user does not own the resource."""
    kind = "forbidden"
    status_code = 403


class NotFoundError(DebateError):
    kind = "not_found"
    status_code = 404


class ConflictError(DebateError):
    """Duplicate reaction, duplicate active session."""
    kind = "conflict"
    status_code = 409


class ReplySuperseded(ConflictError):
    """A newer message arrived while the AI reply was being generated."""

    def __init__(self, session_id: str, reply_to: str):
        super().__init__(
            "The conversation moved on while the reply was generated",
            details={"session_id": session_id, "reply_to": reply_to},
        )


class InvalidTransition(DebateError):
    """A session state machine guard was violated."""
    kind = "invalid_transition"
    status_code = 409

    def __init__(self, event: str, state: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot {event} a session that is {state}",
            details={"event": event, "state": state},
        )
        self.event = event
        self.state = state


class SessionExpired(DebateError):
    """A message arrived after the session's time limit elapsed."""
    kind = "session_expired"
    status_code = 409

    def __init__(self, session_id: str, message: str = "Time limit exceeded"):
        super().__init__(message, details={"session_id": session_id})
        self.session_id = session_id


class GenerationUnavailable(DebateError):
    """The external generation service failed, timed out or is not configured."""
    kind = "generation_unavailable"
    status_code = 503

    def __init__(
        self,
        message: str = "AI service temporarily unavailable. Please try again later.",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.cause = cause


class InternalError(DebateError):
    kind = "internal_error"
    status_code = 500
