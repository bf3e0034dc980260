"""
Pure ASGI request logging middleware.

Logs method, path, status and duration for every HTTP request; sanitized
request and response bodies are added at DEBUG level. WebSocket and
lifespan scopes pass straight through.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional
from uuid import uuid4

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

MAX_BODY_LOG_LENGTH = 5000


def _sanitize_body(data: bytes) -> Optional[str]:
    """Decode a body, filtering secrets when it is JSON."""
    if not data:
        return None
    text = data.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=MAX_BODY_LOG_LENGTH)
    return truncate_large_data(
        json.dumps(filter_sensitive_data(payload), ensure_ascii=False),
        max_length=MAX_BODY_LOG_LENGTH,
    )


def _error_kind(data: bytes) -> Optional[str]:
    """``error.kind`` from a response envelope, if present."""
    try:
        payload = json.loads(data.decode("utf-8", errors="ignore"))
    except json.JSONDecodeError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"].get("kind")
    return None


class RequestLoggingMiddleware:
    """Logs every HTTP request with its outcome and timing."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[List[str]] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths logged at DEBUG only (health checks)
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        request_id = uuid4().hex[:12]
        method = scope.get("method", "UNKNOWN")
        client = scope.get("client")
        start_time = time.time()

        request_body: List[bytes] = []
        response_body: List[bytes] = []
        status_code = 0

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_body.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers
            elif message["type"] == "http.response.body":
                response_body.append(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                }}
            )
            raise

        duration_ms = round((time.time() - start_time) * 1000, 2)
        fields: Dict[str, Any] = {
            "request_id": request_id,
            "method": method,
            "path": path,
            "query": scope.get("query_string", b"").decode("utf-8", errors="ignore") or None,
            "client": client[0] if client else None,
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        if status_code >= 400:
            fields["error_kind"] = _error_kind(b"".join(response_body))
        if logger.isEnabledFor(logging.DEBUG):
            fields["request_body"] = _sanitize_body(b"".join(request_body))
            fields["response_body"] = _sanitize_body(b"".join(response_body))

        if status_code < 400:
            level = logging.INFO
        elif status_code < 500:
            level = logging.WARNING
        else:
            level = logging.ERROR

        logger.log(
            level,
            f"{method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": fields}
        )
