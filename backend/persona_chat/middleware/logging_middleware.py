"""
FastAPI middleware for logging API requests and responses.

Pure ASGI middleware (not BaseHTTPMiddleware), so streamed chat replies pass
through untouched and client disconnects still reach the route.

Each request gets a start line and a completion line with status code,
duration and sanitized bodies. Streamed ``text/plain`` chat bodies are not
buffered; only their size and the turn headers are logged.
"""

import json
import logging
import time
from typing import Dict, Iterable, Optional, Tuple
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

MAX_BODY_LOG_LENGTH = 5000
STREAMED_CONTENT_TYPES = ("text/plain", "text/event-stream")


def _decode_headers(raw_headers: Iterable[Tuple[bytes, bytes]]) -> Dict[str, str]:
    return {
        k.decode("utf-8", errors="ignore").lower(): v.decode("utf-8", errors="ignore")
        for k, v in raw_headers
    }


def _sanitize_body(data: bytes) -> Optional[str]:
    """Decode a body, filter secrets if it is JSON, and truncate it."""
    if not data:
        return None
    text = data.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=MAX_BODY_LOG_LENGTH)
    filtered = filter_sensitive_data(payload)
    return truncate_large_data(json.dumps(filtered, ensure_ascii=False), max_length=MAX_BODY_LOG_LENGTH)


def _extract_error_reason(response_text: Optional[str]) -> Optional[str]:
    """Pull a concise error reason out of a JSON error body."""
    if not response_text:
        return None
    try:
        payload = json.loads(response_text)
    except json.JSONDecodeError:
        return truncate_large_data(response_text, max_length=500)
    if isinstance(payload, dict):
        for key in ("error", "detail", "message"):
            value = payload.get(key)
            if value:
                return str(value)
    return truncate_large_data(json.dumps(payload, ensure_ascii=False), max_length=500)


class RequestLoggingMiddleware:
    """Pure ASGI middleware to log all API requests and responses."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Initialize the logging middleware.

        Args:
            app: The ASGI application
            exclude_paths: Paths logged at DEBUG only (e.g., ["/health"])
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point."""
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        request_id = id(scope)
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        client = scope.get("client")
        request_headers = _decode_headers(scope.get("headers", []))

        body_chunks = []

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                body_chunks.append(message.get("body", b""))
            return message

        status_code = 0
        response_headers: Dict[str, str] = {}
        streamed = False
        response_chunks = []
        response_size = 0

        async def logging_send(message: Message) -> None:
            nonlocal status_code, response_headers, streamed, response_size
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                response_headers = _decode_headers(message.get("headers", []))
                content_type = response_headers.get("content-type", "")
                streamed = content_type.startswith(STREAMED_CONTENT_TYPES)
            elif message["type"] == "http.response.body":
                chunk = message.get("body", b"")
                response_size += len(chunk)
                if not streamed:
                    response_chunks.append(chunk)
            await send(message)

        logger.info(
            f"Request started: {method} {path}",
            extra={"extra_fields": {
                "request_id": request_id,
                "method": method,
                "path": path,
                "client": client[0] if client else None,
                "user_agent": request_headers.get("user-agent"),
            }}
        )

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "status_code": status_code or None,
                    "duration_ms": duration_ms,
                    "error": str(e),
                }}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        request_body = _sanitize_body(b"".join(body_chunks))
        response_body = None if streamed else _sanitize_body(b"".join(response_chunks))
        error_reason = _extract_error_reason(response_body) if status_code >= 400 else None

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        summary = f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)"
        if streamed:
            summary += f" | streamed {response_size} bytes"
        if error_reason:
            summary += f" | error_reason={error_reason}"

        logger.log(
            log_level,
            summary,
            extra={"extra_fields": {
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "request_body": request_body,
                "response_body": response_body,
                "response_size": response_size,
                "conversation_id": response_headers.get("x-conversation-id"),
                "error_reason": error_reason,
            }}
        )
