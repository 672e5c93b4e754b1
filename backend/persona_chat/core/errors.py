"""
Chat turn error taxonomy.

Each error carries the HTTP status it maps to and the JSON body returned to
the client when it is raised before any byte of a turn has been streamed.
"""

from typing import Any, Dict, Optional


class ChatError(Exception):
    """Base class for errors raised while handling a chat turn."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class Unauthorized(ChatError):
    """No valid caller identity. Client must re-authenticate."""

    status_code = 401
    default_message = "Unauthorized"


class RateLimited(ChatError):
    """Daily quota exhausted; resets at UTC midnight."""

    status_code = 429
    default_message = "Daily message limit reached"

    def __init__(self, message_count: int, daily_limit: int, message: Optional[str] = None):
        super().__init__(message)
        self.message_count = message_count
        self.daily_limit = daily_limit

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "message_count": self.message_count,
            "daily_limit": self.daily_limit,
            "remaining": 0,
        }


class InvalidRequest(ChatError):
    """Malformed turn payload."""

    status_code = 400
    default_message = "Invalid request body"

    def __init__(self, details: Any = None, message: Optional[str] = None):
        super().__init__(message)
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "details": self.details}


class NotFound(ChatError):
    """Unknown character, or a conversation that is absent or owned by someone else."""

    status_code = 404
    default_message = "Not found"


class StorageError(ChatError):
    """Store read/write failure outside the cases above."""

    status_code = 500
    default_message = "Failed to save message"


class QuotaUnavailable(ChatError):
    """The usage ledger could not be read."""

    status_code = 503
    default_message = "Usage check unavailable"


class UpstreamFailure(ChatError):
    """The completion provider failed to produce a response."""

    status_code = 502
    default_message = "Failed to get AI response"


class TitleGenerationFailure(ChatError):
    """Title generation failed. Never surfaced to clients."""

    default_message = "Title generation failed"
