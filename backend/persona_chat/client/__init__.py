"""Client module - session manager for driving chat turns against the API."""

from .cache import ConversationListCache
from .session import ChatSession, InvalidStatusTransition, RateLimitInfo, Ref, SessionStatus

__all__ = [
    'ChatSession', 'ConversationListCache', 'InvalidStatusTransition',
    'RateLimitInfo', 'Ref', 'SessionStatus',
]
