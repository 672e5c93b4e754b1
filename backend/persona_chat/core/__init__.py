"""Core module - turn coordination, quota, titles and the persona roster."""

from .characters import Character, CHARACTERS, get_character, get_all_characters, is_valid_character_slug
from .errors import (
    ChatError, Unauthorized, RateLimited, InvalidRequest, NotFound,
    StorageError, QuotaUnavailable, UpstreamFailure, TitleGenerationFailure
)
from .usage import UsageLedger, utc_day_start, next_reset
from .title_generator import TitleGenerator, should_generate_title
from .session_coordinator import SessionCoordinator, ChatTurn, TurnState

__all__ = [
    'Character', 'CHARACTERS', 'get_character', 'get_all_characters', 'is_valid_character_slug',
    'ChatError', 'Unauthorized', 'RateLimited', 'InvalidRequest', 'NotFound',
    'StorageError', 'QuotaUnavailable', 'UpstreamFailure', 'TitleGenerationFailure',
    'UsageLedger', 'utc_day_start', 'next_reset',
    'TitleGenerator', 'should_generate_title',
    'SessionCoordinator', 'ChatTurn', 'TurnState',
]
