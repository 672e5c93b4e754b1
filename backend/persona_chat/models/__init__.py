"""Models module."""

from .user import User, UserCreate, UserLogin, UserUpdate, UserInDB, Token, TokenData
from .chat import (
    MessagePart, UIMessage, ChatRequest, Conversation, Message, ConversationWithMessages,
    ConversationUpdate, UsageResponse, UsageStatsResponse, CharacterOut, ModelOut
)

__all__ = [
    'User', 'UserCreate', 'UserLogin', 'UserUpdate', 'UserInDB', 'Token', 'TokenData',
    'MessagePart', 'UIMessage', 'ChatRequest', 'Conversation', 'Message', 'ConversationWithMessages',
    'ConversationUpdate', 'UsageResponse', 'UsageStatsResponse', 'CharacterOut', 'ModelOut'
]
