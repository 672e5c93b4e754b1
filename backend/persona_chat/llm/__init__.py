"""LLM module - provides a unified interface for completion providers."""

from .base import LLMProvider, LLMMessage, LLMResponse
from .openai_provider import OpenAIProvider
from .openrouter_provider import OpenRouterProvider
from .factory import create_llm_provider, provider_from_settings
from .smoothing import smooth_stream

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'OpenAIProvider',
    'OpenRouterProvider',
    'create_llm_provider',
    'provider_from_settings',
    'smooth_stream',
]
