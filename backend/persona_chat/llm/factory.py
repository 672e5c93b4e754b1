"""
LLM Provider Factory - Creates the configured completion provider.
"""

from typing import Dict, Optional, Type

from .base import LLMProvider
from .openai_provider import OpenAIProvider
from .openrouter_provider import OpenRouterProvider

PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "openrouter": OpenRouterProvider,
    "openai": OpenAIProvider,
}

# Attribution options only OpenRouter understands
_OPENROUTER_ONLY = ("app_url", "app_title")


def create_llm_provider(
    provider: str = "openrouter",
    api_key: str = "",
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    **kwargs
) -> Optional[LLMProvider]:
    """
    Create a completion provider.

    Args:
        provider: Key of ``PROVIDERS``
        api_key: API key for the provider
        model: Default model id (provider default if not specified)
        base_url: Custom base URL (provider default if not specified)
        **kwargs: Extra constructor options (timeout, app_url, app_title)

    Returns:
        LLMProvider instance, or None if api_key is not configured

    Raises:
        ValueError: Unknown provider name
    """
    if not api_key:
        return None

    provider_cls = PROVIDERS.get(provider)
    if provider_cls is None:
        raise ValueError(f"Unsupported LLM provider: {provider}")

    options = {k: v for k, v in kwargs.items() if v is not None}
    if provider_cls is not OpenRouterProvider:
        for key in _OPENROUTER_ONLY:
            options.pop(key, None)
    if model:
        options["model"] = model
    if base_url:
        options["base_url"] = base_url
    return provider_cls(api_key=api_key, **options)


def provider_from_settings(settings) -> Optional[LLMProvider]:
    """Build the provider described by application settings."""
    return create_llm_provider(
        provider=settings.llm_provider,
        api_key=settings.llm_api_key or "",
        model=settings.default_model,
        base_url=settings.llm_base_url,
        timeout=settings.llm_timeout_seconds,
        app_url=settings.llm_app_url,
        app_title=settings.app_name,
    )
