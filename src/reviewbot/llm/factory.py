"""Factory for building LLM providers from an account's AI configuration.

Each supported provider name maps to one builder. The builder is picked once
per review pass and is responsible for resolving the credential it needs.
"""

from typing import Callable

from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from reviewbot.errors import ConfigurationError
from reviewbot.llm.provider import LLMProvider
from reviewbot.server.config import Settings, get_settings
from reviewbot.store.models import AIConfiguration


DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"


def _require_key(api_key: str | None, provider: str) -> str:
    if not api_key:
        raise ConfigurationError(f"No API key available for provider '{provider}'")
    return api_key


def _build_openrouter(config: AIConfiguration, settings: Settings) -> LLMProvider:
    """OpenRouter with the account's own key and model."""
    api_key = _require_key(config.api_key, config.provider)
    if not config.model:
        raise ConfigurationError("Model is required for provider 'openrouter'")

    chat_model = ChatOpenAI(
        api_key=api_key,
        base_url=settings.openrouter_base_url,
        model=config.model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    return LLMProvider(model=chat_model, model_name=config.model, provider_name=config.provider)


def _build_openrouter_free(config: AIConfiguration, settings: Settings) -> LLMProvider:
    """OpenRouter free tier, billed to the shared service key."""
    api_key = _require_key(settings.openrouter_api_key, config.provider)
    model = config.model or settings.openrouter_free_model

    chat_model = ChatOpenAI(
        api_key=api_key,
        base_url=settings.openrouter_base_url,
        model=model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    return LLMProvider(model=chat_model, model_name=model, provider_name=config.provider)


def _build_openai(config: AIConfiguration, settings: Settings) -> LLMProvider:
    api_key = _require_key(config.api_key, config.provider)
    model = config.model or DEFAULT_OPENAI_MODEL

    chat_model = ChatOpenAI(
        api_key=api_key,
        model=model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    return LLMProvider(model=chat_model, model_name=model, provider_name=config.provider)


def _build_anthropic(config: AIConfiguration, settings: Settings) -> LLMProvider:
    api_key = _require_key(config.api_key, config.provider)
    model = config.model or DEFAULT_ANTHROPIC_MODEL

    chat_model = ChatAnthropic(
        api_key=api_key,
        model=model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
    return LLMProvider(model=chat_model, model_name=model, provider_name=config.provider)


PROVIDER_BUILDERS: dict[str, Callable[[AIConfiguration, Settings], LLMProvider]] = {
    "openrouter": _build_openrouter,
    "openrouter-free": _build_openrouter_free,
    "openai": _build_openai,
    "anthropic": _build_anthropic,
}


def get_provider(
    config: AIConfiguration | None,
    settings: Settings | None = None,
) -> LLMProvider:
    """Build the LLM provider for an account's AI configuration.

    Args:
        config: The account's AI configuration
        settings: Server settings (uses default if not provided)

    Returns:
        Configured LLMProvider instance

    Raises:
        ConfigurationError: If the configuration is missing, names an unknown
            provider, or no credential can be resolved
    """
    if config is None:
        raise ConfigurationError("Account has not configured AI settings")

    builder = PROVIDER_BUILDERS.get(config.provider)
    if builder is None:
        supported = ", ".join(f"'{name}'" for name in PROVIDER_BUILDERS)
        raise ConfigurationError(
            f"Unknown provider: {config.provider}. Supported: {supported}"
        )

    return builder(config, settings or get_settings())
