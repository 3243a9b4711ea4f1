"""Provider factory functions.

One LLM provider instance per process, shared by every request.
"""

from app.core.config import settings
from app.providers.config import ProviderConfig
from app.providers.llm.base import LLMProvider
from app.providers.llm.openai_adapter import OpenAIAdapter

_llm_provider: LLMProvider | None = None


def get_llm_provider(config: ProviderConfig | None = None) -> LLMProvider:
    """Get or create the LLM provider singleton.

    The first call fixes the configuration; later calls reuse the instance
    and its HTTP connection pool.

    Args:
        config: Optional provider configuration. If None and no provider
            exists, builds one from application settings.

    Returns:
        LLMProvider instance.

    Raises:
        ValueError: If the configured provider is unknown.
    """
    global _llm_provider

    if _llm_provider is None:
        if config is None:
            config = ProviderConfig.from_settings(settings)

        if config.llm_provider == "openai":
            _llm_provider = OpenAIAdapter(config)
        else:
            raise ValueError(f"Unknown LLM provider: {config.llm_provider}")

    return _llm_provider


def reset_providers() -> None:
    """Reset provider singletons.

    Used in tests to ensure isolation between test cases.
    """
    global _llm_provider
    _llm_provider = None
