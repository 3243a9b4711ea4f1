"""Provider configuration for the generation API."""

from dataclasses import dataclass

from app.core.config import Settings


@dataclass
class ProviderConfig:
    """Generation provider configuration.

    Attributes:
        llm_provider: Which LLM provider to use ("openai" or "mock").
        openai_api_key: OpenAI API key.
        model: Model identifier used for plan generation.
        default_max_tokens: Default max output tokens.
        default_temperature: Default sampling temperature.
        request_timeout_seconds: Per-request timeout passed to the SDK client.
        max_retries: Max retry attempts for rate-limited calls.
        retry_base_delay_ms: Base delay for exponential backoff.
        retry_max_delay_ms: Max delay cap for exponential backoff.
    """

    llm_provider: str = "openai"
    openai_api_key: str | None = None
    model: str = "gpt-4o"

    default_max_tokens: int = 10000
    default_temperature: float = 0.4
    request_timeout_seconds: float = 120.0

    # Retry policy
    max_retries: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 30000

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderConfig":
        """Build configuration from application settings.

        Args:
            settings: Loaded application settings.

        Returns:
            ProviderConfig instance.
        """
        return cls(
            openai_api_key=settings.openai_api_key.get_secret_value() or None,
            model=settings.llm_model,
            default_max_tokens=settings.llm_max_tokens,
            default_temperature=settings.llm_temperature,
            request_timeout_seconds=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
        )
