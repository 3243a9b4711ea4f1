"""Provider error taxonomy.

Adapters translate SDK exceptions into these classes so callers can decide
what to retry without knowing which generation API sits behind the provider.
"""


__all__ = [
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ContentFilterError",
    "ContextLengthError",
    "TransientError",
]


class ProviderError(Exception):
    """Base class for all provider errors."""

    pass


class RateLimitError(ProviderError):
    """Rate limit exceeded (HTTP 429).

    The only error class the plan generator retries.
    """

    def __init__(self, message: str, retry_after_seconds: float | None = None):
        """Initialize RateLimitError.

        Args:
            message: Error description from the provider.
            retry_after_seconds: Optional hint from provider on when to retry.
        """
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class AuthenticationError(ProviderError):
    """Missing, invalid, or revoked API key."""

    pass


class ContentFilterError(ProviderError):
    """Content blocked by the provider's safety filter."""

    pass


class ContextLengthError(ProviderError):
    """Prompt plus requested output exceeded the model's context window."""

    pass


class TransientError(ProviderError):
    """Network failure, timeout, or provider overload."""

    pass
