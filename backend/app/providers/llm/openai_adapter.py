"""OpenAI chat-completions adapter."""

import contextlib
import time
from typing import TYPE_CHECKING

import openai
import structlog
from openai import AsyncOpenAI

from app.providers.errors import (
    AuthenticationError,
    ContentFilterError,
    ContextLengthError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from app.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)

if TYPE_CHECKING:
    from app.providers.config import ProviderConfig

logger = structlog.get_logger()


def _classify_openai_error(error: Exception) -> ProviderError:
    """Map OpenAI SDK exceptions to internal error taxonomy.

    Returns a ProviderError subclass instance (does not raise).
    Callers raise it: ``raise _classify_openai_error(e) from e``.
    """
    if isinstance(error, openai.RateLimitError):
        retry_after = None
        if getattr(error, "response", None) is not None:
            retry_header = error.response.headers.get("retry-after")
            if retry_header is not None:
                with contextlib.suppress(ValueError):
                    retry_after = float(retry_header)
        return RateLimitError(str(error), retry_after_seconds=retry_after)

    if isinstance(error, openai.AuthenticationError | openai.PermissionDeniedError):
        return AuthenticationError(str(error))

    if isinstance(error, openai.BadRequestError):
        error_msg = str(error).lower()
        if "context_length" in error_msg:
            return ContextLengthError(str(error))
        if "content_policy" in error_msg:
            return ContentFilterError(str(error))
        return ProviderError(str(error))

    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(error, openai.APIConnectionError | openai.InternalServerError):
        return TransientError(str(error))

    return ProviderError(str(error))


class OpenAIAdapter(LLMProvider):
    """OpenAI GPT adapter using the async OpenAI SDK.

    SDK-level retries are disabled; ``app.providers.retry`` owns the policy.
    """

    @property
    def provider_name(self) -> str:
        """Return 'openai'."""
        return "openai"

    def __init__(self, config: "ProviderConfig") -> None:
        """Initialize OpenAI adapter.

        Args:
            config: Provider configuration with OpenAI API key.
        """
        super().__init__(config)
        self.client = AsyncOpenAI(
            api_key=config.openai_api_key,
            timeout=config.request_timeout_seconds,
            max_retries=0,
        )

    async def complete(
        self,
        messages: list[LLMMessage],
        task: TaskType,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Generate completion using OpenAI GPT.

        Args:
            messages: Conversation as list of LLMMessage.
            task: Task type (logged).
            max_tokens: Override default max tokens.
            temperature: Override default temperature.

        Returns:
            LLMResponse with the generated content.
        """
        model = self.get_model_for_task(task)
        log = logger.bind(provider="openai", model=model, task=task.value)
        log.info("llm_request_start", message_count=len(messages))

        started = time.monotonic()
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                max_tokens=(
                    max_tokens
                    if max_tokens is not None
                    else self.config.default_max_tokens
                ),
                temperature=(
                    temperature
                    if temperature is not None
                    else self.config.default_temperature
                ),
            )
        except openai.OpenAIError as e:
            log.error("llm_request_failed", error_type=type(e).__name__, error=str(e))
            raise _classify_openai_error(e) from e

        latency_ms = (time.monotonic() - started) * 1000
        choice = response.choices[0]
        usage = response.usage
        result = LLMResponse(
            content=choice.message.content,
            model=model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            finish_reason=choice.finish_reason,
            latency_ms=latency_ms,
        )

        log.info(
            "llm_request_complete",
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            finish_reason=result.finish_reason,
            latency_ms=round(latency_ms),
        )
        return result

    def get_model_for_task(self, _task: TaskType) -> str:
        """Return the configured model; plan generation is the only task."""
        return self.config.model
