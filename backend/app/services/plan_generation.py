"""Plan text generation service.

Builds the plan prompts, calls the LLM provider once per plan period (in
order), and joins the results into the document body. Only rate-limit
responses are retried; any other provider failure ends the attempt.
"""

import logging
import re

from app.core.config import settings
from app.core.errors import APIError
from app.prompts.plan import PLAN_SYSTEM_PROMPT, build_plan_prompts
from app.providers import ProviderError, factory
from app.providers.config import ProviderConfig
from app.providers.llm.base import LLMMessage, LLMProvider, TaskType
from app.providers.retry import with_retries
from app.services.plan_catalog import PlanDefinition
from app.services.profile_extraction import Profile

logger = logging.getLogger(__name__)

_MARKDOWN_EMPHASIS = re.compile(r"\*+")
_SECTION_SEPARATOR = "\n\n"


class PlanGenerationError(APIError):
    """The provider failed or returned no usable text."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code="PLAN_GENERATION_ERROR",
            message=message,
            status_code=500,
        )


def strip_markdown_emphasis(text: str) -> str:
    """Remove markdown asterisks (bold/italic markers) from model output."""
    return _MARKDOWN_EMPHASIS.sub("", text)


async def generate_plan_text(
    plan: PlanDefinition,
    profile: Profile,
    *,
    provider: LLMProvider | None = None,
    config: ProviderConfig | None = None,
) -> str:
    """Generate the full plan text for one customer.

    Args:
        plan: Catalog entry of the purchased plan.
        profile: Customer profile (already sanitized).
        provider: LLM provider; defaults to the process-wide provider.
        config: Retry policy; defaults to one built from settings.

    Returns:
        Period texts joined with a blank line, asterisks removed.

    Raises:
        PlanGenerationError: If a call fails or returns empty content.
    """
    llm = provider if provider is not None else factory.get_llm_provider()
    retry_config = (
        config if config is not None else ProviderConfig.from_settings(settings)
    )

    sections: list[str] = []
    for index, user_prompt in enumerate(
        build_plan_prompts(
            plan, profile=profile.description, allergies=profile.allergies
        ),
        start=1,
    ):
        messages = [
            LLMMessage(role="system", content=PLAN_SYSTEM_PROMPT),
            LLMMessage(role="user", content=user_prompt),
        ]

        async def _call(messages: list[LLMMessage] = messages):
            return await llm.complete(
                messages=messages, task=TaskType.PLAN_GENERATION
            )

        try:
            response = await with_retries(_call, retry_config)
        except ProviderError as e:
            logger.error(
                "Plan generation failed for %s (part %d/%d): %s",
                plan.variant.value,
                index,
                len(plan.periods),
                e,
            )
            raise PlanGenerationError("Plan generation failed") from e

        content = (response.content or "").strip()
        if not content:
            raise PlanGenerationError(
                f"LLM returned empty response for {plan.variant.value} "
                f"(part {index}/{len(plan.periods)})"
            )
        if response.finish_reason == "length":
            logger.warning(
                "Plan text for %s part %d was truncated at max tokens",
                plan.variant.value,
                index,
            )
        sections.append(content)

    return strip_markdown_emphasis(_SECTION_SEPARATOR.join(sections))
