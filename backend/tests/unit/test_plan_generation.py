"""Tests for plan text generation."""

from unittest.mock import AsyncMock, patch

import pytest

from app.providers.config import ProviderConfig
from app.providers.errors import (
    AuthenticationError,
    RateLimitError,
    TransientError,
)
from app.providers.llm.base import TaskType
from app.schemas.plan import PlanVariant
from app.services.plan_catalog import get_plan
from app.services.plan_generation import (
    PlanGenerationError,
    generate_plan_text,
    strip_markdown_emphasis,
)
from app.services.profile_extraction import Profile

_PROFILE = Profile(
    name="Alex",
    email="alex@example.com",
    allergies="Peanuts",
    description="Full name: Alex\nGoal: Gain muscle mass",
)


@pytest.fixture
def retry_config():
    """Fast retry policy."""
    return ProviderConfig(max_retries=2, retry_base_delay_ms=1, retry_max_delay_ms=5)


class TestStripMarkdownEmphasis:
    def test_removes_bold_and_italics(self):
        assert strip_markdown_emphasis("**Day 1** *easy*") == "Day 1 easy"

    def test_leaves_other_text(self):
        assert strip_markdown_emphasis("Squat 4 x 8") == "Squat 4 x 8"


class TestGeneratePlanText:
    """Tests for generate_plan_text."""

    @pytest.mark.asyncio
    async def test_single_period_plan_calls_once(self, mock_llm, retry_config):
        mock_llm.enqueue("**Day 1:** Squats")

        text = await generate_plan_text(
            get_plan(PlanVariant.ONE_WEEK), _PROFILE, config=retry_config
        )

        assert text == "Day 1: Squats"
        assert len(mock_llm.calls) == 1
        call = mock_llm.calls[0]
        assert call["task"] is TaskType.PLAN_GENERATION
        assert call["messages"][0].role == "system"
        assert "Peanuts" in call["messages"][1].content

    @pytest.mark.asyncio
    async def test_four_week_plan_calls_twice_in_order(self, mock_llm, retry_config):
        mock_llm.enqueue("Weeks 1-2 text", "Weeks 3-4 text")

        text = await generate_plan_text(
            get_plan(PlanVariant.FOUR_WEEK), _PROFILE, config=retry_config
        )

        assert text == "Weeks 1-2 text\n\nWeeks 3-4 text"
        assert "Weeks 1 and 2" in mock_llm.calls[0]["messages"][1].content
        assert "Weeks 3 and 4" in mock_llm.calls[1]["messages"][1].content

    @pytest.mark.asyncio
    async def test_explicit_provider_is_used(self, retry_config):
        from app.providers.llm.mock_adapter import MockLLMProvider

        provider = MockLLMProvider({TaskType.PLAN_GENERATION: "plan"})

        text = await generate_plan_text(
            get_plan(PlanVariant.TRIAL),
            _PROFILE,
            provider=provider,
            config=retry_config,
        )

        assert text == "plan"
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self, mock_llm, retry_config):
        mock_llm.enqueue(RateLimitError("slow down"), "plan text")

        with patch("app.providers.retry.asyncio.sleep", new_callable=AsyncMock):
            text = await generate_plan_text(
                get_plan(PlanVariant.ONE_WEEK), _PROFILE, config=retry_config
            )

        assert text == "plan text"
        assert len(mock_llm.calls) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion_fails(self, mock_llm, retry_config):
        mock_llm.enqueue(*(RateLimitError("slow down") for _ in range(3)))

        with (
            patch("app.providers.retry.asyncio.sleep", new_callable=AsyncMock),
            pytest.raises(PlanGenerationError),
        ):
            await generate_plan_text(
                get_plan(PlanVariant.ONE_WEEK), _PROFILE, config=retry_config
            )

        assert len(mock_llm.calls) == 3

    @pytest.mark.asyncio
    async def test_other_errors_fail_without_retry(self, mock_llm, retry_config):
        mock_llm.enqueue(TransientError("upstream 500"))

        with pytest.raises(PlanGenerationError):
            await generate_plan_text(
                get_plan(PlanVariant.ONE_WEEK), _PROFILE, config=retry_config
            )

        assert len(mock_llm.calls) == 1

    @pytest.mark.asyncio
    async def test_second_call_failure_fails_whole_plan(self, mock_llm, retry_config):
        mock_llm.enqueue("first half", AuthenticationError("bad key"))

        with pytest.raises(PlanGenerationError) as exc_info:
            await generate_plan_text(
                get_plan(PlanVariant.FOUR_WEEK), _PROFILE, config=retry_config
            )

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_empty_content_fails(self, mock_llm, retry_config):
        mock_llm.enqueue("   ")

        with pytest.raises(PlanGenerationError, match="empty response"):
            await generate_plan_text(
                get_plan(PlanVariant.ONE_WEEK), _PROFILE, config=retry_config
            )
