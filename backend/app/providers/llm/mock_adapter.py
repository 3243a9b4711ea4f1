"""Mock LLM provider for testing without hitting the generation API."""

from typing import Any

from app.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)


class MockLLMProvider(LLMProvider):
    """Mock provider for testing.

    Returns queued responses in order, then falls back to the per-task
    response. Queued exceptions are raised instead of returned, which lets
    tests simulate rate limits and outages.

    Attributes:
        responses: Pre-configured responses keyed by TaskType.
        queue: Responses (str) or exceptions consumed one per call.
        calls: Record of all method invocations for test assertions.
    """

    @property
    def provider_name(self) -> str:
        """Return 'mock' for testing."""
        return "mock"

    def __init__(self, responses: dict[TaskType, str] | None = None) -> None:
        """Initialize mock provider with optional pre-configured responses.

        Args:
            responses: Dict mapping TaskType to response content. If not provided
                for a task, returns a default "Mock response for {task}" string.
        """
        # No config needed for the mock
        self.responses: dict[TaskType, str] = dict(responses) if responses else {}
        self.queue: list[str | Exception] = []
        self.calls: list[dict[str, Any]] = []

    def set_response(self, task: TaskType, content: str) -> None:
        """Set or update the response for a specific task type."""
        self.responses[task] = content

    def enqueue(self, *items: str | Exception) -> None:
        """Queue one-shot responses or exceptions for upcoming calls."""
        self.queue.extend(items)

    async def complete(
        self,
        messages: list[LLMMessage],
        task: TaskType,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """Generate a mock completion.

        Records the call, then returns (or raises) the next queued item or
        the configured response for the task.
        """
        self.calls.append(
            {
                "method": "complete",
                "messages": messages,
                "task": task,
                "kwargs": {
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            }
        )

        if self.queue:
            item = self.queue.pop(0)
            if isinstance(item, Exception):
                raise item
            content = item
        else:
            content = self.responses.get(task, f"Mock response for {task.value}")

        return LLMResponse(
            content=content,
            model="mock-model",
            input_tokens=100,
            output_tokens=50,
            finish_reason="stop",
            latency_ms=10,
        )

    def get_model_for_task(self, _task: TaskType) -> str:
        """Return 'mock-model' for any task."""
        return "mock-model"
