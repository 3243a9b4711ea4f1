"""LLM provider interface and adapters."""

from app.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    TaskType,
)
from app.providers.llm.mock_adapter import MockLLMProvider
from app.providers.llm.openai_adapter import OpenAIAdapter

__all__ = [
    # Base types
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "TaskType",
    # Adapters
    "MockLLMProvider",
    "OpenAIAdapter",
]
