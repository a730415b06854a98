"""LLM assistant: model selection, dispatch, rate limiting and context."""

from .context_manager import ContextManager, DataContext
from .llm_client import BedrockModelClient, ModelClient, ModelResponse
from .model_selection import TaskType, assess_query_complexity, select_model
from .query_assistant import PromptResult, QueryAssistant
from .rate_limiter import RateLimiter

__all__ = [
    "QueryAssistant",
    "PromptResult",
    "BedrockModelClient",
    "ModelClient",
    "ModelResponse",
    "ContextManager",
    "DataContext",
    "RateLimiter",
    "TaskType",
    "assess_query_complexity",
    "select_model",
]
