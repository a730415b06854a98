"""Cache module for transform results and LLM responses."""

from .response_cache import (
    CachedPromptResponse,
    ResponseCache,
    compare_prompts,
    normalize_prompt,
)
from .result_cache import CacheEntry, TransformResultCache
from .storage import InMemoryStorage, JsonFileStorage, S3Storage, create_storage

__all__ = [
    "CacheEntry",
    "TransformResultCache",
    "CachedPromptResponse",
    "ResponseCache",
    "compare_prompts",
    "normalize_prompt",
    "InMemoryStorage",
    "JsonFileStorage",
    "S3Storage",
    "create_storage",
]
