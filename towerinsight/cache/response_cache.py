"""
Similarity-based cache for LLM responses.

Prompts are compared with a lightweight lexical similarity (filler-word
removal, state abbreviation expansion, weighted word overlap) so that
rephrasings such as "towers in TX" and "Texas towers" reuse one response.
Entries are newest-first and persisted as a single JSON document.
"""

import json
import re
import threading
import time
from collections.abc import Callable
from typing import Any, Final

from loguru import logger
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..config.cache_config import CACHE_CONFIG
from ..utils.error_handler import ErrorHandler
from .storage import CacheStorage, InMemoryStorage, create_storage

FILLER_WORDS: Final[tuple[str, ...]] = (
    "do", "we", "have", "the", "a", "an", "in", "i", "my", "our",
)  # fmt: skip

ABBREVIATIONS: Final[dict[str, str]] = {
    "tx": "texas",
    "ny": "new york",
    "ca": "california",
    "fl": "florida",
    "il": "illinois",
}

CONTAINMENT_SCORE: Final[float] = 0.9
OVERLAP_WEIGHT: Final[float] = 0.8
LENGTH_WEIGHT: Final[float] = 0.2

_WHITESPACE: Final = re.compile(r"\s+")
_PUNCTUATION: Final = re.compile(r"[.,?!;:]")
_FILLERS: Final = re.compile(r"\b(?:" + "|".join(FILLER_WORDS) + r")\b")
_ABBREVIATIONS: Final = re.compile(r"\b(" + "|".join(ABBREVIATIONS) + r")\b")


class CachedPromptResponse(BaseModel):
    """Cached LLM exchange."""

    prompt: str
    model: str
    response: str
    tokens_used: int = 0
    inserted_at: float


_ENTRIES_ADAPTER = TypeAdapter(list[CachedPromptResponse])


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_prompt(text: str) -> str:
    """
    Normalize a prompt for similarity comparison.

    Lowercases, removes filler words, expands state abbreviations
    (tx, ny, ca, fl, il), strips ``.,?!;:`` and collapses whitespace.
    """
    normalized = _FILLERS.sub("", text.lower())
    normalized = _ABBREVIATIONS.sub(
        lambda match: ABBREVIATIONS[match.group(1)], normalized
    )
    normalized = _PUNCTUATION.sub("", normalized)
    return collapse_whitespace(normalized)


def _word_weight(word: str) -> float:
    # Longer words carry more meaning
    return max(1.0, len(word) / 3)


def compare_prompts(a: str, b: str) -> float:
    """
    Score the similarity of two prompts in [0, 1].

    Args:
        a: Incoming prompt
        b: Cached prompt

    Returns:
        1.0 for identical prompts, 0.9 when one normalized prompt contains
        the other, otherwise weighted word overlap * 0.8 + length ratio * 0.2

    """
    if collapse_whitespace(a) == collapse_whitespace(b):
        return 1.0

    normalized_a = normalize_prompt(a)
    normalized_b = normalize_prompt(b)

    if not normalized_a or not normalized_b:
        return 1.0 if normalized_a == normalized_b else 0.0

    if normalized_b in normalized_a or normalized_a in normalized_b:
        return CONTAINMENT_SCORE

    words_a = normalized_a.split(" ")
    words_b = normalized_b.split(" ")

    available: dict[str, int] = {}
    for word in words_b:
        available[word] = available.get(word, 0) + 1

    matched = 0.0
    possible = 0.0
    for word in words_a:
        weight = _word_weight(word)
        possible += weight
        if available.get(word, 0) > 0:
            matched += weight
            available[word] -= 1

    length_ratio = min(len(words_a), len(words_b)) / max(len(words_a), len(words_b))
    return (matched / possible) * OVERLAP_WEIGHT + length_ratio * LENGTH_WEIGHT


class ResponseCache:
    """
    Bounded, TTL-limited cache of LLM responses with fuzzy prompt lookup.

    Storage failures are logged and never raised; the cache keeps working
    in memory.
    """

    def __init__(
        self,
        storage: CacheStorage | None = None,
        max_entries: int = 20,
        ttl_seconds: float = 3600,
        similarity_threshold: float = 0.6,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the response cache and load persisted entries.

        Args:
            storage: Durable backend; in-memory when omitted
            max_entries: Maximum number of cached responses
            ttl_seconds: Entry lifetime
            similarity_threshold: Minimum score (exclusive) for a hit
            clock: Time source returning seconds

        """
        self.storage = storage if storage is not None else InMemoryStorage()
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.similarity_threshold = similarity_threshold
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: list[CachedPromptResponse] = []

        self.load()
        removed = self.clear_expired()

        logger.info(
            f"🚀 Response cache initialized ({len(self._entries)} entries, "
            f"{removed} expired, threshold={similarity_threshold}, "
            f"ttl={ttl_seconds}s)"
        )

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None, **kwargs):
        """Build a cache and its storage backend from CACHE_CONFIG."""
        config = config or CACHE_CONFIG
        settings = config["response_cache"]
        storage, error = ErrorHandler.safe_execute(
            create_storage,
            config["storage"],
            error_message_prefix="Response cache storage setup failed",
        )
        return cls(
            storage=storage if error is None else InMemoryStorage(),
            max_entries=settings["max_entries"],
            ttl_seconds=settings["ttl_seconds"],
            similarity_threshold=settings["similarity_threshold"],
            **kwargs,
        )

    def load(self) -> None:
        """Replace in-memory entries with the persisted ones."""
        raw, error = ErrorHandler.safe_storage_operation(
            self.storage.load, operation_name="Response cache load"
        )
        if error is not None or not raw:
            return

        try:
            entries = _ENTRIES_ADAPTER.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable response cache: {e}")
            return

        with self._lock:
            self._entries = entries[: self.max_entries]

    def _persist(self, entries: list[CachedPromptResponse]) -> None:
        data = json.dumps([entry.model_dump() for entry in entries])
        ErrorHandler.safe_storage_operation(
            self.storage.save, data, operation_name="Response cache save"
        )

    def cache(
        self, prompt: str, model: str, response: str, tokens_used: int = 0
    ) -> None:
        """Store a response as the newest entry and persist the cache."""
        entry = CachedPromptResponse(
            prompt=prompt,
            model=model,
            response=response,
            tokens_used=tokens_used,
            inserted_at=self._clock(),
        )
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.max_entries :]
            snapshot = list(self._entries)

        logger.debug(f"💾 Cached response for prompt: {prompt[:50]}...")
        self._persist(snapshot)

    def find(self, prompt: str, model: str) -> str | None:
        """
        Find the most recent live response for a similar prompt.

        Args:
            prompt: Incoming prompt
            model: Model the response must come from

        Returns:
            Cached response text, or None

        """
        now = self._clock()
        with self._lock:
            entries = list(self._entries)

        for entry in entries:
            if entry.model != model:
                continue
            if now - entry.inserted_at > self.ttl_seconds:
                continue
            score = compare_prompts(prompt, entry.prompt)
            if score > self.similarity_threshold:
                logger.info(
                    f"🎯 Response cache hit (similarity: {score:.3f}) "
                    f"for prompt: {prompt[:50]}..."
                )
                return entry.response

        logger.debug(f"💔 Response cache miss for prompt: {prompt[:50]}...")
        return None

    def clear_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            live = [e for e in self._entries if now - e.inserted_at <= self.ttl_seconds]
            removed = len(self._entries) - len(live)
            self._entries = live
        return removed

    def clear(self) -> None:
        """Drop every entry and persist the empty cache."""
        with self._lock:
            self._entries = []
        self._persist([])

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
