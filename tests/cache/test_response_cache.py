"""Unit tests for the similarity response cache."""

import json
from unittest.mock import Mock

import pytest

from towerinsight.cache.response_cache import (
    ResponseCache,
    compare_prompts,
    normalize_prompt,
)
from towerinsight.cache.storage import InMemoryStorage
from towerinsight.utils.error_handler import StorageError


@pytest.fixture
def storage():
    """Shared in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def response_cache(storage, clock):
    """Response cache with default limits and a fake clock."""
    return ResponseCache(storage=storage, clock=clock)


class TestNormalizePrompt:
    """Test prompt normalization."""

    def test_removes_fillers_and_expands_abbreviations(self):
        """Fillers go, state codes expand, punctuation is stripped."""
        assert normalize_prompt("Do we have towers in NY?") == "towers new york"

    def test_collapses_whitespace(self):
        """Whitespace runs collapse to single spaces."""
        assert normalize_prompt("  Tower   revenue,  by  FL ") == "tower revenue by florida"

    def test_fillers_match_whole_words_only(self):
        """Words containing filler substrings survive."""
        assert normalize_prompt("Inactive towers") == "inactive towers"


class TestComparePrompts:
    """Test prompt similarity scores."""

    def test_identical_prompts(self):
        """A prompt matches itself exactly."""
        prompt = "Show contract expirations for next quarter"
        assert compare_prompts(prompt, prompt) == 1.0

    def test_whitespace_only_differences(self):
        """Whitespace differences are ignored."""
        assert compare_prompts(" Show   towers ", "Show towers") == 1.0

    def test_abbreviation_equivalence(self):
        """TX and Texas normalize to the same words."""
        score = compare_prompts(
            "How many towers do we have in TX?", "How many towers in Texas?"
        )
        assert score >= 0.9

    def test_containment(self):
        """One normalized prompt inside the other scores 0.9."""
        assert compare_prompts("towers texas", "list towers texas by revenue") == 0.9

    def test_unrelated_prompts(self):
        """Unrelated prompts stay below the hit threshold."""
        score = compare_prompts("Show revenue by landlord", "What is the weather tomorrow")
        assert score < 0.6

    def test_partial_overlap(self):
        """Weighted overlap plus length ratio."""
        score = compare_prompts("monthly revenue trend", "monthly payment trend")
        # "monthly" (7/3) and "trend" (5/3) match out of a total weight of 19/3
        assert score == pytest.approx((4 / (7 / 3 + 7 / 3 + 5 / 3)) * 0.8 + 0.2)

    def test_empty_after_normalization(self):
        """Prompts made only of fillers match only each other."""
        assert compare_prompts("the", "a") == 1.0
        assert compare_prompts("do we have", "towers") == 0.0


class TestResponseCache:
    """Test response caching."""

    def test_find_similar_prompt(self, response_cache):
        """A rephrased prompt reuses the cached response."""
        response_cache.cache("How many towers in Texas?", "claude-3-5-haiku", "42", 12)

        found = response_cache.find("How many towers do we have in TX?", "claude-3-5-haiku")

        assert found == "42"

    def test_model_isolation(self, response_cache):
        """Responses from another model are never returned."""
        response_cache.cache("How many towers in Texas?", "claude-3-5-haiku", "42", 12)
        assert response_cache.find("How many towers in Texas?", "claude-3-opus") is None

    def test_unrelated_prompt_misses(self, response_cache):
        """Dissimilar prompts miss."""
        response_cache.cache("Show revenue by landlord", "m", "table", 5)
        assert response_cache.find("What is the weather tomorrow", "m") is None

    def test_most_recent_match_wins(self, response_cache):
        """Newest entries are checked first."""
        response_cache.cache("towers in texas", "m", "old", 1)
        response_cache.cache("towers in texas", "m", "new", 1)
        assert response_cache.find("towers in texas", "m") == "new"

    def test_expired_entries_ignored(self, response_cache, clock):
        """Entries older than the TTL are skipped."""
        response_cache.cache("towers in texas", "m", "answer", 1)

        clock.advance(3600)
        assert response_cache.find("towers in texas", "m") == "answer"

        clock.advance(1)
        assert response_cache.find("towers in texas", "m") is None

    def test_trimmed_to_max_entries(self, storage, clock):
        """The oldest entries are dropped beyond max_entries."""
        cache = ResponseCache(storage=storage, max_entries=2, clock=clock)
        cache.cache("first prompt", "m", "1", 1)
        cache.cache("second prompt", "m", "2", 1)
        cache.cache("third prompt", "m", "3", 1)

        assert len(cache) == 2
        assert cache.find("first prompt", "m") is None

    def test_persisted_and_reloaded(self, response_cache, storage, clock):
        """A new cache over the same storage sees earlier entries."""
        response_cache.cache("towers in texas", "m", "answer", 7)

        saved = json.loads(storage.load())
        assert saved[0]["tokens_used"] == 7

        reloaded = ResponseCache(storage=storage, clock=clock)
        assert reloaded.find("towers in texas", "m") == "answer"

    def test_expired_entries_dropped_on_load(self, response_cache, storage, clock):
        """Loading discards entries that expired while persisted."""
        response_cache.cache("towers in texas", "m", "answer", 7)
        clock.advance(4000)

        reloaded = ResponseCache(storage=storage, clock=clock)

        assert len(reloaded) == 0

    def test_corrupt_storage_yields_empty_cache(self, clock):
        """Unreadable persisted data is discarded."""
        cache = ResponseCache(storage=InMemoryStorage("{not json"), clock=clock)
        assert len(cache) == 0

    def test_storage_failures_are_not_raised(self, clock):
        """Load and save errors are logged and swallowed."""
        storage = Mock()
        storage.load.side_effect = StorageError("bucket unreachable")
        storage.save.side_effect = StorageError("bucket unreachable")

        cache = ResponseCache(storage=storage, clock=clock)
        cache.cache("towers in texas", "m", "answer", 1)

        assert cache.find("towers in texas", "m") == "answer"
        storage.save.assert_called_once()

    def test_clear_expired_count(self, response_cache, clock):
        """clear_expired removes exactly the expired entries."""
        response_cache.cache("first prompt", "m", "1", 1)
        clock.advance(3000)
        response_cache.cache("second prompt", "m", "2", 1)
        clock.advance(700)

        assert response_cache.clear_expired() == 1
        assert len(response_cache) == 1

    def test_clear(self, response_cache, storage):
        """Clear empties memory and storage."""
        response_cache.cache("towers", "m", "1", 1)
        response_cache.clear()

        assert len(response_cache) == 0
        assert json.loads(storage.load()) == []

    def test_from_config(self, clock):
        """Limits and storage come from CACHE_CONFIG-shaped settings."""
        config = {
            "response_cache": {
                "ttl_seconds": 60,
                "max_entries": 3,
                "similarity_threshold": 0.8,
            },
            "storage": {"provider": "memory"},
        }

        cache = ResponseCache.from_config(config, clock=clock)

        assert cache.max_entries == 3
        assert cache.ttl_seconds == 60
        assert cache.similarity_threshold == 0.8
        assert isinstance(cache.storage, InMemoryStorage)
