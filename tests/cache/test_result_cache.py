"""Unit tests for TransformResultCache."""

from datetime import date
from decimal import Decimal

import pytest

from towerinsight.analytics.types import TransformOptions
from towerinsight.cache.result_cache import TransformResultCache

fingerprint = TransformResultCache.fingerprint


@pytest.fixture
def cache(clock):
    """Small cache driven by the fake clock."""
    return TransformResultCache(max_entries=3, ttl_seconds=300, clock=clock)


class TestGetSet:
    """Test storage and deep-copy semantics."""

    def test_miss_returns_none(self, cache):
        """Unknown fingerprints miss."""
        assert cache.get("missing") is None
        assert cache.stats()["misses"] == 1

    def test_payload_is_copied_on_set(self, cache):
        """Mutating the original payload after set does not leak in."""
        payload = [{"x": "A", "y": 1}]
        cache.set("k", payload)

        payload[0]["y"] = 99
        payload.append({"x": "B"})

        assert cache.get("k") == [{"x": "A", "y": 1}]

    def test_payload_is_copied_on_get(self, cache):
        """Mutating a returned payload does not affect later hits."""
        cache.set("k", [{"x": "A", "y": 1}])

        first = cache.get("k")
        first[0]["y"] = 99

        assert cache.get("k") == [{"x": "A", "y": 1}]

    def test_set_replaces_existing(self, cache):
        """Setting a fingerprint again replaces its payload."""
        cache.set("k", [1])
        cache.set("k", [2])

        assert cache.get("k") == [2]
        assert len(cache) == 1


class TestExpiry:
    """Test TTL handling."""

    def test_entry_expires_after_ttl(self, cache, clock):
        """Entries live strictly less than the TTL."""
        cache.set("k", [1])

        clock.advance(299)
        assert cache.get("k") == [1]

        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self, cache, clock):
        """A TTL passed to set overrides the default."""
        cache.set("short", [1], ttl_seconds=10)
        cache.set("long", [2])

        clock.advance(11)

        assert cache.get("short") is None
        assert cache.get("long") == [2]

    def test_clear_expired_returns_exact_count(self, cache, clock):
        """Only expired entries are removed and counted."""
        cache.set("a", [1])
        cache.set("b", [2])
        clock.advance(200)
        cache.set("c", [3])
        clock.advance(150)

        assert cache.clear_expired() == 2
        assert cache.get("c") == [3]
        assert cache.clear_expired() == 0


class TestEviction:
    """Test size bounds."""

    def test_oldest_entry_evicted(self, cache):
        """Exceeding max_entries evicts the oldest insertion."""
        for key in ("a", "b", "c", "d"):
            cache.set(key, [key])

        assert len(cache) == 3
        assert cache.get("a") is None
        assert cache.get("d") == ["d"]

    def test_reinsert_refreshes_position(self, cache):
        """Replacing an entry makes it the newest."""
        cache.set("a", [1])
        cache.set("b", [2])
        cache.set("c", [3])
        cache.set("a", [4])
        cache.set("d", [5])

        assert cache.get("b") is None
        assert cache.get("a") == [4]


class TestEnableDisable:
    """Test switching the cache off and on."""

    def test_disabled_cache_misses_and_ignores_sets(self, cache):
        """A disabled cache never serves or stores, but keeps its entries."""
        cache.set("kept", [1])
        cache.disable()

        cache.set("new", [2])
        assert cache.get("kept") is None

        cache.enable()
        assert cache.get("kept") == [1]
        assert cache.get("new") is None

    def test_clear(self, cache):
        """Clear drops everything."""
        cache.set("a", [1])
        cache.clear()
        assert len(cache) == 0


class TestFingerprint:
    """Test content fingerprints."""

    def test_same_content_same_fingerprint(self):
        """Identity of the list does not matter, content does."""
        a = [{"x": 1, "y": 2}]
        b = [{"y": 2, "x": 1}]
        assert fingerprint(a) == fingerprint(b)

    def test_value_change_changes_fingerprint(self):
        """Small inputs are hashed in full."""
        a = [{"x": 1}, {"x": 2}]
        b = [{"x": 1}, {"x": 3}]
        assert fingerprint(a) != fingerprint(b)

    def test_large_inputs_are_sampled(self):
        """Beyond ten rows only the head, tail and count are hashed."""
        rows = [{"i": i} for i in range(20)]
        changed_middle = [dict(r) for r in rows]
        changed_middle[10]["i"] = -1

        assert fingerprint(rows) == fingerprint(changed_middle)
        assert fingerprint(rows) != fingerprint(rows[:-1])

    @pytest.mark.parametrize(
        "typed,text",
        [(date(2023, 1, 1), "2023-01-01"), (Decimal("1.5"), "1.5")],
    )
    def test_typed_values_differ_from_their_text(self, typed, text):
        """A date or Decimal never hashes like its string form."""
        assert fingerprint([{"d": typed}]) != fingerprint([{"d": text}])

    def test_scope_separates_transforms(self):
        """Different scopes never collide."""
        rows = [{"x": 1}]
        assert fingerprint(rows, scope="xy|x|y") != fingerprint(rows, scope="pie|x|y")

    def test_only_whitelisted_options_count(self):
        """Sort and limit options matter; display options do not."""
        rows = [{"x": 1}]
        base = fingerprint(rows, TransformOptions())
        formatted = fingerprint(rows, TransformOptions(date_format="YYYY"))
        limited = fingerprint(rows, TransformOptions(limit=1))

        assert base == formatted
        assert base != limited

    def test_dict_and_model_options_agree(self):
        """Options given as a dict hash like the equivalent model."""
        rows = [{"x": 1}]
        as_dict = {
            "sort_by": "value",
            "sort_direction": "desc",
            "limit": 2,
            "group_others": False,
        }
        as_model = TransformOptions(sort_by="value", sort_direction="desc", limit=2)

        assert fingerprint(rows, as_dict) == fingerprint(rows, as_model)


class TestFromConfig:
    """Test configuration-driven construction."""

    def test_reads_transform_settings(self):
        """Settings come from the transform_cache section."""
        config = {
            "transform_cache": {"enabled": False, "ttl_seconds": 60, "max_entries": 7}
        }

        cache = TransformResultCache.from_config(config)

        assert cache.max_entries == 7
        assert cache.ttl_seconds == 60
        assert cache.enabled is False
