"""
In-memory TTL cache for chart transform results.

Key Features:
- Content fingerprints (xxhash64) of a bounded record sample plus options
- Deep-copied payloads so callers can never corrupt cached results
- Insertion-order eviction bounded by ``max_entries``
- Injected clock for deterministic expiry
"""

import copy
import json
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

import xxhash
from loguru import logger

from ..config.cache_config import CACHE_CONFIG

SAMPLE_THRESHOLD: Final[int] = 10
SAMPLE_EDGE: Final[int] = 3
FINGERPRINT_OPTIONS: Final[tuple[str, ...]] = (
    "sort_by",
    "sort_direction",
    "limit",
    "group_others",
)


@dataclass
class CacheEntry:
    """Stored transform result."""

    fingerprint: str
    payload: Any
    inserted_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at >= self.ttl_seconds


def _tagged(value: Any) -> str:
    # Non-JSON values must not collide with their string form
    return f"{type(value).__name__}:{value}"


def _option_value(options: Any, name: str) -> Any:
    if options is None:
        return None
    if isinstance(options, Mapping):
        return options.get(name)
    return getattr(options, name, None)


class TransformResultCache:
    """
    Bounded TTL cache keyed by content fingerprints.

    Identical inputs produce identical fingerprints; identity of the input
    list does not matter. A fingerprint only samples large inputs, so a change
    confined to the middle of a large list can still hit.
    """

    def __init__(
        self,
        max_entries: int = 50,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the transform cache.

        Args:
            max_entries: Maximum number of stored results
            ttl_seconds: Default time-to-live for new entries
            clock: Time source returning seconds

        """
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._enabled = True
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(cls, config: dict[str, Any] | None = None, **kwargs):
        """Build a cache from the ``transform_cache`` section of CACHE_CONFIG."""
        settings = (config or CACHE_CONFIG)["transform_cache"]
        cache = cls(
            max_entries=settings["max_entries"],
            ttl_seconds=settings["ttl_seconds"],
            **kwargs,
        )
        if not settings["enabled"]:
            cache.disable()
        return cache

    @property
    def enabled(self) -> bool:
        return self._enabled

    @staticmethod
    def fingerprint(
        records: Sequence[Mapping[str, Any]],
        options: Any = None,
        scope: str | None = None,
    ) -> str:
        """
        Compute a deterministic fingerprint for a transform input.

        Args:
            records: Input records; all rows are hashed when there are at most
                ten, otherwise the first three, the last three and the count
            options: TransformOptions or dict; only sort/limit keys are used
            scope: Transform name and parameters so different transforms
                over the same records never share an entry

        Returns:
            Hex digest string

        """
        rows = list(records)
        if len(rows) <= SAMPLE_THRESHOLD:
            sample: Any = rows
        else:
            sample = {
                "head": rows[:SAMPLE_EDGE],
                "tail": rows[-SAMPLE_EDGE:],
                "count": len(rows),
            }

        selected = {}
        for name in FINGERPRINT_OPTIONS:
            value = _option_value(options, name)
            selected[name] = getattr(value, "value", value)

        body = json.dumps(
            {"scope": scope, "data": sample, "options": selected},
            sort_keys=True,
            default=_tagged,
        )
        return xxhash.xxh64(body.encode()).hexdigest()

    def get(self, fingerprint: str) -> Any | None:
        """Return a deep copy of a live payload, or None on miss."""
        if not self._enabled:
            return None

        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is not None and entry.is_expired(self._clock()):
                del self._entries[fingerprint]
                logger.debug(f"⌛ Transform cache entry expired: {fingerprint}")
                entry = None

            if entry is None:
                self._misses += 1
                return None

            self._hits += 1
            payload = entry.payload

        logger.debug(f"🎯 Transform cache hit: {fingerprint}")
        return copy.deepcopy(payload)

    def set(
        self, fingerprint: str, payload: Any, ttl_seconds: float | None = None
    ) -> None:
        """Store a deep copy of a payload as the newest entry."""
        if not self._enabled:
            return

        entry = CacheEntry(
            fingerprint=fingerprint,
            payload=copy.deepcopy(payload),
            inserted_at=self._clock(),
            ttl_seconds=self.ttl_seconds if ttl_seconds is None else ttl_seconds,
        )

        with self._lock:
            self._entries.pop(fingerprint, None)
            self._entries[fingerprint] = entry
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"🗑️ Evicted transform cache entry: {evicted}")

    def clear_expired(self) -> int:
        """Remove expired entries and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items() if entry.is_expired(now)
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"🧹 Cleared {len(expired)} expired transform cache entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        """Stop serving and storing results; existing entries are kept."""
        self._enabled = False

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "enabled": self._enabled,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
