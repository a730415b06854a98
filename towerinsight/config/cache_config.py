"""
Cache Configuration for the transform-result and response caches.

This module provides configuration for both in-process caches and the
durable storage backend used by the LLM response cache.
"""

import os
from pathlib import Path
from typing import Any


def _default_cache_path() -> str:
    """Location of the response cache file when no path is configured."""
    return str(Path.home() / ".towerinsight" / "response_cache.json")


def get_cache_config() -> dict[str, Any]:
    """
    Get cache configuration based on environment variables.

    Returns:
        Dictionary with cache configuration

    """
    return {
        "transform_cache": {
            "enabled": os.getenv("TRANSFORM_CACHE_ENABLED", "true").lower()
            == "true",
            "ttl_seconds": float(os.getenv("TRANSFORM_CACHE_TTL_SECONDS", 300)),
            "max_entries": int(os.getenv("TRANSFORM_CACHE_MAX_ENTRIES", 50)),
        },
        "response_cache": {
            "ttl_seconds": float(os.getenv("RESPONSE_CACHE_TTL_SECONDS", 3600)),
            "max_entries": int(os.getenv("RESPONSE_CACHE_MAX_ENTRIES", 20)),
            "similarity_threshold": float(
                os.getenv("RESPONSE_CACHE_SIMILARITY_THRESHOLD", 0.6)
            ),
        },
        "storage": {
            "provider": os.getenv("RESPONSE_CACHE_PROVIDER", "file"),  # memory/file/s3
            "path": os.getenv("RESPONSE_CACHE_PATH", _default_cache_path()),
            "s3_bucket": os.getenv("RESPONSE_CACHE_S3_BUCKET", ""),
            "s3_key": os.getenv("RESPONSE_CACHE_S3_KEY", "cache/response_cache.json"),
        },
    }


# Export config as module-level constant
CACHE_CONFIG = get_cache_config()
