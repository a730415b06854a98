"""
Durable storage backends for the LLM response cache.

Each backend stores one opaque JSON document:
    - load() returns the document, or None when nothing was saved yet
    - save(data) replaces the document

Backends raise StorageError on failure; the response cache decides whether
that is fatal (it never is).
"""

import time
from pathlib import Path
from typing import Any, Final, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ..utils.error_handler import ConfigurationError, StorageError

MAX_RETRIES: Final[int] = 3
INITIAL_RETRY_DELAY_MS: Final[int] = 100

# Transient error codes that should be retried
TRANSIENT_ERROR_CODES: Final[set[str]] = {
    "ServiceUnavailable",
    "RequestTimeout",
    "RequestTimeoutException",
    "ThrottlingException",
    "SlowDown",
}


class CacheStorage(Protocol):
    """Key-value document storage used by ResponseCache."""

    def load(self) -> str | None: ...

    def save(self, data: str) -> None: ...


class InMemoryStorage:
    """Process-local storage, mainly for tests and ephemeral workers."""

    def __init__(self, initial: str | None = None):
        self.data = initial

    def load(self) -> str | None:
        return self.data

    def save(self, data: str) -> None:
        self.data = data


class JsonFileStorage:
    """Local JSON file storage."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

    def save(self, data: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(data, encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e


class S3Storage:
    """
    S3 object storage with retry on transient errors.

    A missing object (NoSuchKey) is not an error: load() returns None.
    """

    __slots__ = ("bucket", "key", "_s3_client")

    def __init__(self, bucket: str, key: str, s3_client: Any = None):
        """
        Initialize S3 storage.

        Args:
            bucket: S3 bucket name
            key: Object key holding the cache document
            s3_client: Optional pre-built boto3 S3 client

        Raises:
            ConfigurationError: If bucket is empty

        """
        if not bucket or not bucket.strip():
            raise ConfigurationError("S3 bucket name cannot be empty")

        self.bucket = bucket
        self.key = key
        self._s3_client = s3_client or boto3.client("s3")
        logger.info(f"✅ S3 cache storage initialized ({self.location})")

    @property
    def location(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    def load(self) -> str | None:
        try:
            response = self._with_retry(
                "load", self._s3_client.get_object, Bucket=self.bucket, Key=self.key
            )
        except ClientError as e:
            if _error_code(e) == "NoSuchKey":
                return None
            raise StorageError(f"Failed to load {self.location}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to load {self.location}: {e}") from e

        return response["Body"].read().decode("utf-8")

    def save(self, data: str) -> None:
        try:
            self._with_retry(
                "save",
                self._s3_client.put_object,
                Bucket=self.bucket,
                Key=self.key,
                Body=data.encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to save {self.location}: {e}") from e

    def _with_retry(self, action: str, call, **kwargs) -> dict[str, Any]:
        """Run an S3 call, retrying transient errors with exponential backoff."""
        last_error = None

        for attempt in range(MAX_RETRIES):
            try:
                return call(**kwargs)
            except ClientError as e:
                error_code = _error_code(e)
                if error_code not in TRANSIENT_ERROR_CODES:
                    raise

                last_error = e
                delay_ms = INITIAL_RETRY_DELAY_MS * (2**attempt)
                logger.warning(
                    f"S3 cache {action} retry {attempt + 1}/{MAX_RETRIES} "
                    f"after {error_code} (delay {delay_ms}ms)"
                )
                time.sleep(delay_ms / 1000.0)

        raise last_error


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def create_storage(config: dict[str, Any]) -> CacheStorage:
    """
    Build a storage backend from the ``storage`` section of CACHE_CONFIG.

    Args:
        config: Dict with ``provider`` (memory/file/s3) and backend settings

    Returns:
        Storage backend

    Raises:
        ConfigurationError: If the provider is unknown

    """
    provider = (config.get("provider") or "memory").lower()

    if provider == "memory":
        return InMemoryStorage()
    if provider == "file":
        return JsonFileStorage(config["path"])
    if provider == "s3":
        return S3Storage(config.get("s3_bucket", ""), config["s3_key"])

    raise ConfigurationError(f"Unknown cache storage provider: {provider}")
