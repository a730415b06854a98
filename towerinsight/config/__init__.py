"""
Configuration module for towerinsight.

Loads environment variables from a .env file when one exists and exposes
cache, storage and model settings.
"""

from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Project root first, then the current working directory
for _env_path in (Path(__file__).parent.parent.parent / ".env", Path.cwd() / ".env"):
    if _env_path.exists():
        load_dotenv(_env_path)
        logger.debug(f"Loaded environment variables from {_env_path}")
        break

from .cache_config import CACHE_CONFIG, get_cache_config  # noqa: E402
from .model_config import BEDROCK_CONFIG, ModelConfig  # noqa: E402

__all__ = [
    "CACHE_CONFIG",
    "get_cache_config",
    "BEDROCK_CONFIG",
    "ModelConfig",
]
