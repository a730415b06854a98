"""
Model configuration for the natural-language assistant.

Maps the short model aliases used by the selection policy to Bedrock model
IDs and holds the default invocation settings. Every value can be
overridden through environment variables.
"""

import os
from typing import Any, Final

from loguru import logger

HAIKU: Final[str] = "claude-3-5-haiku"
SONNET: Final[str] = "claude-3-7-sonnet"
OPUS: Final[str] = "claude-3-opus"


class ModelConfig:
    """Centralized model configuration for the query assistant."""

    MODEL_ALIASES: Final[dict[str, str]] = {
        HAIKU: "anthropic.claude-3-5-haiku-20241022-v1:0",
        SONNET: "anthropic.claude-3-7-sonnet-20250219-v1:0",
        OPUS: "anthropic.claude-3-opus-20240229-v1:0",
    }

    DEFAULT_CONFIG: Final[dict[str, Any]] = {
        "model": SONNET,
        "max_tokens": 1000,
        "temperature": 0.7,
    }

    def __init__(self, custom_aliases: dict[str, str] | None = None):
        """
        Initialize model configuration.

        Args:
            custom_aliases: Optional alias → model ID overrides
                           e.g., {"claude-3-opus": "us.anthropic.claude-3-opus-..."}

        """
        self.aliases = dict(self.MODEL_ALIASES)
        self.defaults = dict(self.DEFAULT_CONFIG)

        if custom_aliases:
            self.aliases.update(custom_aliases)

        self._load_from_env()

    def _load_from_env(self) -> None:
        """Apply BEDROCK_MODEL_<ALIAS> and assistant default overrides."""
        for alias in list(self.aliases):
            env_name = "BEDROCK_MODEL_" + alias.upper().replace("-", "_")
            model_id = os.getenv(env_name)
            if model_id:
                self.aliases[alias] = model_id

        default_model = os.getenv("ASSISTANT_DEFAULT_MODEL")
        if default_model:
            self.defaults["model"] = default_model

        tokens = os.getenv("ASSISTANT_MAX_TOKENS")
        if tokens:
            try:
                self.defaults["max_tokens"] = int(tokens)
            except ValueError:
                logger.warning(f"Ignoring invalid ASSISTANT_MAX_TOKENS={tokens!r}")

        temperature = os.getenv("ASSISTANT_TEMPERATURE")
        if temperature:
            try:
                self.defaults["temperature"] = float(temperature)
            except ValueError:
                logger.warning(
                    f"Ignoring invalid ASSISTANT_TEMPERATURE={temperature!r}"
                )

    def resolve_model_id(self, model: str) -> str:
        """Return the Bedrock model ID for an alias, or the value unchanged."""
        return self.aliases.get(model, model)

    @property
    def default_model(self) -> str:
        return self.defaults["model"]

    @property
    def default_max_tokens(self) -> int:
        return self.defaults["max_tokens"]

    @property
    def default_temperature(self) -> float:
        return self.defaults["temperature"]


BEDROCK_CONFIG = {
    "aws_profile": os.getenv("AWS_PROFILE"),  # uses IAM role if None
    "aws_region": os.getenv("AWS_REGION", "us-east-1"),
}
