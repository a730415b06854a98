"""Unit tests for environment-driven configuration."""

import pytest

from towerinsight.config.cache_config import get_cache_config
from towerinsight.config.model_config import HAIKU, OPUS, SONNET, ModelConfig


class TestCacheConfig:
    """Test cache settings."""

    def test_defaults(self, monkeypatch):
        """Without overrides the documented defaults apply."""
        for name in (
            "TRANSFORM_CACHE_ENABLED",
            "TRANSFORM_CACHE_TTL_SECONDS",
            "TRANSFORM_CACHE_MAX_ENTRIES",
            "RESPONSE_CACHE_TTL_SECONDS",
            "RESPONSE_CACHE_MAX_ENTRIES",
            "RESPONSE_CACHE_SIMILARITY_THRESHOLD",
            "RESPONSE_CACHE_PROVIDER",
        ):
            monkeypatch.delenv(name, raising=False)

        config = get_cache_config()

        assert config["transform_cache"] == {
            "enabled": True,
            "ttl_seconds": 300,
            "max_entries": 50,
        }
        assert config["response_cache"]["ttl_seconds"] == 3600
        assert config["response_cache"]["max_entries"] == 20
        assert config["response_cache"]["similarity_threshold"] == 0.6
        assert config["storage"]["provider"] == "file"

    def test_env_overrides(self, monkeypatch):
        """Environment variables override each setting."""
        monkeypatch.setenv("TRANSFORM_CACHE_ENABLED", "False")
        monkeypatch.setenv("TRANSFORM_CACHE_MAX_ENTRIES", "5")
        monkeypatch.setenv("RESPONSE_CACHE_SIMILARITY_THRESHOLD", "0.75")
        monkeypatch.setenv("RESPONSE_CACHE_PROVIDER", "s3")
        monkeypatch.setenv("RESPONSE_CACHE_S3_BUCKET", "tower-cache")

        config = get_cache_config()

        assert config["transform_cache"]["enabled"] is False
        assert config["transform_cache"]["max_entries"] == 5
        assert config["response_cache"]["similarity_threshold"] == 0.75
        assert config["storage"]["provider"] == "s3"
        assert config["storage"]["s3_bucket"] == "tower-cache"


class TestModelConfig:
    """Test model aliases and defaults."""

    def test_defaults(self, clean_model_env):
        """Sonnet, 1000 tokens and temperature 0.7 by default."""
        config = ModelConfig()

        assert config.default_model == SONNET
        assert config.default_max_tokens == 1000
        assert config.default_temperature == 0.7

    def test_alias_resolution(self, clean_model_env):
        """Aliases map to Bedrock IDs; unknown names pass through."""
        config = ModelConfig()

        assert config.resolve_model_id(HAIKU).startswith("anthropic.claude-3-5-haiku")
        assert config.resolve_model_id("custom-id") == "custom-id"

    def test_custom_aliases(self, clean_model_env):
        """Constructor overrides replace built-in IDs."""
        config = ModelConfig(custom_aliases={OPUS: "us.anthropic.opus"})
        assert config.resolve_model_id(OPUS) == "us.anthropic.opus"

    def test_env_overrides(self, clean_model_env, monkeypatch):
        """Environment variables override IDs and defaults."""
        monkeypatch.setenv("BEDROCK_MODEL_CLAUDE_3_5_HAIKU", "eu.haiku")
        monkeypatch.setenv("ASSISTANT_DEFAULT_MODEL", HAIKU)
        monkeypatch.setenv("ASSISTANT_MAX_TOKENS", "250")
        monkeypatch.setenv("ASSISTANT_TEMPERATURE", "0.1")

        config = ModelConfig()

        assert config.resolve_model_id(HAIKU) == "eu.haiku"
        assert config.default_model == HAIKU
        assert config.default_max_tokens == 250
        assert config.default_temperature == pytest.approx(0.1)

    def test_invalid_numbers_ignored(self, clean_model_env, monkeypatch):
        """Unparseable numeric overrides keep the defaults."""
        monkeypatch.setenv("ASSISTANT_MAX_TOKENS", "lots")
        monkeypatch.setenv("ASSISTANT_TEMPERATURE", "warm")

        config = ModelConfig()

        assert config.default_max_tokens == 1000
        assert config.default_temperature == 0.7
