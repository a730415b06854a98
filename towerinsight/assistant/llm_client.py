"""
External model clients.

The assistant only depends on the ModelClient protocol; BedrockModelClient is
the production implementation on top of the Bedrock Converse API.
"""

import asyncio
import functools
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger
from pydantic import BaseModel

from ..config.model_config import BEDROCK_CONFIG, ModelConfig
from ..utils.error_handler import LLMError


class ModelResponse(BaseModel):
    """Text completion returned by a model client."""

    content: str
    tokens_used: int = 0


class ModelClient(Protocol):
    """Async text-completion client."""

    async def invoke(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> ModelResponse: ...


class BedrockModelClient:
    """Bedrock Converse API client; blocking calls run in the default executor."""

    def __init__(
        self,
        client: Any = None,
        model_config: ModelConfig | None = None,
        region: str | None = None,
        profile: str | None = None,
    ):
        """
        Initialize the Bedrock client.

        Args:
            client: Optional pre-built ``bedrock-runtime`` client
            model_config: Alias → model ID resolution (env-driven when omitted)
            region: AWS region, defaults to BEDROCK_CONFIG
            profile: AWS profile, defaults to BEDROCK_CONFIG (IAM role if None)

        """
        self.model_config = model_config or ModelConfig()
        if client is None:
            session = boto3.Session(
                profile_name=profile or BEDROCK_CONFIG["aws_profile"],
                region_name=region or BEDROCK_CONFIG["aws_region"],
            )
            client = session.client("bedrock-runtime")
        self._client = client
        logger.debug("Bedrock client initialized for assistant")

    def _converse(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> ModelResponse:
        model_id = self.model_config.resolve_model_id(model)
        try:
            response = self._client.converse(
                modelId=model_id,
                messages=[{"role": "user", "content": [{"text": prompt}]}],
                inferenceConfig={"maxTokens": max_tokens, "temperature": temperature},
            )
        except (ClientError, BotoCoreError) as e:
            raise LLMError(f"Bedrock invocation failed for {model_id}: {e}") from e

        try:
            blocks = response["output"]["message"]["content"]
        except (KeyError, TypeError) as e:
            raise LLMError("Malformed Bedrock response: missing message content") from e

        text = "".join(
            block.get("text", "") for block in blocks if isinstance(block, dict)
        )
        if not text:
            raise LLMError("Malformed Bedrock response: no text content")

        usage = response.get("usage") or {}
        tokens_used = usage.get("totalTokens") or (
            usage.get("inputTokens", 0) + usage.get("outputTokens", 0)
        )
        return ModelResponse(content=text, tokens_used=tokens_used)

    async def invoke(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> ModelResponse:
        """
        Send a single-turn prompt to a model.

        Raises:
            LLMError: On API errors or malformed responses

        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(self._converse, prompt, model, max_tokens, temperature),
        )
