"""
Natural-language query assistant.

Routes questions to a model chosen by the selection policy, reuses similar
answers from the response cache, and keeps a short conversation context.
External failures are returned as unsuccessful results and never cached.
"""

import asyncio
import functools
from typing import Final

from loguru import logger
from typing_extensions import NotRequired, TypedDict

from ..cache.response_cache import ResponseCache
from ..config.model_config import ModelConfig
from .context_manager import ContextManager
from .llm_client import ModelClient
from .model_selection import TaskType, select_model
from .rate_limiter import RateLimiter

DEFAULT_RATE_LIMIT_KEY: Final[str] = "assistant"


class PromptResult(TypedDict):
    """
    Outcome of a prompt dispatch.

    Fields:
        content: Response text (empty on failure)
        tokens_used: Tokens consumed (0 for cache hits and failures)
        success: Whether a response was produced
        cached: True when served from the response cache
        error: Failure message
    """

    content: str
    tokens_used: int
    success: bool
    cached: NotRequired[bool]
    error: NotRequired[str]


class QueryAssistant:
    """Cache-aware front end to an external model client."""

    def __init__(
        self,
        client: ModelClient,
        response_cache: ResponseCache | None = None,
        rate_limiter: RateLimiter | None = None,
        context: ContextManager | None = None,
        model_config: ModelConfig | None = None,
        rate_limit_key: str = DEFAULT_RATE_LIMIT_KEY,
    ):
        """
        Initialize the assistant.

        Args:
            client: Model client used for dispatch
            response_cache: Optional similarity cache for responses
            rate_limiter: Optional limiter applied to outgoing requests
            context: Conversation context; a fresh one when omitted
            model_config: Default model and generation settings
            rate_limit_key: Key the limiter tracks requests under

        """
        self.client = client
        self.response_cache = response_cache
        self.rate_limiter = rate_limiter
        self.context = context or ContextManager()
        self.model_config = model_config or ModelConfig()
        self.rate_limit_key = rate_limit_key

    async def send_prompt(
        self,
        prompt: str,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        skip_cache: bool = False,
    ) -> PromptResult:
        """
        Dispatch a prompt, serving similar earlier prompts from the cache.

        Args:
            prompt: Prompt text
            model: Model alias (configured default when omitted)
            max_tokens: Generation limit (configured default when omitted)
            temperature: Sampling temperature (configured default when omitted)
            skip_cache: Bypass the cache lookup; the new response is still cached

        Returns:
            PromptResult

        """
        model = model or self.model_config.default_model
        if max_tokens is None:
            max_tokens = self.model_config.default_max_tokens
        if temperature is None:
            temperature = self.model_config.default_temperature

        loop = asyncio.get_running_loop()

        if not skip_cache and self.response_cache is not None:
            cached = await loop.run_in_executor(
                None, self.response_cache.find, prompt, model
            )
            if cached is not None:
                return PromptResult(
                    content=cached, tokens_used=0, success=True, cached=True
                )

        if self.rate_limiter is not None and self.rate_limiter.is_rate_limited(
            self.rate_limit_key
        ):
            wait = self.rate_limiter.get_time_until_reset(self.rate_limit_key)
            return PromptResult(
                content="",
                tokens_used=0,
                success=False,
                error=f"Rate limit exceeded, retry in {wait:.0f}s",
            )

        try:
            response = await self.client.invoke(prompt, model, max_tokens, temperature)
        except Exception as e:
            logger.error(f"Model request failed ({model}): {e}")
            return PromptResult(content="", tokens_used=0, success=False, error=str(e))

        if self.response_cache is not None:
            await loop.run_in_executor(
                None,
                functools.partial(
                    self.response_cache.cache,
                    prompt,
                    model,
                    response.content,
                    response.tokens_used,
                ),
            )

        logger.info(f"✅ {model} answered ({response.tokens_used} tokens)")
        return PromptResult(
            content=response.content,
            tokens_used=response.tokens_used,
            success=True,
            cached=False,
        )

    async def ask(
        self, question: str, task_type: TaskType | str = TaskType.QUERY
    ) -> PromptResult:
        """
        Answer a question with portfolio context and conversation history.

        The exchange is added to the context only when it succeeds.
        """
        model = select_model(question, task_type)
        prompt = self.context.build_prompt(question)
        logger.debug(f"Routing {TaskType(task_type).value} question to {model}")

        result = await self.send_prompt(prompt, model=model)
        if result["success"]:
            self.context.add_message("user", question)
            self.context.add_message("assistant", result["content"])
        return result
