"""
OpenAI Language Model Service

Calls an OpenAI-compatible chat completions endpoint. Base URL and key
come from configuration, so any compatible gateway can be used.

Used in staging and production (ENV_MODE=staging|production).
"""

import time
import logging
from typing import Optional

from openai import AsyncOpenAI, APIError, APITimeoutError

from traktir.core.config import get_settings
from traktir.services.llm.base import BaseLLMService, CompletionResult

logger = logging.getLogger(__name__)


class OpenAILLMService(BaseLLMService):
    """Chat completions through the ``openai`` client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
    ):
        settings = get_settings()

        self.model = model or settings.openai_model
        self.client = AsyncOpenAI(
            api_key=api_key or settings.openai_api_key,
            base_url=base_url or settings.openai_base_url,
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )

        logger.info(f"OpenAILLMService initialized (model={self.model})")

    @property
    def provider_name(self) -> str:
        return "openai"

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> CompletionResult:
        """Send one system + user message pair and return the reply."""
        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except APITimeoutError:
            elapsed = (time.time() - start_time) * 1000
            logger.error(f"OpenAI completion timed out after {elapsed:.0f}ms")
            return CompletionResult(
                success=False,
                model=self.model,
                error_message="Language model request timed out",
                response_time_ms=elapsed,
            )
        except APIError as e:
            elapsed = (time.time() - start_time) * 1000
            logger.error(f"OpenAI API error: {e}")
            return CompletionResult(
                success=False,
                model=self.model,
                error_message=str(e),
                response_time_ms=elapsed,
            )

        elapsed = (time.time() - start_time) * 1000
        text = response.choices[0].message.content if response.choices else None

        if not text:
            logger.warning("OpenAI returned an empty completion")
            return CompletionResult(
                success=False,
                model=response.model,
                error_message="Empty completion",
                response_time_ms=elapsed,
            )

        logger.info(f"OpenAI completion generated ({elapsed:.0f}ms, model={response.model})")
        return CompletionResult(
            success=True,
            text=text,
            model=response.model,
            response_time_ms=elapsed,
        )

    async def health_check(self) -> bool:
        """Check that the endpoint answers a model listing."""
        try:
            await self.client.models.list()
            return True
        except APIError as e:
            logger.error(f"OpenAI health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.close()
