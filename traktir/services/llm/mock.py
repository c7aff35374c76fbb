"""
Mock Language Model Service

Simulates an OpenAI-style chat completion without network calls.
Used in development mode (ENV_MODE=development) to exercise the AI chat
flow, including token accounting, without an API key.

Behavior:
    - Simulates response latency
    - Fails at a configurable rate (default: never)
    - Echoes a short Russian reply that mentions the prompt
"""

import asyncio
import random
import logging

from traktir.services.llm.base import BaseLLMService, CompletionResult

logger = logging.getLogger(__name__)


class MockLLMService(BaseLLMService):
    """
    Mock implementation of the language model service.

    Attributes:
        failure_rate: Probability of a simulated provider error (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
    """

    MODEL = "mock-assistant"

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.1,
        max_latency: float = 0.4,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency

        logger.info(
            f"MockLLMService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        latency = random.uniform(self.min_latency, self.max_latency)
        await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> CompletionResult:
        """Return a canned reply after a simulated delay."""
        response_time = await self._simulate_latency()

        if self._should_fail():
            logger.warning("Mock completion failed (simulated)")
            return CompletionResult(
                success=False,
                model=self.MODEL,
                error_message="Simulated provider failure",
                response_time_ms=response_time,
            )

        text = f"Спасибо за вопрос! Вы спросили: «{user_prompt.strip()}». Наш повар рекомендует борщ."
        logger.info(f"Mock completion generated ({response_time:.0f}ms)")

        return CompletionResult(
            success=True,
            text=text,
            model=self.MODEL,
            response_time_ms=response_time,
        )

    async def health_check(self) -> bool:
        return True
