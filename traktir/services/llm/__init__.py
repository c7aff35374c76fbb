"""
Language Model Service Factory

Provides a single entry point for obtaining a language model client.

Usage:
    from traktir.services.llm import get_llm_service

    # Returns MockLLMService or OpenAILLMService based on ENV_MODE
    llm = get_llm_service()

    result = await llm.complete(system_prompt, "Что у вас на обед?")

Environment Switching:
    - ENV_MODE=development → MockLLMService (no API calls)
    - ENV_MODE=staging → OpenAILLMService
    - ENV_MODE=production → OpenAILLMService
"""

import logging
from functools import lru_cache

from traktir.core.config import get_settings
from traktir.services.llm.base import BaseLLMService, CompletionResult
from traktir.services.llm.mock import MockLLMService
from traktir.services.llm.openai_service import OpenAILLMService

logger = logging.getLogger(__name__)


def create_llm_service() -> BaseLLMService:
    """
    Build a new language model service for the current ENV_MODE.

    Celery tasks call this once per task because each task runs its own
    event loop and the client's connections cannot cross loops.
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("LLM Service: Using MockLLMService (development mode)")
        return MockLLMService()
    else:
        logger.info(
            f"LLM Service: Using OpenAILLMService "
            f"({settings.env_mode.value} mode)"
        )
        return OpenAILLMService()


@lru_cache()
def get_llm_service() -> BaseLLMService:
    """
    Get the configured language model service instance.

    The instance is cached so the HTTP client and its connection pool are
    shared for the lifetime of the API process.

    Returns:
        BaseLLMService: Configured service instance
    """
    return create_llm_service()


def reset_llm_service() -> None:
    """
    Clear the cached service instance.

    The next call to get_llm_service() will create a new instance.
    """
    get_llm_service.cache_clear()
    logger.debug("LLM service cache cleared")


__all__ = [
    "create_llm_service",
    "get_llm_service",
    "reset_llm_service",
    "BaseLLMService",
    "CompletionResult",
    "MockLLMService",
    "OpenAILLMService",
]
