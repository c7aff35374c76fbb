"""
Language Model Service Abstract Base Class

Defines the interface contract for all language model implementations.
Both MockLLMService and OpenAILLMService must implement these methods,
ensuring consistent behavior regardless of which service is active.

Design Pattern: Strategy Pattern
    - Allows runtime switching between providers
    - Facilitates testing with mock implementations
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class CompletionResult:
    """
    Standardized result from a chat completion.

    Attributes:
        success: Whether the provider returned text
        text: Generated reply
        model: Model that produced the reply
        error_message: Error description if the call failed
        response_time_ms: Time taken by the provider
    """
    success: bool
    text: Optional[str] = None
    model: Optional[str] = None
    error_message: Optional[str] = None
    response_time_ms: float = 0.0


class BaseLLMService(ABC):
    """
    Abstract base class for language model services.

    Example:
        >>> service = get_llm_service()  # Returns Mock or OpenAI
        >>> result = await service.complete(
        ...     system_prompt="You are a restaurant assistant.",
        ...     user_prompt="What soups do you have?",
        ... )
        >>> if result.success:
        ...     print(result.text)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the provider.

        Returns:
            str: Provider name (e.g., "mock", "openai")
        """
        pass

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> CompletionResult:
        """
        Generate a reply to a single user prompt.

        Args:
            system_prompt: Persona and rules for the assistant
            user_prompt: The user's text

        Returns:
            CompletionResult: Standardized result object

        Note:
            Provider errors are reported through ``success=False``,
            not raised.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the provider.

        Returns:
            bool: True if the provider is reachable
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the client."""
        return None
