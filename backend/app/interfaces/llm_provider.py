"""
LLM provider interface.

Defines the contract for the upstream streaming completion API:
ordered role/content pairs in, incremental text chunks out.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

from app.models.chat import PromptMessage


class IUpstreamStream(ABC):
    """An open streaming completion.

    Iterating yields text deltas in arrival order and ends when the provider
    signals end-of-stream. Iteration raises UpstreamUnavailableError on a
    provider error or timeout.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[str]:
        pass

    @property
    @abstractmethod
    def token_count(self) -> Optional[int]:
        """Completion tokens reported by the provider, if any."""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release the upstream connection. Safe to call more than once."""
        pass


class ILLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def get_model_name(self) -> str:
        """
        Get the human-readable model name.

        Returns:
            Model name string for logging/display
        """
        pass

    @abstractmethod
    def get_available_models(self) -> list[str]:
        """
        Get list of available model identifiers for selection.

        Returns:
            List of model identifier strings
        """
        pass

    @abstractmethod
    async def open_stream(
        self,
        messages: list[PromptMessage],
        max_tokens: int,
        model: Optional[str] = None,
    ) -> IUpstreamStream:
        """
        Issue a streaming completion request.

        Returns once the provider has accepted the request and the response
        body is ready to be read.

        Raises:
            UpstreamUnavailableError: If the request is refused or cannot be sent
        """
        pass

    async def aclose(self) -> None:
        """Release shared resources (connection pools). Default is a no-op."""
        return None
