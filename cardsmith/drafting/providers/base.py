# cardsmith/drafting/providers/base.py
"""Abstract base class for generative text providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class ProviderNotConfiguredError(Exception):
    """No credentials are available for the requested provider."""
    pass


@dataclass(frozen=True)
class Completion:
    """Raw model output plus token accounting."""

    text: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Abstract base class for chat-style completion providers."""

    @abstractmethod
    def complete(self, system: str, user: str, timeout: float) -> Completion:
        """
        Run a single completion.

        Args:
            system: System instruction
            user: User message
            timeout: Seconds before the HTTP call is aborted

        Returns:
            Completion with the model's text

        Raises:
            Any SDK error; callers decide how to degrade
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging (e.g., 'openai', 'anthropic')."""
        pass
