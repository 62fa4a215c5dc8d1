# cardsmith/drafting/providers/__init__.py
"""Generative text providers for card drafting."""

from cardsmith.drafting.providers.base import Completion, LLMProvider, ProviderNotConfiguredError
from cardsmith.drafting.providers.openai_provider import OpenAIProvider
from cardsmith.drafting.providers.anthropic_provider import AnthropicProvider

__all__ = [
    "Completion",
    "LLMProvider",
    "ProviderNotConfiguredError",
    "OpenAIProvider",
    "AnthropicProvider",
]
