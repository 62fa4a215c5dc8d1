# cardsmith/drafting/providers/anthropic_provider.py
"""Anthropic Claude provider."""

import os
from typing import Optional

from anthropic import Anthropic

from cardsmith.drafting.providers.base import Completion, LLMProvider, ProviderNotConfiguredError


class AnthropicProvider(LLMProvider):
    """Anthropic Claude-based drafting provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-haiku-4-5-20251001",
        temperature: float = 0.4,
        max_tokens: int = 1800,
    ):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ProviderNotConfiguredError("ANTHROPIC_API_KEY is not set")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = Anthropic(api_key=self.api_key, max_retries=0)

    @property
    def name(self) -> str:
        return "anthropic"

    def complete(self, system: str, user: str, timeout: float) -> Completion:
        """Request a completion from Claude."""
        response = self._client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[
                {"role": "user", "content": user},
            ],
            system=system,
            temperature=self.temperature,
            timeout=timeout,
        )

        content = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        ).strip()
        usage = None
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }
        return Completion(text=content, usage=usage)
