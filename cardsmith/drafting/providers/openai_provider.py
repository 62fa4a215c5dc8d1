# cardsmith/drafting/providers/openai_provider.py
"""OpenAI chat completion provider."""

import os
from typing import Optional

from openai import OpenAI

from cardsmith.drafting.providers.base import Completion, LLMProvider, ProviderNotConfiguredError


class OpenAIProvider(LLMProvider):
    """OpenAI-based drafting provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.4,
        max_tokens: int = 1800,
    ):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise ProviderNotConfiguredError("OPENAI_API_KEY is not set")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        # No SDK retries: one failed attempt goes straight to the fallback draft
        self._client = OpenAI(api_key=self.api_key, max_retries=0)

    @property
    def name(self) -> str:
        return "openai"

    def complete(self, system: str, user: str, timeout: float) -> Completion:
        """Request a JSON object completion."""
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            response_format={"type": "json_object"},
            timeout=timeout,
        )

        content = (response.choices[0].message.content or "").strip()
        usage = None
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return Completion(text=content, usage=usage)
