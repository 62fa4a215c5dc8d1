# cardsmith/config.py
"""Configuration for the card composition engine."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_path(name: str) -> Optional[Path]:
    value = os.environ.get(name)
    return Path(value) if value else None


class Settings:
    """Process-wide flags read once at import time."""

    ENVIRONMENT: str = os.getenv("CARDSMITH_ENV", "development")
    DEBUG: bool = _env_flag("CARDSMITH_DEBUG", "false")
    ENABLE_LOGGING: bool = _env_flag("CARDSMITH_ENABLE_LOGGING", "true")
    SERVER_NAME: str = os.getenv("CARDSMITH_SERVER_NAME", "cardsmith")

    @classmethod
    def display(cls) -> str:
        """Display settings (for debugging)"""
        return f"""
cardsmith settings
==================
Server: {cls.SERVER_NAME}
Environment: {cls.ENVIRONMENT}
Debug: {cls.DEBUG}
Logging: {cls.ENABLE_LOGGING}
==================
"""


@dataclass
class ComposerConfig:
    """Configuration for a compose run."""

    # Timeouts (seconds)
    generation_timeout: float = 12.0
    retrieval_timeout: float = 5.0

    # Retrieval
    top_reference_documents: int = 3
    kb_limit: int = 5
    kb_root: Optional[Path] = None
    db_path: Optional[Path] = None

    # Generative service
    provider: str = "auto"  # auto | openai | anthropic | none
    openai_model: str = "gpt-4o-mini"
    anthropic_model: str = "claude-haiku-4-5-20251001"
    temperature: float = 0.4
    max_tokens: int = 1800
    excerpt_chars: int = 220

    # Embeddings
    embedding_model: str = "text-embedding-3-large"
    embedding_dimensions: int = 3072

    @classmethod
    def from_env(cls) -> "ComposerConfig":
        """Create configuration from environment variables."""
        return cls(
            generation_timeout=float(os.environ.get("CARDSMITH_GENERATION_TIMEOUT", 12.0)),
            retrieval_timeout=float(os.environ.get("CARDSMITH_RETRIEVAL_TIMEOUT", 5.0)),
            top_reference_documents=int(os.environ.get("CARDSMITH_TOP_REFERENCE_DOCUMENTS", 3)),
            kb_limit=int(os.environ.get("CARDSMITH_KB_LIMIT", 5)),
            kb_root=_env_path("CARDSMITH_KB_ROOT"),
            db_path=_env_path("CARDSMITH_DB"),
            provider=os.environ.get("CARDSMITH_PROVIDER", "auto").lower(),
            openai_model=os.environ.get("CARDSMITH_OPENAI_MODEL", "gpt-4o-mini"),
            anthropic_model=os.environ.get("CARDSMITH_ANTHROPIC_MODEL", "claude-haiku-4-5-20251001"),
            temperature=float(os.environ.get("CARDSMITH_TEMPERATURE", 0.4)),
            max_tokens=int(os.environ.get("CARDSMITH_MAX_TOKENS", 1800)),
            excerpt_chars=int(os.environ.get("CARDSMITH_EXCERPT_CHARS", 220)),
            embedding_model=os.environ.get("CARDSMITH_EMBEDDING_MODEL", "text-embedding-3-large"),
            embedding_dimensions=int(os.environ.get("CARDSMITH_EMBEDDING_DIMENSIONS", 3072)),
        )
