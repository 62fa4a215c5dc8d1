"""Generative drafting with a deterministic fallback."""

from cardsmith.drafting.client import DraftingClient, select_provider

__all__ = ["DraftingClient", "select_provider"]
