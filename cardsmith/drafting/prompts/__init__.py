# cardsmith/drafting/prompts/__init__.py
"""Card drafting prompts shipped as package data.

``card_system`` holds the response contract; ``card_user`` is a
``str.format`` template filled per node and card.
"""

from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).parent
PROMPT_SUFFIX = ".txt"


def list_prompts() -> list[str]:
    """Names of the packaged prompts, sorted."""
    return sorted(path.stem for path in PROMPTS_DIR.glob(f"*{PROMPT_SUFFIX}"))


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Prompt text by name; cached since the files never change at runtime."""
    path = PROMPTS_DIR / f"{name}{PROMPT_SUFFIX}"
    if not path.is_file():
        available = ", ".join(list_prompts()) or "none"
        raise ValueError(f"Prompt not found: {name} (available: {available})")
    return path.read_text(encoding="utf-8")
