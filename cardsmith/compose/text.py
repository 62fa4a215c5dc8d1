# cardsmith/compose/text.py
"""Keyword extraction used to match content to sections."""

import re
from typing import Optional

from cardsmith.models import NodeContext

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")

MIN_TOKEN_LENGTH = 3


def keyword_set(*texts: Optional[str]) -> set[str]:
    """
    Normalize phrases into a keyword set.

    Each phrase contributes its lower-cased form plus every alphanumeric token
    longer than two characters.
    """
    keywords: set[str] = set()
    for text in texts:
        if not text:
            continue
        phrase = text.lower().strip()
        if not phrase:
            continue
        keywords.add(phrase)
        for token in _NON_ALNUM.sub(" ", phrase).split():
            if len(token) >= MIN_TOKEN_LENGTH:
                keywords.add(token)
    return keywords


def intent_keywords(node: NodeContext) -> set[str]:
    """Tokens from the node's kickoff intent fields."""
    if node.intent is None:
        return set()
    return keyword_set(*node.intent.texts())


def first_paragraph(body: str) -> str:
    """Leading paragraph of a markdown body."""
    stripped = body.strip()
    if not stripped:
        return ""
    return stripped.split("\n\n", 1)[0]


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters on a word boundary where possible."""
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    cut = text[:limit]
    space = cut.rfind(" ")
    if space > limit * 0.6:
        cut = cut[:space]
    return cut.rstrip(" ,.;:") + "..."


def opens_with(body: str, phrase: str) -> bool:
    """True when ``phrase`` occurs in the opening sentence of ``body``.

    The phrase is located before splitting, so abbreviations inside it
    ("U.S. Payments", "Acme Inc. Billing") do not end the sentence early.
    """
    paragraph = first_paragraph(body).lower()
    index = paragraph.find(phrase.lower())
    if index < 0:
        return False
    return _SENTENCE_END.search(paragraph[:index]) is None
