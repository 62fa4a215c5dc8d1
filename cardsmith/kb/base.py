# cardsmith/kb/base.py
"""Retrieval client contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from cardsmith.models import NodeContext, RetrievalResult

DEFAULT_LIMIT = 5
MAX_LIMIT = 20


def clamp_limit(limit: Optional[int]) -> int:
    """Clamp a requested result count to 1..20 (default 5)."""
    if limit is None:
        return DEFAULT_LIMIT
    return min(max(1, int(limit)), MAX_LIMIT)


@dataclass(frozen=True)
class KBFilters:
    """What to look for in the knowledge base."""

    node_types: tuple[str, ...] = ()
    domains: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    limit: int = DEFAULT_LIMIT
    query: Optional[str] = None

    @classmethod
    def for_node(cls, node: NodeContext, limit: int = DEFAULT_LIMIT) -> "KBFilters":
        """Filters derived from a node: its type, domain, tags and intent text."""
        query_parts = [node.label, node.summary or ""]
        if node.intent is not None:
            query_parts.extend(node.intent.texts())
        tags = list(node.tags)
        if node.intent is not None and node.intent.tag:
            tags.append(node.intent.tag)
        return cls(
            node_types=(node.type,) if node.type else (),
            domains=(node.domain,) if node.domain else (),
            tags=tuple(dict.fromkeys(tags)),
            limit=clamp_limit(limit),
            query=" ".join(p for p in query_parts if p).strip() or None,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "KBFilters":
        return cls(
            node_types=tuple(data.get("node_types") or ()),
            domains=tuple(data.get("domains") or ()),
            tags=tuple(data.get("tags") or ()),
            limit=clamp_limit(data.get("limit")),
            query=data.get("query") or None,
        )

    def to_dict(self) -> dict:
        return {
            "node_types": list(self.node_types),
            "domains": list(self.domains),
            "tags": list(self.tags),
            "limit": self.limit,
            "query": self.query,
        }


class RetrievalClient(ABC):
    """Anything that can return ranked reference documents and fragments."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs and provenance."""
        pass

    @abstractmethod
    def compose(self, filters: KBFilters) -> RetrievalResult:
        """
        Retrieve content for a filter.

        Args:
            filters: Node types, domains and tags to match

        Returns:
            RetrievalResult with prds ranked most relevant first
        """
        pass
