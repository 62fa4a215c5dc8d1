"""
Knowledge base tools
Direct retrieval and embedding service status
"""

import logging
from typing import TYPE_CHECKING, Optional

from cardsmith.embeddings import EmbeddingService
from cardsmith.kb.base import RetrievalClient
from cardsmith.kb.file_store import KnowledgeBaseError
from cardsmith.schemas import KBComposePayload, ValidationError, parse_payload

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

logger = logging.getLogger(__name__)


def register_kb_tools(
    mcp: "FastMCP",
    retrieval: Optional[RetrievalClient],
    embeddings: EmbeddingService,
) -> None:
    """
    Register knowledge base tools

    Args:
        mcp: FastMCP server instance
        retrieval: Retrieval client, or None when no knowledge base is configured
        embeddings: Embedding service used for status reporting
    """

    @mcp.tool()
    def kb_compose(
        node_types: Optional[list[str]] = None,
        domains: Optional[list[str]] = None,
        tags: Optional[list[str]] = None,
        limit: int = 5,
        query: Optional[str] = None,
    ) -> dict:
        """
        Retrieve reference documents and fragments for a filter.

        Matching relaxes from all filters, to ignoring tags, to catalogue
        order; the stage used is reported as match_stage.

        Args:
            node_types: Node types to match
            domains: Domains to match
            tags: Tags to match
            limit: Maximum documents (1-20, default 5)
            query: Optional text for semantic re-ranking
        """
        if retrieval is None:
            return {"error": "No knowledge base configured (set CARDSMITH_KB_ROOT)"}
        try:
            payload = parse_payload(KBComposePayload, {
                "node_types": node_types or [],
                "domains": domains or [],
                "tags": tags or [],
                "limit": limit,
                "query": query,
            })
            result = retrieval.compose(payload.to_filters())
        except (ValidationError, KnowledgeBaseError) as e:
            return {"error": str(e)}

        return {
            "match_stage": result.match_stage,
            "selected_count": len(result.prds),
            "prds": [doc.to_dict() for doc in result.prds],
            "fragments": [fragment.to_dict() for fragment in result.fragments],
            "candidates": list(result.candidates),
            "provenance": result.provenance,
        }

    @mcp.tool()
    def embedding_info() -> dict:
        """Embedding model, dimensionality and whether credentials are configured."""
        return embeddings.model_info()
