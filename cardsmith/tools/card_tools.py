"""
Card tools
Template lookup, recommendations and content composition
"""

import logging
from typing import TYPE_CHECKING, Optional

from cardsmith.composer import CardComposer
from cardsmith.schemas import (
    CardPayload,
    NodePayload,
    RecommendResponse,
    TemplateSummary,
    ValidationError,
    parse_payload,
)
from cardsmith.templates.catalog import get_card_template as lookup_template
from cardsmith.templates.catalog import recommend_cards as recommend

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

logger = logging.getLogger(__name__)


def register_card_tools(mcp: "FastMCP", composer: CardComposer) -> None:
    """
    Register all card tools

    Args:
        mcp: FastMCP server instance
        composer: Composer shared by every call
    """

    @mcp.tool()
    def get_card_template(template_id: str) -> dict:
        """
        Get a card template: sections, default checklist and suggested reference documents.

        Args:
            template_id: Template id (e.g. technicalSpec, apiContract, modelCard)
        """
        template = lookup_template(template_id)
        if template is None:
            return {"error": f"Unknown template: {template_id}"}
        return template.to_dict()

    @mcp.tool()
    def recommend_cards(node_type: str, domain: Optional[str] = None) -> dict:
        """
        Recommend card templates for a node.

        Args:
            node_type: Node type (root, frontend, backend, requirement, doc)
            domain: Optional domain (business, product, tech, data-ai, operations)
        """
        recommendations = [
            TemplateSummary(
                id=entry["template"].id,
                label=entry["template"].label,
                description=entry["template"].description,
                card_type=entry["template"].card_type,
                reason=entry["reason"],
            )
            for entry in recommend(node_type, domain)
        ]
        return RecommendResponse(
            node_type=node_type,
            domain=domain,
            recommendations=recommendations,
            total_found=len(recommendations),
        ).model_dump()

    @mcp.tool()
    def generate_card_content(node: dict, card: dict) -> dict:
        """
        Compose content for a card attached to a node.

        Retrieves reference material, blends it into the card's sections,
        drafts them with the configured model (or a deterministic draft when
        unavailable) and scores the result.

        Args:
            node: Node payload (id, label, type, domain, summary, tags, relatedNodes, intent)
            card: Card payload (id, title, templateId, sections, checklist)

        Returns:
            Dictionary with sections, checklist, used_fallback, warnings,
            accuracy and provenance
        """
        try:
            node_payload = parse_payload(NodePayload, node)
            card_payload = parse_payload(CardPayload, card)
        except ValidationError as e:
            return {"error": str(e)}

        try:
            result = composer.compose(node_payload.to_model(), card_payload.to_model())
        except Exception as e:
            logger.error(f"generate_card_content error: {e}", exc_info=True)
            return {"error": str(e)}
        return result.to_dict()
