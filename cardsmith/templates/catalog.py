# cardsmith/templates/catalog.py
"""Card template catalogue and node-to-card recommendation rules.

Read-only registry: templates are built once at import time and looked up by
id. Recommendation rules pick templates for a node by its type and domain.
"""

from types import MappingProxyType
from typing import Optional

from cardsmith.models import CardTemplate, SectionSpec


# =============================================================================
# CARD LIBRARY
# =============================================================================

_CARD_LIBRARY = {
    "marketingCampaignBrief": {
        "label": "Campaign Brief",
        "description": "Objectives, ICP, messaging, channels, timeline, KPIs.",
        "card_type": "markdown",
        "suggested_reference_documents": ["marketing_campaign_prd", "Product Hunt PRD Template"],
        "sections": ["Objective", "Target Audience", "Key Message", "Channels", "Timeline", "KPIs"],
        "tags": ["marketing", "brief"],
    },
    "launchChecklist": {
        "label": "Launch Checklist",
        "description": "Sequenced launch readiness tasks.",
        "card_type": "checklist",
        "suggested_reference_documents": ["marketing_campaign_prd"],
        "checklist": [
            "Finalize messaging and creative assets",
            "Enable landing page and tracking",
            "Notify stakeholders and support teams",
            "Publish announcement content",
            "Monitor KPIs and feedback",
        ],
        "tags": ["marketing", "launch"],
    },
    "personaSnapshot": {
        "label": "Persona Snapshot",
        "description": "Quick overview of target persona and messaging cues.",
        "card_type": "brief",
        "suggested_reference_documents": ["marketing_campaign_prd"],
        "sections": ["Segment", "Pain Points", "Desired Outcomes", "Key Messages"],
        "tags": ["marketing", "persona"],
    },
    "businessCase": {
        "label": "Business Case",
        "description": "Problem, solution, ROI, risks, assumptions.",
        "card_type": "markdown",
        "suggested_reference_documents": ["general_software_010", "internal_tool_009"],
        "sections": [
            "Problem Statement", "Proposed Solution", "Value / ROI", "Assumptions",
            "Risks & Mitigations",
        ],
        "tags": ["business", "strategy"],
    },
    "okrCard": {
        "label": "OKR Card",
        "description": "Objective and key results tracker.",
        "card_type": "brief",
        "suggested_reference_documents": ["general_software_010"],
        "sections": ["Objective", "Key Results"],
        "tags": ["business", "program"],
    },
    "raciMatrix": {
        "label": "RACI Roles",
        "description": "Responsible, Accountable, Consulted, Informed roles.",
        "card_type": "markdown",
        "suggested_reference_documents": ["internal_tool_009"],
        "sections": ["Responsible", "Accountable", "Consulted", "Informed"],
        "tags": ["business", "program"],
    },
    "technicalSpec": {
        "label": "Technical Spec",
        "description": "Architecture context, interface, dependencies, testing.",
        "card_type": "markdown",
        "suggested_reference_documents": [
            "backend_api_001", "go_microservices_011", "backend_fastapi_007",
        ],
        "sections": ["Overview", "Architecture", "Interfaces", "Dependencies", "Testing & Validation"],
        "tags": ["tech", "engineering"],
    },
    "apiContract": {
        "label": "API Contract",
        "description": "Endpoint contract with request/response and error handling.",
        "card_type": "markdown",
        "suggested_reference_documents": ["backend_api_001", "backend_fastapi_007"],
        "sections": ["Endpoint", "Request", "Response", "Errors"],
        "tags": ["tech", "api"],
    },
    "adrSummary": {
        "label": "Decision Summary",
        "description": "Summary of latest architectural decision record.",
        "card_type": "markdown",
        "suggested_reference_documents": ["go_microservices_011"],
        "sections": ["Decision", "Context", "Consequences"],
        "tags": ["tech", "architecture"],
    },
    "dataPipelineSpec": {
        "label": "Data Pipeline Spec",
        "description": "Sources, transformations, data quality, scheduling.",
        "card_type": "markdown",
        "suggested_reference_documents": ["data_pipeline_004"],
        "sections": ["Sources", "Transformations", "Quality Checks", "Scheduling & Ops"],
        "tags": ["data", "mlops"],
    },
    "modelCard": {
        "label": "Model Card",
        "description": "Dataset, training, metrics, intended use, limitations.",
        "card_type": "markdown",
        "suggested_reference_documents": ["data_science_playbook_013", "microsoft_mlopstemplate"],
        "sections": [
            "Dataset & Features", "Training Process", "Metrics", "Intended Use",
            "Limitations & Risks",
        ],
        "tags": ["data", "mlops"],
    },
    "monitoringChecklist": {
        "label": "Monitoring Checklist",
        "description": "Operational monitoring and alerting steps.",
        "card_type": "checklist",
        "suggested_reference_documents": ["thoughtworks_mlop_platforms"],
        "checklist": [
            "Configure data/feature drift alerts",
            "Set up performance dashboards",
            "Define retrain cadence",
            "Document rollback plan",
        ],
        "tags": ["data", "mlops", "operations"],
    },
    "operationsRunbook": {
        "label": "Runbook",
        "description": "On-call procedures and diagnostics.",
        "card_type": "markdown",
        "suggested_reference_documents": ["internal_tool_009", "go_microservices_011"],
        "sections": ["Service Overview", "Dependencies", "Alert Playbook", "Diagnostics", "Escalation"],
        "tags": ["operations", "runbook"],
    },
}

# Node type / domain rules; a missing key matches anything.
NODE_CARD_RULES = (
    {"node_types": ("doc",), "domains": ("business", "product"),
     "cards": ("marketingCampaignBrief", "launchChecklist", "personaSnapshot")},
    {"node_types": ("doc",), "domains": ("business",),
     "cards": ("businessCase", "okrCard", "raciMatrix")},
    {"node_types": ("backend", "requirement"), "domains": ("tech",),
     "cards": ("technicalSpec", "apiContract", "adrSummary")},
    {"node_types": ("frontend",), "domains": ("product", "tech"),
     "cards": ("technicalSpec", "launchChecklist")},
    {"node_types": ("requirement",), "domains": ("data-ai",),
     "cards": ("dataPipelineSpec", "modelCard", "monitoringChecklist")},
    {"node_types": ("requirement",), "domains": ("operations",),
     "cards": ("operationsRunbook", "monitoringChecklist")},
)


def _build_template(template_id: str, raw: dict) -> CardTemplate:
    return CardTemplate(
        id=template_id,
        label=raw["label"],
        description=raw["description"],
        card_type=raw["card_type"],
        sections=tuple(SectionSpec(title=title) for title in raw.get("sections", [])),
        default_checklist=tuple(raw.get("checklist", [])),
        suggested_reference_documents=tuple(raw.get("suggested_reference_documents", [])),
        tags=tuple(raw.get("tags", [])),
    )


CARD_TEMPLATES = MappingProxyType({
    template_id: _build_template(template_id, raw)
    for template_id, raw in _CARD_LIBRARY.items()
})


def get_card_template(template_id: Optional[str]) -> Optional[CardTemplate]:
    """Look up a card template by id; None when unknown."""
    if not template_id:
        return None
    return CARD_TEMPLATES.get(template_id)


def list_card_templates() -> list[CardTemplate]:
    """All templates in catalogue order."""
    return list(CARD_TEMPLATES.values())


def _rule_matches(rule: dict, node_type: str, domain: Optional[str]) -> bool:
    node_types = rule.get("node_types")
    domains = rule.get("domains")
    node_ok = node_type in node_types if node_types else True
    if domains:
        domain_ok = domain in domains if domain else False
    else:
        domain_ok = True
    return node_ok and domain_ok


def recommend_cards(node_type: str, domain: Optional[str] = None) -> list[dict]:
    """
    Recommend card templates for a node.

    Args:
        node_type: Canvas node type (root, frontend, backend, requirement, doc)
        domain: Optional domain ring (business, product, tech, data-ai, operations)

    Returns:
        List of {"template": CardTemplate, "reason": str | None}, rule order,
        each template at most once
    """
    node_type = (node_type or "").lower().strip()
    domain = domain.lower().strip() if domain else None

    template_ids: dict[str, None] = {}
    for rule in NODE_CARD_RULES:
        if _rule_matches(rule, node_type, domain):
            for card_id in rule["cards"]:
                template_ids.setdefault(card_id, None)

    recommendations = []
    for template_id in template_ids:
        template = CARD_TEMPLATES.get(template_id)
        if template is None:
            continue
        reason = None
        if template.suggested_reference_documents:
            reason = (
                f"Aligned with {', '.join(template.suggested_reference_documents)} template(s)."
            )
        recommendations.append({"template": template, "reason": reason})
    return recommendations


def generate_card_drafts(
    node_type: str,
    domain: Optional[str] = None,
    template_ids: Optional[list[str]] = None,
) -> list[dict]:
    """Empty card drafts for explicit template ids, or for the recommendations."""
    if template_ids:
        entries = [
            {"template": CARD_TEMPLATES[tid], "reason": None}
            for tid in template_ids
            if tid in CARD_TEMPLATES
        ]
    else:
        entries = recommend_cards(node_type, domain)

    drafts = []
    for entry in entries:
        template: CardTemplate = entry["template"]
        drafts.append({
            "template_id": template.id,
            "title": template.label,
            "type": template.card_type,
            "description": template.description,
            "sections": [{"title": s.title, "body": ""} for s in template.sections],
            "checklist": list(template.default_checklist),
            "suggested_reference_documents": list(template.suggested_reference_documents),
            "tags": list(template.tags),
            "reason": entry["reason"],
        })
    return drafts
