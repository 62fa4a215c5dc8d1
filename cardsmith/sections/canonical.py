# cardsmith/sections/canonical.py
"""Canonical section keys.

Cards, reference documents and fragments all name their sections differently
("Proposed Solution", "system_design", "Technical Architecture"). Every title
or hint is folded onto one of a small fixed set of topic keys so content can
be reconciled across sources.

Matching is case-insensitive substring containment: the first key (in
declaration order) that has a synonym contained in the input wins.
"""

from types import MappingProxyType
from typing import Optional

CANONICAL_SYNONYMS = MappingProxyType({
    "overview": (
        "overview", "summary", "introduction", "purpose", "objective", "problem",
        "context", "background", "vision", "role & scope",
    ),
    "architecture": (
        "architecture", "solution", "design", "system design", "technical architecture",
        "component",
    ),
    "interfaces": (
        "interface", "api", "endpoint", "contract", "request", "response",
        "integration", "dependenc", "error",
    ),
    "deployment": (
        "deploy", "release", "rollout", "launch", "infrastructure", "hosting",
        "environment", "scheduling", "timeline", "roadmap", "backlog", "channel",
    ),
    "testing": (
        "test", "validation", "qa", "quality", "verification", "acceptance",
    ),
    "operations": (
        "operation", "runbook", "playbook", "alert", "monitor", "incident",
        "on-call", "diagnostic", "escalation", "observability", "support",
    ),
    "data": (
        "data", "schema", "storage", "database", "pipeline", "source",
        "feature", "training", "transformation",
    ),
    "security": (
        "security", "auth", "privacy", "compliance", "permission", "access control",
        "threat",
    ),
    "risks": (
        "risk", "mitigation", "limitation", "assumption", "constraint", "consequence",
    ),
    "kpis": (
        "kpi", "metric", "key result", "success", "measure", "okr", "roi", "value",
        "outcome",
    ),
    "personas": (
        "persona", "audience", "user", "segment", "customer", "stakeholder",
        "pain point", "messag",
    ),
    "tutorials": (
        "tutorial", "guide", "how-to", "walkthrough", "onboarding", "example",
        "getting started",
    ),
    "tooling": (
        "tool", "stack", "technolog", "framework", "library", "sdk", "ci/cd",
    ),
    "governance": (
        "governance", "guideline", "policy", "standard", "decision", "raci",
        "responsible", "accountable", "consulted", "informed", "intended use",
        "principle",
    ),
})

CANONICAL_KEYS = tuple(CANONICAL_SYNONYMS)

# Per card kind slot pins, consulted when neither title nor description resolves.
CARD_SECTION_HINTS = MappingProxyType({
    "marketingCampaignBrief": MappingProxyType({
        "key message": "personas",
        "channels": "deployment",
    }),
    "okrCard": MappingProxyType({
        "objective": "overview",
        "key results": "kpis",
    }),
    "apiContract": MappingProxyType({
        "endpoint": "interfaces",
        "request": "interfaces",
        "response": "interfaces",
        "errors": "interfaces",
    }),
    "adrSummary": MappingProxyType({
        "decision": "governance",
        "context": "overview",
        "consequences": "risks",
    }),
    "modelCard": MappingProxyType({
        "dataset & features": "data",
        "training process": "data",
        "intended use": "governance",
    }),
    "operationsRunbook": MappingProxyType({
        "service overview": "overview",
        "alert playbook": "operations",
        "diagnostics": "operations",
        "escalation": "operations",
    }),
})


def resolve_canonical(title_or_hint: Optional[str]) -> Optional[str]:
    """Map an arbitrary section title or hint to a canonical key, or None."""
    if not title_or_hint:
        return None
    text = title_or_hint.lower().strip()
    if not text:
        return None
    # underscores come from machine keys such as "system_design"
    text = text.replace("_", " ")
    if text in CANONICAL_SYNONYMS:
        return text
    for key, synonyms in CANONICAL_SYNONYMS.items():
        if any(synonym in text for synonym in synonyms):
            return key
    return None


def canonical_hints(key: Optional[str]) -> frozenset[str]:
    """The key itself plus its synonyms; empty for None or unknown keys."""
    if not key or key not in CANONICAL_SYNONYMS:
        return frozenset()
    return frozenset((key, *CANONICAL_SYNONYMS[key]))


def card_hint(template_id: Optional[str], section_title: str) -> Optional[str]:
    """Canonical key pre-assigned to a section slot of a given card kind."""
    if not template_id:
        return None
    hints = CARD_SECTION_HINTS.get(template_id)
    if not hints:
        return None
    return hints.get(section_title.lower().strip())


def resolve_section_key(
    title: str,
    description: Optional[str] = None,
    template_id: Optional[str] = None,
) -> Optional[str]:
    """Resolve a template slot: title, then description, then the card-kind table."""
    return (
        resolve_canonical(title)
        or resolve_canonical(description)
        or card_hint(template_id, title)
    )
