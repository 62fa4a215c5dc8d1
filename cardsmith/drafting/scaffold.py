# cardsmith/drafting/scaffold.py
"""Deterministic section drafts used when generated content is unavailable.

Every body produced here is a pure function of the node and the section
title, so repeated compose calls give identical text.
"""

from typing import Iterable, Optional

from cardsmith.compose.text import opens_with
from cardsmith.models import NodeContext, ReferenceDocument, RenderedSection, SectionSpec

UI_NODE_TYPES = frozenset({"frontend", "ui", "page", "screen", "component"})


def _label(node: NodeContext) -> str:
    return node.label or "This node"


def _tag_phrase(node: NodeContext, limit: int = 4) -> str:
    return ", ".join(node.tags[:limit])


def _related_phrase(node: NodeContext, limit: int = 3) -> str:
    return ", ".join(r.label for r in node.related_nodes[:limit] if r.label)


def lead_in(node: NodeContext) -> str:
    """One paragraph naming the node, its type, domain, tags and primary risk."""
    sentence = f"{_label(node)} is the {node.type} node"
    if node.domain:
        sentence += f" in the {node.domain} domain"
    sentence += "."
    parts = [sentence]
    if node.tags:
        parts.append(f"It is tagged {_tag_phrase(node)}.")
    if node.intent is not None and node.intent.primary_risk:
        parts.append(f"Primary risk to keep in view: {node.intent.primary_risk}.")
    return " ".join(parts)


def personalize(node: NodeContext, body: str) -> str:
    """Prepend the lead-in unless the opening sentence already names the node."""
    if not body.strip():
        return lead_in(node)
    if not node.label or opens_with(body, node.label):
        return body
    return f"{lead_in(node)}\n\n{body}"


# ─────────────────────────────────────────────────────────────
# Title-keyword scaffolds
# ─────────────────────────────────────────────────────────────

def _overview(node: NodeContext) -> str:
    label = _label(node)
    scope = node.summary or f"It owns the {node.type} responsibilities described on this card."
    outcomes = [
        f"{label} has a clearly stated owner and purpose",
        "Success criteria are agreed before build starts",
    ]
    if node.intent is not None and node.intent.core_outcome:
        outcomes.insert(0, node.intent.core_outcome)
    return (
        f"{label} summary for the {node.domain or 'project'} blueprint.\n\n"
        f"**Role & Scope**\n{scope}\n\n"
        f"**Key Outcomes**\n" + "\n".join(f"- {o}" for o in outcomes)
    )


def _architecture(node: NodeContext) -> str:
    label = _label(node)
    if node.type.lower() in UI_NODE_TYPES:
        return (
            f"{label} is composed as a set of UI views and shared components.\n\n"
            "**UI Composition**\n"
            "- Top-level views and the routes that reach them\n"
            "- Shared components and where their state lives\n"
            "- Loading, empty and error states for each view\n\n"
            "**Data Flow**\n"
            "- Which backend calls each view depends on\n"
            "- Client-side caching and invalidation rules"
        )
    related = _related_phrase(node)
    collaborators = f"- Collaborators: {related}\n" if related else ""
    return (
        f"{label} is structured around a small set of service responsibilities.\n\n"
        "**Service Responsibilities**\n"
        f"- Core operations {label} performs and the data it owns\n"
        f"{collaborators}"
        "- Boundaries: what is explicitly out of scope\n\n"
        "**Runtime Concerns**\n"
        "- Scaling and concurrency expectations\n"
        "- Failure modes and how they degrade"
    )


def _interfaces(node: NodeContext) -> str:
    label = _label(node)
    return (
        f"{label} exposes its behaviour to consumers through explicit contracts.\n\n"
        "**Consumers**\n"
        f"- Who calls {label} and for what\n\n"
        "**Contract**\n"
        "- Operations, inputs and outputs\n"
        "- Error responses and retry guidance\n"
        "- Versioning and deprecation policy"
    )


def _dependencies(node: NodeContext) -> str:
    label = _label(node)
    related = _related_phrase(node)
    upstream = f"- {related}" if related else "- Services and data sources this node reads from"
    return (
        f"{label} depends on the following systems.\n\n"
        f"**Upstream**\n{upstream}\n\n"
        "**Downstream**\n"
        f"- Consumers affected when {label} changes or fails"
    )


def _testing(node: NodeContext) -> str:
    label = _label(node)
    return (
        f"{label} is validated before and after release.\n\n"
        "**Quality Strategy**\n"
        "- Unit coverage for core rules\n"
        "- Integration checks against real collaborators\n"
        "- Acceptance criteria traced to the checklist\n\n"
        "**Monitoring**\n"
        "- Signals that show the node is healthy in production\n"
        "- Alert thresholds and who responds"
    )


def _roadmap(node: NodeContext) -> str:
    label = _label(node)
    return (
        f"{label} delivery plan.\n\n"
        "**Deliverables**\n"
        "- First usable increment\n"
        "- Follow-up increments in priority order\n\n"
        "**Risks**\n"
        "- Dependencies that could slip the plan\n"
        "- Open decisions that block later work"
    )


def _generic(node: NodeContext, title: str, description: Optional[str]) -> str:
    label = _label(node)
    focus = description or f"the {title.lower()} of this card"
    return (
        f"{label}: {title}.\n\n"
        f"**Guidance**\n"
        f"- Capture {focus}\n"
        f"- Note decisions, owners and open questions for {label}\n"
        "- Link supporting material from related nodes"
    )


# (keywords, builder) in priority order; the first keyword contained in the title wins
_SCAFFOLDS = (
    (("overview", "summary"), _overview),
    (("architecture", "design"), _architecture),
    (("interface",), _interfaces),
    (("dependenc",), _dependencies),
    (("testing", "validation", "test"), _testing),
    (("roadmap", "backlog"), _roadmap),
)


def intent_block(node: NodeContext) -> Optional[str]:
    """Extra block keyed on the node's intent classification tag."""
    intent = node.intent
    if intent is None or not intent.tag:
        return None
    tag = intent.tag.lower()
    label = _label(node)

    if "persona" in tag or "audience" in tag:
        lines = [f"- Primary audience: {intent.primary_audience or 'to be confirmed'}"]
        if intent.problem:
            lines.append(f"- Pain point: {intent.problem}")
        lines.append(f"- What {label} must make obvious to them on first contact")
        return "**Persona Snapshot**\n" + "\n".join(lines)
    if "outcome" in tag or "kpi" in tag:
        lines = [f"- Target outcome: {intent.core_outcome or 'to be defined'}"]
        lines.append("- Leading indicator reviewed weekly")
        lines.append(f"- Guardrail metric that must not regress while {label} ships")
        return "**Outcome Guardrails**\n" + "\n".join(lines)
    if "launch" in tag or "scope" in tag:
        lines = [f"- Launch scope: {intent.launch_scope or 'to be agreed'}"]
        lines.append("- Explicitly deferred items")
        lines.append("- Go/no-go owner and date")
        return "**Launch Commitments**\n" + "\n".join(lines)
    if "risk" in tag:
        risk = intent.primary_risk or "not yet named"
        return (
            f"**Primary Risk**\n{risk.rstrip('.')}. Track it as a first-class item on {label}: "
            "assign an owner, define the early warning signal and agree the fallback."
        )
    return None


def scaffold_section(node: NodeContext, title: str, description: Optional[str] = None) -> str:
    """Hand-composed body for a section title, extended with the intent block."""
    lowered = title.lower()
    body = None
    for keywords, builder in _SCAFFOLDS:
        if any(keyword in lowered for keyword in keywords):
            body = builder(node)
            break
    if body is None:
        body = _generic(node, title, description)

    block = intent_block(node)
    if block:
        body = f"{body}\n\n{block}"
    return body


def match_reference_section(title: str, documents: Iterable[ReferenceDocument]) -> Optional[str]:
    """Content of the first reference section whose title equals, contains or is contained in ``title``."""
    wanted = title.lower().strip()
    if not wanted:
        return None
    for document in documents:
        for section in document.sections:
            candidate = section.title.lower().strip()
            if not candidate or not section.content.strip():
                continue
            if candidate == wanted or wanted in candidate or candidate in wanted:
                return f"**{document.name}:** {section.content.strip()}"
    return None


def synthesize_sections(
    node: NodeContext,
    card_sections: Iterable[SectionSpec],
    reference_context: Iterable[ReferenceDocument] = (),
    existing_sections: Optional[dict] = None,
) -> list[RenderedSection]:
    """
    Deterministic bodies for every section.

    Preference per section: existing draft, matching reference section,
    scaffold. Every body is personalized with the node label.
    """
    existing_sections = existing_sections or {}
    documents = list(reference_context)
    sections = []
    for spec in card_sections:
        body = (existing_sections.get(spec.title) or spec.body or "").strip()
        if not body:
            body = match_reference_section(spec.title, documents) or ""
        if not body:
            body = scaffold_section(node, spec.title, spec.description)
        sections.append(RenderedSection(
            title=spec.title,
            body=personalize(node, body),
            description=spec.description,
        ))
    return sections
