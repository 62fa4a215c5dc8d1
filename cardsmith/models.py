# cardsmith/models.py
"""Data types shared by the composition engine.

Inputs (nodes, cards, reference documents, fragments) arrive as plain dicts
from the canvas client or the knowledge base; ``from_dict`` accepts both the
snake_case keys used here and the camelCase keys the client sends.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SourceKind(Enum):
    """Where a piece of section content came from."""

    EXISTING_DRAFT = "existing-draft"
    REFERENCE_DOCUMENT = "reference-document"
    FRAGMENT = "fragment"
    METADATA = "metadata"


class AccuracyStatus(Enum):
    """Whether the card content was freshly generated or synthesized."""

    FRESH = "fresh"
    FALLBACK = "fallback"


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present, non-None value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _str_tuple(values: Any) -> tuple[str, ...]:
    """Coerce a list-ish value to a tuple of non-empty strings, first seen wins."""
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    seen: dict[str, None] = {}
    for value in values:
        text = _clean_str(value)
        if text and text not in seen:
            seen[text] = None
    return tuple(seen)


@dataclass(frozen=True)
class RelatedNode:
    """Lightweight reference to a neighbouring node on the canvas."""

    label: str
    type: str
    id: Optional[str] = None
    relation: Optional[str] = None
    summary: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RelatedNode":
        return cls(
            label=str(data.get("label", "")).strip(),
            type=str(data.get("type", "unknown")).strip(),
            id=_clean_str(data.get("id")),
            relation=_clean_str(data.get("relation")),
            summary=_clean_str(data.get("summary")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "relation": self.relation,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class NodeIntent:
    """Free-text kickoff answers attached to a node."""

    idea: Optional[str] = None
    problem: Optional[str] = None
    primary_audience: Optional[str] = None
    core_outcome: Optional[str] = None
    launch_scope: Optional[str] = None
    primary_risk: Optional[str] = None
    tag: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "NodeIntent":
        return cls(
            idea=_clean_str(_pick(data, "idea", "coreIdea", "core_idea")),
            problem=_clean_str(data.get("problem")),
            primary_audience=_clean_str(_pick(data, "primary_audience", "primaryAudience")),
            core_outcome=_clean_str(_pick(data, "core_outcome", "coreOutcome")),
            launch_scope=_clean_str(_pick(data, "launch_scope", "launchScope")),
            primary_risk=_clean_str(_pick(data, "primary_risk", "primaryRisk")),
            tag=_clean_str(_pick(data, "tag", "classification")),
        )

    def texts(self) -> list[str]:
        """Non-empty free-text fields in declaration order (tag excluded)."""
        values = [
            self.idea,
            self.problem,
            self.primary_audience,
            self.core_outcome,
            self.launch_scope,
            self.primary_risk,
        ]
        return [v for v in values if v]

    def to_dict(self) -> dict:
        return {
            "idea": self.idea,
            "problem": self.problem,
            "primary_audience": self.primary_audience,
            "core_outcome": self.core_outcome,
            "launch_scope": self.launch_scope,
            "primary_risk": self.primary_risk,
            "tag": self.tag,
        }


@dataclass(frozen=True)
class NodeContext:
    """The graph node a card is being composed for. Never mutated."""

    id: str
    label: str
    type: str
    domain: Optional[str] = None
    summary: Optional[str] = None
    tags: tuple[str, ...] = ()
    related_nodes: tuple[RelatedNode, ...] = ()
    intent: Optional[NodeIntent] = None

    def __post_init__(self):
        object.__setattr__(self, "tags", _str_tuple(self.tags))
        object.__setattr__(self, "related_nodes", tuple(self.related_nodes))

    @classmethod
    def from_dict(cls, data: dict) -> "NodeContext":
        related = _pick(data, "related_nodes", "relatedNodes", default=[])
        intent = data.get("intent")
        return cls(
            id=str(data.get("id") or "node"),
            label=str(data.get("label", "")).strip(),
            type=str(data.get("type") or "requirement").strip(),
            domain=_clean_str(data.get("domain")),
            summary=_clean_str(data.get("summary")),
            tags=_str_tuple(data.get("tags")),
            related_nodes=tuple(RelatedNode.from_dict(r) for r in related if isinstance(r, dict)),
            intent=NodeIntent.from_dict(intent) if isinstance(intent, dict) else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "domain": self.domain,
            "summary": self.summary,
            "tags": list(self.tags),
            "related_nodes": [r.to_dict() for r in self.related_nodes],
            "intent": self.intent.to_dict() if self.intent else None,
        }


@dataclass(frozen=True)
class SectionSpec:
    """A named slot on a card, optionally carrying a previously drafted body."""

    title: str
    description: Optional[str] = None
    body: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SectionSpec":
        return cls(
            title=str(data.get("title", "")).strip(),
            description=_clean_str(data.get("description")),
            body=data.get("body") if isinstance(data.get("body"), str) else None,
        )

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "body": self.body}


@dataclass(frozen=True)
class CardTemplate:
    """A catalogue entry describing one kind of card."""

    id: str
    label: str
    description: str
    card_type: str
    sections: tuple[SectionSpec, ...] = ()
    default_checklist: tuple[str, ...] = ()
    suggested_reference_documents: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "card_type": self.card_type,
            "sections": [{"title": s.title, "description": s.description} for s in self.sections],
            "default_checklist": list(self.default_checklist),
            "suggested_reference_documents": list(self.suggested_reference_documents),
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class CardRequest:
    """The card instance being filled in, as the editor currently holds it."""

    id: str
    title: str
    template_id: Optional[str] = None
    sections: tuple[SectionSpec, ...] = ()
    checklist: Optional[tuple[str, ...]] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CardRequest":
        checklist = data.get("checklist")
        return cls(
            id=str(data.get("id") or "card"),
            title=str(data.get("title", "")).strip(),
            template_id=_clean_str(_pick(data, "template_id", "templateId")),
            sections=tuple(
                SectionSpec.from_dict(s) for s in data.get("sections") or [] if isinstance(s, dict)
            ),
            checklist=_str_tuple(checklist) if checklist else None,
        )


@dataclass(frozen=True)
class DocSection:
    """One section of a reference document."""

    title: str
    key: str
    content: str

    @classmethod
    def from_dict(cls, data: dict) -> "DocSection":
        title = str(data.get("title", "")).strip()
        return cls(
            title=title,
            key=str(data.get("key") or title.lower().replace(" ", "_")),
            content=str(data.get("content", "")),
        )

    def to_dict(self) -> dict:
        return {"title": self.title, "key": self.key, "content": self.content}


@dataclass(frozen=True)
class ReferenceDocument:
    """A structured prior-art document (PRD) used as retrieval evidence."""

    id: str
    name: str
    description: str = ""
    tags: tuple[str, ...] = ()
    technologies: tuple[str, ...] = ()
    risk_profile: tuple[str, ...] = ()
    kpi_examples: tuple[str, ...] = ()
    sections: tuple[DocSection, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "ReferenceDocument":
        return cls(
            id=str(_pick(data, "id", "template_id", "templateId", default="")),
            name=str(data.get("name", "")).strip(),
            description=str(data.get("description") or ""),
            tags=_str_tuple(data.get("tags")),
            technologies=_str_tuple(_pick(
                data, "technologies", "stack_keywords", "suggested_technologies", default=[]
            )),
            risk_profile=_str_tuple(_pick(data, "risk_profile", "riskProfile", default=[])),
            kpi_examples=_str_tuple(_pick(data, "kpi_examples", "kpiExamples", default=[])),
            sections=tuple(
                DocSection.from_dict(s) for s in data.get("sections") or [] if isinstance(s, dict)
            ),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tags": list(self.tags),
            "technologies": list(self.technologies),
            "risk_profile": list(self.risk_profile),
            "kpi_examples": list(self.kpi_examples),
            "sections": [s.to_dict() for s in self.sections],
        }


@dataclass(frozen=True)
class ContentFragment:
    """A small typed piece of reusable content; ``content`` shape depends on ``type``."""

    id: str
    type: str
    content: Any = field(default=None, hash=False)
    scopes: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "ContentFragment":
        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type", "")).strip().lower(),
            content=data.get("content"),
            scopes=_str_tuple(_pick(data, "scopes", "for", default=[])),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "type": self.type, "content": self.content, "for": list(self.scopes)}


@dataclass(frozen=True)
class RetrievalResult:
    """What the retrieval client hands back for a filter."""

    prds: tuple[ReferenceDocument, ...] = ()
    fragments: tuple[ContentFragment, ...] = ()
    match_stage: str = "none"
    provenance: dict = field(default_factory=dict, hash=False)
    candidates: tuple[dict, ...] = ()

    @classmethod
    def empty(cls, match_stage: str = "none") -> "RetrievalResult":
        return cls(match_stage=match_stage)

    @classmethod
    def from_dict(cls, data: dict) -> "RetrievalResult":
        provenance = data.get("provenance") or {}
        return cls(
            prds=tuple(ReferenceDocument.from_dict(p) for p in data.get("prds") or []),
            fragments=tuple(ContentFragment.from_dict(f) for f in data.get("fragments") or []),
            match_stage=str(_pick(data, "match_stage", default=provenance.get("matchStage", "none"))),
            provenance=dict(provenance),
            candidates=tuple(data.get("candidates") or ()),
        )


@dataclass(frozen=True)
class RenderedSection:
    """A final card section."""

    title: str
    body: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "body": self.body}


@dataclass(frozen=True)
class DraftResult:
    """Outcome of a drafting call, generated or synthesized."""

    success: bool
    sections: tuple[RenderedSection, ...]
    checklist: tuple[str, ...] = ()
    used_fallback: bool = False
    warnings: tuple[str, ...] = ()
    token_usage: Optional[dict] = field(default=None, hash=False)
    raw_output: Optional[str] = None
    fallback_reason: Optional[str] = None


@dataclass(frozen=True)
class Coverage:
    """How much retrieved material made it into the final sections."""

    kb_sections_applied: int = 0
    fragment_sections_applied: int = 0
    metadata_sections_applied: int = 0
    prds_blended: int = 0
    fragments_applied: int = 0

    @property
    def has_retrieved_content(self) -> bool:
        return self.kb_sections_applied > 0 or self.fragment_sections_applied > 0

    def to_dict(self) -> dict:
        return {
            "kb_sections_applied": self.kb_sections_applied,
            "fragment_sections_applied": self.fragment_sections_applied,
            "metadata_sections_applied": self.metadata_sections_applied,
            "prds_blended": self.prds_blended,
            "fragments_applied": self.fragments_applied,
        }


@dataclass(frozen=True)
class AccuracyReport:
    """Deterministic confidence score attached to every compose result."""

    score: int
    status: AccuracyStatus
    factors: tuple[str, ...]
    last_generated_at: str
    quality_confidence: Optional[float] = None
    needs_review: bool = False

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "status": self.status.value,
            "factors": list(self.factors),
            "last_generated_at": self.last_generated_at,
            "quality_confidence": self.quality_confidence,
            "needs_review": self.needs_review,
        }


@dataclass(frozen=True)
class Provenance:
    """Which retrieved material was used and how it was found."""

    match_stage: str = "none"
    kb_prds: tuple[dict, ...] = ()
    fragments: tuple[dict, ...] = ()
    coverage: Coverage = field(default_factory=Coverage)
    candidates: tuple[dict, ...] = ()
    linked_reference_document: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "match_stage": self.match_stage,
            "kb_prds": [dict(p) for p in self.kb_prds],
            "fragments": [dict(f) for f in self.fragments],
            "coverage": self.coverage.to_dict(),
            "candidates": [dict(c) for c in self.candidates],
            "linked_reference_document": self.linked_reference_document,
        }


@dataclass(frozen=True)
class ComposeResult:
    """Everything a compose call returns."""

    sections: tuple[RenderedSection, ...]
    checklist: tuple[str, ...]
    used_fallback: bool
    warnings: tuple[str, ...]
    accuracy: AccuracyReport
    provenance: Provenance
    template: Optional[CardTemplate] = None

    def to_dict(self) -> dict:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "checklist": list(self.checklist),
            "used_fallback": self.used_fallback,
            "warnings": list(self.warnings),
            "accuracy": self.accuracy.to_dict(),
            "provenance": self.provenance.to_dict(),
            "template": (
                {"id": self.template.id, "label": self.template.label,
                 "description": self.template.description}
                if self.template else None
            ),
        }
