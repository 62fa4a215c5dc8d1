# cardsmith/compose/aggregator.py
"""Section Aggregator - blend retrieved knowledge into card sections.

Flow:
1. Seed one aggregate per card section slot (canonical key, hints, keywords),
   recording any text the author already drafted.
2. Route every section of the top ranked reference documents to its best
   scoring aggregate, opening a new aggregate when nothing scores positively.
3. Render typed fragments to markdown and route them the same way;
   acceptance criteria go to the checklist instead.
4. Route the top document's metadata lists (tags, technologies, risks, KPIs).
5. Render each aggregate: de-duplicate, then join in insertion order.

The routing is a greedy nearest-bucket classifier. Output depends only on the
inputs and their order.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from cardsmith.compose.fragments import render_fragment
from cardsmith.compose.text import intent_keywords, keyword_set
from cardsmith.models import (
    Coverage,
    NodeContext,
    ReferenceDocument,
    RenderedSection,
    RetrievalResult,
    SectionSpec,
    SourceKind,
)
from cardsmith.sections.canonical import canonical_hints, resolve_canonical, resolve_section_key

logger = logging.getLogger(__name__)

# Scoring weights
EXACT_CANONICAL = 12
HINT_MATCH = 6
KEYWORD_CANONICAL = 2
SHARED_KEYWORD = 2
MAX_SHARED_KEYWORDS = 3
EMPTY_BUCKET_BONUS = 2

BLEND_SEPARATOR = "\n\n---\n\n"

DEFAULT_TOP_DOCUMENTS = 3

# (attribute, label, canonical key) for reference-document metadata lists
METADATA_FIELDS = (
    ("tags", "Tags", "overview"),
    ("technologies", "Technology Keywords", "tooling"),
    ("risk_profile", "Risk Profile", "risks"),
    ("kpi_examples", "KPI Examples", "kpis"),
)


@dataclass(frozen=True)
class Contribution:
    """One piece of body text and where it came from."""

    body: str
    source: SourceKind
    source_id: Optional[str] = None
    source_name: Optional[str] = None
    detail: Optional[str] = None

    @property
    def signature(self) -> tuple[str, str]:
        return (self.source.value, self.body.strip())


@dataclass
class SectionAggregate:
    """Working bucket for one rendered section."""

    title: str
    canonical: Optional[str]
    hints: set[str]
    keywords: set[str]
    description: Optional[str] = None
    declared: bool = True
    contributions: list[Contribution] = field(default_factory=list)

    def count(self, source: SourceKind) -> int:
        return sum(1 for c in self.contributions if c.source is source)

    def add(self, contribution: Contribution) -> None:
        self.contributions.append(contribution)

    def unique_contributions(self) -> list[Contribution]:
        seen: set[tuple[str, str]] = set()
        unique = []
        for contribution in self.contributions:
            if not contribution.body.strip() or contribution.signature in seen:
                continue
            seen.add(contribution.signature)
            unique.append(contribution)
        return unique

    def render(self) -> str:
        bodies = [c.body.strip() for c in self.unique_contributions()]
        if not bodies:
            return ""
        if len(bodies) == 1:
            return bodies[0]
        return BLEND_SEPARATOR.join(bodies)


@dataclass(frozen=True)
class AggregationOutcome:
    """Rendered sections plus bookkeeping about what was used."""

    sections: tuple[RenderedSection, ...]
    checklist: tuple[str, ...]
    coverage: Coverage
    kb_prds: tuple[dict, ...] = ()
    fragments: tuple[dict, ...] = ()
    author_drafts: dict = field(default_factory=dict, hash=False)


def score_aggregate(aggregate: SectionAggregate, canonical: Optional[str], keywords: set[str]) -> int:
    """
    Score how well a candidate fits an aggregate.

    +12 exact canonical match, +6 canonical in the aggregate's hints, +2
    canonical in its keywords, +2 per shared keyword (at most three). When any
    of that applies, an aggregate without reference-document content gets +2
    and one that has some loses 1 per existing reference contribution.
    """
    relevance = 0
    if canonical:
        if aggregate.canonical == canonical:
            relevance += EXACT_CANONICAL
        if canonical in aggregate.hints:
            relevance += HINT_MATCH
        if canonical in aggregate.keywords:
            relevance += KEYWORD_CANONICAL
    shared = len(aggregate.keywords & keywords)
    relevance += SHARED_KEYWORD * min(MAX_SHARED_KEYWORDS, shared)

    if relevance <= 0:
        return 0

    existing = aggregate.count(SourceKind.REFERENCE_DOCUMENT)
    balance = EMPTY_BUCKET_BONUS if existing == 0 else -existing
    return relevance + balance


def _merge_checklists(*lists: Iterable[str]) -> tuple[str, ...]:
    """Union preserving first appearance; comparison ignores case and padding."""
    seen: set[str] = set()
    merged = []
    for items in lists:
        for item in items or ():
            text = str(item).strip()
            key = text.casefold()
            if text and key not in seen:
                seen.add(key)
                merged.append(text)
    return tuple(merged)


class SectionAggregator:
    """
    Builds per-section markdown from a node, its card slots and retrieved content.

    One instance per compose call; the aggregate pool is discarded afterwards.
    """

    def __init__(self, node: NodeContext, template_id: Optional[str] = None,
                 top_documents: int = DEFAULT_TOP_DOCUMENTS):
        self.node = node
        self.template_id = template_id
        self.top_documents = top_documents
        self.aggregates: list[SectionAggregate] = []
        self._intent_keywords = intent_keywords(node)

    # ─────────────────────────────────────────────────────────────
    # Aggregate pool
    # ─────────────────────────────────────────────────────────────

    def _new_aggregate(self, title: str, canonical: Optional[str], keywords: set[str],
                       description: Optional[str] = None, declared: bool = True) -> SectionAggregate:
        hints = set(canonical_hints(canonical))
        hints.add(title.lower().strip())
        aggregate = SectionAggregate(
            title=title,
            canonical=canonical,
            hints=hints,
            keywords=keyword_set(title, description, *sorted(hints)) | keywords | self._intent_keywords,
            description=description,
            declared=declared,
        )
        self.aggregates.append(aggregate)
        return aggregate

    def seed(self, sections: Iterable[SectionSpec]) -> None:
        """Create one aggregate per declared slot and record existing drafts."""
        for spec in sections:
            canonical = resolve_section_key(spec.title, spec.description, self.template_id)
            aggregate = self._new_aggregate(spec.title, canonical, set(), description=spec.description)
            if spec.body and spec.body.strip():
                aggregate.add(Contribution(
                    body=spec.body.strip(),
                    source=SourceKind.EXISTING_DRAFT,
                ))

    def route(self, canonical: Optional[str], keywords: set[str], title: str) -> SectionAggregate:
        """Pick the best aggregate for a candidate, creating one when none fits."""
        if not self.aggregates:
            return self._new_aggregate(title, canonical, keywords, declared=False)

        best = self.aggregates[0]
        best_score = score_aggregate(best, canonical, keywords)
        for aggregate in self.aggregates[1:]:
            score = score_aggregate(aggregate, canonical, keywords)
            if score > best_score:
                best, best_score = aggregate, score

        if best_score <= 0 and any(a.contributions for a in self.aggregates):
            logger.debug(f"No section fits '{title}' (canonical={canonical}); opening a new one")
            return self._new_aggregate(title, canonical, keywords, declared=False)
        return best

    # ─────────────────────────────────────────────────────────────
    # Sources
    # ─────────────────────────────────────────────────────────────

    def add_reference_documents(self, documents: Iterable[ReferenceDocument]) -> None:
        for document in documents:
            for section in document.sections:
                content = section.content.strip()
                if not content:
                    continue
                canonical = resolve_canonical(section.key) or resolve_canonical(section.title)
                keywords = keyword_set(section.title, section.key.replace("_", " "))
                target = self.route(canonical, keywords, section.title or section.key)
                target.add(Contribution(
                    body=f"**{document.name}:** {content}",
                    source=SourceKind.REFERENCE_DOCUMENT,
                    source_id=document.id,
                    source_name=document.name,
                    detail=section.key,
                ))

    def add_fragments(self, fragments) -> tuple[tuple[str, ...], list[dict]]:
        """Route rendered fragments; returns (checklist items, fragments used)."""
        checklist: list[str] = []
        used: list[dict] = []
        for fragment in fragments:
            rendered = render_fragment(fragment)
            if rendered.checklist:
                checklist.extend(rendered.checklist)
                used.append({"id": fragment.id, "type": fragment.type, "target": "checklist"})
            if not rendered.body:
                continue
            keywords = keyword_set(fragment.type.replace("_", " "), rendered.title)
            target = self.route(rendered.canonical_hint, keywords, rendered.title)
            target.add(Contribution(
                body=rendered.body,
                source=SourceKind.FRAGMENT,
                source_id=fragment.id,
                detail=fragment.type,
            ))
            used.append({"id": fragment.id, "type": fragment.type, "target": target.title})
        return tuple(checklist), used

    def add_metadata(self, document: ReferenceDocument) -> None:
        for attribute, label, canonical in METADATA_FIELDS:
            values = getattr(document, attribute)
            if not values:
                continue
            body = f"**{label}:**\n" + "\n".join(f"- {value}" for value in values)
            target = self.route(canonical, keyword_set(label), label)
            target.add(Contribution(
                body=body,
                source=SourceKind.METADATA,
                source_id=document.id,
                source_name=document.name,
                detail=attribute,
            ))

    # ─────────────────────────────────────────────────────────────
    # Entry point
    # ─────────────────────────────────────────────────────────────

    def aggregate(
        self,
        sections: Iterable[SectionSpec],
        retrieval: RetrievalResult,
        template_checklist: Iterable[str] = (),
        drafted_checklist: Optional[Iterable[str]] = None,
    ) -> AggregationOutcome:
        """
        Blend retrieval results into the card's section slots.

        Args:
            sections: Effective section slots, possibly carrying drafted bodies
            retrieval: Ranked reference documents and fragments
            template_checklist: The template's default checklist
            drafted_checklist: Checklist the card already carries

        Returns:
            AggregationOutcome with rendered sections, merged checklist and coverage
        """
        sections = list(sections)
        self.seed(sections)
        author_drafts = {
            spec.title: spec.body.strip() for spec in sections if spec.body and spec.body.strip()
        }

        documents = list(retrieval.prds[: self.top_documents])
        self.add_reference_documents(documents)
        fragment_checklist, fragments_used = self.add_fragments(retrieval.fragments)
        if documents:
            self.add_metadata(documents[0])

        checklist = _merge_checklists(drafted_checklist or (), template_checklist, fragment_checklist)

        rendered = tuple(
            RenderedSection(title=a.title, body=a.render(), description=a.description)
            for a in self.aggregates
        )

        kb_prds: dict[str, str] = {}
        for aggregate in self.aggregates:
            for contribution in aggregate.unique_contributions():
                if contribution.source is SourceKind.REFERENCE_DOCUMENT:
                    kb_prds.setdefault(contribution.source_id, contribution.source_name)

        coverage = Coverage(
            kb_sections_applied=sum(
                1 for a in self.aggregates if a.count(SourceKind.REFERENCE_DOCUMENT)
            ),
            fragment_sections_applied=sum(1 for a in self.aggregates if a.count(SourceKind.FRAGMENT)),
            metadata_sections_applied=sum(1 for a in self.aggregates if a.count(SourceKind.METADATA)),
            prds_blended=len(kb_prds),
            fragments_applied=len({f["id"] for f in fragments_used}),
        )

        logger.debug(
            f"Aggregated {len(rendered)} sections: {coverage.kb_sections_applied} with reference "
            f"content, {coverage.fragment_sections_applied} with fragments"
        )

        return AggregationOutcome(
            sections=rendered,
            checklist=checklist,
            coverage=coverage,
            kb_prds=tuple({"id": pid, "name": name} for pid, name in kb_prds.items()),
            fragments=tuple(fragments_used),
            author_drafts=author_drafts,
        )
