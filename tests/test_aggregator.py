# tests/test_aggregator.py
"""Tests for section aggregation."""

import pytest

from cardsmith.compose.aggregator import (
    BLEND_SEPARATOR,
    Contribution,
    SectionAggregate,
    SectionAggregator,
    score_aggregate,
)
from cardsmith.models import (
    ContentFragment,
    DocSection,
    ReferenceDocument,
    RetrievalResult,
    SectionSpec,
    SourceKind,
)


def _doc(doc_id, name, *sections, **metadata):
    return ReferenceDocument(
        id=doc_id,
        name=name,
        sections=tuple(DocSection(title=t, key=k, content=c) for t, k, c in sections),
        **metadata,
    )


@pytest.fixture
def risk_fragment():
    return ContentFragment(
        id="risk-payments",
        type="risk_mitigation",
        content={"risk": "Payment provider outage", "mitigations": ["Add fallback gateway"]},
    )


class TestScoring:
    """Tests for score_aggregate"""

    def test_exact_canonical_and_hint(self):
        aggregate = SectionAggregate(title="Risks", canonical="risks", hints={"risks"}, keywords=set())
        # 12 exact + 6 hint + 2 empty-bucket bonus
        assert score_aggregate(aggregate, "risks", set()) == 20

    def test_existing_reference_content_lowers_score(self):
        aggregate = SectionAggregate(title="Risks", canonical="risks", hints={"risks"}, keywords=set())
        aggregate.add(Contribution(body="x", source=SourceKind.REFERENCE_DOCUMENT))
        assert score_aggregate(aggregate, "risks", set()) == 17

    def test_shared_keywords_are_capped(self):
        aggregate = SectionAggregate(
            title="Misc", canonical=None, hints=set(), keywords={"a1a", "b2b", "c3c", "d4d"}
        )
        assert score_aggregate(aggregate, None, {"a1a", "b2b", "c3c", "d4d"}) == 6 + 2

    def test_irrelevant_candidate_scores_zero(self):
        aggregate = SectionAggregate(title="Risks", canonical="risks", hints={"risks"}, keywords={"risks"})
        assert score_aggregate(aggregate, "kpis", {"freshness"}) == 0


class TestAggregation:
    """Tests for SectionAggregator.aggregate"""

    def test_risk_fragment_lands_in_risks(self, checkout_node, risk_fragment):
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Overview"), SectionSpec("Risks")],
            RetrievalResult(fragments=(risk_fragment,)),
        )
        overview, risks = outcome.sections
        assert overview.body == ""
        assert "**Risk:** Payment provider outage" in risks.body
        assert "**Mitigations**" in risks.body
        assert outcome.coverage.fragment_sections_applied == 1
        assert outcome.coverage.fragments_applied == 1
        assert outcome.fragments == ({"id": "risk-payments", "type": "risk_mitigation", "target": "Risks"},)

    def test_reference_sections_route_by_canonical_key(self, checkout_node):
        doc = _doc(
            "backend_api_001", "Backend API PRD",
            ("System Design", "system_design", "Layered service."),
            ("API Endpoints", "api_endpoints", "Versioned REST endpoints."),
        )
        outcome = SectionAggregator(checkout_node, template_id="technicalSpec").aggregate(
            [SectionSpec("Overview"), SectionSpec("Architecture"), SectionSpec("Interfaces")],
            RetrievalResult(prds=(doc,)),
        )
        bodies = {s.title: s.body for s in outcome.sections}
        assert bodies["Architecture"] == "**Backend API PRD:** Layered service."
        assert bodies["Interfaces"] == "**Backend API PRD:** Versioned REST endpoints."
        assert bodies["Overview"] == ""
        assert outcome.kb_prds == ({"id": "backend_api_001", "name": "Backend API PRD"},)
        assert outcome.coverage.kb_sections_applied == 2
        assert outcome.coverage.prds_blended == 1

    def test_duplicate_content_rendered_once(self, checkout_node):
        doc = _doc("d1", "Doc", ("Architecture", "architecture", "Same text."))
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Architecture")],
            RetrievalResult(prds=(doc, doc)),
        )
        assert outcome.sections[0].body == "**Doc:** Same text."

    def test_two_documents_are_blended(self, checkout_node):
        first = _doc("d1", "First", ("Architecture", "architecture", "One."))
        second = _doc("d2", "Second", ("Design", "design", "Two."))
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Architecture")],
            RetrievalResult(prds=(first, second)),
        )
        assert outcome.sections[0].body == f"**First:** One.{BLEND_SEPARATOR}**Second:** Two."
        assert outcome.coverage.prds_blended == 2

    def test_existing_draft_comes_first(self, checkout_node):
        doc = _doc("d1", "Doc", ("Summary", "summary", "Reference summary."))
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Overview", body="  Author text  ")],
            RetrievalResult(prds=(doc,)),
        )
        body = outcome.sections[0].body
        assert body.startswith("Author text")
        assert body.endswith("**Doc:** Reference summary.")
        assert outcome.author_drafts == {"Overview": "Author text"}

    def test_unrelated_section_opens_new_aggregate(self, checkout_node):
        doc = _doc("d1", "Doc", ("Zebra Husbandry", "zebra_husbandry", "Feed twice daily."))
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Overview", body="Author text")],
            RetrievalResult(prds=(doc,)),
        )
        assert [s.title for s in outcome.sections] == ["Overview", "Zebra Husbandry"]
        assert outcome.sections[0].body == "Author text"
        assert outcome.sections[1].body == "**Doc:** Feed twice daily."

    def test_unrelated_section_fills_empty_pool(self, checkout_node):
        doc = _doc("d1", "Doc", ("Zebra Husbandry", "zebra_husbandry", "Feed twice daily."))
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Overview")],
            RetrievalResult(prds=(doc,)),
        )
        assert [s.title for s in outcome.sections] == ["Overview"]
        assert outcome.sections[0].body == "**Doc:** Feed twice daily."

    def test_no_sections_creates_aggregate(self, checkout_node):
        doc = _doc("d1", "Doc", ("Architecture", "architecture", "Layers."))
        outcome = SectionAggregator(checkout_node).aggregate([], RetrievalResult(prds=(doc,)))
        assert [s.title for s in outcome.sections] == ["Architecture"]

    def test_only_top_documents_used(self, checkout_node):
        docs = tuple(_doc(f"d{i}", f"Doc {i}", ("Architecture", "architecture", f"Text {i}.")) for i in range(4))
        outcome = SectionAggregator(checkout_node, top_documents=3).aggregate(
            [SectionSpec("Architecture")], RetrievalResult(prds=docs)
        )
        assert "Text 3." not in outcome.sections[0].body
        assert outcome.coverage.prds_blended == 3

    def test_metadata_routes_to_matching_section(self, checkout_node):
        doc = _doc("d1", "Doc", risk_profile=("Breaking API changes",))
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Overview"), SectionSpec("Risks")],
            RetrievalResult(prds=(doc,)),
        )
        assert outcome.sections[1].body == "**Risk Profile:**\n- Breaking API changes"
        assert outcome.coverage.metadata_sections_applied == 1

    def test_checklist_merge_order_and_dedupe(self, checkout_node):
        criteria = ContentFragment(id="ac", type="acceptance_criteria", content=["Review", "Load tested"])
        outcome = SectionAggregator(checkout_node).aggregate(
            [SectionSpec("Overview")],
            RetrievalResult(fragments=(criteria,)),
            template_checklist=["Write Docs", "Review"],
            drafted_checklist=["Ship it", "write docs"],
        )
        assert outcome.checklist == ("Ship it", "write docs", "Review", "Load tested")
        assert outcome.fragments == ({"id": "ac", "type": "acceptance_criteria", "target": "checklist"},)

    def test_same_inputs_same_output(self, rich_node, risk_fragment):
        doc = _doc("d1", "Doc", ("System Design", "system_design", "Layers."), tags=("api",))
        sections = [SectionSpec("Overview"), SectionSpec("Architecture"), SectionSpec("Risks")]
        retrieval = RetrievalResult(prds=(doc,), fragments=(risk_fragment,))
        first = SectionAggregator(rich_node).aggregate(sections, retrieval)
        second = SectionAggregator(rich_node).aggregate(sections, retrieval)
        assert first == second
