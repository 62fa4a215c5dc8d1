# tests/test_catalog.py
"""Tests for the card template catalogue and recommendations."""

import pytest

from cardsmith.templates.catalog import (
    CARD_TEMPLATES,
    generate_card_drafts,
    get_card_template,
    list_card_templates,
    recommend_cards,
)


def test_get_card_template():
    template = get_card_template("technicalSpec")
    assert template.label == "Technical Spec"
    assert [s.title for s in template.sections] == [
        "Overview", "Architecture", "Interfaces", "Dependencies", "Testing & Validation",
    ]
    assert "backend_api_001" in template.suggested_reference_documents


@pytest.mark.parametrize("template_id", ["unknown", "", None])
def test_unknown_template_is_none(template_id):
    assert get_card_template(template_id) is None


def test_checklist_templates_carry_default_checklist():
    template = get_card_template("launchChecklist")
    assert template.card_type == "checklist"
    assert template.sections == ()
    assert template.default_checklist[0] == "Finalize messaging and creative assets"


def test_catalogue_is_read_only():
    assert len(list_card_templates()) == 13
    with pytest.raises(TypeError):
        CARD_TEMPLATES["new"] = None


def test_recommend_backend_tech():
    recommendations = recommend_cards("backend", "tech")
    assert [r["template"].id for r in recommendations] == ["technicalSpec", "apiContract", "adrSummary"]
    assert recommendations[0]["reason"].startswith("Aligned with backend_api_001")


def test_recommend_merges_rules_without_duplicates():
    ids = [r["template"].id for r in recommend_cards("doc", "business")]
    assert ids == [
        "marketingCampaignBrief", "launchChecklist", "personaSnapshot",
        "businessCase", "okrCard", "raciMatrix",
    ]


def test_recommend_is_case_insensitive():
    assert recommend_cards("Backend", "TECH") == recommend_cards("backend", "tech")


def test_recommend_requires_domain_when_rule_has_one():
    assert recommend_cards("backend", None) == []
    assert recommend_cards("root", "tech") == []


def test_generate_card_drafts_for_explicit_templates():
    drafts = generate_card_drafts("backend", "tech", ["apiContract", "doesNotExist"])
    assert len(drafts) == 1
    draft = drafts[0]
    assert draft["template_id"] == "apiContract"
    assert [s["title"] for s in draft["sections"]] == ["Endpoint", "Request", "Response", "Errors"]
    assert all(s["body"] == "" for s in draft["sections"])


def test_generate_card_drafts_uses_recommendations_by_default():
    drafts = generate_card_drafts("requirement", "operations")
    assert [d["template_id"] for d in drafts] == ["operationsRunbook", "monitoringChecklist"]
    assert drafts[1]["checklist"]
