# tests/test_accuracy.py
"""Tests for the accuracy evaluator."""

from datetime import datetime, timezone

import pytest

from cardsmith.accuracy import evaluate_accuracy
from cardsmith.models import AccuracyStatus, Coverage, DraftResult, NodeContext
from cardsmith.templates.catalog import get_card_template


def _draft(success=True, warnings=(), raw_output=None):
    return DraftResult(
        success=success,
        sections=(),
        used_fallback=not success,
        warnings=tuple(warnings),
        raw_output=raw_output,
    )


def _bare(**kwargs):
    return NodeContext(id="n", label="Node", type="backend", **kwargs)


@pytest.mark.parametrize("length,score,factor", [
    (0, 40, "No node summary (0)"),
    (1, 46, "Minimal summary supplied (+6)"),
    (40, 52, "Basic node summary available (+12)"),
    (80, 58, "Good node summary context (+18)"),
    (160, 64, "Detailed node summary provided (+24)"),
])
def test_summary_tiers(length, score, factor):
    report = evaluate_accuracy(_bare(summary="x" * length if length else None), _draft())
    assert report.score == score
    assert report.factors[0] == factor


@pytest.mark.parametrize("count,bonus", [(0, 0), (1, 4), (2, 8), (4, 8), (5, 12)])
def test_tag_tiers(count, bonus):
    node = _bare(tags=tuple(f"tag{i}" for i in range(count)))
    assert evaluate_accuracy(node, _draft()).score == 40 + bonus


def test_fallback_without_retrieval(checkout_node):
    report = evaluate_accuracy(checkout_node, _draft(success=False), template=get_card_template("technicalSpec"))
    # 40 + domain 6 + template 10 - fallback 22
    assert report.score == 34
    assert report.status is AccuracyStatus.FALLBACK
    assert report.needs_review
    assert "Fallback content used (-22)" in report.factors
    assert 'Template "Technical Spec" matched (+10)' in report.factors


def test_fresh_with_model_confidence(rich_node):
    report = evaluate_accuracy(
        rich_node,
        _draft(raw_output='{"sections": [], "quality": {"confidence": 90}}'),
        template=get_card_template("technicalSpec"),
        coverage=Coverage(kb_sections_applied=1),
    )
    # (40 + 24 + 12 + 6 + 6 + 10 + 8) averaged with 90
    assert report.score == 98
    assert report.status is AccuracyStatus.FRESH
    assert report.quality_confidence == 90.0
    assert not report.needs_review
    assert "Model confidence reported as 90" in report.factors


@pytest.mark.parametrize("confidence,score", [(88, 64), (89, 65), (90, 65), (41, 41)])
def test_confidence_blend_rounds_half_up(confidence, score):
    raw = f'{{"sections": [], "quality": {{"confidence": {confidence}}}}}'
    # baseline 40 averaged with the model confidence
    assert evaluate_accuracy(_bare(), _draft(raw_output=raw)).score == score


def test_enhanced_fallback():
    report = evaluate_accuracy(_bare(), _draft(success=False), coverage=Coverage(kb_sections_applied=2))
    assert report.score == 40 + 14 - 8
    assert not report.needs_review
    assert "Fallback content enriched with retrieved knowledge (-8)" in report.factors


def test_metadata_alone_is_not_enhanced():
    report = evaluate_accuracy(_bare(), _draft(success=False), coverage=Coverage(metadata_sections_applied=1))
    assert report.score == 40 + 4 - 22
    assert report.needs_review


def test_fallback_cap(rich_node):
    report = evaluate_accuracy(
        rich_node, _draft(success=False),
        template=get_card_template("technicalSpec"), linked_reference_document="backend_api_001",
    )
    assert report.score == 75
    assert "Score capped at 75 for fallback content" in report.factors


def test_enhanced_fallback_cap(rich_node):
    coverage = Coverage(
        kb_sections_applied=4, fragment_sections_applied=3, metadata_sections_applied=1, prds_blended=2,
    )
    report = evaluate_accuracy(rich_node, _draft(success=False), coverage=coverage)
    assert report.score == 88


def test_warning_cap(rich_node):
    report = evaluate_accuracy(
        rich_node, _draft(warnings=["missing"]),
        template=get_card_template("technicalSpec"), linked_reference_document="backend_api_001",
    )
    assert report.score == 92
    assert report.needs_review
    assert "Warnings noted during generation (-5)" in report.factors


def test_clamped_to_bounds(rich_node):
    low = evaluate_accuracy(_bare(), _draft(success=False, warnings=["a", "b", "c", "d"]))
    assert low.score == 5
    high = evaluate_accuracy(
        rich_node, _draft(),
        template=get_card_template("technicalSpec"),
        coverage=Coverage(kb_sections_applied=4, fragment_sections_applied=3, prds_blended=3),
    )
    assert high.score == 100


def test_more_context_never_lowers_score():
    draft = _draft(success=False)
    scores = [
        evaluate_accuracy(_bare(), draft).score,
        evaluate_accuracy(_bare(summary="x" * 50), draft).score,
        evaluate_accuracy(_bare(summary="x" * 50, tags=("a", "b")), draft).score,
        evaluate_accuracy(_bare(summary="x" * 50, tags=("a", "b"), domain="tech"), draft).score,
    ]
    assert scores == sorted(scores)


def test_timestamp_and_serialization():
    when = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    report = evaluate_accuracy(_bare(), _draft(), generated_at=when)
    data = report.to_dict()
    assert data["last_generated_at"] == "2025-01-02T03:04:05+00:00"
    assert data["status"] == "fresh"
    assert data["quality_confidence"] is None
