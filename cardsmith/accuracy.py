"""
Accuracy Evaluator - deterministic confidence score for composed cards.

Score = 40 baseline + context bonuses + retrieval coverage bonuses, optionally
averaged with the model's self-reported confidence, minus fallback and
warning penalties, capped by fallback/warning ceilings and clamped to 5..100.
Every adjustment is recorded as a human-readable factor.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from cardsmith.drafting.parsing import parse_confidence, parse_json_object
from cardsmith.models import AccuracyReport, AccuracyStatus, CardTemplate, Coverage, DraftResult, NodeContext

BASELINE = 40
MIN_SCORE = 5
MAX_SCORE = 100

# (minimum characters, bonus, factor)
SUMMARY_TIERS = (
    (160, 24, "Detailed node summary provided (+24)"),
    (80, 18, "Good node summary context (+18)"),
    (40, 12, "Basic node summary available (+12)"),
    (1, 6, "Minimal summary supplied (+6)"),
)

# (minimum tags, bonus, factor)
TAG_TIERS = (
    (5, 12, "Rich tagging supports precision (+12)"),
    (2, 8, "Some tags provided (+8)"),
    (1, 4, "Single tag supplied (+4)"),
)

# (minimum sections with retrieved content, bonus)
KB_SECTION_TIERS = ((4, 20), (2, 14), (1, 8))

DOMAIN_BONUS = 6
RELATED_BONUS = 6
TEMPLATE_BONUS = 10
LINKED_DOCUMENT_BONUS = 8
FRAGMENT_BONUS_PER_SECTION = 4
FRAGMENT_BONUS_CAP = 10
METADATA_BONUS = 4
BLEND_BONUS = 6

FALLBACK_PENALTY = 22
ENHANCED_FALLBACK_PENALTY = 8
WARNING_PENALTY = 5
WARNING_PENALTY_CAP = 15

FALLBACK_CAP = 75
ENHANCED_FALLBACK_CAP = 88
WARNING_CAP = 92


def _tier(value: int, tiers) -> Optional[tuple]:
    for tier in tiers:
        if value >= tier[0]:
            return tier
    return None


def evaluate_accuracy(
    node: NodeContext,
    draft: DraftResult,
    template: Optional[CardTemplate] = None,
    linked_reference_document: Optional[str] = None,
    coverage: Optional[Coverage] = None,
    generated_at: Optional[datetime] = None,
) -> AccuracyReport:
    """
    Score a composed card.

    Args:
        node: Node the card was composed for
        draft: Drafting outcome (fallback flag, warnings, raw output)
        template: Matched card template, if any
        linked_reference_document: Id of the reference document resolved for the template
        coverage: Retrieval coverage counters from aggregation
        generated_at: Timestamp to report (defaults to now, UTC)

    Returns:
        AccuracyReport
    """
    coverage = coverage or Coverage()
    score = BASELINE
    factors: list[str] = []

    summary_tier = _tier(len(node.summary or ""), SUMMARY_TIERS)
    if summary_tier:
        score += summary_tier[1]
        factors.append(summary_tier[2])
    else:
        factors.append("No node summary (0)")

    tag_tier = _tier(len(node.tags), TAG_TIERS)
    if tag_tier:
        score += tag_tier[1]
        factors.append(tag_tier[2])
    else:
        factors.append("No tags available (0)")

    if node.domain:
        score += DOMAIN_BONUS
        factors.append(f"Domain classified as {node.domain} (+{DOMAIN_BONUS})")
    else:
        factors.append("Domain unspecified (0)")

    if node.related_nodes:
        score += RELATED_BONUS
        factors.append(f"Related nodes supplied for extra context (+{RELATED_BONUS})")

    if template is not None:
        score += TEMPLATE_BONUS
        factors.append(f'Template "{template.label}" matched (+{TEMPLATE_BONUS})')

    if linked_reference_document:
        score += LINKED_DOCUMENT_BONUS
        factors.append(f"Reference document {linked_reference_document} connected (+{LINKED_DOCUMENT_BONUS})")

    kb_tier = _tier(coverage.kb_sections_applied, KB_SECTION_TIERS)
    if kb_tier:
        score += kb_tier[1]
        factors.append(
            f"Knowledge base content applied to {coverage.kb_sections_applied} section(s) (+{kb_tier[1]})"
        )

    if coverage.fragment_sections_applied:
        bonus = min(FRAGMENT_BONUS_PER_SECTION * coverage.fragment_sections_applied, FRAGMENT_BONUS_CAP)
        score += bonus
        factors.append(f"Content fragments applied to {coverage.fragment_sections_applied} section(s) (+{bonus})")

    if coverage.metadata_sections_applied:
        score += METADATA_BONUS
        factors.append(f"Reference metadata enrichment applied (+{METADATA_BONUS})")

    if coverage.prds_blended >= 2:
        score += BLEND_BONUS
        factors.append(f"Blended {coverage.prds_blended} reference documents (+{BLEND_BONUS})")

    quality_confidence = parse_confidence(parse_json_object(draft.raw_output))
    if quality_confidence is not None:
        score = math.floor((score + quality_confidence) / 2 + 0.5)
        factors.append(f"Model confidence reported as {quality_confidence:g}")

    enhanced = draft.used_fallback and coverage.has_retrieved_content
    if draft.used_fallback:
        if enhanced:
            score -= ENHANCED_FALLBACK_PENALTY
            factors.append(f"Fallback content enriched with retrieved knowledge (-{ENHANCED_FALLBACK_PENALTY})")
        else:
            score -= FALLBACK_PENALTY
            factors.append(f"Fallback content used (-{FALLBACK_PENALTY})")

    if draft.warnings:
        penalty = min(len(draft.warnings) * WARNING_PENALTY, WARNING_PENALTY_CAP)
        score -= penalty
        factors.append(f"Warnings noted during generation (-{penalty})")

    if draft.used_fallback:
        cap = ENHANCED_FALLBACK_CAP if enhanced else FALLBACK_CAP
        if score > cap:
            score = cap
            factors.append(f"Score capped at {cap} for fallback content")
    if draft.warnings and score > WARNING_CAP:
        score = WARNING_CAP
        factors.append(f"Score capped at {WARNING_CAP} due to warnings")

    score = max(MIN_SCORE, min(MAX_SCORE, int(score)))

    timestamp = (generated_at or datetime.now(timezone.utc)).isoformat()

    return AccuracyReport(
        score=score,
        status=AccuracyStatus.FRESH if draft.success else AccuracyStatus.FALLBACK,
        factors=tuple(factors),
        last_generated_at=timestamp,
        quality_confidence=quality_confidence,
        needs_review=bool(draft.warnings) or (draft.used_fallback and not enhanced),
    )
