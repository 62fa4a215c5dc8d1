"""Section aggregation: keyword matching, fragment rendering and blending."""

from cardsmith.compose.aggregator import AggregationOutcome, SectionAggregator

__all__ = ["AggregationOutcome", "SectionAggregator"]
