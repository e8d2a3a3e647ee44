"""
Test suite for the Field Matcher.

The tests verify:
1. match_score stays within [0, 100] and is 0 for empty input
2. Scenario 1: exact headers score 100
3. Column resolution picks the best header and keeps the first one on ties
4. Custom similarity strategies are honored and their weights clamped
"""

import math

import pytest

from callscope.models import MatchTier
from callscope.services.field_matcher import (
    headers_of,
    match_score,
    resolve_columns,
    score_resolution,
)
from callscope.services.similarity import ExactSimilarity


TWO_FIELD_SCHEMA = {
    "fields": [
        {"id": "agentName", "name": "AgentName"},
        {"id": "product", "name": "Product"},
    ]
}


class TestMatchScore:
    """Tests for match_score."""

    @pytest.mark.scenario
    def test_exact_headers_score_100(self):
        row = {"AgentName": "John", "Product": "Loan"}
        assert match_score(row, TWO_FIELD_SCHEMA) == 100.0

    def test_empty_row_scores_zero(self):
        assert match_score({}, TWO_FIELD_SCHEMA) == 0.0

    def test_none_row_scores_zero(self):
        assert match_score(None, TWO_FIELD_SCHEMA) == 0.0

    def test_schema_without_fields_scores_zero(self):
        assert match_score({"AgentName": "John"}, {"fields": []}) == 0.0

    def test_half_matching_row(self):
        row = {"AgentName": "John", "Other": 1}
        assert match_score(row, TWO_FIELD_SCHEMA) == 50.0

    def test_containment_contributes_partial_weight(self):
        # "Agent" is contained in "AgentName" (0.6); Product is exact (1.0)
        row = {"Agent": "John", "Product": "Loan"}
        assert match_score(row, TWO_FIELD_SCHEMA) == 80.0

    def test_aliases_are_candidates(self, collections_schema, collections_rows):
        score = match_score(collections_rows[0], collections_schema)
        assert 0.0 < score <= 100.0

    @pytest.mark.parametrize("row", [
        {"a": 1},
        {"AgentName": 1, "agentname": 2, "Agent Name": 3},
        {"Product Product Product": 1},
        {str(i): i for i in range(50)},
    ])
    def test_score_is_bounded(self, row, collections_schema):
        for schema in (TWO_FIELD_SCHEMA, collections_schema):
            assert 0.0 <= match_score(row, schema) <= 100.0

    def test_accepts_header_list(self):
        assert match_score(["AgentName", "Product"], TWO_FIELD_SCHEMA) == 100.0


class TestResolveColumns:
    """Tests for resolve_columns and score_resolution."""

    def test_resolution_records_column_weight_and_tier(self):
        resolution = resolve_columns({"Agent": "John", "Product": "Loan"}, TWO_FIELD_SCHEMA)

        agent = resolution.matches["agentName"]
        assert agent.column == "Agent"
        assert agent.weight == 0.6
        assert agent.tier == MatchTier.CONTAINS

        product = resolution.matches["product"]
        assert product.column == "Product"
        assert product.tier == MatchTier.EXACT

    def test_unmatched_field_has_no_column(self):
        resolution = resolve_columns({"AgentName": "John"}, TWO_FIELD_SCHEMA)
        assert resolution.column_for("product") is None
        assert resolution.matches["product"].tier == MatchTier.NONE

    def test_best_header_wins_over_earlier_weaker_one(self):
        resolution = resolve_columns({"Agent": "x", "AgentName": "y"}, TWO_FIELD_SCHEMA)
        assert resolution.column_for("agentName") == "AgentName"

    def test_first_header_wins_ties(self):
        schema = {"fields": [{"id": "agent", "name": "agent"}]}
        resolution = resolve_columns({"Agent A": 1, "Agent B": 2}, schema)
        assert resolution.column_for("agent") == "Agent A"

    def test_as_mapping_keeps_field_order(self, collections_schema):
        resolution = resolve_columns({"Agent Name": "John"}, collections_schema)
        assert list(resolution.as_mapping()) == [f.id for f in collections_schema.fields]

    def test_resolution_is_deterministic(self, collections_schema, collections_rows):
        first = resolve_columns(collections_rows[0], collections_schema)
        second = resolve_columns(collections_rows[0], collections_schema)
        assert first == second

    def test_score_resolution_without_headers_is_zero(self):
        resolution = resolve_columns([], TWO_FIELD_SCHEMA)
        assert score_resolution(resolution) == 0.0

    def test_headers_of_preserves_order(self):
        assert headers_of({"b": 1, "a": 2}) == ["b", "a"]


class TestStrategies:
    """Tests for pluggable similarity strategies."""

    def test_exact_strategy_ignores_containment(self):
        row = {"Agent": "John", "Product": "Loan"}
        assert match_score(row, TWO_FIELD_SCHEMA, ExactSimilarity()) == 50.0

    def test_out_of_range_weights_are_clamped(self):
        class Overeager:
            def score(self, a, b):
                return 5.0

        assert match_score({"x": 1}, TWO_FIELD_SCHEMA, Overeager()) == 100.0

    def test_nan_weights_count_as_zero(self):
        class Broken:
            def score(self, a, b):
                return math.nan

        assert match_score({"x": 1}, TWO_FIELD_SCHEMA, Broken()) == 0.0
