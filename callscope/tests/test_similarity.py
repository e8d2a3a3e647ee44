"""
Test suite for header similarity strategies.

The tests verify:
1. Normalization and tokenization of column headers
2. The exact / contains / fuzzy tiers of TieredSimilarity
3. That strategies satisfy the SimilarityStrategy protocol
"""

import pytest

from callscope.services.similarity import (
    CONTAINMENT_WEIGHT,
    EXACT_WEIGHT,
    FUZZY_MAX_WEIGHT,
    ExactSimilarity,
    SimilarityStrategy,
    TieredSimilarity,
    normalize_header,
    token_overlap,
    tokenize_header,
)


class TestNormalization:
    """Tests for normalize_header and tokenize_header."""

    @pytest.mark.parametrize("header", ["Agent_Name", "agent name", "AgentName", " AGENT-NAME "])
    def test_normalize_strips_case_and_punctuation(self, header):
        assert normalize_header(header) == "agentname"

    def test_tokenize_splits_camel_case(self):
        assert tokenize_header("daysPastDue") == ["days", "past", "due"]

    def test_tokenize_splits_acronym_boundary(self):
        assert tokenize_header("HTTPStatus") == ["http", "status"]

    def test_tokenize_splits_punctuation(self):
        assert tokenize_header("Follow-Up Status") == ["follow", "up", "status"]

    def test_token_overlap_is_jaccard(self):
        # {customer, phone} vs {customer, id}: 1 shared of 3 distinct
        assert token_overlap("Customer Phone", "customer id") == pytest.approx(1 / 3)

    def test_token_overlap_of_empty_header_is_zero(self):
        assert token_overlap("", "customer") == 0.0


class TestTieredSimilarity:
    """Tests for the default tiered strategy."""

    def setup_method(self):
        self.strategy = TieredSimilarity()

    def test_exact_match_after_normalization(self):
        assert self.strategy.score("Agent_Name", "agent name") == EXACT_WEIGHT

    def test_containment(self):
        assert self.strategy.score("Agent", "Agent Name") == CONTAINMENT_WEIGHT

    def test_containment_is_symmetric(self):
        assert self.strategy.score("Agent Name", "Agent") == CONTAINMENT_WEIGHT

    def test_full_token_overlap_in_different_order(self):
        assert self.strategy.score("Days Overdue", "overdue days") == FUZZY_MAX_WEIGHT

    def test_partial_token_overlap(self):
        score = self.strategy.score("Customer Phone", "customer id")
        assert score == pytest.approx(FUZZY_MAX_WEIGHT / 3)

    def test_unrelated_headers_score_zero(self):
        assert self.strategy.score("Region", "Revenue") == 0.0

    @pytest.mark.parametrize("a,b", [("", "agent"), ("agent", ""), ("---", "agent")])
    def test_empty_input_scores_zero(self, a, b):
        assert self.strategy.score(a, b) == 0.0

    def test_fuzzy_never_outranks_containment(self):
        assert FUZZY_MAX_WEIGHT < CONTAINMENT_WEIGHT

    def test_custom_weights(self):
        strategy = TieredSimilarity(containment_weight=0.8, fuzzy_max_weight=0.2)
        assert strategy.score("Agent", "Agent Name") == 0.8
        assert strategy.score("Days Overdue", "overdue days") == 0.2


class TestExactSimilarity:
    """Tests for the exact-only strategy."""

    def test_exact_only(self):
        strategy = ExactSimilarity()
        assert strategy.score("Agent_Name", "agentname") == EXACT_WEIGHT
        assert strategy.score("Agent", "Agent Name") == 0.0

    def test_empty_headers_do_not_match(self):
        assert ExactSimilarity().score("", "") == 0.0


class TestProtocol:
    """Strategies are interchangeable through SimilarityStrategy."""

    @pytest.mark.parametrize("strategy", [TieredSimilarity(), ExactSimilarity()])
    def test_builtin_strategies_satisfy_protocol(self, strategy):
        assert isinstance(strategy, SimilarityStrategy)

    def test_plain_object_with_score_satisfies_protocol(self):
        class Constant:
            def score(self, a, b):
                return 0.3

        assert isinstance(Constant(), SimilarityStrategy)
