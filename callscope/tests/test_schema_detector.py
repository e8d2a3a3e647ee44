"""
Test suite for the Schema Detector.

The tests verify:
1. The best-scoring schema is returned only above the threshold (strictly)
2. Ties resolve by most recently updated schema, then schema id
3. Detection depends only on the first row and never mutates the registry
4. Threshold validation and confidence levels
"""

from datetime import datetime, timezone

import pytest

from callscope.models import ConfidenceLevel, FieldDefinition, SchemaDefinition
from callscope.services.registry import SchemaRegistry
from callscope.services.schema_detector import confidence_level, detect, score_schemas


def _schema(schema_id, updated_at=None, created_at=None, names=("AgentName", "Product")):
    return SchemaDefinition(
        id=schema_id,
        name=schema_id.title(),
        fields=[FieldDefinition(id=name[0].lower() + name[1:], name=name) for name in names],
        createdAt=created_at,
        updatedAt=updated_at,
    )


class TestDetect:
    """Tests for detect."""

    def test_detects_collections_export(self, collections_schema, sales_schema, collections_rows):
        result = detect(collections_rows, [sales_schema, collections_schema], threshold=30)

        assert result.detected
        assert result.matchedSchema.id == collections_schema.id
        assert result.confidence == result.bestScore
        assert result.confidence > 30
        assert result.resolution.schemaId == collections_schema.id
        assert [score.schemaId for score in result.scores] == [
            collections_schema.id,
            sales_schema.id,
        ]

    def test_below_threshold_returns_none_with_best_effort(self, collections_schema):
        result = detect([{"AgentName": "John"}], [_schema("agents")], threshold=60)

        assert result.matchedSchema is None
        assert result.confidence == 0.0
        assert result.confidenceLevel == ConfidenceLevel.NONE
        assert result.bestMatch.id == "agents"
        assert result.bestScore == 50.0

    def test_threshold_is_exclusive(self):
        schemas = [_schema("agents")]
        assert detect([{"AgentName": "John"}], schemas, threshold=50).matchedSchema is None
        assert detect([{"AgentName": "John"}], schemas, threshold=49.9).matchedSchema is not None

    def test_empty_rows_return_no_match(self, collections_schema):
        result = detect([], [collections_schema], threshold=30)
        assert result.matchedSchema is None
        assert result.bestMatch is None
        assert result.confidence == 0.0
        assert result.scores == []

    def test_empty_first_row_returns_no_match(self, collections_schema):
        result = detect([{}, {"Agent Name": "John"}], [collections_schema], threshold=30)
        assert result.matchedSchema is None

    def test_no_schemas_returns_no_match(self, collections_rows):
        result = detect(collections_rows, [], threshold=30)
        assert result.matchedSchema is None
        assert result.scores == []

    def test_only_first_row_is_scored(self):
        rows = [{"AgentName": "John", "Product": "Loan"}, {"unrelated": 1}]
        result = detect(rows, [_schema("agents")], threshold=30)
        assert result.confidence == 100.0

    @pytest.mark.parametrize("threshold", [-1, 100.5, None])
    def test_invalid_threshold_raises(self, threshold, collections_schema, collections_rows):
        with pytest.raises(ValueError):
            detect(collections_rows, [collections_schema], threshold=threshold)

    def test_accepts_registry(self, collections_schema, collections_rows):
        registry = SchemaRegistry([collections_schema])
        result = detect(collections_rows, registry, threshold=30)
        assert result.matchedSchema.id == collections_schema.id

    def test_does_not_mutate_registry_or_rows(self, collections_schema, sales_schema, collections_rows):
        registry = SchemaRegistry([collections_schema, sales_schema])
        before_ids = registry.ids
        before_rows = [dict(row) for row in collections_rows]

        detect(collections_rows, registry, threshold=30)

        assert registry.ids == before_ids
        assert registry.get(collections_schema.id) == collections_schema
        assert collections_rows == before_rows


class TestDeterminism:
    """Tests for ranking and tie-breaking."""

    def test_reordering_does_not_change_winner(self, collections_schema, sales_schema, collections_rows):
        forward = detect(collections_rows, [collections_schema, sales_schema], threshold=30)
        backward = detect(collections_rows, [sales_schema, collections_schema], threshold=30)
        assert forward.matchedSchema.id == backward.matchedSchema.id
        assert forward.scores == backward.scores

    def test_tie_goes_to_most_recently_updated(self):
        older = _schema("older", updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        newer = _schema("newer", updated_at=datetime(2024, 6, 1, tzinfo=timezone.utc))
        rows = [{"AgentName": "John", "Product": "Loan"}]

        assert detect(rows, [older, newer], threshold=30).matchedSchema.id == "newer"
        assert detect(rows, [newer, older], threshold=30).matchedSchema.id == "newer"

    def test_created_at_used_when_never_updated(self):
        edited = _schema("edited", updated_at=datetime(2024, 2, 1, tzinfo=timezone.utc))
        fresh = _schema("fresh", created_at=datetime(2024, 3, 1, tzinfo=timezone.utc))
        rows = [{"AgentName": "John", "Product": "Loan"}]
        assert detect(rows, [edited, fresh], threshold=30).matchedSchema.id == "fresh"

    def test_schema_without_timestamps_ranks_oldest(self):
        undated = _schema("undated")
        dated = _schema("dated", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc))
        rows = [{"AgentName": "John", "Product": "Loan"}]
        assert detect(rows, [undated, dated], threshold=30).matchedSchema.id == "dated"

    def test_equal_timestamps_break_by_id(self):
        stamp = datetime(2024, 1, 1, tzinfo=timezone.utc)
        rows = [{"AgentName": "John", "Product": "Loan"}]
        schemas = [_schema("b-schema", updated_at=stamp), _schema("a-schema", updated_at=stamp)]
        assert detect(rows, schemas, threshold=30).matchedSchema.id == "a-schema"

    def test_repeated_runs_agree(self, collections_schema, sales_schema, collections_rows):
        results = {
            detect(collections_rows, [sales_schema, collections_schema], threshold=30).matchedSchema.id
            for _ in range(5)
        }
        assert len(results) == 1

    def test_scores_equal_after_rounding_rank_by_raw_score(self):
        class NearlyEqual:
            def score(self, a, b):
                return 0.666669 if "alpha" in b.lower() else 0.666661

        older = _schema("alpha", updated_at=datetime(2023, 1, 1, tzinfo=timezone.utc),
                        names=("Alpha",))
        newer = _schema("beta", updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
                        names=("Beta",))

        ranked = score_schemas({"Column": 1}, [newer, older], NearlyEqual())

        assert [schema.id for schema, _, _ in ranked] == ["alpha", "beta"]
        assert [score for _, _, score in ranked] == [66.67, 66.67]
        result = detect([{"Column": 1}], [newer, older], threshold=30, strategy=NearlyEqual())
        assert result.matchedSchema.id == "alpha"

    def test_score_schemas_sorted_best_first(self, collections_schema, sales_schema, collections_rows):
        ranked = score_schemas(collections_rows[0], [sales_schema, collections_schema])
        scores = [score for _, _, score in ranked]
        assert scores == sorted(scores, reverse=True)


class TestConfidenceLevel:
    """Tests for confidence_level bucketing."""

    @pytest.mark.parametrize("score,expected", [
        (100.0, ConfidenceLevel.HIGH),
        (70.0, ConfidenceLevel.HIGH),
        (69.99, ConfidenceLevel.LOW),
        (30.01, ConfidenceLevel.LOW),
        (30.0, ConfidenceLevel.NONE),
        (0.0, ConfidenceLevel.NONE),
    ])
    def test_levels(self, score, expected):
        assert confidence_level(score, threshold=30) == expected

    def test_exact_match_is_high_confidence(self):
        result = detect([{"AgentName": "John", "Product": "Loan"}], [_schema("agents")], threshold=30)
        assert result.confidenceLevel == ConfidenceLevel.HIGH
