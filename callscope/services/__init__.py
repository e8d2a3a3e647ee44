"""
CallScope Services Module

Business logic for schema detection, row mapping and schema-driven analytics.
Every service is a set of pure functions over explicit arguments; none of them keeps
module-level mutable state or reads configuration.

Services (dependency order, leaves first):
- registry: explicitly owned schema registry, built-in schemas, schema variants
- similarity: header similarity strategies (tiered exact/contains/fuzzy)
- field_matcher: per-field column resolution and match score
- schema_detector: best-fit schema detection with deterministic tie-breaking
- row_mapper: raw row -> canonical tagged metadata, call record construction
- analytics_engine: aggregation, trends, correlation and distributions
- performance: evaluation analytics per participant and criterion

All services are designed to be consumed by the API layer (callscope/api/).
"""

# =============================================================================
# Registry Exports
# =============================================================================

from callscope.services.registry import (
    SchemaRegistry,
    DEFAULT_SCHEMAS,
    coerce_schema,
    load_registry,
    create_schema_variant,
    generate_schema_id,
)

# =============================================================================
# Matching and Detection Exports
# =============================================================================

from callscope.services.similarity import (
    SimilarityStrategy,
    TieredSimilarity,
    ExactSimilarity,
    normalize_header,
    tokenize_header,
)

from callscope.services.field_matcher import (
    resolve_columns,
    score_resolution,
    match_score,
)

from callscope.services.schema_detector import (
    detect,
    score_schemas,
    confidence_level,
)

# =============================================================================
# Row Mapper Exports
# =============================================================================

from callscope.services.row_mapper import (
    map_row,
    map_rows,
    build_call_records,
    conform_records,
    parse_number,
    parse_date,
    parse_boolean,
)

# =============================================================================
# Analytics Exports
# =============================================================================

from callscope.services.analytics_engine import (
    aggregate_by_dimension,
    calculate_trends,
    correlate,
    generate_scatter_data,
    generate_histogram,
    calculate_percentile,
    get_top_values,
    calculate_statistics,
    filter_calls,
)

from callscope.services.performance import (
    calculate_participant_performance,
    calculate_criteria_analytics,
    get_performance_trend,
)


__all__ = [
    # Registry
    'SchemaRegistry',
    'DEFAULT_SCHEMAS',
    'coerce_schema',
    'load_registry',
    'create_schema_variant',
    'generate_schema_id',
    # Similarity
    'SimilarityStrategy',
    'TieredSimilarity',
    'ExactSimilarity',
    'normalize_header',
    'tokenize_header',
    # Field matcher
    'resolve_columns',
    'score_resolution',
    'match_score',
    # Detector
    'detect',
    'score_schemas',
    'confidence_level',
    # Row mapper
    'map_row',
    'map_rows',
    'build_call_records',
    'conform_records',
    'parse_number',
    'parse_date',
    'parse_boolean',
    # Analytics engine
    'aggregate_by_dimension',
    'calculate_trends',
    'correlate',
    'generate_scatter_data',
    'generate_histogram',
    'calculate_percentile',
    'get_top_values',
    'calculate_statistics',
    'filter_calls',
    # Performance
    'calculate_participant_performance',
    'calculate_criteria_analytics',
    'get_performance_trend',
]
