"""
Package initialization file for CallScope models.

This module exports all Pydantic schemas and enumerations from schemas.py and enums.py,
making them importable from callscope.models directly.

Usage:
    from callscope.models import (
        SchemaDefinition,
        FieldDefinition,
        AnalyticsView,
        CallRecord,
        # ... etc
    )
"""

# =============================================================================
# Enums - Import and re-export all enumerations from enums.py
# =============================================================================

from callscope.models.enums import (
    DataType,
    SemanticRole,
    Aggregation,
    CallStatus,
    MatchTier,
    ConfidenceLevel,
    CorrelationStrength,
    FilterOperator,
    PerformanceTrend,
    DiagnosticCode,
)


# =============================================================================
# Schemas - Import and re-export all Pydantic models from schemas.py
# =============================================================================

from callscope.models.schemas import (
    # -------------------------------------------------------------------------
    # Canonical values
    # -------------------------------------------------------------------------
    NumberValue,
    TextValue,
    DateValue,
    BoolValue,
    FieldValue,
    to_field_value,
    utc_now,

    # -------------------------------------------------------------------------
    # Schema definitions
    # -------------------------------------------------------------------------
    FieldDefinition,
    SchemaDefinition,
    AnalyticsView,

    # -------------------------------------------------------------------------
    # Call records
    # -------------------------------------------------------------------------
    EvaluationResult,
    CallEvaluation,
    CallRecord,

    # -------------------------------------------------------------------------
    # Matching and detection
    # -------------------------------------------------------------------------
    ColumnMatch,
    ColumnResolution,
    SchemaScore,
    DetectionResult,
    MappingResult,

    # -------------------------------------------------------------------------
    # Analytics results
    # -------------------------------------------------------------------------
    AnalyticsDiagnostic,
    GenericAnalyticResult,
    TrendDataPoint,
    CorrelationResult,
    ScatterPoint,
    HistogramBucket,
    TopValue,
    FieldStatistics,
    CallFilter,

    # -------------------------------------------------------------------------
    # Performance results
    # -------------------------------------------------------------------------
    ParticipantPerformance,
    CriteriaAnalytics,
    PerformanceTrendPoint,

    # -------------------------------------------------------------------------
    # API contracts
    # -------------------------------------------------------------------------
    AnalyticsResponse,
    SchemaSummary,
    DetectRequest,
    DetectResponse,
    MapRequest,
    RowIssue,
    MapResponse,
    SchemaCallsRequest,
    ViewRequest,
    CorrelationRequest,
    ScatterRequest,
    FieldCallsRequest,
    HistogramRequest,
    PercentileRequest,
    TopValuesRequest,
    FilterRequest,
    PerformanceRequest,
)


__all__ = [
    # Enums
    'DataType',
    'SemanticRole',
    'Aggregation',
    'CallStatus',
    'MatchTier',
    'ConfidenceLevel',
    'CorrelationStrength',
    'FilterOperator',
    'PerformanceTrend',
    'DiagnosticCode',
    # Canonical values
    'NumberValue',
    'TextValue',
    'DateValue',
    'BoolValue',
    'FieldValue',
    'to_field_value',
    'utc_now',
    # Schema definitions
    'FieldDefinition',
    'SchemaDefinition',
    'AnalyticsView',
    # Call records
    'EvaluationResult',
    'CallEvaluation',
    'CallRecord',
    # Matching and detection
    'ColumnMatch',
    'ColumnResolution',
    'SchemaScore',
    'DetectionResult',
    'MappingResult',
    # Analytics results
    'AnalyticsDiagnostic',
    'GenericAnalyticResult',
    'TrendDataPoint',
    'CorrelationResult',
    'ScatterPoint',
    'HistogramBucket',
    'TopValue',
    'FieldStatistics',
    'CallFilter',
    # Performance results
    'ParticipantPerformance',
    'CriteriaAnalytics',
    'PerformanceTrendPoint',
    # API contracts
    'AnalyticsResponse',
    'SchemaSummary',
    'DetectRequest',
    'DetectResponse',
    'MapRequest',
    'RowIssue',
    'MapResponse',
    'SchemaCallsRequest',
    'ViewRequest',
    'CorrelationRequest',
    'ScatterRequest',
    'FieldCallsRequest',
    'HistogramRequest',
    'PercentileRequest',
    'TopValuesRequest',
    'FilterRequest',
    'PerformanceRequest',
]
