"""
FastAPI router module for schema-driven analytics.

Every endpoint receives the call records to analyse in the request body together
with the field ids (or an AnalyticsView) to work on. The records are never stored.

Key Endpoints:
- POST /analytics/aggregate: Group by dimension, aggregate measure
- POST /analytics/trends: Daily series of the view's aggregation
- POST /analytics/correlation: Pearson correlation between two numeric fields
- POST /analytics/scatter: Scatter points for two numeric fields
- POST /analytics/histogram: Equal-width distribution of a numeric field
- POST /analytics/percentile: Percentile of a numeric field
- POST /analytics/top-values: Most frequent values of a field
- POST /analytics/statistics: Summary statistics of a numeric field
- POST /analytics/filter: Drill-down filtering
- POST /analytics/performance/participants: Evaluation performance per participant
- POST /analytics/performance/criteria: Pass rate per evaluation criterion
- POST /analytics/performance/trend: Daily average evaluation percentage

Response shape:
    { "data": <result>, "diagnostics": [ ... ] }

A field id missing from the schema is not an HTTP error: data is empty (or zero)
and diagnostics explains why. An unknown schemaId returns 404.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from callscope.core.dependencies import RegistryDep, SettingsDep
from callscope.core.exceptions import SchemaNotFoundError
from callscope.models import (
    AnalyticsDiagnostic,
    AnalyticsResponse,
    CallRecord,
    CorrelationRequest,
    CorrelationResult,
    CriteriaAnalytics,
    FieldCallsRequest,
    FieldStatistics,
    FilterRequest,
    GenericAnalyticResult,
    HistogramBucket,
    HistogramRequest,
    ParticipantPerformance,
    PercentileRequest,
    PerformanceRequest,
    PerformanceTrendPoint,
    ScatterPoint,
    ScatterRequest,
    SchemaCallsRequest,
    SchemaDefinition,
    TopValue,
    TopValuesRequest,
    TrendDataPoint,
    ViewRequest,
)
from callscope.services import analytics_engine, performance
from callscope.services.registry import SchemaRegistry


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================


def _schema_or_404(registry: SchemaRegistry, schema_id: Optional[str]) -> Optional[SchemaDefinition]:
    """Look up a schema for a request; None when the request names none."""
    if schema_id is None:
        return None
    try:
        return registry.require(schema_id)
    except SchemaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _log_diagnostics(operation: str, diagnostics: List[AnalyticsDiagnostic]) -> None:
    if diagnostics:
        logger.info(f"{operation} returned with {len(diagnostics)} diagnostics")


# =============================================================================
# Aggregation Endpoints
# =============================================================================


@router.post("/aggregate", response_model=AnalyticsResponse[List[GenericAnalyticResult]])
async def aggregate(request: ViewRequest, registry: RegistryDep):
    """
    Group calls by the view's dimension and aggregate its measure.

    Request Body:
        schemaId, calls, view {dimensionField, measureField?, aggregation}
    """
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = analytics_engine.aggregate_by_dimension(
        request.calls, schema, request.view, diagnostics
    )
    _log_diagnostics("aggregate", diagnostics)
    return AnalyticsResponse[List[GenericAnalyticResult]](data=data, diagnostics=diagnostics)


@router.post("/trends", response_model=AnalyticsResponse[List[TrendDataPoint]])
async def trends(request: ViewRequest, registry: RegistryDep):
    """Daily series of the view's aggregation, oldest first."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = analytics_engine.calculate_trends(request.calls, schema, request.view, diagnostics)
    _log_diagnostics("trends", diagnostics)
    return AnalyticsResponse[List[TrendDataPoint]](data=data, diagnostics=diagnostics)


# =============================================================================
# Relationship Endpoints
# =============================================================================


@router.post("/correlation", response_model=AnalyticsResponse[CorrelationResult])
async def correlation(request: CorrelationRequest, registry: RegistryDep):
    """Pearson correlation between field1 and field2."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = analytics_engine.correlate(
        request.calls, schema, request.field1, request.field2, diagnostics
    )
    _log_diagnostics("correlation", diagnostics)
    return AnalyticsResponse[CorrelationResult](data=data, diagnostics=diagnostics)


@router.post("/scatter", response_model=AnalyticsResponse[List[ScatterPoint]])
async def scatter(request: ScatterRequest, registry: RegistryDep):
    """Scatter points for xField against yField."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = analytics_engine.generate_scatter_data(
        request.calls, schema, request.xField, request.yField, diagnostics
    )
    _log_diagnostics("scatter", diagnostics)
    return AnalyticsResponse[List[ScatterPoint]](data=data, diagnostics=diagnostics)


# =============================================================================
# Distribution Endpoints
# =============================================================================


@router.post("/histogram", response_model=AnalyticsResponse[List[HistogramBucket]])
async def histogram(request: HistogramRequest, registry: RegistryDep, settings: SettingsDep):
    """Equal-width histogram; bucket count defaults to DEFAULT_HISTOGRAM_BUCKETS."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    buckets = request.buckets or settings.default_histogram_buckets
    data = analytics_engine.generate_histogram(
        request.calls, request.fieldId, buckets, schema, diagnostics
    )
    return AnalyticsResponse[List[HistogramBucket]](data=data, diagnostics=diagnostics)


@router.post("/percentile", response_model=AnalyticsResponse[Optional[float]])
async def percentile(request: PercentileRequest, registry: RegistryDep):
    """Percentile (0-100) by linear interpolation; data is null without numeric values."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = analytics_engine.calculate_percentile(
        request.calls, request.fieldId, request.percentile, schema, diagnostics
    )
    return AnalyticsResponse[Optional[float]](data=data, diagnostics=diagnostics)


@router.post("/top-values", response_model=AnalyticsResponse[List[TopValue]])
async def top_values(request: TopValuesRequest, registry: RegistryDep, settings: SettingsDep):
    """Most frequent values; limit defaults to DEFAULT_TOP_VALUES_LIMIT."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    limit = request.limit or settings.default_top_values_limit
    data = analytics_engine.get_top_values(
        request.calls, request.fieldId, limit, schema, diagnostics
    )
    return AnalyticsResponse[List[TopValue]](data=data, diagnostics=diagnostics)


@router.post("/statistics", response_model=AnalyticsResponse[Optional[FieldStatistics]])
async def statistics(request: FieldCallsRequest, registry: RegistryDep):
    """Summary statistics; data is null without numeric values."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = analytics_engine.calculate_statistics(
        request.calls, request.fieldId, schema, diagnostics
    )
    return AnalyticsResponse[Optional[FieldStatistics]](data=data, diagnostics=diagnostics)


@router.post("/filter", response_model=AnalyticsResponse[List[CallRecord]])
async def filter_records(request: FilterRequest):
    """Calls matching every filter."""
    data = analytics_engine.filter_calls(request.calls, request.filters)
    logger.debug(f"Filter kept {len(data)} of {len(request.calls)} calls")
    return AnalyticsResponse[List[CallRecord]](data=data)


# =============================================================================
# Performance Endpoints
# =============================================================================


@router.post(
    "/performance/participants",
    response_model=AnalyticsResponse[List[ParticipantPerformance]],
)
async def participant_performance(request: PerformanceRequest, registry: RegistryDep):
    """Evaluation performance per participant, best average percentage first."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = performance.calculate_participant_performance(
        request.calls, schema, request.participantField, diagnostics
    )
    return AnalyticsResponse[List[ParticipantPerformance]](data=data, diagnostics=diagnostics)


@router.post("/performance/criteria", response_model=AnalyticsResponse[List[CriteriaAnalytics]])
async def criteria_analytics(request: SchemaCallsRequest, registry: RegistryDep):
    """Pass rate, average score and common issues per evaluation criterion."""
    _schema_or_404(registry, request.schemaId)
    data = performance.calculate_criteria_analytics(request.calls)
    return AnalyticsResponse[List[CriteriaAnalytics]](data=data)


@router.post("/performance/trend", response_model=AnalyticsResponse[List[PerformanceTrendPoint]])
async def performance_trend(request: PerformanceRequest, registry: RegistryDep):
    """Daily average evaluation percentage, optionally for one participant."""
    schema = _schema_or_404(registry, request.schemaId)
    diagnostics: List[AnalyticsDiagnostic] = []
    data = performance.get_performance_trend(
        request.calls, schema, request.participant, request.participantField, diagnostics
    )
    return AnalyticsResponse[List[PerformanceTrendPoint]](data=data, diagnostics=diagnostics)
