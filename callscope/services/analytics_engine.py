"""
Generic Analytics Engine.

Schema-driven descriptive analytics over canonical CallRecords. No field identity is
hard-coded: every operation receives the field ids it works on (directly or through
an AnalyticsView) and resolves them against the schema at call time.

Operations:
    - aggregate_by_dimension: group by a dimension, aggregate a measure
    - calculate_trends: the same aggregation per UTC calendar day
    - correlate: Pearson correlation between two numeric fields
    - generate_scatter_data: (x, y, label) points for two numeric fields
    - generate_histogram: equal-width buckets, last bucket inclusive
    - calculate_percentile: linear interpolation between order statistics
    - get_top_values: most frequent values of a field
    - calculate_statistics: count, sum, mean, median, min, max, stdDev
    - filter_calls: conjunctive drill-down filters

Value handling:
    Metadata values are tagged (NumberValue, TextValue, DateValue, BoolValue).
    When a schema is given, text values in number, date and boolean fields are first
    retagged through the row mapper parsers (conform_records).
    Numeric operations read finite NumberValues only; anything else is excluded.
    Grouping uses a string form: text as is, whole numbers without decimals, dates
    as YYYY-MM-DD, booleans as "true"/"false", missing values as "Unknown".

Failure semantics:
    A referenced field that is absent from the schema never raises. The operation
    returns an empty or zero result, logs a warning and appends an
    AnalyticsDiagnostic to the caller's `diagnostics` list when one is given. Only
    structurally invalid arguments (e.g. a bucket count below 1) raise ValueError.

Rounding:
    Measures and statistics to 2 decimals, percentages to 1, correlation
    coefficients to 3.

Dependencies:
    - numpy: percentile, median, standard deviation, histogram bucket assignment
"""

import logging
import math
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from callscope.models import (
    Aggregation,
    AnalyticsDiagnostic,
    AnalyticsView,
    BoolValue,
    CallFilter,
    CallRecord,
    CorrelationResult,
    CorrelationStrength,
    DataType,
    DateValue,
    DiagnosticCode,
    FieldDefinition,
    FieldStatistics,
    FilterOperator,
    GenericAnalyticResult,
    HistogramBucket,
    NumberValue,
    ScatterPoint,
    SchemaDefinition,
    SemanticRole,
    TextValue,
    TopValue,
    TrendDataPoint,
    to_field_value,
)
from callscope.services.row_mapper import conform_records, parse_date, parse_number

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

UNKNOWN_DIMENSION = "Unknown"
MIN_CORRELATION_PAIRS = 3

# Lower bounds of |r| for each strength band, strongest first
CORRELATION_BANDS = (
    (0.7, CorrelationStrength.STRONG),
    (0.4, CorrelationStrength.MODERATE),
    (0.2, CorrelationStrength.WEAK),
)

DEFAULT_HISTOGRAM_BUCKETS = 10
DEFAULT_TOP_VALUES_LIMIT = 10

Diagnostics = Optional[List[AnalyticsDiagnostic]]


# =============================================================================
# Value Helpers
# =============================================================================


def numeric_value(value: Any) -> Optional[float]:
    """The float of a finite NumberValue; None for every other value."""
    if isinstance(value, NumberValue) and math.isfinite(value.value):
        return value.value
    return None


def string_form(value: Any) -> str:
    """
    Grouping key of a tagged value.

    Example:
        >>> string_form(NumberValue(value=3.0))
        '3'
        >>> string_form(None)
        'Unknown'
    """
    if value is None:
        return UNKNOWN_DIMENSION
    if isinstance(value, TextValue):
        return value.value
    if isinstance(value, NumberValue):
        number = value.value
        if math.isfinite(number) and number.is_integer():
            return str(int(number))
        return str(number)
    if isinstance(value, DateValue):
        return value.value.date().isoformat()
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    return str(value)


def numeric_values(records: Sequence[CallRecord], field_id: str) -> List[float]:
    """Finite numeric values of a field, in record order."""
    values = []
    for record in records:
        number = numeric_value(record.get_value(field_id))
        if number is not None:
            values.append(number)
    return values


def report_diagnostic(
    diagnostics: Diagnostics,
    code: DiagnosticCode,
    operation: str,
    message: str,
    field_id: Optional[str] = None,
) -> None:
    logger.warning(f"{operation}: {message}")
    if diagnostics is not None:
        diagnostics.append(
            AnalyticsDiagnostic(code=code, operation=operation, fieldId=field_id, message=message)
        )


def _require_field(
    schema: Optional[SchemaDefinition],
    field_id: Optional[str],
    operation: str,
    diagnostics: Diagnostics,
) -> Optional[FieldDefinition]:
    """
    Resolve a field id against the schema, reporting a diagnostic when it is absent.

    Without a schema there is nothing to resolve against, so a placeholder
    definition is returned and the operation works on the raw metadata.
    """
    if schema is None:
        return FieldDefinition(id=field_id, name=field_id) if field_id else None
    field_def = schema.get_field(field_id)
    if field_def is None:
        report_diagnostic(
            diagnostics,
            DiagnosticCode.MISSING_FIELD,
            operation,
            f"Field '{field_id}' not found in schema '{schema.id}'",
            field_id,
        )
    return field_def


def _aggregate(
    records: Sequence[CallRecord],
    measure_field: Optional[str],
    aggregation: Aggregation,
) -> float:
    """Apply the view's aggregation to one group; count when no measure field."""
    if measure_field is None or aggregation == Aggregation.COUNT:
        return float(len(records))

    values = numeric_values(records, measure_field)
    if aggregation == Aggregation.SUM:
        return float(sum(values))
    if not values:
        return 0.0
    if aggregation == Aggregation.AVG:
        return sum(values) / len(values)
    if aggregation == Aggregation.MIN:
        return min(values)
    return max(values)


def _resolve_view(
    schema: SchemaDefinition,
    view: AnalyticsView,
    operation: str,
    diagnostics: Diagnostics,
) -> bool:
    """True when every field the view names exists in the schema."""
    resolved = _require_field(schema, view.dimensionField, operation, diagnostics) is not None
    if view.measureField is not None:
        resolved = (
            _require_field(schema, view.measureField, operation, diagnostics) is not None
            and resolved
        )
    return resolved


# =============================================================================
# Aggregation and Trends
# =============================================================================


def aggregate_by_dimension(
    records: Sequence[CallRecord],
    schema: SchemaDefinition,
    view: AnalyticsView,
    diagnostics: Diagnostics = None,
) -> List[GenericAnalyticResult]:
    """
    Group records by the dimension field and aggregate the measure per group.

    Args:
        records: Canonical call records.
        schema: Schema the view's field ids resolve against.
        view: Dimension field, optional measure field and aggregation.
        diagnostics: Optional list collecting missing-field reports.

    Returns:
        One result per dimension value, sorted by measure descending; groups with
        equal measures keep first-seen order. Empty when a view field is absent.

    Example:
        Dimension values ["A", "A", "B"] counted:
        [{"dimension": "A", "measure": 2, "count": 2, "percentage": 66.7},
         {"dimension": "B", "measure": 1, "count": 1, "percentage": 33.3}]
    """
    if not _resolve_view(schema, view, "aggregate_by_dimension", diagnostics):
        return []
    records = conform_records(records, schema)

    groups: "OrderedDict[str, List[CallRecord]]" = OrderedDict()
    for record in records:
        key = string_form(record.get_value(view.dimensionField))
        groups.setdefault(key, []).append(record)

    total = len(records)
    results = [
        GenericAnalyticResult(
            dimension=dimension,
            measure=round(_aggregate(group, view.measureField, view.aggregation), 2),
            count=len(group),
            percentage=round(len(group) / total * 100, 1) if total else 0.0,
        )
        for dimension, group in groups.items()
    ]
    # sorted() is stable, so ties keep first-seen order
    return sorted(results, key=lambda result: -result.measure)


def find_timestamp_field(schema: SchemaDefinition) -> Optional[FieldDefinition]:
    """The timestamp-role field, else the first date-typed field."""
    return schema.find_by_role(SemanticRole.TIMESTAMP) or schema.find_by_type(DataType.DATE)


def calculate_trends(
    records: Sequence[CallRecord],
    schema: SchemaDefinition,
    view: AnalyticsView,
    diagnostics: Diagnostics = None,
) -> List[TrendDataPoint]:
    """
    Aggregate the view's measure per UTC calendar day.

    Records without a date value in the timestamp field are bucketed on their
    createdAt. The dimension field is validated but not used for grouping.

    Returns:
        Trend points in ascending date order; empty when the schema has no
        timestamp field or a view field is absent.
    """
    timestamp_field = find_timestamp_field(schema)
    if timestamp_field is None:
        report_diagnostic(
            diagnostics,
            DiagnosticCode.NO_TIMESTAMP_FIELD,
            "calculate_trends",
            f"Schema '{schema.id}' has no timestamp or date field",
        )
        return []
    if not _resolve_view(schema, view, "calculate_trends", diagnostics):
        return []
    records = conform_records(records, schema)

    buckets: Dict[str, List[CallRecord]] = {}
    for record in records:
        value = record.get_value(timestamp_field.id)
        if isinstance(value, DateValue):
            moment = value.value
        else:
            moment = DateValue(value=record.createdAt).value
        buckets.setdefault(moment.date().isoformat(), []).append(record)

    return [
        TrendDataPoint(
            date=day,
            value=round(_aggregate(group, view.measureField, view.aggregation), 2),
            count=len(group),
        )
        for day, group in sorted(buckets.items())
    ]


# =============================================================================
# Correlation and Scatter
# =============================================================================


def correlation_strength(coefficient: float) -> CorrelationStrength:
    """Band |r|: >= 0.7 strong, >= 0.4 moderate, >= 0.2 weak, else none."""
    magnitude = abs(coefficient)
    for lower_bound, strength in CORRELATION_BANDS:
        if magnitude >= lower_bound:
            return strength
    return CorrelationStrength.NONE


def pearson(pairs: Sequence[tuple]) -> float:
    """
    Pearson coefficient via the sum formula, clamped to [-1, 1].

    Returns 0 when either series has no variance.
    """
    n = len(pairs)
    sum_x = sum(x for x, _ in pairs)
    sum_y = sum(y for _, y in pairs)
    sum_x_sq = sum(x * x for x, _ in pairs)
    sum_y_sq = sum(y * y for _, y in pairs)
    sum_xy = sum(x * y for x, y in pairs)

    numerator = n * sum_xy - sum_x * sum_y
    variance_product = (n * sum_x_sq - sum_x * sum_x) * (n * sum_y_sq - sum_y * sum_y)
    if variance_product <= 0:
        return 0.0
    return max(-1.0, min(1.0, numerator / math.sqrt(variance_product)))


def _numeric_pairs(records: Sequence[CallRecord], x_field: str, y_field: str):
    for record in records:
        x = numeric_value(record.get_value(x_field))
        y = numeric_value(record.get_value(y_field))
        if x is not None and y is not None:
            yield record, x, y


def correlate(
    records: Sequence[CallRecord],
    schema: SchemaDefinition,
    field1: str,
    field2: str,
    diagnostics: Diagnostics = None,
) -> CorrelationResult:
    """
    Pearson correlation between two numeric fields.

    Only records where both values are finite numbers contribute. Fewer than three
    pairs, or a field absent from the schema, give coefficient 0 and strength none.

    Example:
        Pairs (1, 2), (2, 4), (3, 6) give coefficient 1.0, strength "strong".
    """
    first = _require_field(schema, field1, "correlate", diagnostics)
    second = _require_field(schema, field2, "correlate", diagnostics)
    if first is None or second is None:
        return CorrelationResult(
            field1=first.displayName if first else field1,
            field2=second.displayName if second else field2,
            coefficient=0.0,
            strength=CorrelationStrength.NONE,
        )

    records = conform_records(records, schema)

    pairs = [(x, y) for _, x, y in _numeric_pairs(records, field1, field2)]
    if len(pairs) < MIN_CORRELATION_PAIRS:
        return CorrelationResult(
            field1=first.displayName,
            field2=second.displayName,
            coefficient=0.0,
            strength=CorrelationStrength.NONE,
            sampleSize=len(pairs),
        )

    coefficient = pearson(pairs)
    return CorrelationResult(
        field1=first.displayName,
        field2=second.displayName,
        coefficient=round(coefficient, 3),
        strength=correlation_strength(coefficient),
        sampleSize=len(pairs),
    )


def generate_scatter_data(
    records: Sequence[CallRecord],
    schema: SchemaDefinition,
    x_field: str,
    y_field: str,
    diagnostics: Diagnostics = None,
) -> List[ScatterPoint]:
    """Scatter points for two numeric fields, labelled by participant or identifier."""
    x_def = _require_field(schema, x_field, "generate_scatter_data", diagnostics)
    y_def = _require_field(schema, y_field, "generate_scatter_data", diagnostics)
    if x_def is None or y_def is None:
        return []
    records = conform_records(records, schema)

    label_field = (
        schema.find_by_role(SemanticRole.PARTICIPANT)
        or schema.find_by_role(SemanticRole.IDENTIFIER)
    )

    points = []
    for record, x, y in _numeric_pairs(records, x_field, y_field):
        label = None
        if label_field is not None:
            label_value = record.get_value(label_field.id)
            label = string_form(label_value) if label_value is not None else None
        points.append(ScatterPoint(x=x, y=y, label=label))
    return points


# =============================================================================
# Distribution
# =============================================================================


def generate_histogram(
    records: Sequence[CallRecord],
    field_id: str,
    buckets: int = DEFAULT_HISTOGRAM_BUCKETS,
    schema: Optional[SchemaDefinition] = None,
    diagnostics: Diagnostics = None,
) -> List[HistogramBucket]:
    """
    Equal-width histogram of a numeric field.

    Every bucket is [start, end) except the last, which is [start, end] so the
    maximum is always counted. When all values are equal they land in the last
    bucket.

    Raises:
        ValueError: If buckets is less than 1.
    """
    if buckets < 1:
        raise ValueError(f"Histogram needs at least one bucket, got {buckets}")
    if _require_field(schema, field_id, "generate_histogram", diagnostics) is None:
        return []
    if schema is not None:
        records = conform_records(records, schema)

    values = np.array(numeric_values(records, field_id), dtype=float)
    if values.size == 0:
        return []

    low = float(values.min())
    high = float(values.max())
    size = (high - low) / buckets
    edges = np.array([low + i * size for i in range(buckets)] + [high])

    indexes = np.clip(np.searchsorted(edges, values, side="right") - 1, 0, buckets - 1)
    counts = np.bincount(indexes, minlength=buckets)

    histogram = []
    for i in range(buckets):
        start = float(edges[i])
        end = float(edges[i + 1])
        count = int(counts[i])
        histogram.append(HistogramBucket(
            range=f"{start:.1f}-{end:.1f}",
            start=round(start, 2),
            end=round(end, 2),
            count=count,
            percentage=round(count / values.size * 100, 1),
        ))
    return histogram


def calculate_percentile(
    records: Sequence[CallRecord],
    field_id: str,
    percentile: float,
    schema: Optional[SchemaDefinition] = None,
    diagnostics: Diagnostics = None,
) -> Optional[float]:
    """
    Percentile (0-100) of a numeric field by linear interpolation.

    Returns:
        The value rounded to 2 decimals, or None when the field has no numbers.

    Raises:
        ValueError: If percentile is outside [0, 100].
    """
    if not 0 <= percentile <= 100:
        raise ValueError(f"Percentile must be within [0, 100], got {percentile}")
    if _require_field(schema, field_id, "calculate_percentile", diagnostics) is None:
        return None
    if schema is not None:
        records = conform_records(records, schema)

    values = numeric_values(records, field_id)
    if not values:
        return None
    return round(float(np.percentile(values, percentile)), 2)


def get_top_values(
    records: Sequence[CallRecord],
    field_id: str,
    limit: int = DEFAULT_TOP_VALUES_LIMIT,
    schema: Optional[SchemaDefinition] = None,
    diagnostics: Diagnostics = None,
) -> List[TopValue]:
    """
    Most frequent values of a field, by string form.

    Missing values count as "Unknown". Percentages are of all records; equal counts
    keep first-seen order.
    """
    if limit < 1:
        raise ValueError(f"Top values limit must be at least 1, got {limit}")
    if _require_field(schema, field_id, "get_top_values", diagnostics) is None:
        return []
    if schema is not None:
        records = conform_records(records, schema)

    counts: "OrderedDict[str, int]" = OrderedDict()
    for record in records:
        key = string_form(record.get_value(field_id))
        counts[key] = counts.get(key, 0) + 1

    total = len(records)
    ranked = sorted(counts.items(), key=lambda item: -item[1])[:limit]
    return [
        TopValue(value=value, count=count, percentage=round(count / total * 100, 1))
        for value, count in ranked
    ]


def calculate_statistics(
    records: Sequence[CallRecord],
    field_id: str,
    schema: Optional[SchemaDefinition] = None,
    diagnostics: Diagnostics = None,
) -> Optional[FieldStatistics]:
    """
    Summary statistics of a numeric field (population standard deviation).

    Returns:
        FieldStatistics rounded to 2 decimals, or None when the field has no numbers.
    """
    if _require_field(schema, field_id, "calculate_statistics", diagnostics) is None:
        return None
    if schema is not None:
        records = conform_records(records, schema)

    values = np.array(numeric_values(records, field_id), dtype=float)
    if values.size == 0:
        return None

    return FieldStatistics(
        count=int(values.size),
        sum=round(float(values.sum()), 2),
        mean=round(float(values.mean()), 2),
        median=round(float(np.median(values)), 2),
        min=round(float(values.min()), 2),
        max=round(float(values.max()), 2),
        stdDev=round(float(values.std()), 2),
    )


# =============================================================================
# Filtering
# =============================================================================


def _target_number(target: Any) -> Optional[float]:
    if isinstance(target, bool):
        return None
    return parse_number(target)


def _ordering(value: Any, target: Any) -> Optional[int]:
    """-1, 0 or 1 comparing a tagged value with a filter operand; None if incomparable."""
    if isinstance(value, DateValue):
        left, right = value.value, parse_date(target)
    elif isinstance(value, NumberValue):
        left, right = numeric_value(value), _target_number(target)
    elif isinstance(value, TextValue):
        left, right = parse_number(value.value), _target_number(target)
    else:
        return None
    if left is None or right is None:
        return None
    return (left > right) - (left < right)


def _equals(value: Any, target: Any) -> bool:
    if isinstance(value, NumberValue):
        number = _target_number(target)
        if number is not None:
            return value.value == number
    if target is None:
        return False
    return string_form(value) == string_form(to_field_value(target))


_ORDER_CHECKS: Dict[FilterOperator, Callable[[int], bool]] = {
    FilterOperator.GT: lambda order: order > 0,
    FilterOperator.LT: lambda order: order < 0,
    FilterOperator.GTE: lambda order: order >= 0,
    FilterOperator.LTE: lambda order: order <= 0,
}


def matches_filter(record: CallRecord, call_filter: CallFilter) -> bool:
    """Whether one record satisfies one filter; a missing value never matches."""
    value = record.get_value(call_filter.fieldId)
    if value is None:
        return False

    operator = call_filter.operator
    if operator == FilterOperator.EQ:
        return _equals(value, call_filter.value)
    if operator == FilterOperator.NEQ:
        return not _equals(value, call_filter.value)
    if operator == FilterOperator.CONTAINS:
        if call_filter.value is None:
            return False
        needle = string_form(to_field_value(call_filter.value)).lower()
        return needle in string_form(value).lower()

    order = _ordering(value, call_filter.value)
    return order is not None and _ORDER_CHECKS[operator](order)


def filter_calls(
    records: Sequence[CallRecord],
    filters: Sequence[CallFilter],
) -> List[CallRecord]:
    """
    Records that satisfy every filter.

    Supports eq, neq, gt, lt, gte, lte and contains. Numbers compare numerically,
    dates chronologically, everything else by string form; contains is
    case-insensitive. Returns a new list and leaves the input untouched.
    """
    return [
        record for record in records
        if all(matches_filter(record, call_filter) for call_filter in filters)
    ]
