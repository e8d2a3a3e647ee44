"""
Pydantic models for the CallScope service.

This module provides type-safe data validation and serialization for the schema
registry, canonical call records, detection and mapping results, analytics results
and the HTTP request/response contracts built on them.

Model groups:
- Schema definitions: FieldDefinition, SchemaDefinition, AnalyticsView
- Canonical values: NumberValue, TextValue, DateValue, BoolValue (the FieldValue union)
- Call records: CallRecord, CallEvaluation, EvaluationResult
- Matching: ColumnMatch, ColumnResolution, SchemaScore, DetectionResult, MappingResult
- Analytics results: GenericAnalyticResult, TrendDataPoint, CorrelationResult,
  ScatterPoint, HistogramBucket, TopValue, FieldStatistics, AnalyticsDiagnostic
- Performance results: ParticipantPerformance, CriteriaAnalytics, PerformanceTrendPoint
- API contracts: *Request / *Response models used by callscope/api

All models use Pydantic v2 syntax. Attribute names follow the camelCase contract the
web client already consumes.
"""

from datetime import date as DateType, datetime, time, timezone
from typing import Annotated, Any, Dict, Generic, List, Literal, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from callscope.core.exceptions import SchemaDefinitionError
from callscope.models.enums import (
    Aggregation,
    CallStatus,
    ConfidenceLevel,
    CorrelationStrength,
    DataType,
    DiagnosticCode,
    FilterOperator,
    MatchTier,
    PerformanceTrend,
    SemanticRole,
)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# Canonical Field Values
# =============================================================================
# Metadata values carry an explicit type tag so analytics can dispatch on the
# declared type instead of guessing from the Python value.


class NumberValue(BaseModel):
    """A numeric metadata value."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    value: float


class TextValue(BaseModel):
    """A free-text or categorical metadata value."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


class DateValue(BaseModel):
    """
    A point in time, always stored as a timezone-aware UTC datetime.

    Naive datetimes are interpreted as UTC; aware ones are converted.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["date"] = "date"
    value: datetime

    @field_validator("value")
    @classmethod
    def _normalize_to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class BoolValue(BaseModel):
    """A boolean metadata value."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["boolean"] = "boolean"
    value: bool


FieldValue = Annotated[
    Union[NumberValue, TextValue, DateValue, BoolValue],
    Field(discriminator="kind"),
]

_VALUE_TYPES = (NumberValue, TextValue, DateValue, BoolValue)


def to_field_value(raw: Any) -> Union[NumberValue, TextValue, DateValue, BoolValue]:
    """
    Tag a plain Python value with its canonical variant.

    bool → BoolValue, int/float → NumberValue, datetime/date → DateValue (midnight UTC
    for dates), anything else → TextValue of its string form. Values that are already
    tagged are returned unchanged.

    Example:
        >>> to_field_value(12.5)
        NumberValue(kind='number', value=12.5)
    """
    if isinstance(raw, _VALUE_TYPES):
        return raw
    if isinstance(raw, bool):
        return BoolValue(value=raw)
    if isinstance(raw, (int, float)):
        return NumberValue(value=float(raw))
    if isinstance(raw, datetime):
        return DateValue(value=raw)
    if isinstance(raw, DateType):
        return DateValue(value=datetime.combine(raw, time.min, tzinfo=timezone.utc))
    return TextValue(value=str(raw))


# =============================================================================
# Schema Definitions
# =============================================================================


class FieldDefinition(BaseModel):
    """
    One canonical field of a schema.

    The name, display name and aliases are the strings the Field Matcher compares
    against incoming column headers.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "agentName",
                "name": "agentName",
                "displayName": "Agent Name",
                "aliases": ["agent", "collector", "caller"],
                "dataType": "text",
                "semanticRole": "participant",
                "required": True,
            }
        }
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Canonical field id, unique within the schema"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Primary column name this field is known by"
    )
    displayName: str = Field(
        default="",
        description="Human readable label; defaults to name"
    )
    aliases: List[str] = Field(
        default_factory=list,
        description="Alternative column headers that identify this field"
    )
    dataType: DataType = Field(
        default=DataType.TEXT,
        description="Declared type used for coercion"
    )
    semanticRole: Optional[SemanticRole] = Field(
        default=None,
        description="Optional role enabling role-based field resolution"
    )
    required: bool = Field(
        default=False,
        description="Whether imports should flag rows where this field cannot be resolved"
    )
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _default_display_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("displayName"):
            data = {**data, "displayName": data.get("name", "")}
        return data

    def candidate_names(self) -> List[str]:
        """Name, display name and aliases in that order, without duplicates."""
        names: List[str] = []
        for candidate in [self.name, self.displayName, *self.aliases]:
            if candidate and candidate not in names:
                names.append(candidate)
        return names


class SchemaDefinition(BaseModel):
    """
    A registered description of one source layout.

    Identity is immutable once created; edits produce a new version.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "collections-calls",
                "name": "Collections Calls",
                "version": "1.0.0",
                "fields": [
                    {"id": "agentName", "name": "agentName", "displayName": "Agent Name"},
                    {"id": "product", "name": "product", "displayName": "Product"},
                ],
            }
        }
    )

    id: str = Field(..., min_length=1, description="Stable, unique schema id")
    name: str = Field(..., min_length=1, description="Schema name shown to users")
    version: str = Field(default="1.0.0", description="Bumped on every edit")
    fields: List[FieldDefinition] = Field(
        default_factory=list,
        description="Ordered field definitions"
    )
    description: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator("fields")
    @classmethod
    def _unique_field_ids(
        cls, fields: List[FieldDefinition], info: ValidationInfo
    ) -> List[FieldDefinition]:
        seen = set()
        for field_def in fields:
            if field_def.id in seen:
                raise SchemaDefinitionError(
                    info.data.get("id", "?"), f"duplicate field id '{field_def.id}'"
                )
            seen.add(field_def.id)
        return fields

    def get_field(self, field_id: Optional[str]) -> Optional[FieldDefinition]:
        """Return the field with the given id, or None."""
        if field_id is None:
            return None
        for field_def in self.fields:
            if field_def.id == field_id:
                return field_def
        return None

    def find_by_role(self, role: SemanticRole) -> Optional[FieldDefinition]:
        """Return the first field carrying the given semantic role, or None."""
        for field_def in self.fields:
            if field_def.semanticRole == role:
                return field_def
        return None

    def find_by_type(self, data_type: DataType) -> Optional[FieldDefinition]:
        """Return the first field of the given data type, or None."""
        for field_def in self.fields:
            if field_def.dataType == data_type:
                return field_def
        return None

    @property
    def lastModified(self) -> Optional[datetime]:
        """updatedAt when the schema has been edited, otherwise createdAt."""
        return self.updatedAt or self.createdAt


class AnalyticsView(BaseModel):
    """
    Declarative analytics descriptor.

    Names the field to group by, the optional field to aggregate and the
    aggregation function. Without a measure field every aggregation is a count.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "dimensionField": "agentName",
                "measureField": "dueAmount",
                "aggregation": "sum",
            }
        }
    )

    dimensionField: str = Field(..., min_length=1)
    measureField: Optional[str] = None
    aggregation: Aggregation = Aggregation.COUNT


# =============================================================================
# Call Records
# =============================================================================


class EvaluationResult(BaseModel):
    """Outcome of one evaluation criterion for one call."""
    criterionId: int
    score: float
    passed: bool
    evidence: str = ""
    reasoning: str = ""


class CallEvaluation(BaseModel):
    """Evaluation attached to a call by the external evaluation collaborator."""
    id: str
    callId: str
    evaluatedAt: datetime
    totalScore: float
    maxScore: float
    percentage: float
    results: List[EvaluationResult] = Field(default_factory=list)
    overallFeedback: str = ""


class CallRecord(BaseModel):
    """
    A canonical call record.

    metadata maps canonical field id to a tagged value, in schema field order when
    produced by the Row Mapper. Plain values passed in are tagged on construction and
    None values are dropped.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "import-1717171717000-0",
                "metadata": {
                    "agentName": {"kind": "text", "value": "John"},
                    "dueAmount": {"kind": "number", "value": 1250.5},
                },
                "status": "pending_audio",
                "schemaId": "collections-calls",
                "schemaVersion": "1.0.0",
            }
        }
    )

    id: str = Field(..., min_length=1)
    metadata: Dict[str, FieldValue] = Field(default_factory=dict)
    status: CallStatus = CallStatus.PENDING_AUDIO
    schemaId: Optional[str] = None
    schemaVersion: Optional[str] = None
    createdAt: datetime = Field(default_factory=utc_now)
    updatedAt: Optional[datetime] = None
    evaluation: Optional[CallEvaluation] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _tag_plain_values(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        tagged: Dict[str, Any] = {}
        for key, raw in value.items():
            if raw is None:
                continue
            if isinstance(raw, Mapping) and "kind" in raw:
                tagged[key] = raw
            else:
                tagged[key] = to_field_value(raw)
        return tagged

    def get_value(self, field_id: str) -> Optional[Union[NumberValue, TextValue, DateValue, BoolValue]]:
        """Return the tagged value for a field id, or None when absent."""
        return self.metadata.get(field_id)


# =============================================================================
# Matching and Detection
# =============================================================================


class ColumnMatch(BaseModel):
    """The source column chosen for one schema field and how well it matched."""
    model_config = ConfigDict(frozen=True)

    fieldId: str
    column: Optional[str] = Field(
        default=None,
        description="Raw header chosen for the field; None when no header matched well enough"
    )
    weight: float = Field(default=0.0, ge=0.0, le=1.0)
    tier: MatchTier = MatchTier.NONE


class ColumnResolution(BaseModel):
    """
    Per-field column choice for one schema against one header row.

    Produced by the Field Matcher, carried by the detection result and reused by
    the Row Mapper so that scoring and mapping agree on every column.
    """
    model_config = ConfigDict(frozen=True)

    schemaId: str
    headers: List[str] = Field(default_factory=list)
    matches: Dict[str, ColumnMatch] = Field(default_factory=dict)

    def column_for(self, field_id: str) -> Optional[str]:
        """Raw header resolved for the field, or None."""
        match = self.matches.get(field_id)
        return match.column if match else None

    def as_mapping(self) -> Dict[str, Optional[str]]:
        """Field id → resolved header, in schema field order."""
        return {field_id: match.column for field_id, match in self.matches.items()}


class SchemaScore(BaseModel):
    """Match score of one candidate schema."""
    schemaId: str
    schemaName: str
    score: float = Field(..., ge=0.0, le=100.0)


class DetectionResult(BaseModel):
    """
    Outcome of schema detection.

    matchedSchema is set only when the best score exceeds the threshold. bestMatch is
    the top candidate regardless of threshold and must be treated as unverified when
    matchedSchema is None.
    """
    matchedSchema: Optional[SchemaDefinition] = None
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    confidenceLevel: ConfidenceLevel = ConfidenceLevel.NONE
    threshold: float
    bestMatch: Optional[SchemaDefinition] = None
    bestScore: float = Field(default=0.0, ge=0.0, le=100.0)
    resolution: Optional[ColumnResolution] = Field(
        default=None,
        description="Column resolution of bestMatch"
    )
    scores: List[SchemaScore] = Field(default_factory=list)

    @property
    def detected(self) -> bool:
        return self.matchedSchema is not None


class MappingResult(BaseModel):
    """
    Canonical metadata for one row plus what the caller should review.

    - missingRequired: required fields with no resolved column (left unset)
    - defaulted: fields whose cell could not be coerced (0 for numbers, unset otherwise)
    """
    metadata: Dict[str, FieldValue] = Field(default_factory=dict)
    columns: Dict[str, str] = Field(
        default_factory=dict,
        description="Field id → source header actually read"
    )
    missingRequired: List[str] = Field(default_factory=list)
    defaulted: List[str] = Field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return bool(self.missingRequired or self.defaulted)


# =============================================================================
# Analytics Results
# =============================================================================


class AnalyticsDiagnostic(BaseModel):
    """Why an analytics operation returned an empty or zero result."""
    code: DiagnosticCode
    operation: str
    fieldId: Optional[str] = None
    message: str


class GenericAnalyticResult(BaseModel):
    """One group of aggregateByDimension."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"dimension": "John", "measure": 2, "count": 2, "percentage": 66.7}
        }
    )

    dimension: str
    measure: float
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)


class TrendDataPoint(BaseModel):
    """One calendar day of a trend series."""
    date: str = Field(..., description="ISO date (YYYY-MM-DD), UTC")
    value: float
    count: int = Field(..., ge=0)


class CorrelationResult(BaseModel):
    """Pearson correlation between two numeric fields."""
    field1: str
    field2: str
    coefficient: float = Field(..., ge=-1.0, le=1.0)
    strength: CorrelationStrength
    sampleSize: int = Field(default=0, ge=0)


class ScatterPoint(BaseModel):
    """One (x, y) point of a scatter plot."""
    x: float
    y: float
    label: Optional[str] = None


class HistogramBucket(BaseModel):
    """One equal-width histogram bucket."""
    range: str
    start: float
    end: float
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)


class TopValue(BaseModel):
    """A frequent value of a field."""
    value: str
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)


class FieldStatistics(BaseModel):
    """Summary statistics for a numeric field."""
    count: int = Field(..., ge=0)
    sum: float
    mean: float
    median: float
    min: float
    max: float
    stdDev: float = Field(..., ge=0.0)


class CallFilter(BaseModel):
    """One drill-down filter condition."""
    fieldId: str = Field(..., min_length=1)
    operator: FilterOperator = FilterOperator.EQ
    value: Any = None


# =============================================================================
# Performance Results
# =============================================================================


class ParticipantPerformance(BaseModel):
    """Evaluation performance of one participant (typically an agent)."""
    participant: str
    totalCalls: int
    averageScore: float
    averagePercentage: float
    criteriaScores: Dict[int, float] = Field(default_factory=dict)
    trend: PerformanceTrend = PerformanceTrend.STABLE
    topStrengths: List[int] = Field(default_factory=list)
    topWeaknesses: List[int] = Field(default_factory=list)


class CriteriaAnalytics(BaseModel):
    """Pass rate and scores of one evaluation criterion across calls."""
    criterionId: int
    totalEvaluations: int
    passRate: float
    averageScore: float
    commonIssues: List[str] = Field(default_factory=list)


class PerformanceTrendPoint(BaseModel):
    """Average evaluation percentage of one calendar day."""
    date: str
    score: int
    count: int


# =============================================================================
# API Contracts
# =============================================================================

T = TypeVar("T")


class AnalyticsResponse(BaseModel, Generic[T]):
    """Analytics payload plus the diagnostics explaining any degraded result."""
    data: T
    diagnostics: List[AnalyticsDiagnostic] = Field(default_factory=list)


class SchemaSummary(BaseModel):
    """Registry listing entry."""
    id: str
    name: str
    version: str
    fieldCount: int
    updatedAt: Optional[datetime] = None


class DetectRequest(BaseModel):
    """Parsed rows to detect a schema for."""
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    threshold: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=100.0,
        description="Overrides the configured detection threshold"
    )


class DetectResponse(BaseModel):
    """Detection outcome as consumed by the import flow."""
    schemaId: Optional[str] = None
    schemaName: Optional[str] = None
    confidence: float = 0.0
    confidenceLevel: ConfidenceLevel = ConfidenceLevel.NONE
    threshold: float
    bestMatchId: Optional[str] = None
    bestScore: float = 0.0
    columns: Dict[str, Optional[str]] = Field(default_factory=dict)
    scores: List[SchemaScore] = Field(default_factory=list)


class MapRequest(BaseModel):
    """Parsed rows to convert with a known schema."""
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class RowIssue(BaseModel):
    """Review flags for one imported row."""
    rowIndex: int
    missingRequired: List[str] = Field(default_factory=list)
    defaulted: List[str] = Field(default_factory=list)


class MapResponse(BaseModel):
    """Call records built from the rows, plus rows that need review."""
    schemaId: str
    columns: Dict[str, Optional[str]] = Field(default_factory=dict)
    records: List[CallRecord] = Field(default_factory=list)
    issues: List[RowIssue] = Field(default_factory=list)


class SchemaCallsRequest(BaseModel):
    """Base of analytics requests evaluated against a registered schema."""
    schemaId: str = Field(..., min_length=1)
    calls: List[CallRecord] = Field(default_factory=list)


class ViewRequest(SchemaCallsRequest):
    view: AnalyticsView


class CorrelationRequest(SchemaCallsRequest):
    field1: str
    field2: str


class ScatterRequest(SchemaCallsRequest):
    xField: str
    yField: str


class FieldCallsRequest(BaseModel):
    """Base of analytics requests over a single metadata field."""
    calls: List[CallRecord] = Field(default_factory=list)
    fieldId: str = Field(..., min_length=1)
    schemaId: Optional[str] = Field(
        default=None,
        description="When given, fieldId is checked against this schema"
    )


class HistogramRequest(FieldCallsRequest):
    buckets: Optional[int] = Field(default=None, ge=1)


class PercentileRequest(FieldCallsRequest):
    percentile: float = Field(..., ge=0.0, le=100.0)


class TopValuesRequest(FieldCallsRequest):
    limit: Optional[int] = Field(default=None, ge=1)


class FilterRequest(BaseModel):
    calls: List[CallRecord] = Field(default_factory=list)
    filters: List[CallFilter] = Field(default_factory=list)


class PerformanceRequest(SchemaCallsRequest):
    participantField: Optional[str] = None
    participant: Optional[str] = None
