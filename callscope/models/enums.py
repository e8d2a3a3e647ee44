"""
Enumeration definitions for the CallScope service.

All enums inherit from both `str` and `Enum` to ensure JSON serialization compatibility
with Pydantic models, enabling automatic serialization/deserialization in API responses.
"""

from enum import Enum


class DataType(str, Enum):
    """
    Declared type of a schema field.

    Drives the Row Mapper's coercion and the tag of every stored metadata value.
    """
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class SemanticRole(str, Enum):
    """
    Optional role tag on a schema field.

    Lets the analytics engine find a field by meaning (e.g. "the timestamp") when no
    explicit field id is supplied.

    - identifier: Unique id of the call or its business object (bill id, order id)
    - timestamp: When the call happened; used for trend bucketing
    - participant: The agent or party whose performance is analysed
    - measure: A numeric quantity worth aggregating (amount, days past due)
    - dimension: A categorical attribute worth grouping by (product, status)
    """
    IDENTIFIER = "identifier"
    TIMESTAMP = "timestamp"
    PARTICIPANT = "participant"
    MEASURE = "measure"
    DIMENSION = "dimension"


class Aggregation(str, Enum):
    """Aggregation function applied to a measure field within a group."""
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


class CallStatus(str, Enum):
    """
    Lifecycle status of a call record.

    Records are created by the import flow as PENDING_AUDIO. Every later transition is
    made by external collaborators (audio attachment, transcription, evaluation).
    """
    PENDING_AUDIO = "pending_audio"
    UPLOADED = "uploaded"
    TRANSCRIBED = "transcribed"
    EVALUATED = "evaluated"
    FAILED = "failed"


class MatchTier(str, Enum):
    """
    Which rule of the tiered header comparison produced a field's weight.

    - exact: normalized header equals a field name or alias (weight 1.0)
    - contains: one normalized string contains the other (weight 0.6)
    - fuzzy: partial word-token overlap (weight up to 0.5)
    - none: nothing matched (weight 0.0)
    """
    EXACT = "exact"
    CONTAINS = "contains"
    FUZZY = "fuzzy"
    NONE = "none"


class ConfidenceLevel(str, Enum):
    """
    How far a detection result can be trusted.

    - high: score at or above the high confidence threshold
    - low: score above the detection threshold but below high confidence;
      the caller should ask the user to verify the mapping
    - none: no schema cleared the detection threshold
    """
    HIGH = "high"
    LOW = "low"
    NONE = "none"


class CorrelationStrength(str, Enum):
    """Interpretation band of a Pearson coefficient's magnitude."""
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NONE = "none"


class FilterOperator(str, Enum):
    """Comparison used by a drill-down filter."""
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"


class PerformanceTrend(str, Enum):
    """Direction of a participant's recent evaluation scores."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class DiagnosticCode(str, Enum):
    """
    Machine-readable reason attached to a degraded analytics result.

    - missing_field: the request referenced a field id the schema does not define
    - no_timestamp_field: the schema has no timestamp-role or date-typed field
    - no_participant_field: the schema has no participant-role field
    """
    MISSING_FIELD = "missing_field"
    NO_TIMESTAMP_FIELD = "no_timestamp_field"
    NO_PARTICIPANT_FIELD = "no_participant_field"
