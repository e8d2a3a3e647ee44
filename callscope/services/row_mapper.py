"""
Row Mapper Service.

Converts raw parsed rows into canonical, type-tagged metadata using a schema and the
column resolution chosen during detection.

Column choice:
    The mapper never re-derives columns on its own. It reads every field through a
    ColumnResolution: the one carried by DetectionResult when available, otherwise
    one computed by the Field Matcher's resolve_columns. Mapping the same row with
    the same schema therefore always reads the same cells.

Coercion by declared dataType:
    - number:  locale-aware parsing ("1,234.56", "1.234,56", "12,5", "$1,200",
               "(300)" for -300). Unparsable input becomes 0 and is reported in
               MappingResult.defaulted; this loss is intentional and visible.
    - date:    strings via pandas, spreadsheet serial day numbers, date/datetime
               objects; always normalized to a UTC datetime. Unparsable input is
               left unset and reported in defaulted.
    - boolean: true/false, yes/no, y/n, 1/0 (case-insensitive); anything else is
               left unset and reported in defaulted.
    - text:    stripped string; whole floats lose their ".0" (Excel reads IDs as
               floats).

Blank cells (None, NaN, empty or whitespace strings) are omitted. Required fields
whose column could not be resolved are left unset and listed in missingRequired;
this is never fatal.
"""

import logging
import math
import numbers
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from callscope.models import (
    BoolValue,
    CallRecord,
    CallStatus,
    ColumnResolution,
    DataType,
    DateValue,
    FieldDefinition,
    MappingResult,
    NumberValue,
    SchemaDefinition,
    TextValue,
    utc_now,
)
from callscope.services.field_matcher import resolve_columns
from callscope.services.registry import coerce_schema
from callscope.services.similarity import SimilarityStrategy

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Day zero of spreadsheet serial dates (accounts for the 1900 leap-year bug)
SPREADSHEET_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
MAX_SERIAL_DAY = 2958465  # 9999-12-31

TRUE_STRINGS = frozenset({"true", "yes", "y", "1", "t"})
FALSE_STRINGS = frozenset({"false", "no", "n", "0", "f"})

_CURRENCY_AND_SPACE = re.compile(r"[\s $€£¥₹₩₽¢%]")
_PARENTHESIZED = re.compile(r"^\((.*)\)$")
_COMMA_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(,\d{3})+$")
_DOT_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(\.\d{3}){2,}$")
_SERIAL_STRING = re.compile(r"^\d{5}(\.\d+)?$")

# Words pandas resolves against the current clock
RELATIVE_DATE_WORDS = frozenset({"now", "today", "yesterday", "tomorrow"})


# =============================================================================
# Cell Parsing
# =============================================================================


def is_blank(raw: Any) -> bool:
    """True for None, NaN/NaT and empty or whitespace-only strings."""
    if raw is None:
        return True
    if isinstance(raw, str):
        return not raw.strip()
    if isinstance(raw, (list, tuple, dict, set)):
        return False
    return bool(pd.isna(raw))


def parse_number(raw: Any) -> Optional[float]:
    """
    Parse a numeric cell with locale-aware separators.

    When both "," and "." appear, the right-most one is the decimal separator. A
    lone comma is a thousands separator only in the ddd,ddd form; otherwise it is
    the decimal separator.

    Returns:
        The finite float value, or None when the cell is not a number.

    Example:
        >>> parse_number("1.234,56")
        1234.56
        >>> parse_number("(1,200)")
        -1200.0
    """
    if isinstance(raw, bool):
        return float(raw)
    if isinstance(raw, numbers.Real):
        value = float(raw)
        return value if math.isfinite(value) else None
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    negative = False
    parenthesized = _PARENTHESIZED.match(text)
    if parenthesized:
        negative = True
        text = parenthesized.group(1)
    text = _CURRENCY_AND_SPACE.sub("", text)

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        if _COMMA_THOUSANDS.match(text):
            text = text.replace(",", "")
        elif text.count(",") == 1:
            text = text.replace(",", ".")
        else:
            return None
    elif _DOT_THOUSANDS.match(text):
        text = text.replace(".", "")

    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return -value if negative else value


def _from_serial(days: float) -> Optional[datetime]:
    if not 0 < days <= MAX_SERIAL_DAY:
        return None
    return SPREADSHEET_EPOCH + timedelta(days=days)


def parse_date(raw: Any) -> Optional[datetime]:
    """
    Parse a date cell into a UTC datetime.

    Accepts datetime/date objects, spreadsheet serial day numbers (as numbers or
    five-digit numeric strings) and anything pandas.to_datetime understands. Naive
    values are taken as UTC. Four-digit strings read as years. Clock-relative
    words ("now", "today") are rejected.

    Returns:
        Timezone-aware UTC datetime, or None when the cell is not a date.
    """
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, date):
        parsed = datetime.combine(raw, time.min)
    elif isinstance(raw, bool):
        return None
    elif isinstance(raw, numbers.Real):
        if not math.isfinite(float(raw)):
            return None
        return _from_serial(float(raw))
    elif isinstance(raw, str):
        text = raw.strip()
        if text.lower() in RELATIVE_DATE_WORDS:
            return None
        if _SERIAL_STRING.match(text):
            return _from_serial(float(text))
        try:
            timestamp = pd.to_datetime(text, utc=True, errors="coerce")
        except (ValueError, OverflowError, TypeError):
            return None
        if pd.isna(timestamp):
            return None
        parsed = timestamp.to_pydatetime()
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_boolean(raw: Any) -> Optional[bool]:
    """Parse true/false, yes/no, y/n and 1/0 cells; None for anything else."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, numbers.Real):
        if raw == 1:
            return True
        if raw == 0:
            return False
        return None
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    return None


def format_text(raw: Any) -> str:
    """String form of a text cell; 1234.0 becomes "1234"."""
    if isinstance(raw, float) and math.isfinite(raw) and raw.is_integer():
        return str(int(raw))
    if isinstance(raw, datetime):
        return raw.isoformat()
    return str(raw).strip()


# =============================================================================
# Row Mapping
# =============================================================================


def _coerce_cell(field_def: FieldDefinition, raw: Any):
    """Tagged value for one non-blank cell, and whether a default was substituted."""
    if field_def.dataType == DataType.NUMBER:
        number = parse_number(raw)
        if number is None:
            return NumberValue(value=0.0), True
        return NumberValue(value=number), False

    if field_def.dataType == DataType.DATE:
        parsed = parse_date(raw)
        return (DateValue(value=parsed), False) if parsed else (None, True)

    if field_def.dataType == DataType.BOOLEAN:
        flag = parse_boolean(raw)
        return (BoolValue(value=flag), False) if flag is not None else (None, True)

    return TextValue(value=format_text(raw)), False


def map_row(
    row: Mapping[str, Any],
    schema: Union[SchemaDefinition, Mapping[str, Any]],
    resolution: Optional[ColumnResolution] = None,
    strategy: Optional[SimilarityStrategy] = None,
) -> MappingResult:
    """
    Convert one raw row into canonical metadata.

    Args:
        row: Parsed row (header -> raw cell).
        schema: Schema the row belongs to.
        resolution: Column resolution from detection; computed from this row when
            omitted.
        strategy: Header comparison used only when the resolution is computed here.

    Returns:
        MappingResult with metadata in schema field order.

    Raises:
        ValueError: If the resolution was produced for a different schema.
    """
    schema = coerce_schema(schema)
    if resolution is None:
        resolution = resolve_columns(row, schema, strategy)
    elif resolution.schemaId != schema.id:
        raise ValueError(
            f"Column resolution belongs to schema '{resolution.schemaId}', not '{schema.id}'"
        )

    metadata: Dict[str, Any] = {}
    columns: Dict[str, str] = {}
    missing_required: List[str] = []
    defaulted: List[str] = []

    for field_def in schema.fields:
        column = resolution.column_for(field_def.id)
        if column is None or column not in row:
            if field_def.required:
                missing_required.append(field_def.id)
            continue

        columns[field_def.id] = column
        raw = row[column]
        if is_blank(raw):
            continue

        value, was_defaulted = _coerce_cell(field_def, raw)
        if was_defaulted:
            defaulted.append(field_def.id)
        if value is not None:
            metadata[field_def.id] = value

    if missing_required or defaulted:
        logger.debug(
            f"Row needs review for schema '{schema.id}': "
            f"missing={missing_required} defaulted={defaulted}"
        )

    return MappingResult(
        metadata=metadata,
        columns=columns,
        missingRequired=missing_required,
        defaulted=defaulted,
    )


def map_rows(
    rows: Sequence[Mapping[str, Any]],
    schema: Union[SchemaDefinition, Mapping[str, Any]],
    resolution: Optional[ColumnResolution] = None,
    strategy: Optional[SimilarityStrategy] = None,
) -> List[MappingResult]:
    """
    Map a dataset with one column resolution for every row.

    Without a resolution, columns are resolved once from the first row.
    """
    schema = coerce_schema(schema)
    if not rows:
        return []
    if resolution is None:
        resolution = resolve_columns(rows[0], schema, strategy)
    results = [map_row(row, schema, resolution) for row in rows]
    logger.info(f"Mapped {len(results)} rows with schema '{schema.id}'")
    return results


def build_call_records(
    mappings: Sequence[MappingResult],
    schema: SchemaDefinition,
    now: Optional[datetime] = None,
) -> List[CallRecord]:
    """
    Wrap mapped rows into new CallRecords awaiting audio.

    Ids follow the import convention "import-<epoch ms>-<row index>".
    """
    created_at = now or utc_now()
    stamp = int(created_at.timestamp() * 1000)
    return [
        CallRecord(
            id=f"import-{stamp}-{index}",
            metadata=dict(mapping.metadata),
            status=CallStatus.PENDING_AUDIO,
            schemaId=schema.id,
            schemaVersion=schema.version,
            createdAt=created_at,
        )
        for index, mapping in enumerate(mappings)
    ]


# =============================================================================
# Record Conformance
# =============================================================================


def conform_value(field_def: FieldDefinition, value: Any) -> Any:
    """
    Retag a text value to the field's declared dataType.

    Records posted with plain metadata are tagged by Python type, so "100" in a
    number field arrives as TextValue. Text that parses is retagged; anything else
    is returned unchanged.
    """
    if not isinstance(value, TextValue):
        return value

    if field_def.dataType == DataType.NUMBER:
        number = parse_number(value.value)
        return NumberValue(value=number) if number is not None else value
    if field_def.dataType == DataType.DATE:
        parsed = parse_date(value.value)
        return DateValue(value=parsed) if parsed is not None else value
    if field_def.dataType == DataType.BOOLEAN:
        flag = parse_boolean(value.value)
        return BoolValue(value=flag) if flag is not None else value
    return value


def conform_records(
    records: Sequence[CallRecord],
    schema: SchemaDefinition,
) -> List[CallRecord]:
    """
    Records whose text metadata is retagged to the schema's field dataTypes.

    Records that need no change are returned as is; the others are copies.
    """
    conformed = []
    for record in records:
        metadata = dict(record.metadata)
        changed = False
        for field_def in schema.fields:
            value = metadata.get(field_def.id)
            tagged = conform_value(field_def, value)
            if tagged is not value:
                metadata[field_def.id] = tagged
                changed = True
        conformed.append(record.model_copy(update={"metadata": metadata}) if changed else record)
    return conformed
