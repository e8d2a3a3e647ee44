"""
Field Matcher Service.

Aligns the column headers of an incoming row with the fields of one schema.

For every schema field the matcher compares each header against the field's name,
display name and aliases with a SimilarityStrategy and keeps the best weight found
(first header in row order wins a tie). The resulting ColumnResolution records which
header each field resolved to; the match score is the mean per-field weight x 100.

The resolution is the single source of truth for column choice: the Schema Detector
returns it with its result and the Row Mapper reads cells through it, so scoring and
mapping can never pick different columns for the same field.

Score properties:
    - Always within [0, 100]
    - 0 for an empty row or a schema without fields
    - 100 when every field has an exact header match

Usage:
    from callscope.services.field_matcher import match_score, resolve_columns

    score = match_score({"AgentName": "John", "Product": "Loan"}, schema)
    resolution = resolve_columns(row, schema)
    resolution.column_for("agentName")   # "AgentName"
"""

import logging
import math
from typing import Any, Iterable, List, Mapping, Optional, Union

from callscope.models import ColumnMatch, ColumnResolution, MatchTier, SchemaDefinition
from callscope.services.registry import coerce_schema
from callscope.services.similarity import (
    CONTAINMENT_WEIGHT,
    DEFAULT_STRATEGY,
    EXACT_WEIGHT,
    SimilarityStrategy,
)

logger = logging.getLogger(__name__)

RowOrHeaders = Union[Mapping[str, Any], Iterable[str]]

# Weakest match that still assigns a column to a field. Weaker fuzzy matches count
# toward the score but leave the field unresolved for mapping.
MIN_COLUMN_WEIGHT: float = 0.3


# =============================================================================
# Helpers
# =============================================================================


def headers_of(row: Optional[RowOrHeaders]) -> List[str]:
    """
    Column headers of a parsed row, in their original order.

    Accepts either a row mapping (header -> raw cell) or a plain sequence of headers.
    """
    if row is None:
        return []
    if isinstance(row, Mapping):
        return [str(header) for header in row.keys()]
    return [str(header) for header in row]


def _clamp_weight(weight: float) -> float:
    if weight is None or math.isnan(weight):
        return 0.0
    return min(EXACT_WEIGHT, max(0.0, float(weight)))


def _tier_for(weight: float) -> MatchTier:
    if weight >= EXACT_WEIGHT:
        return MatchTier.EXACT
    if weight >= CONTAINMENT_WEIGHT:
        return MatchTier.CONTAINS
    if weight > 0.0:
        return MatchTier.FUZZY
    return MatchTier.NONE


# =============================================================================
# Column Resolution
# =============================================================================


def resolve_columns(
    row: Optional[RowOrHeaders],
    schema: Union[SchemaDefinition, Mapping[str, Any]],
    strategy: Optional[SimilarityStrategy] = None,
) -> ColumnResolution:
    """
    Pick the best matching header for every field of a schema.

    Args:
        row: A parsed row (header -> raw cell) or its list of headers.
        schema: The candidate schema.
        strategy: Header comparison; TieredSimilarity when omitted.

    Returns:
        ColumnResolution with one ColumnMatch per schema field, in field order.
        Fields nothing matched have column None and weight 0; fields whose best
        weight is below MIN_COLUMN_WEIGHT keep the weight but get no column.
    """
    schema = coerce_schema(schema)
    strategy = strategy or DEFAULT_STRATEGY
    headers = headers_of(row)

    matches = {}
    for field_def in schema.fields:
        candidates = field_def.candidate_names()
        best_column: Optional[str] = None
        best_weight = 0.0

        for header in headers:
            for candidate in candidates:
                weight = _clamp_weight(strategy.score(header, candidate))
                if weight > best_weight:
                    best_weight = weight
                    best_column = header
                if best_weight >= EXACT_WEIGHT:
                    break
            if best_weight >= EXACT_WEIGHT:
                break

        matches[field_def.id] = ColumnMatch(
            fieldId=field_def.id,
            column=best_column if best_weight >= MIN_COLUMN_WEIGHT else None,
            weight=best_weight,
            tier=_tier_for(best_weight),
        )

    return ColumnResolution(schemaId=schema.id, headers=headers, matches=matches)


def raw_resolution_score(resolution: ColumnResolution) -> float:
    """Unrounded 0-100 score of a resolution; used for ranking."""
    if not resolution.matches or not resolution.headers:
        return 0.0
    total = sum(match.weight for match in resolution.matches.values())
    score = (total / len(resolution.matches)) * 100
    return min(100.0, max(0.0, score))


def score_resolution(resolution: ColumnResolution) -> float:
    """
    Mean per-field weight of a resolution as a 0-100 score (2 decimals).

    A resolution without fields or headers scores 0.
    """
    return round(raw_resolution_score(resolution), 2)


def match_score(
    row: Optional[RowOrHeaders],
    schema: Union[SchemaDefinition, Mapping[str, Any]],
    strategy: Optional[SimilarityStrategy] = None,
) -> float:
    """
    How well one schema's fields align with a row's column headers, in [0, 100].

    Example:
        >>> match_score({"AgentName": "John", "Product": "Loan"}, schema)
        100.0
    """
    resolution = resolve_columns(row, schema, strategy)
    score = score_resolution(resolution)
    logger.debug(f"Match score for schema {resolution.schemaId}: {score}")
    return score
