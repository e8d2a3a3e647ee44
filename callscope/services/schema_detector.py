"""
Schema Detector Service.

Picks the registered schema that best fits an incoming dataset.

Algorithm:
    1. Take the first parsed row only; detection cost is independent of row count
    2. Resolve columns and compute match_score for every candidate schema
    3. Rank by score, then most recently updated schema, then schema id
    4. The top candidate is the match only if its score is strictly above threshold

Detection never raises for data content. No confident match is reported as
matchedSchema=None with confidence 0; the best effort candidate stays available as
bestMatch/bestScore for a manual pick by the caller.

The threshold is always an explicit argument. The import flow runs a "very
permissive" detection with threshold 30 (DETECTION_THRESHOLD in settings).

Usage:
    from callscope.services.schema_detector import detect

    result = detect(rows, registry, threshold=30)
    if result.matchedSchema:
        records = map_rows(rows, result.matchedSchema, result.resolution)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from callscope.models import (
    ColumnResolution,
    ConfidenceLevel,
    DetectionResult,
    SchemaDefinition,
    SchemaScore,
)
from callscope.services.field_matcher import raw_resolution_score, resolve_columns
from callscope.services.registry import coerce_schema
from callscope.services.similarity import SimilarityStrategy

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_SCORE = 70.0


# =============================================================================
# Ranking
# =============================================================================


def _modified_timestamp(schema: SchemaDefinition) -> float:
    """POSIX time of the schema's last edit; schemas without timestamps rank oldest."""
    modified: Optional[datetime] = schema.lastModified
    if modified is None:
        return float("-inf")
    if modified.tzinfo is None:
        modified = modified.replace(tzinfo=timezone.utc)
    return modified.timestamp()


def _rank_key(entry: Tuple[SchemaDefinition, ColumnResolution, float]):
    schema, _, score = entry
    return (-score, -_modified_timestamp(schema), schema.id)


def confidence_level(
    score: float,
    threshold: float,
    high_confidence: float = HIGH_CONFIDENCE_SCORE,
) -> ConfidenceLevel:
    """
    Bucket a detection score.

    Returns:
        HIGH at or above high_confidence, LOW above threshold, otherwise NONE.
    """
    if score <= threshold:
        return ConfidenceLevel.NONE
    if score >= high_confidence:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.LOW


def score_schemas(
    row: Optional[Mapping[str, Any]],
    schemas: Iterable[Union[SchemaDefinition, Mapping[str, Any]]],
    strategy: Optional[SimilarityStrategy] = None,
) -> List[Tuple[SchemaDefinition, ColumnResolution, float]]:
    """
    Score every schema against one row, best first.

    Ranking uses the unrounded scores; the returned scores are rounded to 2
    decimals.

    Returns:
        (schema, resolution, score) tuples in rank order.
    """
    scored = []
    for schema in schemas:
        schema = coerce_schema(schema)
        resolution = resolve_columns(row, schema, strategy)
        score = raw_resolution_score(resolution)
        logger.debug(f"Schema '{schema.id}' scored {score:.2f}")
        scored.append((schema, resolution, score))
    return [
        (schema, resolution, round(score, 2))
        for schema, resolution, score in sorted(scored, key=_rank_key)
    ]


# =============================================================================
# Detection
# =============================================================================


def detect(
    rows: Sequence[Mapping[str, Any]],
    schemas: Iterable[Union[SchemaDefinition, Mapping[str, Any]]],
    threshold: float,
    strategy: Optional[SimilarityStrategy] = None,
    high_confidence: float = HIGH_CONFIDENCE_SCORE,
) -> DetectionResult:
    """
    Detect the schema of a dataset from its first row.

    Args:
        rows: Parsed rows (header -> raw cell), in file order.
        schemas: Candidate schemas; a SchemaRegistry works directly.
        threshold: Minimum score (exclusive) for a confident match, 0-100.
        strategy: Header comparison passed through to the Field Matcher.
        high_confidence: Score from which the match is reported as HIGH.

    Returns:
        DetectionResult; matchedSchema is None when nothing clears the threshold.

    Raises:
        ValueError: If threshold is outside [0, 100].
    """
    if threshold is None or not 0.0 <= threshold <= 100.0:
        raise ValueError(f"Detection threshold must be within [0, 100], got {threshold}")

    first_row = rows[0] if rows else None
    if not first_row:
        logger.info("Detection skipped: no rows or empty header row")
        return DetectionResult(threshold=threshold)

    ranked = score_schemas(first_row, schemas, strategy)
    if not ranked:
        logger.info("Detection skipped: no candidate schemas")
        return DetectionResult(threshold=threshold)

    best_schema, best_resolution, best_score = ranked[0]
    level = confidence_level(best_score, threshold, high_confidence)
    matched = best_score > threshold

    if matched:
        logger.info(
            f"Detected schema '{best_schema.id}' with confidence {best_score} "
            f"({level.value}, threshold {threshold})"
        )
    else:
        logger.info(
            f"No schema above threshold {threshold}; "
            f"best candidate '{best_schema.id}' scored {best_score}"
        )

    return DetectionResult(
        matchedSchema=best_schema if matched else None,
        confidence=best_score if matched else 0.0,
        confidenceLevel=level,
        threshold=threshold,
        bestMatch=best_schema,
        bestScore=best_score,
        resolution=best_resolution,
        scores=[
            SchemaScore(schemaId=schema.id, schemaName=schema.name, score=score)
            for schema, _, score in ranked
        ],
    )
