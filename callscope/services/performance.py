"""
Performance Analytics Service.

Summarizes evaluation results attached to call records by the external evaluation
collaborator. Participant identity comes from the schema: the field with the
participant semantic role unless a field id is given explicitly.

Functions:
    - calculate_participant_performance: per-participant scores, strengths and trend
    - calculate_criteria_analytics: pass rate and common issues per criterion
    - get_performance_trend: daily average evaluation percentage

Only records with an evaluation contribute. Records are expected in chronological
order; the participant trend compares the last five evaluated calls against the
earlier ones.
"""

import logging
import math
from collections import OrderedDict
from typing import Dict, List, Optional, Sequence

from callscope.models import (
    CallRecord,
    CriteriaAnalytics,
    DateValue,
    DiagnosticCode,
    FieldDefinition,
    ParticipantPerformance,
    PerformanceTrend,
    PerformanceTrendPoint,
    SchemaDefinition,
    SemanticRole,
)
from callscope.services.analytics_engine import Diagnostics, report_diagnostic, string_form

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

RECENT_CALLS_WINDOW = 5
TREND_MARGIN_POINTS = 5.0
TOP_CRITERIA_COUNT = 3
MAX_COMMON_ISSUES = 3


# =============================================================================
# Helpers
# =============================================================================


def _participant_field(
    schema: SchemaDefinition,
    participant_field: Optional[str],
    operation: str,
    diagnostics: Diagnostics,
) -> Optional[FieldDefinition]:
    if participant_field is not None:
        field_def = schema.get_field(participant_field)
        if field_def is None:
            report_diagnostic(
                diagnostics,
                DiagnosticCode.MISSING_FIELD,
                operation,
                f"Field '{participant_field}' not found in schema '{schema.id}'",
                participant_field,
            )
        return field_def

    field_def = schema.find_by_role(SemanticRole.PARTICIPANT)
    if field_def is None:
        report_diagnostic(
            diagnostics,
            DiagnosticCode.NO_PARTICIPANT_FIELD,
            operation,
            f"Schema '{schema.id}' has no participant field",
        )
    return field_def


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _trend(percentages: List[float]) -> PerformanceTrend:
    recent = percentages[-RECENT_CALLS_WINDOW:]
    older = percentages[:-RECENT_CALLS_WINDOW]
    recent_avg = _mean(recent)
    older_avg = _mean(older) if older else recent_avg

    if recent_avg > older_avg + TREND_MARGIN_POINTS:
        return PerformanceTrend.UP
    if recent_avg < older_avg - TREND_MARGIN_POINTS:
        return PerformanceTrend.DOWN
    return PerformanceTrend.STABLE


def _criterion_ids(records: Sequence[CallRecord]) -> List[int]:
    ids = set()
    for record in records:
        for result in record.evaluation.results:
            ids.add(result.criterionId)
    return sorted(ids)


# =============================================================================
# Participant Performance
# =============================================================================


def calculate_participant_performance(
    records: Sequence[CallRecord],
    schema: SchemaDefinition,
    participant_field: Optional[str] = None,
    diagnostics: Diagnostics = None,
) -> List[ParticipantPerformance]:
    """
    Evaluation performance per participant.

    A criterion missing from a call's evaluation counts as score 0 for that call.
    Strengths are the three best average criterion scores and weaknesses the three
    worst.

    Args:
        records: Call records; unevaluated ones are skipped.
        schema: Schema used to resolve the participant field.
        participant_field: Field id to group by; the participant-role field if None.
        diagnostics: Optional list collecting missing-field reports.

    Returns:
        Participants sorted by average percentage, best first.
    """
    field_def = _participant_field(
        schema, participant_field, "calculate_participant_performance", diagnostics
    )
    if field_def is None:
        return []

    evaluated = [record for record in records if record.evaluation is not None]
    criterion_ids = _criterion_ids(evaluated)

    groups: "OrderedDict[str, List[CallRecord]]" = OrderedDict()
    for record in evaluated:
        participant = string_form(record.get_value(field_def.id))
        groups.setdefault(participant, []).append(record)

    performances = []
    for participant, calls in groups.items():
        percentages = [call.evaluation.percentage for call in calls]

        criteria_scores: Dict[int, float] = {}
        for criterion_id in criterion_ids:
            scores = []
            for call in calls:
                result = next(
                    (r for r in call.evaluation.results if r.criterionId == criterion_id),
                    None,
                )
                scores.append(result.score if result else 0.0)
            criteria_scores[criterion_id] = round(_mean(scores), 2)

        ranked = sorted(criteria_scores.items(), key=lambda item: -item[1])
        performances.append(ParticipantPerformance(
            participant=participant,
            totalCalls=len(calls),
            averageScore=round(_mean([call.evaluation.totalScore for call in calls]), 2),
            averagePercentage=round(_mean(percentages), 1),
            criteriaScores=criteria_scores,
            trend=_trend(percentages),
            topStrengths=[criterion for criterion, _ in ranked[:TOP_CRITERIA_COUNT]],
            topWeaknesses=[criterion for criterion, _ in ranked[-TOP_CRITERIA_COUNT:]],
        ))

    logger.debug(f"Computed performance for {len(performances)} participants")
    return sorted(performances, key=lambda perf: -perf.averagePercentage)


# =============================================================================
# Criteria Analytics
# =============================================================================


def calculate_criteria_analytics(records: Sequence[CallRecord]) -> List[CriteriaAnalytics]:
    """Pass rate, average score and up to three failure reasonings per criterion."""
    evaluated = [record for record in records if record.evaluation is not None]

    analytics = []
    for criterion_id in _criterion_ids(evaluated):
        results = [
            result
            for record in evaluated
            for result in record.evaluation.results
            if result.criterionId == criterion_id
        ]
        passed = sum(1 for result in results if result.passed)
        issues = [result.reasoning for result in results if not result.passed and result.reasoning]

        analytics.append(CriteriaAnalytics(
            criterionId=criterion_id,
            totalEvaluations=len(results),
            passRate=round(passed / len(results) * 100, 1) if results else 0.0,
            averageScore=round(_mean([result.score for result in results]), 2),
            commonIssues=issues[:MAX_COMMON_ISSUES],
        ))
    return analytics


# =============================================================================
# Performance Trend
# =============================================================================


def get_performance_trend(
    records: Sequence[CallRecord],
    schema: SchemaDefinition,
    participant: Optional[str] = None,
    participant_field: Optional[str] = None,
    diagnostics: Diagnostics = None,
) -> List[PerformanceTrendPoint]:
    """
    Daily average evaluation percentage, optionally for one participant.

    Calls are bucketed on their createdAt UTC date and the average is rounded to a
    whole percentage, halves rounding up.
    """
    evaluated = [record for record in records if record.evaluation is not None]

    if participant is not None:
        field_def = _participant_field(
            schema, participant_field, "get_performance_trend", diagnostics
        )
        if field_def is None:
            return []
        evaluated = [
            record for record in evaluated
            if string_form(record.get_value(field_def.id)) == participant
        ]

    days: Dict[str, List[float]] = {}
    for record in evaluated:
        day = DateValue(value=record.createdAt).value.date().isoformat()
        days.setdefault(day, []).append(record.evaluation.percentage)

    return [
        PerformanceTrendPoint(date=day, score=_round_half_up(_mean(values)), count=len(values))
        for day, values in sorted(days.items())
    ]
