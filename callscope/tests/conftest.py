"""
Pytest Configuration and Shared Fixtures for CallScope Tests.

This module provides fixtures and configuration for all tests, supporting:
- Schema fixtures (the built-in collections schema and a compact analytics schema)
- Raw spreadsheet rows as produced by the upload dialog's parser
- A CallRecord factory for analytics and performance tests
- A FastAPI TestClient running the application lifespan

Dependencies:
- pytest
- httpx (FastAPI TestClient)
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from callscope.core.config import get_settings
from callscope.models import (
    CallEvaluation,
    CallRecord,
    DataType,
    EvaluationResult,
    FieldDefinition,
    SchemaDefinition,
    SemanticRole,
)
from callscope.services.registry import COLLECTIONS_SCHEMA


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Configure custom pytest markers for test organization.

    Custom markers defined:
    - slow: Marks tests as slow (deselect with -m "not slow")
    - api: Marks tests that exercise the HTTP layer through TestClient
    - scenario: Marks the reference scenarios for detection and analytics
    """
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )
    config.addinivalue_line(
        'markers',
        'api: marks tests that exercise the HTTP layer'
    )
    config.addinivalue_line(
        'markers',
        'scenario: marks reference scenarios with exact expected outputs'
    )


# ============================================================
# SCHEMA FIXTURES
# ============================================================

@pytest.fixture
def collections_schema() -> SchemaDefinition:
    """The built-in collections call schema."""
    return COLLECTIONS_SCHEMA


@pytest.fixture
def sales_schema() -> SchemaDefinition:
    """
    Compact schema used by analytics tests.

    Fields:
        callId (identifier), agent (participant), region (dimension),
        callDate (date, timestamp), duration (number, measure),
        revenue (number, measure), converted (boolean)
    """
    return SchemaDefinition(
        id="sales-calls",
        name="Sales Calls",
        version="1.2.0",
        createdAt=datetime(2024, 3, 1, tzinfo=timezone.utc),
        fields=[
            FieldDefinition(id="callId", name="callId", displayName="Call ID",
                            semanticRole=SemanticRole.IDENTIFIER),
            FieldDefinition(id="agent", name="agent", displayName="Agent",
                            aliases=["rep", "sales rep"],
                            semanticRole=SemanticRole.PARTICIPANT, required=True),
            FieldDefinition(id="region", name="region", displayName="Region",
                            semanticRole=SemanticRole.DIMENSION),
            FieldDefinition(id="callDate", name="callDate", displayName="Call Date",
                            dataType=DataType.DATE, semanticRole=SemanticRole.TIMESTAMP),
            FieldDefinition(id="duration", name="duration", displayName="Duration",
                            dataType=DataType.NUMBER, semanticRole=SemanticRole.MEASURE),
            FieldDefinition(id="revenue", name="revenue", displayName="Revenue",
                            dataType=DataType.NUMBER, semanticRole=SemanticRole.MEASURE),
            FieldDefinition(id="converted", name="converted", displayName="Converted",
                            dataType=DataType.BOOLEAN),
        ],
    )


# ============================================================
# RAW ROW FIXTURES
# ============================================================

@pytest.fixture
def collections_rows() -> List[Dict[str, Any]]:
    """
    Rows from a collections export with human-readable headers.

    Mirrors what the spreadsheet parser hands over: header -> raw cell, untyped.
    """
    return [
        {
            "Call Time": "2024-05-02 10:15:00",
            "Bill ID": "B-1001",
            "Agent Name": "John",
            "Product": "Personal Loan",
            "Days Past Due": "45",
            "Due Amount": "1,250.50",
            "Follow-up Status": "Promise to pay",
        },
        {
            "Call Time": "2024-05-03 09:00:00",
            "Bill ID": "B-1002",
            "Agent Name": "Sara",
            "Product": "Credit Card",
            "Days Past Due": "12",
            "Due Amount": "n/a",
            "Follow-up Status": "",
        },
    ]


# ============================================================
# CALL RECORD FACTORY
# ============================================================

@pytest.fixture
def make_record() -> Callable[..., CallRecord]:
    """
    Factory building CallRecords from plain metadata values.

    Plain values are tagged by CallRecord itself (str -> text, int/float -> number,
    datetime -> date, bool -> boolean).

    Example:
        record = make_record({"agent": "John", "revenue": 120.0})
    """
    counter = {"next": 0}

    def _make(
        metadata: Dict[str, Any],
        created_at: Optional[datetime] = None,
        evaluation: Optional[CallEvaluation] = None,
        record_id: Optional[str] = None,
    ) -> CallRecord:
        counter["next"] += 1
        return CallRecord(
            id=record_id or f"call-{counter['next']}",
            metadata=metadata,
            createdAt=created_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            evaluation=evaluation,
        )

    return _make


@pytest.fixture
def make_evaluation() -> Callable[..., CallEvaluation]:
    """
    Factory building a CallEvaluation from (criterionId, score, passed) triples.

    Percentage is totalScore / maxScore * 100 with a max of 10 points per criterion.
    """
    def _make(
        results: List[tuple],
        reasoning: str = "",
        call_id: str = "call",
    ) -> CallEvaluation:
        total = sum(score for _, score, _ in results)
        maximum = 10.0 * len(results)
        return CallEvaluation(
            id=f"eval-{call_id}",
            callId=call_id,
            evaluatedAt=datetime(2024, 5, 1, tzinfo=timezone.utc),
            totalScore=total,
            maxScore=maximum,
            percentage=total / maximum * 100 if maximum else 0.0,
            results=[
                EvaluationResult(
                    criterionId=criterion_id,
                    score=score,
                    passed=passed,
                    reasoning="" if passed else reasoning,
                )
                for criterion_id, score, passed in results
            ],
        )

    return _make


@pytest.fixture
def sales_records(make_record) -> List[CallRecord]:
    """Five sales calls over three days and two regions."""
    return [
        make_record({"callId": "C1", "agent": "John", "region": "North",
                     "callDate": datetime(2024, 5, 1, 9, tzinfo=timezone.utc),
                     "duration": 120, "revenue": 200.0, "converted": True}),
        make_record({"callId": "C2", "agent": "Sara", "region": "South",
                     "callDate": datetime(2024, 5, 1, 15, tzinfo=timezone.utc),
                     "duration": 300, "revenue": 500.0, "converted": True}),
        make_record({"callId": "C3", "agent": "John", "region": "North",
                     "callDate": datetime(2024, 5, 2, 11, tzinfo=timezone.utc),
                     "duration": 60, "revenue": 0.0, "converted": False}),
        make_record({"callId": "C4", "agent": "Sara", "region": "North",
                     "callDate": datetime(2024, 5, 3, 10, tzinfo=timezone.utc),
                     "duration": 240, "revenue": 450.0, "converted": True}),
        make_record({"callId": "C5", "agent": "Omar", "region": "South",
                     "callDate": datetime(2024, 5, 3, 16, tzinfo=timezone.utc),
                     "duration": 180, "converted": False}),
    ]


# ============================================================
# API CLIENT FIXTURE
# ============================================================

@pytest.fixture
def client(monkeypatch) -> Generator[TestClient, None, None]:
    """
    TestClient running the application lifespan with the built-in schemas.

    SCHEMA_REGISTRY_PATH is cleared so the developer's .env cannot leak in.
    """
    monkeypatch.delenv("SCHEMA_REGISTRY_PATH", raising=False)
    get_settings.cache_clear()

    from callscope.main import app

    with TestClient(app) as test_client:
        yield test_client

    get_settings.cache_clear()
