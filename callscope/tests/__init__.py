'''
CallScope Test Suite

Test Modules:
-------------
- test_similarity.py: Header normalization and similarity strategies
- test_field_matcher.py: Column resolution and match scores
  - Score bounded to [0, 100], 0 for empty input
  - Exact headers score 100
- test_schema_detector.py: Schema detection
  - Strict threshold, best-effort candidate below it
  - Deterministic tie-breaking by last modification, then id
- test_row_mapper.py: Raw row to canonical metadata
  - Locale-aware numbers, UTC dates, booleans
  - Missing required and defaulted fields flagged for review
- test_registry.py: Registry loading, reload and schema variants
- test_analytics_engine.py: Aggregation, trends, correlation, distribution, filters
- test_performance.py: Participant and criterion performance
- test_api.py: HTTP endpoints through FastAPI TestClient
- test_config.py: Settings defaults and environment overrides

Running Tests:
--------------
    pip install -e ".[test]"
    pytest callscope/tests -v

    # Only the reference scenarios
    pytest callscope/tests -m scenario

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
