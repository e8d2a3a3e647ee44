"""
CallScope Package.

Schema detection, row mapping and schema-driven analytics for call metadata whose
column layout varies between data sources.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, exceptions and dependencies
    - models: Pydantic schemas and enums
    - services: Detection, mapping and analytics logic
"""

__version__ = "1.0.0"
