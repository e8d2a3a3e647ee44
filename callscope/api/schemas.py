"""
FastAPI router module for the schema registry, detection and row mapping.

Key Endpoints:
- GET /schemas: List registered schemas
- GET /schemas/{schema_id}: Full schema definition
- POST /schemas/reload: Re-read the registry file (the only way the registry changes)
- POST /schemas/detect: Detect the schema of parsed rows
- POST /schemas/{schema_id}/map: Convert parsed rows into canonical call records

Import flow:
    The upload dialog parses the spreadsheet, posts the rows to /schemas/detect and
    shows the detected schema with its confidence. A low-confidence or missing match
    is not an error: the user picks a schema and the rows are posted to
    /schemas/{schema_id}/map. Rows needing review come back in `issues`.

Dependencies:
- callscope/core/dependencies.py: RegistryDep, SettingsDep
- callscope/services/schema_detector.py, row_mapper.py, field_matcher.py
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from callscope.core.dependencies import RegistryDep, SettingsDep
from callscope.core.exceptions import SchemaDefinitionError, SchemaNotFoundError
from callscope.models import (
    DetectRequest,
    DetectResponse,
    MapRequest,
    MapResponse,
    RowIssue,
    SchemaDefinition,
    SchemaSummary,
)
from callscope.services.field_matcher import resolve_columns
from callscope.services.row_mapper import build_call_records, map_rows
from callscope.services.schema_detector import detect


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Registry Endpoints
# =============================================================================


@router.get("", response_model=List[SchemaSummary])
async def list_schemas(registry: RegistryDep) -> List[SchemaSummary]:
    """List registered schemas in registration order."""
    return [
        SchemaSummary(
            id=schema.id,
            name=schema.name,
            version=schema.version,
            fieldCount=len(schema.fields),
            updatedAt=schema.lastModified,
        )
        for schema in registry
    ]


@router.post("/reload", response_model=List[SchemaSummary])
async def reload_schemas(registry: RegistryDep) -> List[SchemaSummary]:
    """
    Re-read the registry from its source file.

    A registry without a source file (built-in schemas) is left as is. A file with
    invalid definitions is rejected and the current registry stays in service.

    Raises:
        HTTPException(422) if the file holds invalid schema definitions
        HTTPException(500) if the file cannot be read
    """
    try:
        registry.reload()
    except (ValidationError, SchemaDefinitionError) as e:
        logger.warning(f"Rejected schema registry reload: {e}")
        raise HTTPException(status_code=422, detail=f"Invalid schema registry: {str(e)}")
    except OSError as e:
        logger.exception("Error reading schema registry file")
        raise HTTPException(status_code=500, detail=f"Failed to reload schemas: {str(e)}")
    return await list_schemas(registry)


@router.get("/{schema_id}", response_model=SchemaDefinition)
async def get_schema(schema_id: str, registry: RegistryDep) -> SchemaDefinition:
    """
    Full definition of one schema.

    Raises:
        HTTPException(404) if no schema has this id
    """
    try:
        return registry.require(schema_id)
    except SchemaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Detection and Mapping Endpoints
# =============================================================================


@router.post("/detect", response_model=DetectResponse)
async def detect_schema(
    request: DetectRequest,
    registry: RegistryDep,
    settings: SettingsDep,
) -> DetectResponse:
    """
    Detect which registered schema parsed rows follow.

    Only the first row's headers are scored. The configured DETECTION_THRESHOLD
    applies unless the request passes its own threshold.

    Returns:
        DetectResponse; schemaId is None when no schema clears the threshold, while
        bestMatchId still names the closest candidate.
    """
    threshold = (
        request.threshold if request.threshold is not None else settings.detection_threshold
    )
    try:
        result = detect(
            request.rows,
            registry,
            threshold,
            high_confidence=settings.high_confidence_threshold,
        )
    except Exception as e:
        logger.exception("Error detecting schema")
        raise HTTPException(status_code=500, detail=f"Failed to detect schema: {str(e)}")

    return DetectResponse(
        schemaId=result.matchedSchema.id if result.matchedSchema else None,
        schemaName=result.matchedSchema.name if result.matchedSchema else None,
        confidence=result.confidence,
        confidenceLevel=result.confidenceLevel,
        threshold=result.threshold,
        bestMatchId=result.bestMatch.id if result.bestMatch else None,
        bestScore=result.bestScore,
        columns=result.resolution.as_mapping() if result.resolution else {},
        scores=result.scores,
    )


@router.post("/{schema_id}/map", response_model=MapResponse)
async def map_schema_rows(
    schema_id: str,
    request: MapRequest,
    registry: RegistryDep,
) -> MapResponse:
    """
    Convert parsed rows into call records with the given schema.

    Columns are resolved once from the first row and used for every row.

    Raises:
        HTTPException(404) if no schema has this id
    """
    try:
        schema = registry.require(schema_id)
        resolution = resolve_columns(request.rows[0] if request.rows else None, schema)
        mappings = map_rows(request.rows, schema, resolution)
        records = build_call_records(mappings, schema)
    except SchemaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Error mapping rows with schema {schema_id}")
        raise HTTPException(status_code=500, detail=f"Failed to map rows: {str(e)}")

    issues = [
        RowIssue(
            rowIndex=index,
            missingRequired=mapping.missingRequired,
            defaulted=mapping.defaulted,
        )
        for index, mapping in enumerate(mappings)
        if mapping.needs_review
    ]
    logger.info(
        f"Mapped {len(records)} rows with schema {schema_id}; {len(issues)} need review"
    )
    return MapResponse(
        schemaId=schema.id,
        columns=resolution.as_mapping(),
        records=records,
        issues=issues,
    )
