"""
Schema Registry Service.

An explicitly owned, ordered collection of SchemaDefinitions. Detection and mapping
receive the registry (or its schemas) as an argument; nothing reads a process-wide
schema list.

Lifecycle:
    - Built once from schema definitions or a JSON file (load_registry)
    - Read paths (get, require, iteration) never change it
    - reload() is the only operation that replaces its contents
    - with_schema() returns a new registry and leaves the receiver untouched

Registry file format: a JSON array of schema objects, e.g.

    [
      {
        "id": "collections-calls",
        "name": "Collections Calls",
        "version": "1.0.0",
        "fields": [
          {"id": "agentName", "name": "agentName", "displayName": "Agent Name",
           "aliases": ["agent"], "dataType": "text", "semanticRole": "participant"}
        ]
      }
    ]
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from pydantic import TypeAdapter

from callscope.core.exceptions import SchemaDefinitionError, SchemaNotFoundError
from callscope.models import (
    DataType,
    FieldDefinition,
    SchemaDefinition,
    SemanticRole,
    utc_now,
)

logger = logging.getLogger(__name__)

_SCHEMA_LIST_ADAPTER = TypeAdapter(List[SchemaDefinition])


# =============================================================================
# Built-in Schemas
# =============================================================================
# Collections call log exported from the dialer ("audio related info" sheet).

COLLECTIONS_SCHEMA = SchemaDefinition(
    id="collections-calls",
    name="Collections Calls",
    version="1.0.0",
    description="Outbound collections calls with borrower and debt details",
    createdAt=datetime(2024, 1, 1),
    fields=[
        FieldDefinition(id="time", name="time", displayName="Call Time",
                        aliases=["call time", "call date", "date", "timestamp"],
                        dataType=DataType.DATE, semanticRole=SemanticRole.TIMESTAMP,
                        required=True),
        FieldDefinition(id="billId", name="billId", displayName="Bill ID",
                        aliases=["bill", "bill no", "bill number"],
                        semanticRole=SemanticRole.IDENTIFIER),
        FieldDefinition(id="orderId", name="orderId", displayName="Order ID",
                        aliases=["order", "order no", "order number"],
                        semanticRole=SemanticRole.IDENTIFIER),
        FieldDefinition(id="userId", name="userId", displayName="User ID",
                        aliases=["user", "customer id", "uid"],
                        semanticRole=SemanticRole.IDENTIFIER),
        FieldDefinition(id="fileTag", name="fileTag", displayName="File Tag",
                        aliases=["audio file", "recording", "file name"]),
        FieldDefinition(id="agentName", name="agentName", displayName="Agent Name",
                        aliases=["agent", "collector", "caller"],
                        semanticRole=SemanticRole.PARTICIPANT, required=True),
        FieldDefinition(id="product", name="product", displayName="Product",
                        aliases=["product name", "loan product"],
                        semanticRole=SemanticRole.DIMENSION),
        FieldDefinition(id="customerType", name="customerType", displayName="Customer Type",
                        aliases=["customer segment", "segment"],
                        semanticRole=SemanticRole.DIMENSION),
        FieldDefinition(id="borrowerName", name="borrowerName", displayName="Borrower Name",
                        aliases=["borrower", "customer name", "debtor"]),
        FieldDefinition(id="nationality", name="nationality", displayName="Nationality",
                        aliases=["country"],
                        semanticRole=SemanticRole.DIMENSION),
        FieldDefinition(id="daysPastDue", name="daysPastDue", displayName="Days Past Due",
                        aliases=["dpd", "overdue days"],
                        dataType=DataType.NUMBER, semanticRole=SemanticRole.MEASURE),
        FieldDefinition(id="dueAmount", name="dueAmount", displayName="Due Amount",
                        aliases=["amount due", "outstanding", "balance"],
                        dataType=DataType.NUMBER, semanticRole=SemanticRole.MEASURE),
        FieldDefinition(id="followUpStatus", name="followUpStatus", displayName="Follow-up Status",
                        aliases=["follow up", "status", "outcome"],
                        semanticRole=SemanticRole.DIMENSION),
    ],
)

DEFAULT_SCHEMAS: Tuple[SchemaDefinition, ...] = (COLLECTIONS_SCHEMA,)


# =============================================================================
# Helpers
# =============================================================================


def coerce_schema(schema: Union[SchemaDefinition, Mapping[str, Any]]) -> SchemaDefinition:
    """
    Return a SchemaDefinition, validating plain mappings.

    A mapping without id or name gets the placeholder id "ad-hoc" so callers can score
    a bare field list.

    Raises:
        pydantic.ValidationError: If the mapping is not a valid schema.
        TypeError: If the argument is neither a schema nor a mapping.
    """
    if isinstance(schema, SchemaDefinition):
        return schema
    if isinstance(schema, Mapping):
        data = dict(schema)
        data.setdefault("id", "ad-hoc")
        data.setdefault("name", data["id"])
        return SchemaDefinition.model_validate(data)
    raise TypeError(f"Expected SchemaDefinition or mapping, got {type(schema).__name__}")


def generate_schema_id(name: str) -> str:
    """
    Slug id for a schema name.

    Example:
        >>> generate_schema_id("Collections Calls - Q3")
        'collections-calls-q3'
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "schema"


def create_schema_variant(
    base: SchemaDefinition,
    name: str,
    now: Optional[datetime] = None,
) -> SchemaDefinition:
    """
    Copy a schema under a new name, as a fresh 1.0.0 schema.

    The variant keeps the base's fields, gets an id derived from the name, a new
    createdAt and no updatedAt. It is not registered; pass it to
    SchemaRegistry.with_schema().

    Raises:
        SchemaDefinitionError: If the name is blank or has characters other than
            letters, digits, spaces, hyphens and underscores.
    """
    clean_name = name.strip()
    if not clean_name or not re.fullmatch(r"[\w\s\-]+", clean_name):
        raise SchemaDefinitionError(base.id, f"invalid variant name '{name}'")
    return base.model_copy(update={
        "id": generate_schema_id(clean_name),
        "name": clean_name,
        "version": "1.0.0",
        "createdAt": now or utc_now(),
        "updatedAt": None,
    })


# =============================================================================
# Registry
# =============================================================================


class SchemaRegistry:
    """
    Ordered, explicitly owned set of schema definitions.

    Args:
        schemas: Initial schema definitions, in registration order.
        source: Optional JSON file the registry was loaded from; reload() re-reads it.

    Raises:
        SchemaDefinitionError: If two schemas share an id.
    """

    def __init__(
        self,
        schemas: Iterable[Union[SchemaDefinition, Mapping[str, Any]]] = (),
        source: Optional[Union[str, Path]] = None,
    ) -> None:
        self.source: Optional[Path] = Path(source) if source else None
        self._schemas: Tuple[SchemaDefinition, ...] = self._validate(schemas)

    @staticmethod
    def _validate(
        schemas: Iterable[Union[SchemaDefinition, Mapping[str, Any]]],
    ) -> Tuple[SchemaDefinition, ...]:
        validated: List[SchemaDefinition] = []
        seen = set()
        for schema in schemas:
            schema = coerce_schema(schema)
            if schema.id in seen:
                raise SchemaDefinitionError(schema.id, "duplicate schema id in registry")
            seen.add(schema.id)
            validated.append(schema)
        return tuple(validated)

    # -------------------------------------------------------------------------
    # Read paths
    # -------------------------------------------------------------------------

    @property
    def schemas(self) -> Tuple[SchemaDefinition, ...]:
        return self._schemas

    @property
    def ids(self) -> List[str]:
        return [schema.id for schema in self._schemas]

    def get(self, schema_id: str) -> Optional[SchemaDefinition]:
        for schema in self._schemas:
            if schema.id == schema_id:
                return schema
        return None

    def require(self, schema_id: str) -> SchemaDefinition:
        schema = self.get(schema_id)
        if schema is None:
            raise SchemaNotFoundError(schema_id)
        return schema

    def __iter__(self) -> Iterator[SchemaDefinition]:
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)

    def __contains__(self, schema_id: object) -> bool:
        return any(schema.id == schema_id for schema in self._schemas)

    # -------------------------------------------------------------------------
    # Explicit refresh
    # -------------------------------------------------------------------------

    def reload(
        self,
        schemas: Optional[Iterable[Union[SchemaDefinition, Mapping[str, Any]]]] = None,
    ) -> "SchemaRegistry":
        """
        Replace the registry contents.

        With no argument the source file is read again; a registry without a source
        keeps its current schemas. The new set is fully validated before it replaces
        the old one, so a failed reload leaves the registry unchanged.
        """
        if schemas is None:
            if self.source is None:
                logger.info("Registry has no source file; reload keeps current schemas")
                return self
            schemas = _read_schema_file(self.source)
        self._schemas = self._validate(schemas)
        logger.info(f"Schema registry reloaded with {len(self._schemas)} schemas")
        return self

    def with_schema(self, schema: SchemaDefinition) -> "SchemaRegistry":
        """New registry with the schema appended, or replacing one with the same id."""
        updated = [existing for existing in self._schemas if existing.id != schema.id]
        replaced = len(updated) != len(self._schemas)
        if replaced:
            index = self.ids.index(schema.id)
            updated.insert(index, schema)
        else:
            updated.append(schema)
        return SchemaRegistry(updated, source=self.source)


# =============================================================================
# Loading
# =============================================================================


def _read_schema_file(path: Path) -> List[SchemaDefinition]:
    return _SCHEMA_LIST_ADAPTER.validate_json(path.read_bytes())


def load_registry(path: Optional[Union[str, Path]] = None) -> SchemaRegistry:
    """
    Build a registry from a JSON file, or from DEFAULT_SCHEMAS when no path is given.

    Raises:
        OSError: If the file cannot be read.
        pydantic.ValidationError: If the file does not hold valid schema definitions.
        SchemaDefinitionError: If two schemas share an id.
    """
    if path is None:
        logger.info("No schema registry file configured; using built-in schemas")
        return SchemaRegistry(DEFAULT_SCHEMAS)

    registry_path = Path(path)
    schemas = _read_schema_file(registry_path)
    logger.info(f"Loaded {len(schemas)} schemas from {registry_path}")
    return SchemaRegistry(schemas, source=registry_path)
