"""
CallScope exception hierarchy.

Only structurally invalid arguments raise. Data-content problems (no confident
schema match, a view naming an unknown field, a cell that cannot be coerced)
are reported through result objects and diagnostics instead.
"""


class CallScopeError(Exception):
    """Base exception for all CallScope errors."""


class SchemaDefinitionError(CallScopeError):
    """A schema definition or registry is malformed (e.g. duplicate ids)."""

    def __init__(self, schema_id: str, message: str) -> None:
        self.schema_id = schema_id
        super().__init__(f"Invalid schema '{schema_id}': {message}")


class SchemaNotFoundError(CallScopeError):
    """No schema with the requested id is registered."""

    def __init__(self, schema_id: str) -> None:
        self.schema_id = schema_id
        super().__init__(f"Schema '{schema_id}' is not registered")
