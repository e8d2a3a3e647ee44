"""
Core infrastructure package for the CallScope service.

Provides:
- Configuration management via pydantic-settings
- The exception hierarchy shared by services and routers
- FastAPI dependency injection utilities (callscope.core.dependencies)

Configuration and exceptions are re-exported here for convenient importing:

    from callscope.core import get_settings, SchemaNotFoundError

The dependencies module builds on the services layer, which itself imports the
exceptions defined here, so it is imported from its own module:

    from callscope.core.dependencies import RegistryDep, SettingsDep
"""

# =============================================================================
# Re-exports from callscope.core.config
# =============================================================================
from callscope.core.config import Settings, get_settings

# =============================================================================
# Re-exports from callscope.core.exceptions
# =============================================================================
from callscope.core.exceptions import (
    CallScopeError,
    SchemaDefinitionError,
    SchemaNotFoundError,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Exceptions (from exceptions.py)
    'CallScopeError',
    'SchemaDefinitionError',
    'SchemaNotFoundError',
]
