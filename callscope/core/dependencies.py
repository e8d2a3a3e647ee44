"""
FastAPI dependency injection module for the CallScope service.

This module provides reusable FastAPI dependencies for configuration access and the
schema registry owned by the running application.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_registry: Returns the SchemaRegistry stored on application state
- SettingsDep: Type alias for injecting Settings into endpoints
- RegistryDep: Type alias for injecting the SchemaRegistry into endpoints

The registry is loaded once by the application lifespan (callscope/main.py) and
replaced only by POST /schemas/reload. Endpoints receive it through RegistryDep and
hand it to the services explicitly.

Usage Examples:
    @router.post("/detect")
    async def detect_schema(
        request: DetectRequest,
        registry: RegistryDep,
        settings: SettingsDep,
    ) -> DetectResponse:
        result = detect(request.rows, registry, settings.detection_threshold)
        ...

    # Tests can swap either dependency:
    app.dependency_overrides[get_registry] = lambda: SchemaRegistry([schema])
"""

from typing import Annotated

from fastapi import Depends, Request

from callscope.core.config import Settings, get_settings
from callscope.services.registry import SchemaRegistry, load_registry


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    This is a thin wrapper around get_settings() so tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    """
    return get_settings()


# =============================================================================
# Registry Dependency
# =============================================================================

def get_registry(request: Request) -> SchemaRegistry:
    """
    Return the application's schema registry.

    The lifespan handler stores it on app.state. When the app runs without its
    lifespan (e.g. a bare TestClient), the registry is loaded on first use from the
    configured path.
    """
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        registry = load_registry(get_settings().schema_registry_path)
        request.app.state.registry = registry
    return registry


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

# Usage: async def endpoint(registry: RegistryDep)
RegistryDep = Annotated[SchemaRegistry, Depends(get_registry)]
