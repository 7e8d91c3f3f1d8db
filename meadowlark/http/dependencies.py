"""FastAPI dependency helpers.

Typed access to the collaborators attached to `app.state` by `create_app()`,
and to the per-request objects published by middleware.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from meadowlark.http.fault_barrier import FAULT_SCOPE_KEY, FaultScope
from meadowlark.http.settings import AppSettings

if TYPE_CHECKING:
    from starlette.requests import Request

    from meadowlark.weather import WeatherProvider


class DependencyNotInitializedError(RuntimeError):
    """Raised when an app dependency is missing from request/app state."""

    def __init__(self, dependency: str) -> None:
        """Create a DependencyNotInitializedError for the given dependency name."""
        message = f"{dependency} not initialized"
        super().__init__(message)


def _require_dependency[TDependency](
    request: Request,
    name: str,
    kind: type[TDependency],
) -> TDependency:
    value = getattr(request.app.state, name, None)
    if value is None or not isinstance(value, kind):
        raise DependencyNotInitializedError(kind.__name__)
    return value


def get_settings(request: Request) -> AppSettings:
    """Return the settings the app was built with."""
    return _require_dependency(request, "settings", AppSettings)


def get_weather_provider(request: Request) -> WeatherProvider:
    """Return the weather provider attached to the app."""
    provider = getattr(request.app.state, "weather_provider", None)
    if provider is None:
        raise DependencyNotInitializedError("WeatherProvider")
    return provider


def get_fault_scope(request: Request) -> FaultScope:
    """Return the request's fault scope (set by `FaultBarrierMiddleware`)."""
    fault_scope = request.scope.get(FAULT_SCOPE_KEY)
    if not isinstance(fault_scope, FaultScope):
        raise DependencyNotInitializedError(FaultScope.__name__)
    return fault_scope
