#Route optimization engine.
#Re-exports the public API (models, errors, service, in-memory store) so
#callers import from routes without knowing internal file names.

from .errors import (
    RouteEngineError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidTransitionError,
    ScopeError,
)
from .models import Route, RouteStatus, Stop
from .store import RouteStore, InMemoryRouteStore
from .analytics import RouteAnalyticsSnapshot
from .notifications import RouteNotifier, LoggingRouteNotifier
from .service import RouteOptimizationService

__all__ = [
    "RouteEngineError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "ScopeError",
    "Route",
    "RouteStatus",
    "Stop",
    "RouteStore",
    "InMemoryRouteStore",
    "RouteAnalyticsSnapshot",
    "RouteNotifier",
    "LoggingRouteNotifier",
    "RouteOptimizationService",
]
