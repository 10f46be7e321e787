"""
Error taxonomy of the route engine.

Every error propagates to the boundary layer unchanged. The engine never
retries and never converts an error into an empty success.
"""

from typing import Iterable, List

from tenancy.errors import ScopeError


class RouteEngineError(Exception):
    """Base class for every error raised by the route engine."""
    pass


class ValidationError(RouteEngineError):
    """Malformed input: coordinates, empty request lists, bad dates or statuses."""
    pass


class NotFoundError(RouteEngineError):
    """Unknown tenant-scoped entity (route, driver, service day, pickup request)."""
    pass


class ConflictError(RouteEngineError):
    """
    One or more pickup requests are already committed to an active route
    (or are no longer PENDING). Carries the offending request ids.
    """
    def __init__(self, request_ids: Iterable[str], message: str = None):
        self.request_ids: List[str] = sorted(str(request_id) for request_id in request_ids)
        message = message or (
            "Pickup request(s) already assigned to an active route: "
            + ", ".join(self.request_ids)
        )
        super().__init__(message)


class InvalidTransitionError(RouteEngineError):
    """Illegal lifecycle move. Carries the current and requested states."""
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition route from {getattr(current, 'value', current)} "
            f"to {getattr(requested, 'value', requested)}"
        )
