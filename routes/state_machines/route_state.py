from dataclasses import replace
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from routes.errors import InvalidTransitionError, ValidationError
from routes.models import Route, RouteStatus, utcnow

# The whole lifecycle in one table. Terminal states map to an empty set.
ALLOWED_TRANSITIONS: Dict[RouteStatus, FrozenSet[RouteStatus]] = {
    RouteStatus.PLANNED: frozenset({RouteStatus.IN_PROGRESS, RouteStatus.CANCELLED}),
    RouteStatus.IN_PROGRESS: frozenset({RouteStatus.COMPLETED, RouteStatus.CANCELLED}),
    RouteStatus.COMPLETED: frozenset(),
    RouteStatus.CANCELLED: frozenset(),
}


def parse_status(value) -> RouteStatus:
    """
    Accepts a RouteStatus or its string value ("in_progress" is tolerated).
    Anything else is a ValidationError, never an arbitrary string write.
    """
    if isinstance(value, RouteStatus):
        return value
    if isinstance(value, str):
        try:
            return RouteStatus(value.strip().upper())
        except ValueError:
            pass
    raise ValidationError(f"Unknown route status: {value!r}")


def validate_transition(current: RouteStatus, requested: RouteStatus) -> None:
    """
    The single transition-validation function.
    Raises InvalidTransitionError naming both states.
    """
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, requested)


def _is_before(later: datetime, earlier: datetime) -> bool:
    """
    later < earlier, skipped when one side is naive and the other aware.
    """
    if (later.tzinfo is None) != (earlier.tzinfo is None):
        return False
    return later < earlier


def transition_route(
    route: Route,
    requested: RouteStatus,
    *,
    actual_start_time: Optional[datetime] = None,
    actual_end_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Route:
    """
    Returns the route moved to `requested`, with the lifecycle timestamps set.
    Stops are carried over untouched.
    """
    validate_transition(route.status, requested)
    now = now or utcnow()

    changes = {"status": requested, "updated_at": now}
    if requested == RouteStatus.IN_PROGRESS:
        changes["actual_start_time"] = actual_start_time or now
    elif requested == RouteStatus.COMPLETED:
        # the start recorded at IN_PROGRESS wins over a supplied one
        started = route.actual_start_time or actual_start_time
        ended = actual_end_time or now
        if started is not None and _is_before(ended, started):
            raise ValidationError(f"Route cannot end ({ended.isoformat()}) before it started ({started.isoformat()})")
        changes["actual_end_time"] = ended
        if route.actual_start_time is None and actual_start_time is not None:
            changes["actual_start_time"] = actual_start_time
    elif requested == RouteStatus.CANCELLED:
        # cancelling a running route still records when it stopped
        if route.status == RouteStatus.IN_PROGRESS:
            changes["actual_end_time"] = actual_end_time or now

    # Route is a frozen dataclass, so hand back a new instance
    return replace(route, **changes)
