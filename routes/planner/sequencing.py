# routes/planner/sequencing.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from routing.distance import Coordinates, distance_between

DistanceFn = Callable[[Coordinates, Coordinates], float]


def request_id_order(request_id: str) -> Tuple[int, Union[int, str]]:
    """
    Ascending request id order: numeric ids by value ("9" before "10"),
    then any other ids as strings.
    """
    if request_id.isdecimal():
        return (0, int(request_id))
    return (1, request_id)


@dataclass(frozen=True)
class SequencedLeg:
    """
    One entry of the computed visiting order.
    distance_km is None for requests that could not be located.
    """
    request_id: str
    coordinates: Optional[Coordinates]
    distance_km: Optional[float]


@dataclass(frozen=True)
class PlanningCandidate:
    """
    Input to sequencing: a pickup request reduced to what ordering needs.
    """
    request_id: str
    coordinates: Optional[Coordinates]
    priority: int = 0


def nearest_neighbor(
    start: Coordinates,
    candidates: Sequence[PlanningCandidate],
    distance_fn: DistanceFn = distance_between,
) -> Tuple[List[SequencedLeg], Coordinates]:
    """
    Greedy nearest-neighbor construction over located candidates.

    From the current position, repeatedly pick the closest unvisited
    candidate (ties -> ascending request id), then move there.
    O(n^2) distance evaluations.

    Returns the legs in visiting order and the final position.
    """
    remaining = list(candidates)
    legs: List[SequencedLeg] = []
    current = start

    while remaining:
        nearest_index = 0
        nearest_key = None
        for index, candidate in enumerate(remaining):
            key = (distance_fn(current, candidate.coordinates), request_id_order(candidate.request_id))
            if nearest_key is None or key < nearest_key:
                nearest_key = key
                nearest_index = index

        nearest = remaining.pop(nearest_index)
        legs.append(
            SequencedLeg(
                request_id=nearest.request_id,
                coordinates=nearest.coordinates,
                distance_km=nearest_key[0],
            )
        )
        current = nearest.coordinates

    return legs, current


def sequence_candidates(
    start: Coordinates,
    candidates: Sequence[PlanningCandidate],
    *,
    honor_priority: bool = True,
    distance_fn: DistanceFn = distance_between,
) -> List[SequencedLeg]:
    """
    Full visiting order for a route.

    1) located priority requests (priority > 0), nearest-neighbor from start
    2) remaining located requests, nearest-neighbor from wherever 1) ended
    3) unlocated requests, in input order, with no leg distance
    """
    located = [candidate for candidate in candidates if candidate.coordinates is not None]
    unlocated = [candidate for candidate in candidates if candidate.coordinates is None]

    if honor_priority:
        groups = [
            [candidate for candidate in located if candidate.priority > 0],
            [candidate for candidate in located if candidate.priority <= 0],
        ]
    else:
        groups = [located]

    legs: List[SequencedLeg] = []
    position = start
    for group in groups:
        if not group:
            continue
        group_legs, position = nearest_neighbor(position, group, distance_fn)
        legs.extend(group_legs)

    for candidate in unlocated:
        legs.append(SequencedLeg(request_id=candidate.request_id, coordinates=None, distance_km=None))

    return legs
