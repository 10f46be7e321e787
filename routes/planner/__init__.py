from .engine import RoutePlanner
from .policy import PlannerPolicy, default_planner_policy
from .sequencing import PlanningCandidate, SequencedLeg, nearest_neighbor, sequence_candidates

__all__ = [
    "RoutePlanner",
    "PlannerPolicy",
    "default_planner_policy",
    "PlanningCandidate",
    "SequencedLeg",
    "nearest_neighbor",
    "sequence_candidates",
]
