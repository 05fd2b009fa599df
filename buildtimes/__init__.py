"""What-if analysis of build timing dependency graphs."""

from buildtimes.cpm import critical_path, propagate_start_times, total_duration
from buildtimes.cycle_guard import (
    DependencyCycleError,
    blocked_dependencies,
    suggest_dependencies,
    would_create_cycle,
)
from buildtimes.graph_helpers import EDGE_SEP, BuildGraph, Unit, edge_key, split_edge_key
from buildtimes.overlay import EdgeOverlay, EdgeState, resolve_edges
from buildtimes.whatif import WhatIfResult, evaluate

__all__ = [
    "BuildGraph",
    "DependencyCycleError",
    "EDGE_SEP",
    "EdgeOverlay",
    "EdgeState",
    "Unit",
    "WhatIfResult",
    "blocked_dependencies",
    "critical_path",
    "edge_key",
    "evaluate",
    "propagate_start_times",
    "resolve_edges",
    "split_edge_key",
    "suggest_dependencies",
    "total_duration",
    "would_create_cycle",
]
