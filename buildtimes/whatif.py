"""What-if evaluation: apply an edge overlay to a BuildGraph and recompute timings."""
# front matter
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from buildtimes.cpm import critical_path, propagate_start_times, total_duration
from buildtimes.graph_helpers import BuildGraph, original_total
from buildtimes.overlay import EdgeOverlay


@dataclass(frozen=True)
class WhatIfResult:
    active_edges: List[Tuple[str, str]]
    start_times: Dict[str, float]
    critical_path: List[str]
    total: float
    original_total: float

    @property
    def delta(self):
        return self.total - self.original_total


def evaluate(graph: BuildGraph, overlay: Optional[EdgeOverlay] = None) -> WhatIfResult:
    """
    inputs: the committed graph, an optional overlay of hypothetical edits
    output: WhatIfResult for the active edge set

    with no edits the measured start times and the collector's critical path
    are reported as-is.
    """
    overlay = overlay or EdgeOverlay()
    base_edges = list(graph.edges)
    active = overlay.active_edges(base_edges)
    baseline = original_total(graph.units)

    if overlay.is_empty:
        starts = {uid: (u.start if u.start is not None else 0) for uid, u in graph.units.items()}
        path = list(graph.critical_path) or critical_path(graph.units, active)
    else:
        starts = propagate_start_times(graph.units, active, base_edges, overlay.removed)
        path = critical_path(graph.units, active)

    return WhatIfResult(
        active_edges=active,
        start_times=starts,
        critical_path=path,
        total=total_duration(graph.units, starts),
        original_total=baseline,
    )
