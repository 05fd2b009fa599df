"""
Start-time propagation and critical path search over the active edge set.

Start times are propagated over timed units only; the critical path search
also walks through untimed units at zero cost. Both keep a visited set so
they terminate even if the active edges contain a cycle. Neither mutates
its inputs.
"""
# front matter
import logging
from collections import deque

from buildtimes.graph_helpers import build_graph, edge_key, split_edge_key

log = logging.getLogger(__name__)


def _earliest_start(G, uid, start_times):
    # latest finish among the unit's active dependencies, 0 with none
    return max(
        (start_times[dep] + G.nodes[dep]["duration"] for dep in G.successors(uid)),
        default=0,
    )


def propagate_start_times(units, active_edges, base_edges, removed_keys):
    """
    inputs:
        units → {id: Unit}
        active_edges → list of (from, to) edges after the overlay
        base_edges → list of (from, to) edges of the committed graph
        removed_keys → edge keys removed by the overlay
    output: dict that maps every known unit id to its start time

    only units whose dependency set changed, and their dependents, move;
    everything else keeps its measured start.
    """
    G = build_graph(units, active_edges)
    start_times = {uid: (u.start if u.start is not None else 0) for uid, u in units.items()}

    # units that lost or gained a dependency
    affected = set()
    for key in removed_keys:
        affected.add(split_edge_key(key)[0])
    base_keys = {edge_key(src, dst) for src, dst in base_edges}
    for src, dst in active_edges:
        if edge_key(src, dst) not in base_keys:
            affected.add(src)

    queue = deque()
    for uid in sorted(affected):
        if uid not in G:
            continue
        es = _earliest_start(G, uid, start_times)
        if es != start_times[uid]:
            start_times[uid] = es
            queue.append(uid)

    # forward propagation; each unit is finalized the first time it is dequeued
    visited = set()
    while queue:
        uid = queue.popleft()
        if uid in visited:
            continue
        visited.add(uid)
        for dependent in G.predecessors(uid):
            if dependent in visited:
                continue
            es = _earliest_start(G, dependent, start_times)
            if es != start_times[dependent]:
                start_times[dependent] = es
                queue.append(dependent)

    log.debug("propagated %d affected unit(s), %d visited", len(affected), len(visited))
    return start_times


def finish_times(G):
    """
    input: graph from build_graph()
    output: dict that maps each unit to its longest accumulated duration
        (own duration plus the longest chain of dependencies below it)

    iterative depth-first search in sorted id order. a dependency that is
    still on the stack counts as 0, which is what breaks cycles.
    """
    memo = {}
    for root in sorted(G):
        if root in memo:
            continue
        visiting = {root}
        # frame: [unit, iterator over its dependencies, best dependency finish so far]
        stack = [[root, iter(sorted(G.successors(root))), 0]]
        while stack:
            frame = stack[-1]
            uid, deps = frame[0], frame[1]
            descended = False
            for dep in deps:
                if dep in memo:
                    frame[2] = max(frame[2], memo[dep])
                elif dep not in visiting:
                    visiting.add(dep)
                    stack.append([dep, iter(sorted(G.successors(dep))), 0])
                    descended = True
                    break
            if descended:
                continue
            stack.pop()
            memo[uid] = G.nodes[uid]["duration"] + frame[2]
            if stack:
                stack[-1][2] = max(stack[-1][2], memo[uid])
    return memo


def critical_path(units, active_edges):
    """
    inputs: units → {id: Unit}, active_edges → list of (from, to) edges
    output: list of unit ids on the critical path, last-finishing unit first

    untimed units score 0 but still link their dependents to their
    dependencies; they never appear in the returned path.
    """
    G = build_graph(units, active_edges, include_untimed=True)
    memo = finish_times(G)

    # terminal unit: largest finish among timed units, first in id order on ties
    terminal = None
    for uid in sorted(memo):
        if not units[uid].timed:
            continue
        if terminal is None or memo[uid] > memo[terminal]:
            terminal = uid
    if terminal is None:
        return []

    path = [terminal]
    on_path = {terminal}
    current = terminal
    while True:
        best = None
        for dep in sorted(G.successors(current)):
            if dep in on_path:
                continue
            if best is None or memo[dep] > memo[best]:
                best = dep
        if best is None:
            break
        path.append(best)
        on_path.add(best)
        current = best
    return [uid for uid in path if units[uid].timed]


def total_duration(units, start_times=None):
    """
    input: units, optional start-time map from propagate_start_times()
    output: latest finish (start + duration) over all timed units
    """
    total = 0
    for uid, unit in units.items():
        if not unit.timed:
            continue
        start = start_times.get(uid, unit.start) if start_times is not None else unit.start
        total = max(total, start + unit.duration)
    return total
