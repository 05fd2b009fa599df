"""
Cycle guard for hypothetical dependency edits.

Adding the edge `from -> to` (from depends on to) closes a cycle exactly when
`to` already depends, directly or transitively, on `from`. The check walks
the dependents relation from `from`; if `to` turns up in that closure the
edge is refused before it ever reaches the overlay.

The traversals in cpm.py never try to detect cycles themselves: they only
keep a visited set so a cyclic active edge set still terminates.
"""
# front matter
import networkx as nx

SUGGESTION_LIMIT = 8


class DependencyCycleError(ValueError):
    """Raised when a proposed dependency would close a cycle."""

    def __init__(self, src, dst):
        self.src = src
        self.dst = dst
        super().__init__(
            f"Adding dependency {src!r} -> {dst!r} would create a cycle: "
            f"{dst!r} already depends on {src!r}"
        )


def _edge_graph(active_edges):
    G = nx.DiGraph()
    G.add_edges_from(active_edges)
    return G


def blocked_dependencies(active_edges, unit_id):
    """
    input: active (from, to) edges, a unit id
    output: set of ids that transitively depend on unit_id, unit_id included
    none of these may become a dependency of unit_id
    """
    G = _edge_graph(active_edges)
    if unit_id not in G:
        return {unit_id}
    # ancestors along from -> to edges are exactly the transitive dependents
    return nx.ancestors(G, unit_id) | {unit_id}


def would_create_cycle(active_edges, candidate_from, candidate_to):
    """True iff adding candidate_from -> candidate_to would close a cycle."""
    return candidate_to in blocked_dependencies(active_edges, candidate_from)


def suggest_dependencies(units, active_edges, unit_id, query, limit=SUGGESTION_LIMIT):
    """
    inputs:
        units → {id: Unit}
        active_edges → current (from, to) pairs
        unit_id → the unit gaining a dependency
        query → free text typed by the user
    output: list of Units that can be added without creating a cycle
    """
    q = query.strip().lower()
    if not q:
        return []
    current = {dst for src, dst in active_edges if src == unit_id}
    blocked = blocked_dependencies(active_edges, unit_id)
    matches = [
        u for uid, u in units.items()
        if uid not in current and uid not in blocked and q in u.label.lower()
    ]
    matches.sort(key=lambda u: (u.label.lower(), u.id))
    return matches[:limit]
