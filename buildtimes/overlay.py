"""
Edge overlay: hypothetical removals and additions on top of the base edges.

The overlay is a single map from edge key to EdgeState, so a key can never
be both removed and added at the same time. Every edit returns a new
overlay; nothing is mutated in place.
"""
# front matter
import enum
import logging
from types import MappingProxyType

from buildtimes.cycle_guard import DependencyCycleError, would_create_cycle
from buildtimes.graph_helpers import edge_key, split_edge_key

log = logging.getLogger(__name__)


class EdgeState(enum.Enum):
    REMOVED = "removed"
    ADDED = "added"


def resolve_edges(base, removed, added):
    """
    inputs:
        base → list of (from, to) edges of the committed graph
        removed → set of edge keys to subtract
        added → set of edge keys to union in
    output: list of active (from, to) edges, deduplicated
    """
    removed = set(removed)
    added = set(added)
    both = removed & added
    if both:
        raise ValueError(f"Edge keys both removed and added: {', '.join(sorted(both))}")
    active = []
    seen = set()
    for src, dst in base:
        key = edge_key(src, dst)
        if key in removed or key in seen:
            continue
        seen.add(key)
        active.append((src, dst))
    for key in sorted(added):
        if key in seen:
            continue
        seen.add(key)
        active.append(split_edge_key(key))
    return active


class EdgeOverlay:
    """Immutable tri-state override map: removed / added / unchanged per edge key."""

    __slots__ = ("_overrides",)

    def __init__(self, overrides=None):
        self._overrides = MappingProxyType(dict(overrides or {}))

    @property
    def overrides(self):
        return self._overrides

    @property
    def removed(self):
        return frozenset(k for k, s in self._overrides.items() if s is EdgeState.REMOVED)

    @property
    def added(self):
        return frozenset(k for k, s in self._overrides.items() if s is EdgeState.ADDED)

    @property
    def is_empty(self):
        return not self._overrides

    def _with(self, key, state):
        overrides = dict(self._overrides)
        if state is None:
            overrides.pop(key, None)
        else:
            overrides[key] = state
        return EdgeOverlay(overrides)

    def active_edges(self, base_edges):
        return resolve_edges(base_edges, self.removed, self.added)

    def remove(self, base_edges, src, dst):
        """
        drop the dependency src -> dst
        a base edge becomes REMOVED, a hypothetical addition is simply undone
        """
        key = edge_key(src, dst)
        state = self._overrides.get(key)
        if state is EdgeState.ADDED:
            return self._with(key, None)
        if state is None and (src, dst) in set(base_edges):
            return self._with(key, EdgeState.REMOVED)
        return self

    def add(self, base_edges, src, dst):
        """
        add the dependency src -> dst
        restoring a removed base edge is checked like any other addition;
        raises DependencyCycleError and leaves the overlay untouched when refused
        """
        key = edge_key(src, dst)
        state = self._overrides.get(key)
        if state is EdgeState.ADDED:
            return self
        active = self.active_edges(base_edges)
        if state is None and (src, dst) in set(active):
            return self
        if would_create_cycle(active, src, dst):
            log.info("refused dependency %s -> %s: would create a cycle", src, dst)
            raise DependencyCycleError(src, dst)
        if state is EdgeState.REMOVED:
            return self._with(key, None)
        return self._with(key, EdgeState.ADDED)

    def reset(self):
        return EdgeOverlay()

    def summary(self):
        parts = []
        if self.removed:
            parts.append(f"{len(self.removed)} removed")
        if self.added:
            parts.append(f"{len(self.added)} added")
        return ", ".join(parts)

    def __eq__(self, other):
        if not isinstance(other, EdgeOverlay):
            return NotImplemented
        return dict(self._overrides) == dict(other._overrides)

    def __hash__(self):
        return hash(frozenset(self._overrides.items()))

    def __repr__(self):
        return f"EdgeOverlay(removed={len(self.removed)}, added={len(self.added)})"
