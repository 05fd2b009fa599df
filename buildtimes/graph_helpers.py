# front matter
from dataclasses import dataclass, field
from typing import Mapping, Optional

import networkx as nx

# separator used in edge keys; never valid inside a unit id
EDGE_SEP = "|"


@dataclass(frozen=True)
class Unit:
    """
    a single compiled build artifact
    duration and start are in milliseconds; None means the unit was never timed
    """
    id: str
    name: str = ""
    version: str = ""
    duration: Optional[float] = None
    start: Optional[float] = None
    is_root: bool = False
    is_member: bool = False
    fresh: bool = False
    features: tuple = ()

    @property
    def label(self):
        return self.name or self.id

    @property
    def timed(self):
        return self.duration is not None and self.start is not None


@dataclass(frozen=True)
class BuildGraph:
    """
    the committed graph as delivered by the timing collector
    edges are (from, to) pairs meaning "from depends on to"
    critical_path runs terminal unit first
    """
    units: Mapping[str, Unit]
    edges: tuple = ()
    roots: tuple = ()
    critical_path: tuple = field(default=())

    def edge_keys(self):
        return frozenset(edge_key(src, dst) for src, dst in self.edges)


def edge_key(src, dst):
    return f"{src}{EDGE_SEP}{dst}"


def split_edge_key(key):
    """
    input: edge key "from|to"
    output: (from, to) tuple
    """
    parts = key.split(EDGE_SEP)
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Malformed edge key: {key!r}")
    return parts[0], parts[1]


def build_graph(units: Mapping[str, Unit], edges, include_untimed: bool = False) -> nx.DiGraph:
    """
    inputs:
        units → {id: Unit}, edges → iterable of (from, to) dependency pairs
        include_untimed → keep untimed units as zero-duration nodes
    output: G → a networkx.DiGraph over the timed units (or all known units)

    successors of a node are its dependencies, predecessors its dependents.
    edges touching units that are not in the graph are dropped.
    """
    G = nx.DiGraph()
    for uid in sorted(units):
        unit = units[uid]
        if unit.timed:
            G.add_node(uid, duration=unit.duration, start=unit.start)
        elif include_untimed:
            G.add_node(uid, duration=0, start=None)
    for src, dst in edges:
        if src in G and dst in G:
            G.add_edge(src, dst)
    return G


def original_total(units: Mapping[str, Unit]) -> float:
    # latest measured finish time; 0 when nothing was timed
    return max((u.start + u.duration for u in units.values() if u.timed), default=0)
