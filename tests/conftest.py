"""Shared fixtures for build graph tests."""
from __future__ import annotations

import pytest

from buildtimes.graph_helpers import BuildGraph, Unit
from buildtimes.input_parser import load_graph_json


def make_units(**timings: tuple) -> dict[str, Unit]:
    """make_units(A=(duration, start), ...) -> {id: Unit}"""
    return {
        uid: Unit(id=uid, name=uid, duration=dur, start=start)
        for uid, (dur, start) in timings.items()
    }


def graph_doc(units: dict[str, Unit], edges: list[tuple[str, str]], critical_path=None) -> dict:
    """Collector-style graph document for the given units and edges."""
    return {
        "nodes": {
            uid: {
                "id": uid,
                "name": u.name,
                "version": "0.1.0",
                "is_workspace_member": True,
                "duration_ms": u.duration,
                "start_ms": u.start,
                "fresh": False,
                "features": [],
            }
            for uid, u in units.items()
        },
        "edges": [{"from": src, "to": dst, "dep_kinds": ["normal"]} for src, dst in edges],
        "roots": [],
        "critical_path": critical_path or [],
    }


@pytest.fixture
def pair_units() -> dict[str, Unit]:
    """A depends on B: B runs 0-200, A runs 200-500."""
    return make_units(A=(300.0, 200.0), B=(200.0, 0.0))


@pytest.fixture
def chain_units() -> dict[str, Unit]:
    """A -> B -> C, measured back to back."""
    return make_units(C=(100.0, 0.0), B=(200.0, 100.0), A=(300.0, 300.0))


CHAIN_EDGES = [("A", "B"), ("B", "C")]


@pytest.fixture
def diamond_units() -> dict[str, Unit]:
    """
    A -> B -> D
    A -> C -> D
    B is the slow branch.
    """
    return make_units(
        D=(100.0, 0.0),
        B=(200.0, 100.0),
        C=(50.0, 100.0),
        A=(100.0, 300.0),
    )


DIAMOND_EDGES = [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")]


@pytest.fixture
def diamond_graph(diamond_units: dict[str, Unit]) -> BuildGraph:
    return load_graph_json(graph_doc(diamond_units, DIAMOND_EDGES))
