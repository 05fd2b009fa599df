"""Tests for loading timing data into a BuildGraph."""
from __future__ import annotations

import json
import logging

import pandas as pd
import pytest

from buildtimes.graph_helpers import BuildGraph, Unit
from buildtimes.input_parser import (
    apply_timings,
    load_graph_json,
    parse_df,
    parse_unit_data,
)
from tests.conftest import DIAMOND_EDGES, graph_doc


class TestLoadGraphJson:
    def test_units_and_edges(self, diamond_units) -> None:
        graph = load_graph_json(graph_doc(diamond_units, DIAMOND_EDGES))
        assert set(graph.units) == {"A", "B", "C", "D"}
        assert graph.units["B"].duration == 200.0
        assert graph.units["B"].version == "0.1.0"
        assert graph.units["B"].is_member
        assert graph.edges == tuple(DIAMOND_EDGES)

    def test_accepts_json_string(self, diamond_units) -> None:
        doc = json.dumps(graph_doc(diamond_units, DIAMOND_EDGES))
        assert isinstance(load_graph_json(doc), BuildGraph)

    def test_missing_critical_path_computed(self, diamond_units) -> None:
        graph = load_graph_json(graph_doc(diamond_units, DIAMOND_EDGES))
        assert graph.critical_path == ("A", "B", "D")

    def test_supplied_critical_path_kept(self, diamond_units) -> None:
        graph = load_graph_json(graph_doc(diamond_units, DIAMOND_EDGES, critical_path=["B", "D"]))
        assert graph.critical_path == ("B", "D")

    def test_unknown_ids_dropped_from_critical_path(self, diamond_units) -> None:
        graph = load_graph_json(graph_doc(diamond_units, DIAMOND_EDGES, critical_path=["A", "ghost", "B"]))
        assert graph.critical_path == ("A", "B")

    def test_critical_path_of_unknown_ids_recomputed(self, diamond_units) -> None:
        graph = load_graph_json(graph_doc(diamond_units, DIAMOND_EDGES, critical_path=["ghost"]))
        assert graph.critical_path == ("A", "B", "D")

    def test_null_timings(self) -> None:
        doc = {
            "nodes": {"x": {"id": "x", "name": "x", "duration_ms": None, "start_ms": None}},
            "edges": [],
        }
        graph = load_graph_json(doc)
        assert not graph.units["x"].timed
        assert graph.critical_path == ()

    def test_features_loaded(self, diamond_units) -> None:
        doc = graph_doc(diamond_units, DIAMOND_EDGES)
        doc["nodes"]["B"]["features"] = ["std", "derive"]
        assert load_graph_json(doc).units["B"].features == ("std", "derive")

    def test_roots_flagged(self, diamond_units) -> None:
        doc = graph_doc(diamond_units, DIAMOND_EDGES)
        doc["roots"] = ["A"]
        graph = load_graph_json(doc)
        assert graph.roots == ("A",)
        assert graph.units["A"].is_root
        assert not graph.units["B"].is_root

    def test_unknown_edge_endpoints_warn(self, diamond_units, caplog) -> None:
        doc = graph_doc(diamond_units, DIAMOND_EDGES + [("A", "ghost")])
        with caplog.at_level(logging.WARNING, logger="buildtimes.input_parser"):
            graph = load_graph_json(doc)
        assert ("A", "ghost") in graph.edges
        assert "unknown units" in caplog.text

    @pytest.mark.parametrize("key", ["nodes", "edges"])
    def test_missing_section_raises(self, diamond_units, key: str) -> None:
        doc = graph_doc(diamond_units, DIAMOND_EDGES)
        del doc[key]
        with pytest.raises(ValueError, match=key):
            load_graph_json(doc)


class TestParseDf:
    def test_basic_table(self) -> None:
        df = pd.DataFrame({
            "Crate": ["app", "serde", "libc"],
            "Duration_ms": [300, 200, 100],
            "Start_ms": [300, 100, 0],
            "Deps": ["serde; libc", "libc", None],
        })
        graph = parse_df(df)
        assert set(graph.units) == {"app", "serde", "libc"}
        assert set(graph.edges) == {("app", "serde"), ("app", "libc"), ("serde", "libc")}
        assert graph.roots == ("app",)
        assert graph.units["app"].is_root
        assert graph.critical_path == ("app", "serde", "libc")

    def test_missing_timing_becomes_none(self) -> None:
        df = pd.DataFrame({
            "Unit": ["a", "b"],
            "Duration": [10.0, None],
            "Start": [0.0, None],
            "Dependencies": ["", ""],
        })
        graph = parse_df(df)
        assert graph.units["a"].timed
        assert graph.units["b"].duration is None
        assert graph.units["b"].start is None

    def test_unknown_dependency_dropped(self, caplog) -> None:
        df = pd.DataFrame({
            "Unit": ["a"],
            "Duration": [10],
            "Start": [0],
            "Dependencies": ["ghost"],
        })
        with caplog.at_level(logging.WARNING, logger="buildtimes.input_parser"):
            graph = parse_df(df)
        assert graph.edges == ()
        assert "ghost" in caplog.text

    def test_missing_column_suggests(self) -> None:
        df = pd.DataFrame({"Unit": ["a"], "Duratoin": [1], "Start": [0], "Dependencies": [""]})
        with pytest.raises(ValueError, match="duration") as exc_info:
            parse_df(df)
        assert "duratoin" in str(exc_info.value)

    def test_negative_duration_rejected(self) -> None:
        df = pd.DataFrame({"Unit": ["a"], "Duration": [-1], "Start": [0], "Dependencies": [""]})
        with pytest.raises(ValueError, match="non-negative"):
            parse_df(df)


UNIT_DATA = [
    {"name": "serde", "version": "1.0.0", "target": " build script", "start": 0.1, "duration": 0.4},
    {"name": "serde", "version": "1.0.0", "target": "", "start": 0.5, "duration": 1.5},
    {"name": "libc", "version": "0.2.0", "target": " build script", "start": 0.0, "duration": 0.25},
    {"name": "app", "version": "0.1.0", "target": "", "start": 2.0, "duration": 0.0},
]


def timing_html(units: list[dict]) -> str:
    return (
        "<html><script>\n"
        f"const UNIT_DATA = {json.dumps(units)};\n"
        "const CONCURRENCY_DATA = [];\n"
        "</script></html>"
    )


class TestCargoTimings:
    def test_parse_unit_data(self) -> None:
        assert parse_unit_data(timing_html(UNIT_DATA)) == UNIT_DATA

    def test_parse_unit_data_missing_marker(self) -> None:
        with pytest.raises(ValueError, match="UNIT_DATA not found"):
            parse_unit_data("<html></html>")

    def test_parse_unit_data_unterminated(self) -> None:
        with pytest.raises(ValueError, match="end not found"):
            parse_unit_data("const UNIT_DATA = [{}")

    @pytest.fixture
    def untimed_graph(self) -> BuildGraph:
        units = {
            "app": Unit(id="app", name="app", version="0.1.0"),
            "serde": Unit(id="serde", name="serde", version="1.0.0"),
            "libc": Unit(id="libc", name="libc", version="0.2.0"),
            "other": Unit(id="other", name="other", version="9.9.9"),
        }
        return BuildGraph(units=units, edges=(("app", "serde"), ("app", "libc")))

    def test_apply_prefers_non_build_script_units(self, untimed_graph) -> None:
        graph = apply_timings(untimed_graph, UNIT_DATA)
        serde = graph.units["serde"]
        assert serde.start == pytest.approx(500.0)
        assert serde.duration == pytest.approx(1500.0)
        assert not serde.fresh

    def test_apply_falls_back_to_build_script(self, untimed_graph) -> None:
        libc = apply_timings(untimed_graph, UNIT_DATA).units["libc"]
        assert libc.start == pytest.approx(0.0)
        assert libc.duration == pytest.approx(250.0)

    def test_zero_duration_is_fresh(self, untimed_graph) -> None:
        assert apply_timings(untimed_graph, UNIT_DATA).units["app"].fresh

    def test_unmatched_units_untouched(self, untimed_graph) -> None:
        graph = apply_timings(untimed_graph, UNIT_DATA)
        assert graph.units["other"] is untimed_graph.units["other"]
        assert not untimed_graph.units["serde"].timed

    def test_critical_path_recomputed(self, untimed_graph) -> None:
        graph = apply_timings(untimed_graph, UNIT_DATA)
        assert graph.critical_path == ("app", "serde")
