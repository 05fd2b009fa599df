# front matter
import difflib
import json
import logging
import re  # for parsing ; and , in dependency cells
from dataclasses import replace

import pandas as pd

from buildtimes.cpm import critical_path
from buildtimes.graph_helpers import BuildGraph, Unit

log = logging.getLogger(__name__)

# a unit whose measured duration is below this was served from cache
FRESH_THRESHOLD_MS = 1.0

UNIT_DATA_MARKER = "const UNIT_DATA = "


def _opt_float(value):
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return float(value)


def _opt_cell(row, column, default):
    value = getattr(row, column, default)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    return value


def _with_critical_path(units, edges, roots, path):
    # a supplied path may only name timed units we know about
    path = [uid for uid in path if uid in units and units[uid].timed]
    if not path:
        path = critical_path(units, edges)
    return BuildGraph(units=units, edges=tuple(edges), roots=tuple(roots), critical_path=tuple(path))


def load_graph_json(data):
    """
    input: graph document written by the timing collector (dict or json string)
        {"nodes": {id: {...}}, "edges": [{"from", "to"}], "roots": [...], "critical_path": [...]}
    output: BuildGraph
    """
    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    missing = [k for k in ("nodes", "edges") if k not in data]
    if missing:
        raise ValueError(f"Graph document is missing: {', '.join(missing)}")

    roots = list(data.get("roots") or [])
    root_set = set(roots)
    units = {}
    for uid, node in data["nodes"].items():
        uid = node.get("id", uid)
        units[uid] = Unit(
            id=uid,
            name=node.get("name") or uid,
            version=node.get("version") or "",
            duration=_opt_float(node.get("duration_ms")),
            start=_opt_float(node.get("start_ms")),
            is_root=uid in root_set,
            is_member=bool(node.get("is_workspace_member", False)),
            fresh=bool(node.get("fresh", False)),
            features=tuple(node.get("features") or ()),
        )

    edges = []
    unknown = 0
    for edge in data["edges"]:
        src, dst = edge["from"], edge["to"]
        if src not in units or dst not in units:
            unknown += 1
        edges.append((src, dst))
    if unknown:
        log.warning("%d edge(s) reference unknown units and will be ignored", unknown)

    return _with_critical_path(units, edges, roots, data.get("critical_path") or [])


def parse_df(df):
    """
    input: dataframe containing unit (string), duration (ms), start (ms) and dependencies
    output: BuildGraph
    """
    df = df.copy()
    df.columns = [alias_map.get(str(c).strip().lower(), str(c).strip().lower()) for c in df.columns]
    required = {"unit", "duration", "start", "dependencies"}
    if not required.issubset(df.columns):
        missing = required - set(df.columns)
        msg = f"Missing required column(s): {', '.join(sorted(missing))}"
        hints = []
        for col in sorted(missing):
            close = difflib.get_close_matches(col, list(df.columns), n=1, cutoff=0.6)
            if close:
                hints.append(f"'{col}' instead of '{close[0]}'?")
        if hints:
            msg += ". Did you mean: " + ", ".join(hints)
        raise ValueError(msg)

    # normalize unit names to prevent whitespace mismatches
    df["unit"] = df["unit"].astype(str).str.strip()
    durations = pd.to_numeric(df["duration"], errors="coerce")
    if (durations < 0).any():
        raise ValueError("Duration must be non-negative")
    if df["unit"].duplicated().any():
        dupes = df[df["unit"].duplicated(keep=False)]["unit"].unique()
        log.warning("Duplicate units found, keeping the last row: %s", ", ".join(dupes))

    units = {}
    for row in df.itertuples(index=False):
        uid = row.unit
        units[uid] = Unit(
            id=uid,
            name=uid,
            version=str(_opt_cell(row, "version", "")),
            duration=_opt_float(pd.to_numeric(row.duration, errors="coerce")),
            start=_opt_float(pd.to_numeric(row.start, errors="coerce")),
            is_member=bool(_opt_cell(row, "member", False)),
        )

    # list containing the edge pairs (unit -> dependency)
    edges = []
    unknown = set()
    for row in df.itertuples(index=False):
        dep_str = row.dependencies
        # check for no values in dep
        if pd.isna(dep_str) or str(dep_str).strip() == "":
            continue
        for dep in re.split(r"[;,]", str(dep_str)):
            dep = dep.strip()
            if not dep:
                continue
            if dep not in units:
                unknown.add(dep)
                continue
            edges.append((row.unit, dep))
    if unknown:
        log.warning("Unrecognized dependencies dropped: %s", ", ".join(sorted(unknown)))

    # units nothing depends on are the roots of the graph
    depended_on = {dst for _, dst in edges}
    roots = [uid for uid in units if uid not in depended_on]
    units = {uid: replace(u, is_root=uid in roots) for uid, u in units.items()}
    return _with_critical_path(units, edges, roots, [])


def parse_unit_data(html):
    """
    input: contents of cargo's cargo-timing.html
    output: list of dicts with name, version, target, start and duration (seconds)
    """
    start_idx = html.find(UNIT_DATA_MARKER)
    if start_idx < 0:
        raise ValueError("UNIT_DATA not found in timing HTML")
    rest = html[start_idx + len(UNIT_DATA_MARKER):]
    end_idx = rest.find("];")
    if end_idx < 0:
        raise ValueError("UNIT_DATA end not found")
    return json.loads(rest[:end_idx + 1])


def apply_timings(graph, unit_data):
    """
    inputs: BuildGraph, unit timings from parse_unit_data()
    output: new BuildGraph with measured start/duration in ms and a fresh critical path

    a crate may have several units (lib, build script, proc-macro, bin).
    build scripts compile early and would misplace the crate in the timeline,
    so they only count when nothing else was timed.
    """
    lib_timings = {}
    all_timings = {}
    for unit in unit_data:
        key = (unit["name"], unit["version"])
        # fallback: aggregate across all units
        start, duration = all_timings.get(key, (float("inf"), 0.0))
        all_timings[key] = (min(start, unit["start"]), duration + unit["duration"])
        # preferred: only non build-script units
        if "build script" not in unit.get("target", ""):
            start, duration = lib_timings.get(key, (float("inf"), 0.0))
            lib_timings[key] = (min(start, unit["start"]), duration + unit["duration"])

    units = {}
    matched = 0
    for uid, node in graph.units.items():
        key = (node.name, node.version)
        timing = lib_timings.get(key) or all_timings.get(key)
        if timing is None:
            units[uid] = node
            continue
        matched += 1
        start_ms, duration_ms = timing[0] * 1000.0, timing[1] * 1000.0
        units[uid] = replace(node, start=start_ms, duration=duration_ms, fresh=duration_ms < FRESH_THRESHOLD_MS)
    log.info("applied timings to %d of %d unit(s)", matched, len(units))
    return _with_critical_path(units, graph.edges, graph.roots, [])


# == ALIAS MAP FOR COLUMN NAMES ==
alias_map = {
    # unit synonyms
    "crate": "unit",
    "package": "unit",
    "artifact": "unit",
    "target": "unit",
    "name": "unit",
    "task": "unit",

    # duration synonyms
    "duration_ms": "duration",
    "time": "duration",
    "build time": "duration",
    "compile time": "duration",

    # start synonyms
    "start_ms": "start",
    "start time": "start",
    "offset": "start",

    # dependencies synonyms
    "dependency": "dependencies",
    "deps": "dependencies",
    "depends on": "dependencies",

    # misc
    "is_workspace_member": "member",
    "workspace member": "member",
}
