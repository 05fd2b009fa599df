# front matter
import pandas as pd

from buildtimes.graph_helpers import original_total

# deltas smaller than this are not worth reporting
MIN_DELTA_MS = 1.0


def format_ms(ms):
    if ms is None:
        return "—"
    if ms < 1000:
        return f"{round(ms)}ms"
    return f"{ms / 1000:.1f}s"


def timeline_frame(graph, result):
    """
    inputs: BuildGraph, WhatIfResult
    output: dataframe of timed units sorted by start (longest first on ties)
    """
    critical = set(result.critical_path)
    rows = []
    for uid, unit in graph.units.items():
        if not unit.timed:
            continue
        start = result.start_times.get(uid, unit.start)
        rows.append({
            "Unit": unit.label,
            "Id": uid,
            "Start": start,
            "Duration": unit.duration,
            "Finish": start + unit.duration,
            "Critical": uid in critical,
        })
    df = pd.DataFrame(rows, columns=["Unit", "Id", "Start", "Duration", "Finish", "Critical"])
    return df.sort_values(["Start", "Duration", "Id"], ascending=[True, False, True]).reset_index(drop=True)


def delta_message(result):
    if abs(result.delta) < MIN_DELTA_MS:
        return None
    direction = "decreased" if result.delta < 0 else "increased"
    return f"Critical path {direction} by {abs(result.delta) / 1000:.1f}s"


def build_summary(graph):
    """
    input: BuildGraph
    output: dict with unit counts, measured total and the single longest unit
    """
    units = list(graph.units.values())
    built = [u for u in units if u.duration is not None and not u.fresh]
    longest = max(built, key=lambda u: u.duration, default=None)
    return {
        "units": len(units),
        "built": len(built),
        "cached": sum(1 for u in units if u.fresh),
        "total_ms": original_total(graph.units),
        "longest": longest.label if longest is not None else None,
        "longest_ms": longest.duration if longest is not None else None,
    }


def path_frame(graph, path):
    # critical path as a table, terminal unit first
    return pd.DataFrame(
        [{"Unit": graph.units[uid].label, "Id": uid, "Duration": graph.units[uid].duration} for uid in path],
        columns=["Unit", "Id", "Duration"],
    )
