"""buildtimes CLI entry point.

Usage: buildtimes GRAPH.json [--timings cargo-timing.html] [--remove A|B] [--add A|C]
"""
import argparse
import logging
import sys
from pathlib import Path

from buildtimes.cycle_guard import DependencyCycleError
from buildtimes.graph_helpers import split_edge_key
from buildtimes.input_parser import apply_timings, load_graph_json, parse_unit_data
from buildtimes.overlay import EdgeOverlay
from buildtimes.report import delta_message, format_ms
from buildtimes.whatif import evaluate


def _build_overlay(graph, removals, additions):
    overlay = EdgeOverlay()
    base_edges = list(graph.edges)
    for key in removals:
        overlay = overlay.remove(base_edges, *split_edge_key(key))
    for key in additions:
        overlay = overlay.add(base_edges, *split_edge_key(key))
    return overlay


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="buildtimes",
        description="Critical path and what-if analysis of a build dependency graph.",
    )
    parser.add_argument("graph", type=Path, help="Graph JSON written by the timing collector.")
    parser.add_argument(
        "--timings", type=Path, default=None,
        help="cargo-timing.html whose unit data replaces the graph's timings.",
    )
    parser.add_argument(
        "--remove", action="append", default=[], metavar="FROM|TO",
        help="Remove the dependency FROM -> TO (repeatable).",
    )
    parser.add_argument(
        "--add", action="append", default=[], metavar="FROM|TO",
        help="Add the dependency FROM -> TO (repeatable).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        graph = load_graph_json(args.graph.read_text())
        if args.timings is not None:
            graph = apply_timings(graph, parse_unit_data(args.timings.read_text()))
        overlay = _build_overlay(graph, args.remove, args.add)
    except DependencyCycleError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    result = evaluate(graph, overlay)
    if not overlay.is_empty:
        print(f"Edits: {overlay.summary()}")
    print(f"Total: {format_ms(result.total)} (measured {format_ms(result.original_total)})")
    message = delta_message(result)
    if message:
        print(message)
    print("Critical path:")
    for uid in result.critical_path:
        unit = graph.units[uid]
        print(f"  {unit.label:<40} {format_ms(unit.duration):>8}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
