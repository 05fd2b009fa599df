# === FRONT MATTER ===
# libraries
import json
import logging
from io import BytesIO  # to use as buffer for export options

import matplotlib.pyplot as plt
import networkx as nx
import pandas as pd
import streamlit as st

# functions
from buildtimes.cycle_guard import DependencyCycleError, suggest_dependencies
from buildtimes.graph_helpers import build_graph, edge_key
from buildtimes.input_parser import apply_timings, load_graph_json, parse_df, parse_unit_data
from buildtimes.overlay import EdgeOverlay
from buildtimes.report import build_summary, delta_message, format_ms, path_frame, timeline_frame
from buildtimes.whatif import evaluate

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

COLOR_CRITICAL = "#EF9A9A"
COLOR_NORMAL = "#BBDEFB"


def load_file(uploaded_file):
    """
    input: graph json, or a csv / excel table of units
    reads file accordingly; generates error in case of an unsupported file format
    output: BuildGraph
    """
    file_type = uploaded_file.name.split('.')[-1].lower()  # retrieves extension to get the file format
    try:
        if file_type == "json":
            data = json.load(uploaded_file)
            # the collector's graph document, otherwise a records-style table
            if isinstance(data, dict) and "nodes" in data:
                return load_graph_json(data)
            return parse_df(pd.DataFrame(data))
        elif file_type == "csv":
            return parse_df(pd.read_csv(uploaded_file))
        elif file_type in ["xls", "xlsx"]:
            return parse_df(pd.read_excel(uploaded_file))
        else:
            st.error("Unsupported file type. Upload only json, csv or excel files")
            return None
    except (ValueError, KeyError) as e:
        st.error(f"Error loading file: {e}")
        return None


def download_png(fig, file_name):
    buffer = BytesIO()
    fig.savefig(buffer, format="png", bbox_inches="tight")
    st.download_button(
        label="Download Chart as PNG",
        data=buffer.getvalue(),
        file_name=file_name,
        mime="image/png",
    )


def get_overlay():
    if "overlay" not in st.session_state:
        st.session_state["overlay"] = EdgeOverlay()
    return st.session_state["overlay"]


# streamlit preview- ui
st.title("Build Timings: Critical Path & What-If")

# about app sidebar
with st.sidebar.expander("**About This App**", expanded=True):
    st.markdown("""
    **Why is my build slow?**

    Upload the dependency graph of a build (the collector's graph JSON, or a table with
    unit, duration, start and dependencies columns), optionally with cargo's
    `cargo-timing.html`, and:
    - See which chain of dependencies sets the total build time
    - Remove a dependency and see how much faster the build could be
    - Add a dependency and see what it would cost (edges that would create a cycle are refused)
    """)

# create tabs for convenience
upload, timeline, deps_tab = st.tabs(["Upload", "Timeline", "Dependencies"])
graph = None

# === File Upload ===
with upload:
    uploaded_file = st.file_uploader("Upload build graph (.json, .csv or .xlsx)", type=["json", "csv", "xlsx"])
    timing_file = st.file_uploader("Optional: cargo-timing.html", type=["html"])
    if uploaded_file:
        graph = load_file(uploaded_file)
        if graph is not None and timing_file:
            try:
                graph = apply_timings(graph, parse_unit_data(timing_file.getvalue().decode("utf-8")))
            except ValueError as e:
                st.warning(f"Could not apply timings: {e}")
        if graph is not None:
            # new upload starts from a clean overlay
            if st.session_state.get("graph_name") != uploaded_file.name:
                st.session_state["graph_name"] = uploaded_file.name
                st.session_state["overlay"] = EdgeOverlay()

            summary = build_summary(graph)
            st.info(
                f"**Preview:** {summary['units']} units, {len(graph.edges)} dependencies, "
                f"{summary['built']} built, {summary['cached']} cached"
            )
            st.markdown(f"Measured build time: {format_ms(summary['total_ms'])}")
            if summary["longest"]:
                st.markdown(f"Longest single unit: {summary['longest']} ({format_ms(summary['longest_ms'])})")
            untimed = summary["units"] - sum(1 for u in graph.units.values() if u.timed)
            if untimed:
                st.warning(f"{untimed} unit(s) have no timing data and are left out of the analysis.")
            if summary["units"] > 1000:
                st.info("Large graph detected- rendering may take some time!")
            st.success("Successfully parsed!")

if graph is not None:
    overlay = get_overlay()
    base_edges = list(graph.edges)

    # === Edits and delta ===
    show_original = False
    if not overlay.is_empty:
        st.sidebar.markdown(f"**Edits:** {overlay.summary()}")
        show_original = st.sidebar.toggle("Show original")
        if st.sidebar.button("Reset"):
            st.session_state["overlay"] = EdgeOverlay()
            st.rerun()

    result = evaluate(graph, None if show_original else overlay)
    message = delta_message(result)
    if message and not show_original:
        if result.delta < 0:
            st.sidebar.success(message)
        else:
            st.sidebar.error(message)

    # === Visualizations ===
    with timeline:
        c1, c2 = st.columns(2)
        with c1:
            gantt_bool = st.toggle("Gantt Chart", value=True)
        with c2:
            only_cp = st.toggle("Show only critical path")

        st.markdown(f"Total build time: {format_ms(result.total)}")
        frame = timeline_frame(graph, result)
        if only_cp:
            frame = frame[frame["Critical"]].reset_index(drop=True)

        # --- Gantt Chart ---
        if gantt_bool:
            fig, ax = plt.subplots(figsize=(8, max(3, 0.3 * len(frame))), facecolor='whitesmoke')
            ax.set_facecolor("whitesmoke")
            for i, row in frame.iterrows():
                ax.barh(
                    y=i,                      # row number
                    width=row["Duration"],    # how long the unit takes
                    left=row["Start"],        # where the bar starts on the x-axis
                    height=0.4,               # thickness
                    color=COLOR_CRITICAL if row["Critical"] else COLOR_NORMAL,
                    edgecolor="#1a1a1a",      # outline of the bar
                )
            ax.set_xlim(0, max(result.total, 1) * 1.05)  # expand x-axis for some breathing space
            ax.set_yticks(range(len(frame)))
            ax.set_yticklabels(frame["Unit"], fontsize=6)
            ax.invert_yaxis()
            ax.set_xlabel("Time (ms)")
            ax.set_title("Build Timeline with Critical Path")
            plt.grid(axis="x", linestyle=":", color="gray", alpha=0.5)
            st.pyplot(fig)
            download_png(fig, "build_timeline.png")

        # --- Network Diagram ---
        else:
            G = build_graph(graph.units, result.active_edges)
            cp = result.critical_path
            if only_cp:
                # consecutive critical path edges only
                sub_edges = [(cp[i], cp[i + 1]) for i in range(len(cp) - 1)]
                G_sub = G.edge_subgraph(sub_edges).copy() if sub_edges else G.subgraph(cp).copy()
            else:
                G_sub = G.copy()
            cp_edges = set(zip(cp, cp[1:]))
            pos = nx.spring_layout(G_sub, seed=42)
            node_colors = [COLOR_CRITICAL if node in cp else COLOR_NORMAL for node in G_sub.nodes()]
            edge_colors = ["#E57373" if (u, v) in cp_edges else "#64B5F6" for u, v in G_sub.edges()]
            fig, ax = plt.subplots(figsize=(8, 6), facecolor="whitesmoke")
            ax.set_facecolor("whitesmoke")
            nx.draw(
                G_sub,
                pos,
                labels={n: graph.units[n].label for n in G_sub.nodes()},
                node_color=node_colors,
                edge_color=edge_colors,
                node_size=600,
                font_size=7,
                font_color="#1a1a1a",
                ax=ax,
            )
            ax.set_title("Dependency Graph with Critical Path")
            st.pyplot(fig)
            download_png(fig, "dependency_graph.png")

        with st.expander("Critical path"):
            st.dataframe(path_frame(graph, result.critical_path))
        with st.expander("All units"):
            st.dataframe(frame)

    # === Dependency editing ===
    with deps_tab:
        ids = sorted(graph.units, key=lambda uid: graph.units[uid].label.lower())
        selected = st.selectbox("Unit", ids, format_func=lambda uid: graph.units[uid].label)
        if selected:
            unit = graph.units[selected]
            st.markdown(
                f"**{unit.label}** {unit.version}  \n"
                f"Duration: {format_ms(unit.duration)}, start: {format_ms(result.start_times.get(selected))}"
            )
            if unit.features:
                st.caption("Features: " + ", ".join(unit.features))
            active = overlay.active_edges(base_edges)

            st.markdown("##### Dependencies")
            my_deps = sorted((dst for src, dst in active if src == selected and dst in graph.units),
                             key=lambda uid: graph.units[uid].label.lower())
            for dep in my_deps:
                c1, c2 = st.columns([4, 1])
                c1.write(graph.units[dep].label)
                if c2.button("Remove", key=f"rm-{selected}-{dep}"):
                    st.session_state["overlay"] = overlay.remove(base_edges, selected, dep)
                    st.rerun()
            if not my_deps:
                st.caption("No dependencies.")

            removed = sorted(dst for src, dst in base_edges
                             if src == selected and edge_key(src, dst) in overlay.removed)
            if removed:
                st.markdown("##### Removed")
                for dep in removed:
                    c1, c2 = st.columns([4, 1])
                    c1.write(f"~~{graph.units[dep].label if dep in graph.units else dep}~~")
                    if c2.button("Restore", key=f"restore-{selected}-{dep}"):
                        try:
                            st.session_state["overlay"] = overlay.add(base_edges, selected, dep)
                        except DependencyCycleError as e:
                            st.error(str(e))
                        else:
                            st.rerun()

            st.markdown("##### Add dependency")
            query = st.text_input("Search units", key=f"query-{selected}")
            suggestions = suggest_dependencies(graph.units, active, selected, query)
            if query and not suggestions:
                st.caption("No matching units (units that depend on this one are excluded).")
            for cand in suggestions:
                if st.button(f"+ {cand.label}", key=f"add-{selected}-{cand.id}"):
                    try:
                        st.session_state["overlay"] = overlay.add(base_edges, selected, cand.id)
                    except DependencyCycleError as e:
                        st.error(str(e))
                    else:
                        st.rerun()
