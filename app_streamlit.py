"""Streamlit interface for GeoAgent.

Features:
- Location / topic / content type form
- Live agent event console while a run is in progress
- Brief viewer with GEO score breakdown and weakest dimension
- JSON and Markdown downloads for a finished brief
- Brief history from the local brief store
- Knowledge graph node counts by label

Each click on "Generate brief" runs one bounded tool-calling session.
The run blocks the script until the brief is finished or the agent gives
up; events are written to the console as they arrive.
"""

from __future__ import annotations

import json
import os
from collections import Counter
from typing import Any, Dict, List

import streamlit as st

from geoagent.agent_loop import run_agent
from geoagent.brief_store import BriefStore
from geoagent.config import CONFIG_PATH_DEFAULT, Settings, get_settings
from geoagent.errors import AgentRunError
from geoagent.graph_store import GraphStore
from geoagent.report_generator import DIMENSION_LABELS, render_brief_markdown, render_history_markdown
from geoagent.scoring import DIMENSION_CAPS, get_weakest_dimension
from geoagent.types import CONTENT_TYPES, AgentEvent, ContentBrief

REQUIRED_KEYS = ("GROK_API_KEY", "GOOGLE_GEMINI_API_KEY", "TAVILY_API_KEY", "NEO4J_PASSWORD")

EVENT_ICONS = {
    "phase": "🧭",
    "tool_call": "🔧",
    "tool_result": "📄",
    "thinking": "💭",
    "graph_update": "🕸️",
    "complete": "✅",
    "error": "⚠️",
}


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
@st.cache_resource
def init_settings(config_path: str = CONFIG_PATH_DEFAULT) -> Settings:
    return get_settings(config_path)


@st.cache_resource
def init_brief_store(path: str) -> BriefStore:
    return BriefStore(path)


def key_status() -> Dict[str, bool]:
    """Which provider credentials are present in the environment."""
    return {name: bool(os.getenv(name)) for name in REQUIRED_KEYS}


def describe_event(event: AgentEvent) -> str:
    icon = EVENT_ICONS.get(event.type, "•")
    if event.type == "phase":
        return f"{icon} **Phase:** {event.phase}"
    if event.type == "tool_call":
        return f"{icon} `{event.name}` {json.dumps(event.args or {}, ensure_ascii=False)[:300]}"
    if event.type == "tool_result":
        return f"{icon} `{event.name}`: {event.summary}"
    if event.type == "thinking":
        return f"{icon} {event.content}"
    if event.type == "graph_update":
        return f"{icon} +{event.nodes_added} nodes, +{event.edges_added} edges"
    if event.type == "complete":
        return f"{icon} Brief ready"
    return f"{icon} {event.message}"


def graph_label_counts(settings: Settings) -> Dict[str, int]:
    store = GraphStore(uri=settings.neo4j_uri, user=settings.neo4j_user, database=settings.neo4j_database)
    try:
        data = store.get_graph_visualization_data()
    finally:
        store.close()
    return dict(Counter(node["label"] for node in data["nodes"]))


def render_score(brief: ContentBrief) -> None:
    st.metric("GEO score", f"{brief.geo_score.overall}/100")
    values = brief.geo_score.breakdown.to_dict()
    cols = st.columns(len(DIMENSION_CAPS))
    for col, (key, cap) in zip(cols, DIMENSION_CAPS.items()):
        with col:
            st.metric(DIMENSION_LABELS[key], f"{values[key]}/{cap}")
    weakest = get_weakest_dimension(brief.geo_score)
    st.info(f"Weakest dimension: {DIMENSION_LABELS.get(weakest, weakest)}")


def render_brief(brief: ContentBrief) -> None:
    """Score, markdown body and downloads for one brief."""
    st.subheader(brief.title)
    st.caption(f"{brief.metadata.location} · {brief.metadata.data_freshness} · {brief.id}")
    render_score(brief)

    report_md = render_brief_markdown(brief)
    with st.expander("Full brief", expanded=True):
        st.markdown(report_md)

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "Download brief as JSON",
            data=json.dumps(brief.to_dict(), ensure_ascii=False, indent=2),
            file_name=f"{brief.id}.json",
            mime="application/json",
            key=f"json_{brief.id}",
        )
    with col2:
        st.download_button(
            "Download brief as Markdown",
            data=report_md,
            file_name=f"{brief.id}.md",
            mime="text/markdown",
            key=f"md_{brief.id}",
        )


# -------------------------------------------------------------------
# Main UI
# -------------------------------------------------------------------
def main() -> None:
    st.title("GeoAgent")
    st.caption("Autonomous real estate research with GEO-optimized content briefs")

    settings = init_settings()
    store = init_brief_store(settings.brief_store_file or "logs/briefs.json")

    # -----------------------------
    # Sidebar - status
    # -----------------------------
    st.sidebar.header("Providers")
    for name, present in key_status().items():
        if present:
            st.sidebar.success(f"{name} set")
        else:
            st.sidebar.warning(f"{name} missing")

    st.sidebar.subheader("Knowledge graph")
    if st.sidebar.button("Refresh node counts"):
        try:
            counts = graph_label_counts(settings)
        except Exception as e:
            st.sidebar.error(f"Could not reach Neo4j: {e}")
        else:
            if not counts:
                st.sidebar.write("Graph is empty.")
            for label, count in sorted(counts.items()):
                st.sidebar.write(f"- **{label}**: {count}")

    # -----------------------------
    # Main area - run form
    # -----------------------------
    with st.form("run_form"):
        location = st.text_input("Location", value=st.session_state.get("location", "Austin, TX"))
        topic = st.text_input("Topic", value=st.session_state.get("topic", "Housing market outlook"))
        content_type = st.selectbox(
            "Content type",
            options=list(CONTENT_TYPES),
            index=list(CONTENT_TYPES).index("market_report"),
            format_func=lambda v: v.replace("_", " ").title(),
        )
        submitted = st.form_submit_button("Generate brief")

    if submitted:
        st.session_state["location"] = location
        st.session_state["topic"] = topic

        st.subheader("Agent console")
        console = st.container()
        log_lines: List[str] = []

        def on_event(event: AgentEvent) -> None:
            log_lines.append(describe_event(event))
            console.markdown(log_lines[-1])

        with st.spinner("Researching..."):
            try:
                brief = run_agent(
                    location=location,
                    topic=topic,
                    content_type=content_type,
                    on_event=on_event,
                    settings=settings,
                    brief_store=store,
                )
            except AgentRunError as e:
                st.error(str(e))
            else:
                st.session_state["current_brief_id"] = brief.id

    current_id = st.session_state.get("current_brief_id")
    current = store.get(current_id) if current_id else None
    if current is not None:
        st.markdown("---")
        render_brief(current)

    # ------------------------------
    # History
    # ------------------------------
    st.markdown("---")
    st.subheader("Brief history")
    briefs = store.list()
    st.markdown(render_history_markdown(briefs))

    if briefs:
        options: Dict[str, Any] = {f"{b.metadata.location}: {b.title} ({b.id})": b.id for b in briefs}
        choice = st.selectbox("Open a previous brief", options=list(options.keys()))
        if st.button("Open brief"):
            st.session_state["current_brief_id"] = options[choice]
            st.rerun()


if __name__ == "__main__":
    main()
