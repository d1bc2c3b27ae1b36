"""Entry point for GeoAgent.

Reads configuration, runs one research-to-brief session for a location and
topic, prints the agent's events as they stream, and writes the finished
brief as JSON plus a Markdown report.

Usage:
    python main.py --location "Austin, TX" --topic "2025 housing market outlook"

Exit status is 0 when a brief was produced and 1 when the agent ran out of
iterations without one.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from geoagent.agent_loop import run_agent
from geoagent.brief_store import BriefStore
from geoagent.config import CONFIG_PATH_DEFAULT, get_settings
from geoagent.errors import AgentRunError, ConfigError
from geoagent.report_generator import render_brief_markdown
from geoagent.types import CONTENT_TYPES, AgentEvent

EVENT_PREFIX = {
    "phase": "==",
    "tool_call": "->",
    "tool_result": "<-",
    "thinking": "..",
    "graph_update": "++",
    "complete": "OK",
    "error": "!!",
}


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Generate a GEO-optimized real estate content brief")
    parser.add_argument("--location", type=str, required=True, help="City or area, e.g. 'Austin, TX'")
    parser.add_argument("--topic", type=str, required=True, help="Topic of the content brief")
    parser.add_argument(
        "--content-type",
        type=str,
        choices=CONTENT_TYPES,
        default="market_report",
        help="Kind of content to brief",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=CONFIG_PATH_DEFAULT,
        help="Path to settings YAML file",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser.parse_args(argv)


def format_event(event: AgentEvent) -> str:
    prefix = EVENT_PREFIX.get(event.type, "  ")
    if event.type == "phase":
        return f"{prefix} Phase: {event.phase}"
    if event.type == "tool_call":
        return f"{prefix} {event.name} {json.dumps(event.args or {}, ensure_ascii=False)}"
    if event.type == "tool_result":
        return f"{prefix} {event.name}: {event.summary}"
    if event.type == "thinking":
        return f"{prefix} {event.content}"
    if event.type == "graph_update":
        return f"{prefix} Knowledge graph: +{event.nodes_added} nodes"
    if event.type == "complete":
        return f"{prefix} Brief complete: {event.brief.title if event.brief else ''}"
    return f"{prefix} Error: {event.message}"


def print_event(event: AgentEvent) -> None:
    print(format_event(event), flush=True)


def write_outputs(brief, reports_dir: str) -> Path:
    """Write <id>.json and <id>.md under reports_dir; return the markdown path."""
    out_dir = Path(reports_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    json_path = out_dir / f"{brief.id}.json"
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(brief.to_dict(), f, ensure_ascii=False, indent=2)
    md_path = out_dir / f"{brief.id}.md"
    md_path.write_text(render_brief_markdown(brief), encoding="utf-8")
    return md_path


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        settings = get_settings(args.config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = BriefStore(settings.brief_store_file)

    print(f"Starting GeoAgent for {args.location}: {args.topic} ({args.content_type})\n")
    try:
        brief = run_agent(
            location=args.location,
            topic=args.topic,
            content_type=args.content_type,
            on_event=print_event,
            settings=settings,
            brief_store=store,
        )
    except AgentRunError as e:
        print(f"\nAgent run failed: {e}", file=sys.stderr)
        return 1

    report_path = write_outputs(brief, settings.reports_dir)
    print(f"\nGEO score: {brief.geo_score.overall}/100")
    print(f"Report written to {report_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
