"""Tool registry and executor for the GeoAgent control loop.

Each tool the model may call is one ToolSpec row:

    name         identifier offered to the model
    description  model-facing description
    parameters   JSON schema for the arguments
    phase        research | connect | generate (progress reporting only)
    run          executor function (ToolExecutor, args) -> ToolResult
    summarize    short human-readable line for the tool_result event

The set of tools is closed: TOOL_REGISTRY is the single source for the
definitions sent to the model, the phase lookup and the summaries.

Executors raise on provider failure. The control loop catches, reports
an error event and carries on.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import ToolError
from .graph_store import AMENITY_TYPES, SENTIMENTS, SIGNAL_TYPES
from .tools_web import MAX_EXTRACT_URLS
from .types import CONTENT_TYPES, ContentBrief

logger = logging.getLogger(__name__)

DEFAULT_PHASE = "research"


@dataclass(frozen=True)
class ToolResult:
    result: Any
    nodes_added: Optional[int] = None


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: Dict[str, Any]
    phase: str
    run: Callable[["ToolExecutor", Dict[str, Any]], ToolResult]
    summarize: Callable[[Any], str]

    def definition(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------

def _str_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    raise ToolError(f"Expected a list of strings, got {type(value).__name__}")


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ToolError(f"Expected a number, got {value!r}")


def _one_of(value: Any, allowed: tuple, field_name: str) -> str:
    if value not in allowed:
        raise ToolError(f"{field_name} must be one of {', '.join(allowed)}, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------

def _run_search_market_data(ex: "ToolExecutor", args: Dict[str, Any]) -> ToolResult:
    time_range = args.get("timeRange")
    if time_range not in ("week", "month", "year"):
        time_range = None
    data = ex.web_tool.search_market_data(args["query"], args["location"], time_range)
    return ToolResult(result=data)


def _run_search_neighborhood_info(ex: "ToolExecutor", args: Dict[str, Any]) -> ToolResult:
    data = ex.web_tool.search_neighborhood_info(
        args["neighborhood"], args["location"], _str_list(args.get("aspects"))
    )
    return ToolResult(result=data)


def _run_extract_page_content(ex: "ToolExecutor", args: Dict[str, Any]) -> ToolResult:
    urls = (_str_list(args.get("urls")) or [])[:MAX_EXTRACT_URLS]
    return ToolResult(result=ex.web_tool.extract(urls))


def _run_store_market_signal(ex: "ToolExecutor", args: Dict[str, Any]) -> ToolResult:
    count = ex.graph_store.create_market_signal(
        location=args["location"],
        neighborhood=args.get("neighborhood") or None,
        signal_type=_one_of(args["signalType"], SIGNAL_TYPES, "signalType"),
        headline=args["headline"],
        summary=args["summary"],
        value=args.get("value"),
        sentiment=_one_of(args["sentiment"], SENTIMENTS, "sentiment"),
        source_url=args["sourceUrl"],
        source_title=args["sourceTitle"],
    )
    return ToolResult(result={"stored": True, "headline": args["headline"]}, nodes_added=count)


def _run_store_amenity(ex: "ToolExecutor", args: Dict[str, Any]) -> ToolResult:
    count = ex.graph_store.create_amenity(
        neighborhood=args["neighborhood"],
        location=args["location"],
        amenity_name=args["amenityName"],
        amenity_type=_one_of(args["amenityType"], AMENITY_TYPES, "amenityType"),
        rating=_optional_float(args.get("rating")),
    )
    return ToolResult(result={"stored": True, "name": args["amenityName"]}, nodes_added=count)


def _run_query_knowledge_graph(ex: "ToolExecutor", args: Dict[str, Any]) -> ToolResult:
    location = args["location"]
    if args.get("queryType") == "market_signals":
        return ToolResult(result=ex.graph_store.get_market_signals(location))
    return ToolResult(result=ex.graph_store.get_full_context(location))


def _run_generate_content_brief(ex: "ToolExecutor", args: Dict[str, Any]) -> ToolResult:
    location = args["location"]
    graph_context = ex.graph_store.get_full_context(location)
    brief = ex.synthesizer.generate(
        location=location,
        topic=args["topic"],
        content_type=_one_of(args["contentType"], CONTENT_TYPES, "contentType"),
        graph_context=graph_context,
        target_keywords=_str_list(args.get("targetKeywords")),
    )
    if ex.brief_store is not None:
        ex.brief_store.add(brief)
    return ToolResult(result=brief)


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

def _summarize_search(result: Any) -> str:
    results = result.get("results") or []
    answer = result.get("answer")
    if answer:
        return f"Found {len(results)} results. Summary: {answer[:200]}..."
    return f"Found {len(results)} results"


def _summarize_extract(result: Any) -> str:
    if isinstance(result, list):
        return f"Extracted content from {len(result)} pages"
    return "Extracted content"


def _summarize_signal(result: Any) -> str:
    return f"Stored: {result.get('headline') or 'market signal'}"


def _summarize_amenity(result: Any) -> str:
    return f"Stored amenity: {result.get('name') or 'amenity'}"


def _summarize_query(result: Any) -> str:
    if isinstance(result, list):
        return f"Found {len(result)} records in knowledge graph"
    return "Queried knowledge graph"


def _summarize_brief(result: Any) -> str:
    if not isinstance(result, ContentBrief):
        return "Completed"
    score = result.geo_score.overall or "N/A"
    return f'Generated brief: "{result.title}" (GEO Score: {score}/100)'


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_TOOL_SPECS: List[ToolSpec] = [
    ToolSpec(
        name="search_market_data",
        description=(
            "Search for current real estate market data, listings, and trends for a specific "
            "location. Use this to find median prices, inventory levels, days on market, and "
            "market conditions."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query focused on real estate market data",
                },
                "location": {"type": "string", "description": "City or neighborhood name"},
                "timeRange": {
                    "type": "string",
                    "enum": ["week", "month", "year"],
                    "description": "How recent the data should be",
                },
            },
            "required": ["query", "location"],
        },
        phase="research",
        run=_run_search_market_data,
        summarize=_summarize_search,
    ),
    ToolSpec(
        name="search_neighborhood_info",
        description=(
            "Search for neighborhood details including schools, amenities, walkability, "
            "lifestyle, and community features."
        ),
        parameters={
            "type": "object",
            "properties": {
                "neighborhood": {"type": "string"},
                "location": {"type": "string"},
                "aspects": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "e.g. ['schools', 'parks', 'transit', 'restaurants']",
                },
            },
            "required": ["neighborhood", "location"],
        },
        phase="research",
        run=_run_search_neighborhood_info,
        summarize=_summarize_search,
    ),
    ToolSpec(
        name="extract_page_content",
        description=(
            "Extract and parse the full content from a specific URL. Use when you found a "
            "promising source and need detailed data from it."
        ),
        parameters={
            "type": "object",
            "properties": {
                "urls": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "URLs to extract content from (max 5)",
                },
            },
            "required": ["urls"],
        },
        phase="research",
        run=_run_extract_page_content,
        summarize=_summarize_extract,
    ),
    ToolSpec(
        name="store_market_signal",
        description=(
            "Store a discovered market data point in the knowledge graph. Call this every "
            "time you find a specific, citable fact or statistic."
        ),
        parameters={
            "type": "object",
            "properties": {
                "location": {"type": "string"},
                "neighborhood": {"type": "string"},
                "signalType": {"type": "string", "enum": list(SIGNAL_TYPES)},
                "headline": {"type": "string", "description": "Short factual headline"},
                "summary": {
                    "type": "string",
                    "description": "2-3 sentence summary with specific numbers",
                },
                "value": {
                    "type": "string",
                    "description": "Key metric value, e.g. '$1.2M median'",
                },
                "sentiment": {"type": "string", "enum": list(SENTIMENTS)},
                "sourceUrl": {"type": "string"},
                "sourceTitle": {"type": "string"},
            },
            "required": [
                "location",
                "signalType",
                "headline",
                "summary",
                "sentiment",
                "sourceUrl",
                "sourceTitle",
            ],
        },
        phase="connect",
        run=_run_store_market_signal,
        summarize=_summarize_signal,
    ),
    ToolSpec(
        name="store_amenity",
        description=(
            "Store a neighborhood amenity (school, park, transit stop, etc.) in the "
            "knowledge graph."
        ),
        parameters={
            "type": "object",
            "properties": {
                "neighborhood": {"type": "string"},
                "location": {"type": "string"},
                "amenityName": {"type": "string"},
                "amenityType": {"type": "string", "enum": list(AMENITY_TYPES)},
                "rating": {"type": "number", "description": "Rating if available (1-10 scale)"},
            },
            "required": ["neighborhood", "location", "amenityName", "amenityType"],
        },
        phase="connect",
        run=_run_store_amenity,
        summarize=_summarize_amenity,
    ),
    ToolSpec(
        name="query_knowledge_graph",
        description=(
            "Query the knowledge graph to retrieve previously stored data about a location. "
            "Use this before generating content to gather all available intelligence."
        ),
        parameters={
            "type": "object",
            "properties": {
                "location": {"type": "string"},
                "queryType": {"type": "string", "enum": ["full_context", "market_signals"]},
            },
            "required": ["location", "queryType"],
        },
        phase="connect",
        run=_run_query_knowledge_graph,
        summarize=_summarize_query,
    ),
    ToolSpec(
        name="generate_content_brief",
        description=(
            "Generate the final GEO-optimized content brief. Only call this after you have "
            "completed research and stored sufficient data in the knowledge graph."
        ),
        parameters={
            "type": "object",
            "properties": {
                "location": {"type": "string"},
                "topic": {"type": "string", "description": "Primary topic for the content brief"},
                "targetKeywords": {"type": "array", "items": {"type": "string"}},
                "contentType": {"type": "string", "enum": list(CONTENT_TYPES)},
            },
            "required": ["location", "topic", "contentType"],
        },
        phase="generate",
        run=_run_generate_content_brief,
        summarize=_summarize_brief,
    ),
]

TOOL_REGISTRY: Dict[str, ToolSpec] = {spec.name: spec for spec in _TOOL_SPECS}

BRIEF_TOOL = "generate_content_brief"


def tool_definitions() -> List[Dict[str, Any]]:
    """OpenAI function-tool definitions, in registry order."""
    return [spec.definition() for spec in _TOOL_SPECS]


def detect_phase(tool_name: str) -> str:
    # Unknown names fall back to research rather than failing the run.
    spec = TOOL_REGISTRY.get(tool_name)
    return spec.phase if spec else DEFAULT_PHASE


def summarize_result(tool_name: str, result: Any) -> str:
    if not result:
        return "No result"
    spec = TOOL_REGISTRY.get(tool_name)
    if spec is None:
        return "Completed"
    return spec.summarize(result)


def serialize_result(result: Any) -> str:
    """JSON text for a tool result message."""
    if hasattr(result, "to_dict"):
        result = result.to_dict()
    return json.dumps(result, ensure_ascii=False, default=str)


class ToolExecutor:
    """Runs registered tools against the capability adapters."""

    def __init__(
        self,
        web_tool: Any,
        graph_store: Any,
        synthesizer: Any,
        brief_store: Optional[Any] = None,
    ) -> None:
        self.web_tool = web_tool
        self.graph_store = graph_store
        self.synthesizer = synthesizer
        self.brief_store = brief_store

    def execute(self, name: str, args: Dict[str, Any]) -> ToolResult:
        spec = TOOL_REGISTRY.get(name)
        if spec is None:
            return ToolResult(result={"error": f"Unknown tool: {name}"})

        missing = [
            key
            for key in spec.parameters.get("required", [])
            if args.get(key) in (None, "", [])
        ]
        if missing:
            raise ToolError(f"Missing required argument(s): {', '.join(missing)}")

        logger.debug("Executing %s with %s", name, args)
        return spec.run(self, args)
