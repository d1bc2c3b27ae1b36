"""GeoAgent: autonomous real estate market intelligence.

This package researches a location with web search tools, records what it
finds in a Neo4j knowledge graph, and synthesizes a GEO-optimized content
brief (outline, data claims, FAQ, JSON-LD and a citability score).

Key components:
- agent_loop: bounded tool-calling control loop and run entry point
- tools: tool registry, phase mapping, result summaries and executor
- tools_web: Tavily based market and neighborhood search, page extraction
- graph_store: Neo4j commands and queries for the knowledge graph
- llm: OpenAI-compatible clients for the tool-calling and long-form models
- prompts: system, user and brief-synthesis prompt text
- brief: content brief synthesizer and post-processing
- jsonld: schema.org Article, FAQPage and BreadcrumbList fragments
- scoring: six-dimension GEO score
- brief_store: keyed store of finished briefs with JSON snapshot
- report_generator: markdown rendering of briefs
- config: YAML settings plus environment secrets
"""

__all__ = [
    "agent_loop",
    "tools",
    "tools_web",
    "graph_store",
    "llm",
    "prompts",
    "brief",
    "jsonld",
    "scoring",
    "brief_store",
    "report_generator",
    "config",
    "domains",
    "errors",
    "types",
]
