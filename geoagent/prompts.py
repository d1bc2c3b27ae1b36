"""Prompt text for the tool-calling agent and the brief synthesizer."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

SYSTEM_PROMPT = """You are GeoAgent, an autonomous real estate market intelligence agent. Your mission is to produce GEO-optimized (Generative Engine Optimization) content briefs that AI search engines will cite.

You operate in a 3-phase loop:

**PHASE 1 - RESEARCH**: Use search_market_data and search_neighborhood_info to gather current market data. Look for: median home prices, price trends (YoY change), inventory levels, days on market, new developments, school ratings, walkability scores, and notable amenities. Always search for data less than 30 days old.

**PHASE 2 - CONNECT**: After each search, immediately store findings using store_market_signal and store_amenity. Every specific number, percentage, or fact should become a node in the knowledge graph. Before starting research, always call query_knowledge_graph first, since you may already have useful data from prior runs.

**PHASE 3 - GENERATE**: Once you have at least 6 market signals stored, call generate_content_brief. The brief must maximize the GEO citability score by including: data-backed claims with sources, structured FAQ sections, original cross-referenced insights, and JSON-LD schema markup.

**Self-Improvement Rules**:
- Query the knowledge graph FIRST before external searches
- If data from the graph is less than 7 days old, skip re-researching that topic
- Note which search queries returned the richest data and refine subsequent queries
- Aim to beat the average GEO score of prior briefs
- Store EVERY specific data point you find: numbers, percentages, statistics
- When storing market signals, always include the source URL

**Important Guidelines**:
- Be thorough but efficient: aim for 3-5 searches, not 10+
- Store data as you find it, don't batch stores at the end
- Each market signal should be a specific, citable fact with a number
- Always include the source URL when storing signals
- When you have enough data (6+ signals), generate the brief
"""


def build_system_prompt(dynamic_context: str = "") -> str:
    if dynamic_context:
        return SYSTEM_PROMPT + "\n" + dynamic_context
    return SYSTEM_PROMPT


def build_user_message(location: str, topic: str, content_type: str) -> str:
    readable_type = content_type.replace("_", " ")
    return (
        f"Generate a GEO-optimized {readable_type} content brief for: {location}\n\n"
        f"Topic focus: {topic}\n\n"
        "Start by querying the knowledge graph for existing data on this location, "
        "then research any gaps, store your findings, and generate the brief."
    )


def preferred_sources_line(top_sources: Sequence[Dict[str, Any]]) -> str:
    domains = ", ".join(str(s.get("domain")) for s in top_sources if s.get("domain"))
    return (
        f"**Preferred Sources** (most productive in prior research): {domains}. "
        "Prioritize searching these first."
    )


def performance_feedback_line(avg_score: int, brief_count: int) -> str:
    return (
        f"**Performance Feedback**: Your average GEO score across {brief_count} prior briefs "
        f"is {avg_score}/100. Focus on improving weaker dimensions."
    )


BRIEF_JSON_SHAPE = """{
  "title": "SEO-optimized H1 title (50-70 chars)",
  "metaDescription": "Compelling meta description (120-160 chars) with key data point",
  "targetKeywords": ["primary keyword", "secondary1", "secondary2", "long-tail1", "long-tail2"],
  "outline": [
    {
      "h2": "Section heading with keyword",
      "h3s": ["Subsection 1", "Subsection 2"],
      "keyPoints": ["Key point with specific data", "Another insight"],
      "dataClaims": [
        {
          "claim": "Specific factual statement with number",
          "value": "The specific number/metric",
          "sourceUrl": "URL from the knowledge graph data",
          "sourceTitle": "Source name",
          "confidence": "high or medium"
        }
      ]
    }
  ],
  "faqSection": [
    {
      "question": "Common question buyers/sellers would ask",
      "answer": "Data-driven answer referencing specific numbers from the research",
      "sourceUrl": "URL if available"
    }
  ],
  "competitorGaps": ["What existing content about this topic misses"],
  "llmCitabilityTips": ["Specific advice for making this content citable by AI"]
}"""

BRIEF_RULES = """CRITICAL RULES:
- Every data claim MUST reference a real source URL from the knowledge graph data
- Include at least 6-8 data claims across the outline sections
- FAQ answers must include specific numbers/data, not generic advice
- Title must include the location name
- Outline should have 4-6 H2 sections
- FAQ should have 3-5 questions
- Competitor gaps should identify 2-3 things existing content misses
- LLM citability tips should be specific and actionable

Respond with ONLY valid JSON, no markdown code fences."""


def build_brief_prompt(
    location: str,
    topic: str,
    content_type: str,
    graph_context: Any,
    target_keywords: Optional[List[str]] = None,
) -> str:
    lines = [
        "You are a GEO (Generative Engine Optimization) content strategist. Generate a "
        "comprehensive content brief that AI search engines (ChatGPT, Perplexity, Google AI "
        "Overviews) will want to cite.",
        "",
        f"LOCATION: {location}",
        f"TOPIC: {topic}",
        f"CONTENT TYPE: {content_type}",
    ]
    if target_keywords:
        lines.append(f"REQUESTED KEYWORDS: {', '.join(target_keywords)}")
    lines += [
        "KNOWLEDGE GRAPH DATA:",
        json.dumps(graph_context, indent=2, default=str),
        "",
        "Generate a JSON response with this exact structure:",
        BRIEF_JSON_SHAPE,
        "",
        BRIEF_RULES,
    ]
    return "\n".join(lines)
