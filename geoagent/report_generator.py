"""Markdown report for a finished content brief.

Outputs:
1. Full brief report (score, outline, claims, FAQ, sources, JSON-LD)
2. Short history table across stored briefs
"""

from __future__ import annotations

import json
from typing import Iterable, List

from .scoring import DIMENSION_CAPS, get_weakest_dimension
from .types import ContentBrief

DIMENSION_LABELS = {
    "dataBackedClaims": "Data-backed claims",
    "structuredData": "Structured data",
    "contentStructure": "Content structure",
    "freshness": "Freshness",
    "originalInsights": "Original insights",
    "sourceAuthority": "Source authority",
}


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def _trim(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _score_table(brief: ContentBrief) -> List[str]:
    values = brief.geo_score.breakdown.to_dict()
    lines = ["| Dimension | Score | Max |", "|---|---:|---:|"]
    for key, cap in DIMENSION_CAPS.items():
        lines.append(f"| {DIMENSION_LABELS[key]} | {values[key]} | {cap} |")
    return lines


# ---------------------------------------------------------
# FULL REPORT
# ---------------------------------------------------------
def render_brief_markdown(brief: ContentBrief) -> str:
    """Render one brief as a markdown document."""
    meta = brief.metadata
    lines: List[str] = []

    lines.append(f"# {brief.title}\n")
    lines.append(f"**Location:** {meta.location}  ")
    lines.append(f"**Topic:** {meta.topic}  ")
    lines.append(f"**Content type:** {meta.content_type.replace('_', ' ')}  ")
    lines.append(f"**Generated:** `{meta.generated_at}`  ")
    if meta.data_freshness:
        lines.append(f"**Freshness:** {meta.data_freshness}")
    lines.append("")

    if brief.meta_description:
        lines.append(f"> {brief.meta_description}\n")

    if brief.target_keywords:
        lines.append("**Target keywords:** " + ", ".join(brief.target_keywords) + "\n")

    # Score
    weakest = get_weakest_dimension(brief.geo_score)
    lines.append(f"## GEO score: {brief.geo_score.overall}/100\n")
    lines.extend(_score_table(brief))
    lines.append("")
    lines.append(f"Weakest dimension: **{DIMENSION_LABELS.get(weakest, weakest)}**\n")

    # Outline
    lines.append("## Outline\n")
    if not brief.outline:
        lines.append("No outline generated.\n")
    for section in brief.outline:
        lines.append(f"### {section.h2}")
        for h3 in section.h3s:
            lines.append(f"- {h3}")
        for point in section.key_points:
            lines.append(f"  - {point}")
        for claim in section.data_claims:
            lines.append(f"  - _{claim.claim}_ ({claim.value}) [{claim.confidence}]")
        lines.append("")

    # Claims
    lines.append("## Data claims\n")
    if not brief.data_claims:
        lines.append("No data claims recorded.\n")
    else:
        for i, claim in enumerate(brief.data_claims, start=1):
            lines.append(f"{i}. {claim.claim} **{claim.value}**")
            if claim.source_url:
                lines.append(f"   - {claim.source_title or claim.source_url}: {claim.source_url}")
        lines.append("")

    # FAQ
    lines.append("## FAQ\n")
    if not brief.faq_section:
        lines.append("No FAQ entries.\n")
    for faq in brief.faq_section:
        lines.append(f"**Q: {faq.question}**\n")
        lines.append(f"{faq.answer}\n")

    # Sources
    lines.append("## Sources\n")
    if not brief.sources:
        lines.append("No sources cited.\n")
    else:
        for i, source in enumerate(brief.sources, start=1):
            lines.append(f"{i}. **[{source.domain}]** {source.title} ({source.credibility_note})")
            lines.append(f"   - {source.url}")
            lines.append(f"   - Supports {len(source.used_for_claims)} claim(s)")
        lines.append("")

    if brief.competitor_gaps:
        lines.append("## Competitor gaps\n")
        lines.extend(f"- {gap}" for gap in brief.competitor_gaps)
        lines.append("")

    if brief.llm_citability_tips:
        lines.append("## LLM citability tips\n")
        lines.extend(f"- {tip}" for tip in brief.llm_citability_tips)
        lines.append("")

    # Structured data
    lines.append("## JSON-LD\n")
    for fragment in brief.json_ld.fragments():
        if not fragment:
            continue
        lines.append("```json")
        lines.append(json.dumps(fragment, indent=2, ensure_ascii=False))
        lines.append("```\n")

    return "\n".join(lines)


# ---------------------------------------------------------
# HISTORY
# ---------------------------------------------------------
def render_history_markdown(briefs: Iterable[ContentBrief]) -> str:
    """One row per brief, in the order given."""
    rows = list(briefs)
    if not rows:
        return "# GeoAgent brief history\n\nNo briefs generated yet."

    lines = ["# GeoAgent brief history\n", "| Generated | Location | Title | GEO |", "|---|---|---|---:|"]
    for brief in rows:
        lines.append(
            f"| `{brief.metadata.generated_at}` | {brief.metadata.location} "
            f"| {_trim(brief.title, 80)} | {brief.geo_score.overall} |"
        )
    return "\n".join(lines)
