"""
GEO Score (Generative Engine Optimization citability)

Six independently capped dimensions, summed into an overall score out
of 100:

    dataBackedClaims   20   2 points per data claim
    structuredData     20   5 per non-empty JSON-LD fragment, +5 for all three
    contentStructure   20   FAQ, outline depth, sub-headings, data placement,
                            meta description length
    freshness          15   recency of the newest year cited in a claim
    originalInsights   15   competitor gaps, source diversity, comparisons
    sourceAuthority    10   average domain authority of cited sources

Every function here is pure and deterministic given `now`.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .domains import authority_weight
from .types import ContentBrief, GeoScore, GeoScoreBreakdown

# Ordered: ties in get_weakest_dimension resolve to the earliest key.
DIMENSION_CAPS: Dict[str, int] = {
    "dataBackedClaims": 20,
    "structuredData": 20,
    "contentStructure": 20,
    "freshness": 15,
    "originalInsights": 15,
    "sourceAuthority": 10,
}

MAX_SCORE = sum(DIMENSION_CAPS.values())

_YEAR = re.compile(r"20\d{2}")

_MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

INSIGHT_HEADING_TERMS = ("neighborhood", "area", "comparison")


# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------

def score_data_backed_claims(brief: ContentBrief) -> int:
    return min(20, len(brief.data_claims) * 2)


def score_structured_data(brief: ContentBrief) -> int:
    present = sum(1 for fragment in brief.json_ld.fragments() if fragment)
    score = present * 5
    if present == 3:
        score += 5
    return min(20, score)


def score_content_structure(brief: ContentBrief) -> int:
    score = 0

    faq_count = len(brief.faq_section)
    if faq_count >= 3:
        score += 4
    elif faq_count >= 1:
        score += 2

    section_count = len(brief.outline)
    if section_count >= 3:
        score += 4
    elif section_count >= 1:
        score += 2

    if any(section.h3s for section in brief.outline):
        score += 4

    sections_with_data = sum(1 for section in brief.outline if section.data_claims)
    if sections_with_data >= 2:
        score += 4
    elif sections_with_data >= 1:
        score += 2

    meta_len = len(brief.meta_description)
    if 120 <= meta_len <= 160:
        score += 4
    elif 80 <= meta_len <= 200:
        score += 2

    return min(20, score)


def _claim_years(brief: ContentBrief) -> List[int]:
    years: List[int] = []
    for claim in brief.data_claims:
        match = _YEAR.search(claim.claim)
        if match:
            years.append(int(match.group(0)))
    return years


def score_freshness(brief: ContentBrief, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    years = _claim_years(brief)

    if not years:
        markers = (str(now.year), "current", _MONTHS[now.month - 1])
        has_current_refs = any(
            marker in claim.claim.lower()
            for claim in brief.data_claims
            for marker in markers
        )
        return 10 if has_current_refs else 3

    # A bare year is read as 1 January of that year.
    most_recent = datetime(max(years), 1, 1, tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    days_diff = (now - most_recent).total_seconds() / 86400

    if days_diff <= 7:
        return 15
    if days_diff <= 30:
        return 10
    if days_diff <= 90:
        return 5
    return 0


def score_original_insights(brief: ContentBrief) -> int:
    score = 0

    if brief.competitor_gaps:
        score += 5

    unique_sources = {claim.source_url for claim in brief.data_claims}
    if len(unique_sources) >= 3:
        score += 5
    elif len(unique_sources) >= 2:
        score += 3

    if any(
        term in section.h2.lower()
        for section in brief.outline
        for term in INSIGHT_HEADING_TERMS
    ):
        score += 5

    return min(15, score)


def score_source_authority(brief: ContentBrief) -> int:
    if not brief.sources:
        return 0
    weights = [authority_weight(source.domain) for source in brief.sources]
    avg = sum(weights) / len(weights)
    # avg weight 3 -> 10 points, avg weight 1 -> 3 points
    # rounds half up
    return min(10, int(math.floor(avg / 3 * 10 + 0.5)))


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

def compute_geo_score(brief: ContentBrief, now: Optional[datetime] = None) -> GeoScore:
    breakdown = GeoScoreBreakdown(
        data_backed_claims=score_data_backed_claims(brief),
        structured_data=score_structured_data(brief),
        content_structure=score_content_structure(brief),
        freshness=score_freshness(brief, now=now),
        original_insights=score_original_insights(brief),
        source_authority=score_source_authority(brief),
    )
    return GeoScore.from_breakdown(breakdown)


def get_weakest_dimension(score: GeoScore) -> str:
    """Dimension with the lowest share of its cap; earliest wins ties."""
    values = score.breakdown.to_dict()
    weakest = ""
    lowest_pct: Optional[float] = None
    for key, cap in DIMENSION_CAPS.items():
        pct = values[key] / cap
        if lowest_pct is None or pct < lowest_pct:
            lowest_pct = pct
            weakest = key
    return weakest
