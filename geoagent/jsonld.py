"""schema.org structured-data fragments for a content brief.

Pure functions: the same brief always yields the same three mappings.
"""

from __future__ import annotations

import re
from typing import Any, Dict

from .types import ContentBrief, JsonLd

SCHEMA_CONTEXT = "https://schema.org"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def location_slug(location: str) -> str:
    """URL path for a location, e.g. "Irvine, CA" -> /irvine-ca."""
    return "/" + _NON_ALNUM.sub("-", location.lower())


def estimate_word_count(brief: ContentBrief) -> int:
    # Rough heuristic: three words of body copy per word of key points.
    total = 0
    for section in brief.outline:
        total += len(" ".join(section.key_points).split(" ")) * 3
    return total


def generate_article_schema(brief: ContentBrief) -> Dict[str, Any]:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Article",
        "headline": brief.title,
        "description": brief.meta_description,
        "keywords": ", ".join(brief.target_keywords),
        "datePublished": brief.metadata.generated_at,
        "dateModified": brief.metadata.generated_at,
        "author": {"@type": "Organization", "name": "GeoAgent Market Intelligence"},
        "publisher": {"@type": "Organization", "name": "GeoAgent"},
        "about": {"@type": "Place", "name": brief.metadata.location},
        "mainEntityOfPage": {"@type": "WebPage"},
        "articleSection": [s.h2 for s in brief.outline],
        "wordCount": estimate_word_count(brief),
    }


def generate_faq_schema(brief: ContentBrief) -> Dict[str, Any]:
    if not brief.faq_section:
        return {}
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": faq.question,
                "acceptedAnswer": {"@type": "Answer", "text": faq.answer},
            }
            for faq in brief.faq_section
        ],
    }


def generate_breadcrumb_schema(brief: ContentBrief) -> Dict[str, Any]:
    location = brief.metadata.location
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "itemListElement": [
            {"@type": "ListItem", "position": 1, "name": "Home", "item": "/"},
            {
                "@type": "ListItem",
                "position": 2,
                "name": location,
                "item": location_slug(location),
            },
            {"@type": "ListItem", "position": 3, "name": brief.title},
        ],
    }


def generate_json_ld(brief: ContentBrief) -> JsonLd:
    return JsonLd(
        article=generate_article_schema(brief),
        faq_page=generate_faq_schema(brief),
        breadcrumb_list=generate_breadcrumb_schema(brief),
    )
