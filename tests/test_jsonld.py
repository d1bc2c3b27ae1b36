from __future__ import annotations

from geoagent.jsonld import (
    estimate_word_count,
    generate_article_schema,
    generate_breadcrumb_schema,
    generate_faq_schema,
    generate_json_ld,
    location_slug,
)
from geoagent.types import BriefMetadata, ContentBrief, FaqEntry, OutlineSection


def make_brief(**overrides) -> ContentBrief:
    fields = dict(
        id="brief_1",
        metadata=BriefMetadata(
            location="Irvine, CA",
            topic="Schools",
            content_type="neighborhood_guide",
            generated_at="2025-03-15T10:00:00.000Z",
        ),
        title="Irvine Neighborhood Guide",
        meta_description="Everything about Irvine.",
        target_keywords=["irvine homes", "irvine schools"],
    )
    fields.update(overrides)
    return ContentBrief(**fields)


def test_location_slug():
    assert location_slug("Irvine, CA") == "/irvine-ca"
    assert location_slug("San Luis Obispo") == "/san-luis-obispo"
    assert location_slug("St. Louis -- MO") == "/st-louis-mo"


def test_breadcrumb_has_three_items():
    crumbs = generate_breadcrumb_schema(make_brief())["itemListElement"]
    assert [c["position"] for c in crumbs] == [1, 2, 3]
    assert crumbs[0]["name"] == "Home" and crumbs[0]["item"] == "/"
    assert crumbs[1]["name"] == "Irvine, CA" and crumbs[1]["item"] == "/irvine-ca"
    assert crumbs[2]["name"] == "Irvine Neighborhood Guide"
    assert "item" not in crumbs[2]


def test_faq_empty_without_entries():
    assert generate_faq_schema(make_brief()) == {}


def test_faq_keeps_input_order():
    faqs = [FaqEntry("Q1?", "A1"), FaqEntry("Q2?", "A2")]
    schema = generate_faq_schema(make_brief(faq_section=faqs))
    assert schema["@type"] == "FAQPage"
    assert [q["name"] for q in schema["mainEntity"]] == ["Q1?", "Q2?"]
    assert schema["mainEntity"][1]["acceptedAnswer"] == {"@type": "Answer", "text": "A2"}


def test_article_fields():
    outline = [
        OutlineSection(h2="Schools", key_points=["Top rated", "Close by"]),
        OutlineSection(h2="Parks", key_points=["Many trails"]),
    ]
    article = generate_article_schema(make_brief(outline=outline))
    assert article["@type"] == "Article"
    assert article["headline"] == "Irvine Neighborhood Guide"
    assert article["keywords"] == "irvine homes, irvine schools"
    assert article["datePublished"] == article["dateModified"] == "2025-03-15T10:00:00.000Z"
    assert article["about"] == {"@type": "Place", "name": "Irvine, CA"}
    assert article["articleSection"] == ["Schools", "Parks"]
    # (4 + 2) words * 3
    assert article["wordCount"] == 18


def test_word_count_counts_empty_key_points_as_one():
    outline = [OutlineSection(h2="Empty")]
    assert estimate_word_count(make_brief(outline=outline)) == 3


def test_generate_json_ld_is_deterministic():
    brief = make_brief(faq_section=[FaqEntry("Q?", "A")])
    assert generate_json_ld(brief).to_dict() == generate_json_ld(brief).to_dict()
