"""Shared fakes and fixtures for GeoAgent tests.

Every external collaborator has an in-process stand-in here:
scripted tool-calling model, fake long-form model, in-memory graph store
and fake web research tool.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from geoagent.brief import BriefSynthesizer
from geoagent.llm import ModelTurn, ToolCall
from geoagent.tools import ToolExecutor

FIXED_NOW = datetime(2025, 1, 20, 12, 0, 0, tzinfo=timezone.utc)

CENSUS_URL = "https://www.census.gov/quickfacts/austincitytexas"
REDFIN_URL = "https://www.redfin.com/city/30818/TX/Austin/housing-market"
ZILLOW_URL = "https://www.zillow.com/home-values/10221/austin-tx/"
BLOG_URL = "https://austinhomeblog.com/market-update"

META_DESCRIPTION = (
    "Austin home prices, inventory and days on market for 2025, with a neighborhood "
    "comparison, buyer FAQs and data from Census, Redfin and Zillow."
)


def _claim(text: str, value: str, url: str, title: str, confidence: str = "high") -> Dict[str, Any]:
    return {
        "claim": text,
        "value": value,
        "sourceUrl": url,
        "sourceTitle": title,
        "confidence": confidence,
    }


def sample_brief_payload() -> Dict[str, Any]:
    """Long-form model output: 5 sections, 4 FAQs, 8 claims over 4 source URLs."""
    return {
        "title": "Austin Housing Market Outlook 2025",
        "metaDescription": META_DESCRIPTION,
        "targetKeywords": ["austin housing market", "austin home prices"],
        "outline": [
            {
                "h2": "Austin Market Overview",
                "h3s": ["Median Price", "Inventory"],
                "keyPoints": ["Prices held steady", "Inventory expanded"],
                "dataClaims": [
                    _claim("Median sale price was $545,000 in December 2024", "$545,000", REDFIN_URL, "Redfin Austin"),
                    _claim("Active listings rose 18% year over year in 2025", "18%", ZILLOW_URL, "Zillow Home Values"),
                ],
            },
            {
                "h2": "Neighborhood Comparison",
                "h3s": ["East Austin", "Mueller"],
                "keyPoints": ["East Austin is more affordable"],
                "dataClaims": [
                    _claim("Median household income is $78,000", "$78,000", CENSUS_URL, "Census QuickFacts"),
                    _claim("Mueller homes sold in 32 days on average", "32 days", REDFIN_URL, "Redfin Austin"),
                ],
            },
            {
                "h2": "Schools and Amenities",
                "h3s": [],
                "keyPoints": ["Strong school ratings north of the river"],
                "dataClaims": [
                    _claim("Three new parks opened downtown", "3 parks", BLOG_URL, "Austin Home Blog", "medium"),
                    _claim("Owner-occupied housing rate is 44%", "44%", CENSUS_URL, "Census QuickFacts"),
                ],
            },
            {
                "h2": "Investment Outlook",
                "h3s": ["Rental Yields"],
                "keyPoints": ["Rents flattened"],
                "dataClaims": [
                    _claim("Typical home value is $530,000", "$530,000", ZILLOW_URL, "Zillow Home Values"),
                    _claim("New construction makes up a quarter of listings", "25%", BLOG_URL, "Austin Home Blog", "medium"),
                ],
            },
            {
                "h2": "Buying Tips",
                "h3s": [],
                "keyPoints": ["Get pre-approved", "Watch new construction incentives"],
                "dataClaims": [],
            },
        ],
        "faqSection": [
            {"question": "What is the median home price in Austin?", "answer": "About $545,000.", "sourceUrl": REDFIN_URL},
            {"question": "Is Austin inventory rising?", "answer": "Yes, up 18% year over year."},
            {"question": "Which Austin neighborhood is most affordable?", "answer": "East Austin."},
            {"question": "How fast do Austin homes sell?", "answer": "Around 32 days in Mueller."},
        ],
        "competitorGaps": ["No competitor compares East Austin and Mueller side by side"],
        "llmCitabilityTips": ["Lead each section with a single quotable statistic"],
    }


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------
class ScriptedToolModel:
    """Returns scripted turns in order; an Exception entry is raised instead.

    Once the script runs out it returns empty turns.
    """

    def __init__(self, turns: Sequence[Any] = ()) -> None:
        self.turns = list(turns)
        self.requests: List[Dict[str, Any]] = []

    def complete(self, messages, tools, tool_choice="auto") -> ModelTurn:
        self.requests.append(
            {"messages": [dict(m) for m in messages], "tools": list(tools), "tool_choice": tool_choice}
        )
        if not self.turns:
            return ModelTurn(content=None, tool_calls=[], finish_reason="stop")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        return turn


class FakeLongFormModel:
    """Returns queued texts in order, repeating the last one."""

    def __init__(self, *texts: str) -> None:
        self.texts = list(texts) or [json.dumps(sample_brief_payload())]
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if len(self.texts) > 1:
            return self.texts.pop(0)
        return self.texts[0]


class InMemoryGraphStore:
    def __init__(self) -> None:
        self.signals: List[Dict[str, Any]] = []
        self.amenities: List[Dict[str, Any]] = []
        self.briefs: List[Dict[str, Any]] = []
        self.context: List[Dict[str, Any]] = [
            {"neighborhood": "East Austin", "signals": [], "amenities": []}
        ]
        self.top_sources: List[Dict[str, Any]] = []
        self.avg_score: Optional[Dict[str, Any]] = None
        self.fail_reads = False
        self.fail_brief_write = False
        self.closed = False

    def create_market_signal(self, **kwargs: Any) -> int:
        self.signals.append(kwargs)
        # signal + source on first write for a source, signal only afterwards
        return 2 if len(self.signals) == 1 else 1

    def create_amenity(self, **kwargs: Any) -> int:
        self.amenities.append(kwargs)
        return 1

    def upsert_location_and_neighborhood(self, location: str, neighborhood: Optional[str] = None) -> int:
        return 0

    def store_content_brief(self, **kwargs: Any) -> int:
        if self.fail_brief_write:
            raise ConnectionError("neo4j unavailable")
        self.briefs.append(kwargs)
        return 1

    def get_full_context(self, location: str) -> List[Dict[str, Any]]:
        return list(self.context)

    def get_market_signals(self, location: str) -> List[Dict[str, Any]]:
        return [s for s in self.signals if s.get("location") == location]

    def get_top_source_domains(self, limit: int = 10) -> List[Dict[str, Any]]:
        if self.fail_reads:
            raise ConnectionError("neo4j unavailable")
        return self.top_sources[:limit]

    def get_average_geo_score(self) -> Optional[Dict[str, Any]]:
        if self.fail_reads:
            raise ConnectionError("neo4j unavailable")
        return self.avg_score

    def get_graph_visualization_data(self) -> Dict[str, List[Dict[str, Any]]]:
        return {"nodes": [], "edges": []}

    def close(self) -> None:
        self.closed = True


class FakeWebTool:
    def __init__(self) -> None:
        self.calls: List[Any] = []
        self.fail_search = False
        self.page_text = "Median price $545,000."

    def search_market_data(self, query: str, location: str, time_range: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append(("market", query, location, time_range))
        if self.fail_search:
            raise RuntimeError("Tavily quota exceeded")
        return {
            "answer": "Austin prices were flat year over year.",
            "results": [
                {"title": "Redfin Austin", "url": REDFIN_URL, "content": "Median $545k", "score": 0.9},
                {"title": "Zillow", "url": ZILLOW_URL, "content": "Value $530k", "score": 0.8},
            ],
        }

    def search_neighborhood_info(self, neighborhood: str, location: str, aspects=None) -> Dict[str, Any]:
        self.calls.append(("neighborhood", neighborhood, location, aspects))
        return {"answer": None, "results": [{"title": "Niche", "url": "https://niche.com/x", "content": "", "score": 0.5}]}

    def extract(self, urls: Sequence[str]) -> List[Dict[str, str]]:
        self.calls.append(("extract", list(urls)))
        return [{"url": u, "content": self.page_text} for u in urls]


def tool_call(name: str, args: Dict[str, Any], call_id: str = "call_1") -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=json.dumps(args))


def tool_turn(*calls: ToolCall) -> ModelTurn:
    return ModelTurn(content=None, tool_calls=list(calls), finish_reason="tool_calls")


BRIEF_ARGS = {"location": "Austin, TX", "topic": "Housing market outlook", "contentType": "market_report"}

SIGNAL_ARGS = {
    "location": "Austin, TX",
    "neighborhood": "East Austin",
    "signalType": "price_trend",
    "headline": "Median price flat at $545,000",
    "summary": "Median sale price held at $545,000 in December 2024.",
    "value": "$545,000",
    "sentiment": "neutral",
    "sourceUrl": REDFIN_URL,
    "sourceTitle": "Redfin Austin",
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def graph_store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def web_tool() -> FakeWebTool:
    return FakeWebTool()


@pytest.fixture
def longform() -> FakeLongFormModel:
    return FakeLongFormModel()


@pytest.fixture
def synthesizer(longform, graph_store) -> BriefSynthesizer:
    return BriefSynthesizer(longform, graph_store=graph_store, clock=lambda: FIXED_NOW)


@pytest.fixture
def executor(web_tool, graph_store, synthesizer) -> ToolExecutor:
    return ToolExecutor(web_tool=web_tool, graph_store=graph_store, synthesizer=synthesizer)


@pytest.fixture
def events() -> List[Any]:
    return []
