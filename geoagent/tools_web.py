"""Web research capability backed by the Tavily Search and Extract APIs.

This module powers the "research" phase of the agent.

Features
--------
- Real-estate market search restricted to an allowlist of data-rich
  domains, with an optional recency window.
- Neighborhood search (schools, parks, transit, ...) across the open web.
- Page extraction through Tavily Extract, capped at 5 URLs per call.
- Plain page fetch plus HTML cleanup through requests + BeautifulSoup when
  no Tavily key is configured, so extraction still works in local runs.
- In-memory caching so a run that repeats a query does not pay twice.

API key model:
    - This file never hardcodes a key.
    - It prefers a key passed in to WebResearchTool(api_key=...).
    - Otherwise it reads TAVILY_API_KEY from the environment.
    - Without a key, searches return an empty result list (with a logged
      warning) instead of failing the run.

Provider errors (network, quota, bad request) are NOT swallowed here:
they propagate to the tool executor and the control loop reports them
as error events.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from bs4 import BeautifulSoup
from tavily import TavilyClient

logger = logging.getLogger(__name__)

REAL_ESTATE_DOMAINS: List[str] = [
    "zillow.com",
    "realtor.com",
    "redfin.com",
    "nar.realtor",
    "housingwire.com",
    "inman.com",
    "census.gov",
    "freddiemac.com",
    "niche.com",
    "walkscore.com",
    "greatschools.org",
]

DEFAULT_ASPECTS: List[str] = ["schools", "parks", "transit", "restaurants", "walkability"]

MAX_EXTRACT_URLS = 5

TIME_RANGE_DAYS: Dict[str, int] = {"week": 7, "month": 30}

CacheKey = Tuple[str, str, int, Tuple[str, ...], Optional[int]]


class WebResearchTool:
    """Search and extraction against Tavily, with a requests fallback for pages."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        cache_size: int = 128,
        fetch_timeout: float = 15.0,
    ) -> None:
        """Create a WebResearchTool.

        Args:
            api_key:
                Optional Tavily API key. Falls back to TAVILY_API_KEY.
            client:
                Pre-built Tavily client (tests pass a fake here).
            cache_size:
                Max cached searches before the oldest entry is evicted.
            fetch_timeout:
                Seconds to wait for a page in fallback fetch mode.
        """
        self.api_key = api_key or os.getenv("TAVILY_API_KEY")
        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = TavilyClient(api_key=self.api_key)
        else:
            self.client = None
            logger.warning("TAVILY_API_KEY not set; web search will return no results")

        self.fetch_timeout = fetch_timeout
        self._cache: Dict[CacheKey, Dict[str, Any]] = {}
        self._cache_size_limit = max(1, cache_size)

    # ------------------------------------------------------------------
    # INTERNAL: CACHE HELPERS
    # ------------------------------------------------------------------
    def _store_in_cache(self, key: CacheKey, payload: Dict[str, Any]) -> None:
        if len(self._cache) >= self._cache_size_limit:
            # dicts preserve insertion order, so the first key is the oldest
            oldest_key = next(iter(self._cache))
            self._cache.pop(oldest_key, None)
        self._cache[key] = payload

    @staticmethod
    def _copy_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "answer": payload.get("answer"),
            "results": [dict(r) for r in payload.get("results", [])],
        }

    # ------------------------------------------------------------------
    # LOW LEVEL SEARCH
    # ------------------------------------------------------------------
    def search(
        self,
        query: str,
        topic: str = "general",
        search_depth: str = "advanced",
        max_results: int = 8,
        include_domains: Optional[Sequence[str]] = None,
        days: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Run one Tavily search.

        Returns:
            {"answer": str | None,
             "results": [{"title", "url", "content", "score"}, ...]}

        An empty result set is returned as an empty list, never raised.
        """
        domains = tuple(include_domains or ())
        cache_key: CacheKey = (query.strip(), topic, int(max_results), domains, days)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Search cache hit for %r", query)
            return self._copy_payload(cached)

        if self.client is None:
            return {"answer": None, "results": []}

        options: Dict[str, Any] = {
            "topic": topic,
            "search_depth": search_depth,
            "max_results": max_results,
            "include_answer": "advanced",
        }
        if domains:
            options["include_domains"] = list(domains)
        if days is not None:
            options["days"] = days

        response = self.client.search(query=query, **options) or {}

        results: List[Dict[str, Any]] = []
        for item in response.get("results") or []:
            results.append(
                {
                    "title": item.get("title", ""),
                    "url": item.get("url", ""),
                    "content": item.get("content", ""),
                    "score": item.get("score"),
                }
            )

        payload = {"answer": response.get("answer") or None, "results": results}
        self._store_in_cache(cache_key, payload)
        logger.info("Search %r returned %d results", query, len(results))
        return self._copy_payload(payload)

    # ------------------------------------------------------------------
    # DOMAIN SEARCHES
    # ------------------------------------------------------------------
    def search_market_data(
        self,
        query: str,
        location: str,
        time_range: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Search news-grade market data sources for one location."""
        year = datetime.now(timezone.utc).year
        full_query = f"{query} {location} real estate market data {year}"
        return self.search(
            full_query,
            topic="news",
            search_depth="advanced",
            max_results=8,
            include_domains=REAL_ESTATE_DOMAINS,
            days=TIME_RANGE_DAYS.get(time_range or ""),
        )

    def search_neighborhood_info(
        self,
        neighborhood: str,
        location: str,
        aspects: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """Search lifestyle and amenity information for a neighborhood."""
        aspect_str = ", ".join(aspects) if aspects else ", ".join(DEFAULT_ASPECTS)
        full_query = f"{neighborhood} {location} neighborhood guide {aspect_str}"
        return self.search(full_query, topic="general", search_depth="advanced", max_results=8)

    # ------------------------------------------------------------------
    # PAGE EXTRACTION
    # ------------------------------------------------------------------
    def extract(self, urls: Sequence[str]) -> List[Dict[str, str]]:
        """Return one {url, content} pair per URL.

        Only the first MAX_EXTRACT_URLS urls are used; the rest are dropped.
        """
        batch = [u for u in list(urls)[:MAX_EXTRACT_URLS] if u]
        if not batch:
            return []

        if self.client is None:
            return [{"url": u, "content": self.fetch_page_text(u)} for u in batch]

        response = self.client.extract(urls=batch, extract_depth="advanced") or {}
        return [
            {"url": item.get("url", ""), "content": item.get("raw_content") or ""}
            for item in response.get("results") or []
        ]

    def fetch_page_text(self, url: str, max_chars: int = 8000) -> str:
        """Download a web page and return its paragraph text."""
        resp = requests.get(url, timeout=self.fetch_timeout)
        resp.raise_for_status()

        soup = BeautifulSoup(resp.text, "lxml")
        paragraphs = [p.get_text(strip=True) for p in soup.find_all("p")]
        text = "\n".join(p for p in paragraphs if p)

        # Truncate to keep tool results bounded
        if len(text) > max_chars:
            return text[:max_chars].rstrip() + " ..."
        return text.strip()
