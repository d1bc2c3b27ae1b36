"""Source domain helpers shared by the synthesizer, scorer and graph store."""

from __future__ import annotations

from typing import Dict
from urllib.parse import urlparse

# Human-readable credibility notes attached to cited sources
CREDIBILITY_NOTES: Dict[str, str] = {
    "census.gov": "Official U.S. Census Bureau data",
    "bls.gov": "Bureau of Labor Statistics",
    "hud.gov": "U.S. Department of Housing",
    "nar.realtor": "National Association of Realtors",
    "zillow.com": "Major real estate marketplace",
    "redfin.com": "Major real estate brokerage",
    "realtor.com": "Official realtor marketplace",
    "freddiemac.com": "Federal mortgage corporation",
    "housingwire.com": "Real estate industry news",
    "inman.com": "Real estate industry news",
    "greatschools.org": "School ratings nonprofit",
    "niche.com": "Neighborhood and school rankings",
    "walkscore.com": "Walkability metrics",
}

DEFAULT_CREDIBILITY_NOTE = "Third-party source"

# Authority weights: 3 = government / federal mortgage, 2 = industry, news, education
AUTHORITY_DOMAINS: Dict[str, int] = {
    # Government
    "census.gov": 3,
    "bls.gov": 3,
    "hud.gov": 3,
    "freddiemac.com": 3,
    "fanniemae.com": 3,
    # Major industry
    "nar.realtor": 2,
    "zillow.com": 2,
    "redfin.com": 2,
    "realtor.com": 2,
    # News
    "housingwire.com": 2,
    "inman.com": 2,
    "wsj.com": 2,
    "nytimes.com": 2,
    "reuters.com": 2,
    # Education / community
    "greatschools.org": 2,
    "niche.com": 2,
    "walkscore.com": 2,
}

DEFAULT_AUTHORITY_WEIGHT = 1


def strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def extract_domain(url: str) -> str:
    """Return the host of a URL without a leading "www.".

    Falls back to the raw URL string when it cannot be parsed into a host.
    """
    try:
        host = urlparse(url).hostname
    except ValueError:
        return url
    if not host:
        return url
    return strip_www(host)


def credibility_note(domain: str) -> str:
    return CREDIBILITY_NOTES.get(domain, DEFAULT_CREDIBILITY_NOTE)


def authority_weight(domain: str) -> int:
    return AUTHORITY_DOMAINS.get(strip_www(domain), DEFAULT_AUTHORITY_WEIGHT)
