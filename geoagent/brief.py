"""Content brief synthesizer.

Turns accumulated knowledge graph context into one ContentBrief:

1. One call to the long-form model, prompted for a fixed JSON shape.
   The minimum section / FAQ / claim counts in the prompt are requests to
   the model; whatever comes back is used as-is.
2. Deterministic post-processing:
     - flatten outline data claims into one list
     - group cited URLs into sources with domain + credibility note
     - id, metadata and freshness label
     - the three JSON-LD fragments
     - the GEO score
3. Best-effort summary record in the graph store. A failed write is
   logged and the brief is still returned.
"""

from __future__ import annotations

import json
import logging
import re
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .domains import credibility_note, extract_domain
from .errors import BriefParseError
from .jsonld import generate_json_ld
from .prompts import build_brief_prompt
from .scoring import compute_geo_score
from .types import (
    BriefMetadata,
    ContentBrief,
    DataClaim,
    FaqEntry,
    OutlineSection,
    SourceRef,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_FENCE_OPEN = re.compile(r"```json\n?")
_FENCE = re.compile(r"```\n?")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """ISO 8601 with millisecond precision and a Z suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_brief_id(now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"brief_{millis}_{suffix}"


def freshness_label(now: datetime) -> str:
    return f"Data current as of {now.strftime('%B %Y')}"


def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", _FENCE_OPEN.sub("", text)).strip()


def parse_brief_json(text: str) -> Dict[str, Any]:
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise BriefParseError(f"Brief model returned invalid JSON: {e}", raw_text=text) from e
    if not isinstance(data, dict):
        raise BriefParseError("Brief model returned JSON that is not an object", raw_text=text)
    return data


def flatten_claims(outline: List[OutlineSection]) -> List[DataClaim]:
    return [claim for section in outline for claim in section.data_claims]


def build_sources(claims: List[DataClaim]) -> List[SourceRef]:
    """One source per distinct claim URL, in first-cited order."""
    by_url: Dict[str, SourceRef] = {}
    for claim in claims:
        if not claim.source_url:
            continue
        existing = by_url.get(claim.source_url)
        if existing is not None:
            existing.used_for_claims.append(claim.claim)
            continue
        domain = extract_domain(claim.source_url)
        by_url[claim.source_url] = SourceRef(
            url=claim.source_url,
            title=claim.source_title or domain,
            domain=domain,
            used_for_claims=[claim.claim],
            credibility_note=credibility_note(domain),
        )
    return list(by_url.values())


class BriefSynthesizer:
    """Drafts a brief with the long-form model, then scores it."""

    def __init__(
        self,
        longform_model: Any,
        graph_store: Optional[Any] = None,
        clock: Clock = _utc_now,
    ) -> None:
        self.longform_model = longform_model
        self.graph_store = graph_store
        self.clock = clock

    def generate(
        self,
        location: str,
        topic: str,
        content_type: str,
        graph_context: Any,
        target_keywords: Optional[List[str]] = None,
    ) -> ContentBrief:
        prompt = build_brief_prompt(location, topic, content_type, graph_context, target_keywords)
        text = self.longform_model.generate(prompt)
        generated = parse_brief_json(text)

        outline = [
            OutlineSection.from_dict(s)
            for s in generated.get("outline") or []
            if isinstance(s, dict)
        ]
        claims = flatten_claims(outline)
        sources = build_sources(claims)

        now = self.clock()
        brief = ContentBrief(
            id=generate_brief_id(now),
            metadata=BriefMetadata(
                location=location,
                topic=topic,
                content_type=content_type,
                generated_at=to_iso(now),
                data_freshness=freshness_label(now),
                sources_count=len(sources),
                signals_count=len(claims),
            ),
            title=generated.get("title") or f"{topic} in {location}",
            meta_description=generated.get("metaDescription") or "",
            target_keywords=[str(k) for k in generated.get("targetKeywords") or target_keywords or []],
            outline=outline,
            data_claims=claims,
            faq_section=[
                FaqEntry.from_dict(f)
                for f in generated.get("faqSection") or []
                if isinstance(f, dict)
            ],
            sources=sources,
            competitor_gaps=[str(g) for g in generated.get("competitorGaps") or []],
            llm_citability_tips=[str(t) for t in generated.get("llmCitabilityTips") or []],
        )

        brief.json_ld = generate_json_ld(brief)
        brief.geo_score = compute_geo_score(brief, now=now)
        logger.info(
            "Synthesized brief %s: %d sections, %d claims, GEO score %d",
            brief.id,
            len(brief.outline),
            len(brief.data_claims),
            brief.geo_score.overall,
        )

        self._persist(brief)
        return brief

    def _persist(self, brief: ContentBrief) -> bool:
        if self.graph_store is None:
            return False
        try:
            self.graph_store.store_content_brief(
                brief_id=brief.id,
                title=brief.title,
                topic=brief.metadata.topic,
                geo_score=brief.geo_score.overall,
                location=brief.metadata.location,
            )
        except Exception:
            logger.exception("Failed to store brief %s in the knowledge graph", brief.id)
            return False
        return True
