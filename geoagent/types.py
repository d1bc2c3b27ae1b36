"""Data model for GeoAgent content briefs and agent events.

A content brief is the single deliverable of one agent run. The model
is expressed as plain dataclasses with two helpers each:

- to_dict():   camelCase JSON shape shared with the LLM prompt, the
               brief store snapshot and any client that renders briefs.
- from_dict(): lenient inverse that tolerates missing or null keys, since
               the long-form model is asked for this shape but is not
               guaranteed to honour it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------
CONTENT_TYPES = (
    "neighborhood_guide",
    "market_report",
    "buyer_guide",
    "investment_analysis",
)

PHASES = ("research", "connect", "generate")

EVENT_TYPES = (
    "phase",
    "tool_call",
    "tool_result",
    "thinking",
    "graph_update",
    "complete",
    "error",
)


def _str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


# ---------------------------------------------------------------------------
# Claims, outline, FAQ, sources
# ---------------------------------------------------------------------------
@dataclass
class DataClaim:
    """A single factual statement backed by a source URL."""

    claim: str
    value: str = ""
    source_url: str = ""
    source_title: str = ""
    confidence: str = "medium"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claim": self.claim,
            "value": self.value,
            "sourceUrl": self.source_url,
            "sourceTitle": self.source_title,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataClaim":
        confidence = _str(data.get("confidence"), "medium").lower()
        if confidence not in ("high", "medium"):
            confidence = "medium"
        return cls(
            claim=_str(data.get("claim")),
            value=_str(data.get("value")),
            source_url=_str(data.get("sourceUrl")),
            source_title=_str(data.get("sourceTitle")),
            confidence=confidence,
        )


@dataclass
class OutlineSection:
    h2: str
    h3s: List[str] = field(default_factory=list)
    key_points: List[str] = field(default_factory=list)
    data_claims: List[DataClaim] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "h2": self.h2,
            "h3s": list(self.h3s),
            "keyPoints": list(self.key_points),
            "dataClaims": [c.to_dict() for c in self.data_claims],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutlineSection":
        return cls(
            h2=_str(data.get("h2")),
            h3s=[_str(h) for h in _list(data.get("h3s"))],
            key_points=[_str(p) for p in _list(data.get("keyPoints"))],
            data_claims=[
                DataClaim.from_dict(c)
                for c in _list(data.get("dataClaims"))
                if isinstance(c, dict)
            ],
        )


@dataclass
class FaqEntry:
    question: str
    answer: str
    source_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"question": self.question, "answer": self.answer}
        if self.source_url:
            out["sourceUrl"] = self.source_url
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FaqEntry":
        return cls(
            question=_str(data.get("question")),
            answer=_str(data.get("answer")),
            source_url=data.get("sourceUrl") or None,
        )


@dataclass
class SourceRef:
    """A cited source, grouped by URL across all data claims."""

    url: str
    title: str
    domain: str
    used_for_claims: List[str] = field(default_factory=list)
    credibility_note: str = "Third-party source"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "domain": self.domain,
            "usedForClaims": list(self.used_for_claims),
            "credibilityNote": self.credibility_note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceRef":
        return cls(
            url=_str(data.get("url")),
            title=_str(data.get("title")),
            domain=_str(data.get("domain")),
            used_for_claims=[_str(c) for c in _list(data.get("usedForClaims"))],
            credibility_note=_str(data.get("credibilityNote"), "Third-party source"),
        )


# ---------------------------------------------------------------------------
# GEO score
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class GeoScoreBreakdown:
    data_backed_claims: int = 0
    structured_data: int = 0
    content_structure: int = 0
    freshness: int = 0
    original_insights: int = 0
    source_authority: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "dataBackedClaims": self.data_backed_claims,
            "structuredData": self.structured_data,
            "contentStructure": self.content_structure,
            "freshness": self.freshness,
            "originalInsights": self.original_insights,
            "sourceAuthority": self.source_authority,
        }

    def total(self) -> int:
        return sum(self.to_dict().values())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoScoreBreakdown":
        return cls(
            data_backed_claims=_int(data.get("dataBackedClaims")),
            structured_data=_int(data.get("structuredData")),
            content_structure=_int(data.get("contentStructure")),
            freshness=_int(data.get("freshness")),
            original_insights=_int(data.get("originalInsights")),
            source_authority=_int(data.get("sourceAuthority")),
        )


@dataclass(frozen=True)
class GeoScore:
    """Overall citability score. overall is always the sum of the breakdown."""

    overall: int = 0
    breakdown: GeoScoreBreakdown = field(default_factory=GeoScoreBreakdown)

    @classmethod
    def from_breakdown(cls, breakdown: GeoScoreBreakdown) -> "GeoScore":
        return cls(overall=breakdown.total(), breakdown=breakdown)

    def to_dict(self) -> Dict[str, Any]:
        return {"overall": self.overall, "breakdown": self.breakdown.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeoScore":
        breakdown = GeoScoreBreakdown.from_dict(data.get("breakdown") or {})
        return cls.from_breakdown(breakdown)


# ---------------------------------------------------------------------------
# Brief
# ---------------------------------------------------------------------------
@dataclass
class BriefMetadata:
    location: str
    topic: str
    content_type: str
    generated_at: str
    data_freshness: str = ""
    sources_count: int = 0
    signals_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location,
            "topic": self.topic,
            "contentType": self.content_type,
            "generatedAt": self.generated_at,
            "dataFreshness": self.data_freshness,
            "sourcesCount": self.sources_count,
            "signalsCount": self.signals_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BriefMetadata":
        return cls(
            location=_str(data.get("location")),
            topic=_str(data.get("topic")),
            content_type=_str(data.get("contentType")),
            generated_at=_str(data.get("generatedAt")),
            data_freshness=_str(data.get("dataFreshness")),
            sources_count=_int(data.get("sourcesCount")),
            signals_count=_int(data.get("signalsCount")),
        )


@dataclass
class JsonLd:
    article: Dict[str, Any] = field(default_factory=dict)
    faq_page: Dict[str, Any] = field(default_factory=dict)
    breadcrumb_list: Dict[str, Any] = field(default_factory=dict)

    def fragments(self) -> List[Dict[str, Any]]:
        return [self.article, self.faq_page, self.breadcrumb_list]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "article": self.article,
            "faqPage": self.faq_page,
            "breadcrumbList": self.breadcrumb_list,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JsonLd":
        return cls(
            article=dict(data.get("article") or {}),
            faq_page=dict(data.get("faqPage") or {}),
            breadcrumb_list=dict(data.get("breadcrumbList") or {}),
        )


@dataclass
class ContentBrief:
    """The structured, citable artifact produced by one agent run."""

    id: str
    metadata: BriefMetadata
    title: str
    meta_description: str = ""
    target_keywords: List[str] = field(default_factory=list)
    outline: List[OutlineSection] = field(default_factory=list)
    data_claims: List[DataClaim] = field(default_factory=list)
    faq_section: List[FaqEntry] = field(default_factory=list)
    json_ld: JsonLd = field(default_factory=JsonLd)
    sources: List[SourceRef] = field(default_factory=list)
    competitor_gaps: List[str] = field(default_factory=list)
    llm_citability_tips: List[str] = field(default_factory=list)
    geo_score: GeoScore = field(default_factory=GeoScore)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "metadata": self.metadata.to_dict(),
            "geoScore": self.geo_score.to_dict(),
            "title": self.title,
            "metaDescription": self.meta_description,
            "targetKeywords": list(self.target_keywords),
            "outline": [s.to_dict() for s in self.outline],
            "dataClaims": [c.to_dict() for c in self.data_claims],
            "faqSection": [f.to_dict() for f in self.faq_section],
            "jsonLd": self.json_ld.to_dict(),
            "sources": [s.to_dict() for s in self.sources],
            "competitorGaps": list(self.competitor_gaps),
            "llmCitabilityTips": list(self.llm_citability_tips),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentBrief":
        return cls(
            id=_str(data.get("id")),
            metadata=BriefMetadata.from_dict(data.get("metadata") or {}),
            geo_score=GeoScore.from_dict(data.get("geoScore") or {}),
            title=_str(data.get("title")),
            meta_description=_str(data.get("metaDescription")),
            target_keywords=[_str(k) for k in _list(data.get("targetKeywords"))],
            outline=[
                OutlineSection.from_dict(s)
                for s in _list(data.get("outline"))
                if isinstance(s, dict)
            ],
            data_claims=[
                DataClaim.from_dict(c)
                for c in _list(data.get("dataClaims"))
                if isinstance(c, dict)
            ],
            faq_section=[
                FaqEntry.from_dict(f)
                for f in _list(data.get("faqSection"))
                if isinstance(f, dict)
            ],
            json_ld=JsonLd.from_dict(data.get("jsonLd") or {}),
            sources=[
                SourceRef.from_dict(s)
                for s in _list(data.get("sources"))
                if isinstance(s, dict)
            ],
            competitor_gaps=[_str(g) for g in _list(data.get("competitorGaps"))],
            llm_citability_tips=[_str(t) for t in _list(data.get("llmCitabilityTips"))],
        )


# ---------------------------------------------------------------------------
# Agent events
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class AgentEvent:
    """One observation emitted by the control loop to the caller's sink."""

    type: str
    phase: Optional[str] = None
    name: Optional[str] = None
    args: Optional[Dict[str, Any]] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    nodes_added: Optional[int] = None
    edges_added: Optional[int] = None
    brief: Optional[ContentBrief] = None
    message: Optional[str] = None

    @classmethod
    def phase_change(cls, phase: str) -> "AgentEvent":
        return cls(type="phase", phase=phase)

    @classmethod
    def tool_call(cls, name: str, args: Dict[str, Any]) -> "AgentEvent":
        return cls(type="tool_call", name=name, args=dict(args))

    @classmethod
    def tool_result(cls, name: str, summary: str) -> "AgentEvent":
        return cls(type="tool_result", name=name, summary=summary)

    @classmethod
    def thinking(cls, content: str) -> "AgentEvent":
        return cls(type="thinking", content=content)

    @classmethod
    def graph_update(cls, nodes_added: int) -> "AgentEvent":
        # Each stored node arrives with one relationship, so edges mirror nodes.
        return cls(type="graph_update", nodes_added=nodes_added, edges_added=nodes_added)

    @classmethod
    def complete(cls, brief: ContentBrief) -> "AgentEvent":
        return cls(type="complete", brief=brief)

    @classmethod
    def error(cls, message: str) -> "AgentEvent":
        return cls(type="error", message=message)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape: only the fields that belong to this event type."""
        if self.type == "phase":
            return {"type": self.type, "phase": self.phase}
        if self.type == "tool_call":
            return {"type": self.type, "name": self.name, "args": self.args or {}}
        if self.type == "tool_result":
            return {"type": self.type, "name": self.name, "summary": self.summary}
        if self.type == "thinking":
            return {"type": self.type, "content": self.content}
        if self.type == "graph_update":
            return {
                "type": self.type,
                "nodesAdded": self.nodes_added,
                "edgesAdded": self.edges_added,
            }
        if self.type == "complete":
            return {"type": self.type, "brief": self.brief.to_dict() if self.brief else None}
        return {"type": self.type, "message": self.message}
