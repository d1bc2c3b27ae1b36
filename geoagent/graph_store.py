"""
Neo4j knowledge graph for GeoAgent.

The graph is an append-mostly ledger shared across runs. The agent only
issues MERGE/CREATE commands and read queries; it never deletes.

Node Types:
- Location:     {id, name, createdAt}                    MERGE on name
- Neighborhood: {id, name, updatedAt}                    MERGE on name
- MarketSignal: {id, type, headline, summary, value, sentiment, date, createdAt}
- Source:       {id, url, title, domain, createdAt}      MERGE on url
- Amenity:      {id, name, type, rating}                 MERGE on (name, type)
- ContentBrief: {id, title, topic, geoScore, status, createdAt}

Relationships:
- (Neighborhood)-[:HAS_NEIGHBORHOOD]->(Location)
- (Neighborhood)-[:HAS_SIGNAL]->(MarketSignal)
- (MarketSignal)-[:AFFECTS]->(Location)        signals with no neighborhood
- (MarketSignal)-[:SOURCED_FROM]->(Source)
- (Neighborhood)-[:HAS_AMENITY]->(Amenity)
- (ContentBrief)-[:GENERATED_FOR]->(Location)

Write commands return the number of nodes they created, which the
control loop reports as graph growth.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from neo4j import Driver, GraphDatabase

from .domains import extract_domain

logger = logging.getLogger(__name__)

# Node labels
LOCATION = "Location"
NEIGHBORHOOD = "Neighborhood"
MARKET_SIGNAL = "MarketSignal"
SOURCE = "Source"
AMENITY = "Amenity"
CONTENT_BRIEF = "ContentBrief"

NODE_LABELS = (LOCATION, NEIGHBORHOOD, MARKET_SIGNAL, SOURCE, AMENITY, CONTENT_BRIEF)

SIGNAL_TYPES = ("price_trend", "inventory", "demand", "regulation", "development")
AMENITY_TYPES = ("school", "park", "transit", "shopping", "hospital", "restaurant")
SENTIMENTS = ("positive", "negative", "neutral")

_MERGE_LOCATION = """
MERGE (l:Location {name: $location})
ON CREATE SET l.id = randomUUID(), l.createdAt = datetime()
"""

_MERGE_NEIGHBORHOOD = """
MERGE (n:Neighborhood {name: $neighborhood})
ON CREATE SET n.id = randomUUID()
MERGE (n)-[:HAS_NEIGHBORHOOD]->(l)
SET n.updatedAt = datetime()
"""


class GraphStore:
    """Service for Neo4j graph operations."""

    def __init__(
        self,
        uri: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        database: Optional[str] = None,
        driver: Optional[Driver] = None,
    ) -> None:
        self.uri = uri or os.getenv("NEO4J_URI", "bolt://localhost:7687")
        self.user = user or os.getenv("NEO4J_USER", "neo4j")
        self.password = password or os.getenv("NEO4J_PASSWORD", "")
        self.database = database or "neo4j"
        self._driver = driver

    @property
    def driver(self) -> Driver:
        if self._driver is None:
            self._driver = GraphDatabase.driver(self.uri, auth=(self.user, self.password))
            logger.info("Connected to Neo4j at %s", self.uri)
        return self._driver

    def close(self) -> None:
        if self._driver is not None:
            self._driver.close()
            self._driver = None
            logger.info("Closed Neo4j connection")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _write_tx(tx: Any, query: str, parameters: Dict[str, Any]) -> int:
        result = tx.run(query, parameters)
        summary = result.consume()
        return summary.counters.nodes_created

    @staticmethod
    def _read_tx(tx: Any, query: str, parameters: Dict[str, Any]) -> List[Dict[str, Any]]:
        return tx.run(query, parameters).data()

    def _execute_write(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> int:
        with self.driver.session(database=self.database) as session:
            return session.execute_write(self._write_tx, query, parameters or {})

    def _execute_read(
        self, query: str, parameters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        with self.driver.session(database=self.database) as session:
            return session.execute_read(self._read_tx, query, parameters or {})

    # ===== Commands =====

    def create_market_signal(
        self,
        location: str,
        signal_type: str,
        headline: str,
        summary: str,
        sentiment: str,
        source_url: str,
        source_title: str,
        neighborhood: Optional[str] = None,
        value: Optional[str] = None,
    ) -> int:
        """Record one market signal, creating its location, neighborhood and source if absent."""
        query = _MERGE_LOCATION
        if neighborhood:
            query += _MERGE_NEIGHBORHOOD
        query += """
        MERGE (s:Source {url: $sourceUrl})
        ON CREATE SET s.id = randomUUID(), s.title = $sourceTitle,
                      s.domain = $domain, s.createdAt = datetime()
        CREATE (ms:MarketSignal {
            id: randomUUID(),
            type: $signalType,
            headline: $headline,
            summary: $summary,
            value: $value,
            sentiment: $sentiment,
            date: date(),
            createdAt: datetime()
        })
        """
        if neighborhood:
            query += "CREATE (n)-[:HAS_SIGNAL]->(ms)\n"
        else:
            query += "CREATE (ms)-[:AFFECTS]->(l)\n"
        query += "CREATE (ms)-[:SOURCED_FROM]->(s)\nRETURN ms.id AS id"

        return self._execute_write(
            query,
            {
                "location": location,
                "neighborhood": neighborhood,
                "signalType": signal_type,
                "headline": headline,
                "summary": summary,
                "value": value,
                "sentiment": sentiment,
                "sourceUrl": source_url,
                "sourceTitle": source_title,
                "domain": extract_domain(source_url),
            },
        )

    def create_amenity(
        self,
        neighborhood: str,
        location: str,
        amenity_name: str,
        amenity_type: str,
        rating: Optional[float] = None,
    ) -> int:
        query = _MERGE_LOCATION + _MERGE_NEIGHBORHOOD + """
        MERGE (a:Amenity {name: $amenityName, type: $amenityType})
        ON CREATE SET a.id = randomUUID()
        """
        if rating is not None:
            query += "SET a.rating = $rating\n"
        query += "MERGE (n)-[:HAS_AMENITY]->(a)\nRETURN a.id AS id"

        return self._execute_write(
            query,
            {
                "location": location,
                "neighborhood": neighborhood,
                "amenityName": amenity_name,
                "amenityType": amenity_type,
                "rating": rating,
            },
        )

    def upsert_location_and_neighborhood(
        self, location: str, neighborhood: Optional[str] = None
    ) -> int:
        """Ensure the location (and neighborhood, if given) exist. Returns nodes created."""
        query = _MERGE_LOCATION
        if neighborhood:
            query += _MERGE_NEIGHBORHOOD
        return self._execute_write(query, {"location": location, "neighborhood": neighborhood})

    def store_content_brief(
        self,
        brief_id: str,
        title: str,
        topic: str,
        geo_score: int,
        location: str,
    ) -> int:
        query = _MERGE_LOCATION + """
        CREATE (cb:ContentBrief {
            id: $id,
            title: $title,
            topic: $topic,
            geoScore: $geoScore,
            status: 'final',
            createdAt: datetime()
        })
        CREATE (cb)-[:GENERATED_FOR]->(l)
        RETURN cb.id AS id
        """
        return self._execute_write(
            query,
            {
                "id": brief_id,
                "title": title,
                "topic": topic,
                "geoScore": geo_score,
                "location": location,
            },
        )

    # ===== Queries =====

    def get_full_context(self, location: str) -> List[Dict[str, Any]]:
        """Per-neighborhood metrics with nested signals and amenities."""
        rows = self._execute_read(
            """
            MATCH (l:Location {name: $location})<-[:HAS_NEIGHBORHOOD]-(n:Neighborhood)
            OPTIONAL MATCH (n)-[:HAS_SIGNAL]->(ms:MarketSignal)
            OPTIONAL MATCH (ms)-[:SOURCED_FROM]->(s:Source)
            OPTIONAL MATCH (n)-[:HAS_AMENITY]->(a:Amenity)
            RETURN n.name AS neighborhood,
                   n.medianPrice AS medianPrice,
                   n.avgDaysOnMarket AS avgDaysOnMarket,
                   n.priceChangeYoY AS priceChangeYoY,
                   collect(DISTINCT {
                       type: ms.type, headline: ms.headline, summary: ms.summary,
                       value: ms.value, sentiment: ms.sentiment, date: toString(ms.date),
                       sourceUrl: s.url, sourceTitle: s.title
                   }) AS signals,
                   collect(DISTINCT {name: a.name, type: a.type, rating: a.rating}) AS amenities
            ORDER BY n.medianPrice DESC
            """,
            {"location": location},
        )
        context: List[Dict[str, Any]] = []
        for row in rows:
            context.append(
                {
                    "neighborhood": row.get("neighborhood"),
                    "medianPrice": row.get("medianPrice"),
                    "avgDaysOnMarket": row.get("avgDaysOnMarket"),
                    "priceChangeYoY": row.get("priceChangeYoY"),
                    # OPTIONAL MATCH misses collect as all-null maps
                    "signals": [s for s in row.get("signals") or [] if s.get("headline") is not None],
                    "amenities": [a for a in row.get("amenities") or [] if a.get("name") is not None],
                }
            )
        return context

    def get_market_signals(self, location: str) -> List[Dict[str, Any]]:
        """Flat list of signals under a location, most recent first."""
        return self._execute_read(
            """
            MATCH (l:Location {name: $location})<-[:HAS_NEIGHBORHOOD]-(n:Neighborhood)
                  -[:HAS_SIGNAL]->(ms:MarketSignal)
            OPTIONAL MATCH (ms)-[:SOURCED_FROM]->(s:Source)
            RETURN ms.headline AS headline, ms.summary AS summary, ms.type AS type,
                   ms.value AS value, ms.sentiment AS sentiment,
                   toString(ms.date) AS date, s.url AS sourceUrl, s.title AS sourceTitle,
                   n.name AS neighborhood
            ORDER BY ms.createdAt DESC
            """,
            {"location": location},
        )

    def get_top_source_domains(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Source domains ranked by how many signals they produced."""
        rows = self._execute_read(
            """
            MATCH (s:Source)<-[:SOURCED_FROM]-(ms:MarketSignal)
            RETURN s.domain AS domain, count(ms) AS signalCount
            ORDER BY signalCount DESC LIMIT $limit
            """,
            {"limit": limit},
        )
        return [{"domain": r["domain"], "signalCount": int(r["signalCount"])} for r in rows]

    def get_average_geo_score(self) -> Optional[Dict[str, Any]]:
        rows = self._execute_read(
            """
            MATCH (cb:ContentBrief)
            WHERE cb.geoScore IS NOT NULL
            RETURN avg(cb.geoScore) AS avgScore, count(cb) AS briefCount
            """
        )
        if not rows:
            return None
        avg_score = rows[0].get("avgScore")
        return {
            "avgScore": round(avg_score) if avg_score else None,
            "briefCount": int(rows[0].get("briefCount") or 0),
        }

    def get_graph_visualization_data(self) -> Dict[str, List[Dict[str, Any]]]:
        """All GeoAgent nodes and the relationships between them."""
        rows = self._execute_read(
            """
            MATCH (n)
            WHERE n:Location OR n:Neighborhood OR n:MarketSignal
                  OR n:Source OR n:Amenity OR n:ContentBrief
            OPTIONAL MATCH (n)-[r]->(m)
            RETURN elementId(n) AS id, labels(n)[0] AS label,
                   coalesce(n.name, n.headline, n.title, n.id) AS name,
                   elementId(m) AS target, type(r) AS relType
            """
        )
        nodes: Dict[str, Dict[str, Any]] = {}
        edges: List[Dict[str, Any]] = []
        for row in rows:
            if row.get("id") and row.get("label"):
                nodes[row["id"]] = {"id": row["id"], "label": row["label"], "name": row.get("name")}
            if row.get("target") and row.get("relType"):
                edges.append({"source": row["id"], "target": row["target"], "type": row["relType"]})
        return {"nodes": list(nodes.values()), "edges": edges}
