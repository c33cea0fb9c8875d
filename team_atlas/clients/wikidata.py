"""
Wikidata SPARQL adapter.

Queries the public Wikidata query service for association football clubs
of a country, identified by the country's Wikidata entity id.
"""

import logging
import re
from typing import Any, Optional

from ..normalizer.schemas import DataSource, RawRecord
from ..orchestrator.country_registry import get_country
from ..utils.exceptions import ParsingError
from .base import completeness_confidence, present
from .http import SourceClientConfig, SourceHTTPClient


logger = logging.getLogger(__name__)

ENTITY_ID_PATTERN = re.compile(r"^Q\d+$")

TEAMS_QUERY = """
SELECT DISTINCT ?team ?teamLabel ?shortName ?founded ?website ?stadium ?stadiumLabel
       ?capacity ?coordinate ?league ?leagueLabel ?city ?cityLabel WHERE {{
    ?team wdt:P31/wdt:P279* wd:Q476028 .
    ?team wdt:P17 wd:{entity_id} .
    OPTIONAL {{ ?team wdt:P1813 ?shortName . }}
    OPTIONAL {{ ?team wdt:P571 ?founded . }}
    OPTIONAL {{ ?team wdt:P856 ?website . }}
    OPTIONAL {{
        ?team wdt:P115 ?stadium .
        OPTIONAL {{ ?stadium wdt:P1083 ?capacity . }}
        OPTIONAL {{ ?stadium wdt:P625 ?coordinate . }}
    }}
    OPTIONAL {{ ?team wdt:P118 ?league . }}
    OPTIONAL {{ ?team wdt:P159|wdt:P131 ?city . }}
    SERVICE wikibase:label {{ bd:serviceParam wikibase:language "en,es,fr,de,pt,it,nl" . }}
}}
ORDER BY ?teamLabel
LIMIT {limit}
"""

# Optional fields counted towards record confidence
CONFIDENCE_FIELDS = ("shortName", "founded", "website", "stadiumLabel", "capacity", "coordinate", "leagueLabel")


class WikidataClient:
    """Knowledge-graph adapter backed by the Wikidata SPARQL endpoint.

    Example:
        ```python
        async with WikidataClient() as wikidata:
            records = await wikidata.fetch_country_teams("AR")
        ```
    """

    source = DataSource.WIKIDATA

    def __init__(
        self,
        config: Optional[SourceClientConfig] = None,
        http: Optional[SourceHTTPClient] = None,
        limit: int = 100,
    ):
        self.config = config or SourceClientConfig.wikidata()
        self.http = http or SourceHTTPClient("wikidata", self.config)
        self.limit = limit
        self._stats = {"fetches": 0, "records": 0, "failures": 0}

    async def __aenter__(self) -> "WikidataClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.close()

    def build_query(self, entity_id: str, limit: Optional[int] = None) -> str:
        """SPARQL query selecting football clubs of one country entity."""
        if not ENTITY_ID_PATTERN.match(entity_id):
            raise ValueError(f"Invalid Wikidata entity id: {entity_id!r}")
        return TEAMS_QUERY.format(entity_id=entity_id, limit=limit or self.limit)

    async def _post_query(self, query: str) -> Any:
        return await self.http.post_json(
            self.config.base_url,
            data=query,
            headers={
                "Content-Type": "application/sparql-query",
                "Accept": "application/sparql-results+json",
            },
        )

    async def fetch_country_teams(self, country_key: str) -> list[RawRecord]:
        """
        Football clubs of a country.

        Args:
            country_key: Country code; resolved to a Wikidata entity id
                through the country registry

        Returns:
            list[RawRecord]: Clubs found, or [] on any failure
        """
        country = get_country(country_key)
        if not country.wikidata_id:
            logger.info(f"No Wikidata entity id for {country.code}, skipping")
            return []

        self._stats["fetches"] += 1
        try:
            data = await self._post_query(self.build_query(country.wikidata_id))
            records = self.parse_results(data, country.code)
        except Exception as e:
            self._stats["failures"] += 1
            logger.error(
                f"Wikidata fetch failed for {country.code}: {e}",
                extra={"country_code": country.code, "error_type": type(e).__name__},
            )
            return []

        self._stats["records"] += len(records)
        logger.info(f"Wikidata: {len(records)} teams found for {country.code}")
        return records

    def parse_results(self, data: Any, country_code: str) -> list[RawRecord]:
        """
        Convert SPARQL JSON results to RawRecords.

        A club may appear on several rows (one per league or stadium match);
        the row with the most populated fields wins.

        Raises:
            ParsingError: If the response lacks ``results.bindings``
        """
        try:
            bindings = data["results"]["bindings"]
        except (KeyError, TypeError) as e:
            raise ParsingError("Missing results.bindings", source="wikidata", parser="sparql") from e

        best: dict[str, dict[str, Any]] = {}
        for binding in bindings:
            team_uri = self._value(binding, "team") or self._value(binding, "teamLabel")
            if not team_uri:
                continue
            current = best.get(team_uri)
            if current is None or self._populated(binding) > self._populated(current):
                best[team_uri] = binding

        records = []
        for team_uri, binding in best.items():
            name = self._value(binding, "teamLabel") or ""
            # Unlabelled entities come back with their Q-id as label
            if ENTITY_ID_PATTERN.match(name):
                continue
            records.append(
                RawRecord(
                    name=name,
                    city=self._label(binding, "cityLabel") or "",
                    country=country_code,
                    short_name=self._value(binding, "shortName"),
                    founded=self._value(binding, "founded"),
                    website=self._value(binding, "website"),
                    league=self._label(binding, "leagueLabel"),
                    stadium_name=self._label(binding, "stadiumLabel"),
                    stadium_capacity=self._value(binding, "capacity"),
                    stadium_coordinates=self._value(binding, "coordinate"),
                    source=DataSource.WIKIDATA,
                    external_id=team_uri.rsplit("/", 1)[-1],
                    confidence=completeness_confidence(self._populated(binding), len(CONFIDENCE_FIELDS)),
                )
            )
        return records

    async def health_check(self) -> dict[str, Any]:
        """Run a one-row query against Spain (Q29)."""
        try:
            data = await self._post_query(self.build_query("Q29", limit=1))
            rows = len(data.get("results", {}).get("bindings", []))
            return {"status": "healthy", "available": True, "rows": rows}
        except Exception as e:
            return {"status": "error", "available": False, "error": str(e)}

    def get_statistics(self) -> dict[str, Any]:
        return {**self._stats, "http": self.http.get_statistics()}

    @staticmethod
    def _value(binding: dict[str, Any], key: str) -> Optional[str]:
        value = binding.get(key, {}).get("value")
        return value if present(value) else None

    @classmethod
    def _label(cls, binding: dict[str, Any], key: str) -> Optional[str]:
        value = cls._value(binding, key)
        if value is None or ENTITY_ID_PATTERN.match(value):
            return None
        return value

    @classmethod
    def _populated(cls, binding: dict[str, Any]) -> int:
        return sum(1 for key in CONFIDENCE_FIELDS if cls._value(binding, key) is not None)

    def __repr__(self) -> str:
        return f"WikidataClient(endpoint={self.config.base_url!r})"
