"""
TheSportsDB REST adapter.

Uses the public v1 JSON API: leagues of a country, teams of the primary
league, then a per-team lookup for detail enrichment.
"""

import asyncio
import logging
from typing import Any, Optional

from ..normalizer.schemas import DataSource, RawRecord
from ..orchestrator.country_registry import get_country
from .base import completeness_confidence, present
from .http import SourceClientConfig, SourceHTTPClient


logger = logging.getLogger(__name__)

# Registry display names that differ from TheSportsDB country names
COUNTRY_NAMES = {
    "GB": "England",
    "US": "USA",
    "KR": "South-Korea",
    "CZ": "Czech-Republic",
    "CI": "Ivory Coast",
    "CD": "DR Congo",
}

PRIMARY_LEAGUE_WORDS = ("Premier", "Primera", "Bundesliga", "Serie A", "Ligue 1", "Eredivisie", "Liga")
SECONDARY_LEAGUE_WORDS = ("Division", "League")

# Optional fields counted towards record confidence
CONFIDENCE_FIELDS = (
    "strTeamShort", "intFormedYear", "strStadium", "intStadiumCapacity",
    "strLocation", "strWebsite", "strColour1",
)


class TheSportsDBClient:
    """REST catalog adapter for TheSportsDB.

    Example:
        ```python
        async with TheSportsDBClient() as sportsdb:
            records = await sportsdb.fetch_country_teams("AR")
        ```
    """

    source = DataSource.THESPORTSDB

    def __init__(
        self,
        config: Optional[SourceClientConfig] = None,
        http: Optional[SourceHTTPClient] = None,
        max_teams: int = 20,
        detail_batch_size: int = 3,
    ):
        self.config = config or SourceClientConfig.thesportsdb()
        self.http = http or SourceHTTPClient("thesportsdb", self.config)
        self.max_teams = max_teams
        self.detail_batch_size = detail_batch_size
        self._stats = {"fetches": 0, "records": 0, "failures": 0, "lookups": 0}

    async def __aenter__(self) -> "TheSportsDBClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.close()

    def _url(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{endpoint}"

    @staticmethod
    def country_name(country_code: str) -> str:
        info = get_country(country_code)
        return COUNTRY_NAMES.get(info.code, info.name)

    async def fetch_country_teams(self, country_key: str) -> list[RawRecord]:
        """
        Teams of a country's primary soccer league, with per-team details.

        Returns:
            list[RawRecord]: Teams with a real stadium, or [] on any failure
        """
        code = get_country(country_key).code
        self._stats["fetches"] += 1
        try:
            leagues = await self.get_country_leagues(self.country_name(code))
            if not leagues:
                logger.info(f"TheSportsDB: no soccer leagues for {code}")
                return []

            primary = leagues[0]["strLeague"]
            teams = await self.get_league_teams(primary)
            records = await self._enrich(teams[: self.max_teams], code)
        except Exception as e:
            self._stats["failures"] += 1
            logger.error(
                f"TheSportsDB fetch failed for {code}: {e}",
                extra={"country_code": code, "error_type": type(e).__name__},
            )
            return []

        self._stats["records"] += len(records)
        logger.info(f"TheSportsDB: {len(records)} teams from {primary} for {code}")
        return records

    async def get_country_leagues(self, country_name: str) -> list[dict[str, Any]]:
        """Soccer leagues of a country, most prominent first."""
        data = await self.http.get_json(
            self._url("search_all_leagues.php"), params={"c": country_name, "s": "Soccer"}
        )
        leagues = [
            league for league in (data or {}).get("countries") or []
            if league.get("strSport") == "Soccer" and present(league.get("strLeague"))
        ]
        return sorted(leagues, key=lambda league: self._league_priority(league["strLeague"]))

    async def get_league_teams(self, league_name: str) -> list[dict[str, Any]]:
        data = await self.http.get_json(self._url("search_all_teams.php"), params={"l": league_name})
        return [team for team in (data or {}).get("teams") or [] if isinstance(team, dict)]

    async def get_team_details(self, team_id: str) -> Optional[dict[str, Any]]:
        self._stats["lookups"] += 1
        data = await self.http.get_json(self._url("lookupteam.php"), params={"id": team_id})
        teams = (data or {}).get("teams") or []
        return teams[0] if teams else None

    async def _enrich(self, teams: list[dict[str, Any]], country_code: str) -> list[RawRecord]:
        records = []
        for start in range(0, len(teams), self.detail_batch_size):
            batch = teams[start:start + self.detail_batch_size]
            details = await asyncio.gather(
                *(self._details_or_none(team) for team in batch)
            )
            for basic, detail in zip(batch, details):
                record = self.to_record(detail or basic, country_code)
                if record is not None:
                    records.append(record)
        return records

    async def _details_or_none(self, team: dict[str, Any]) -> Optional[dict[str, Any]]:
        if not present(team.get("idTeam")):
            return None
        try:
            return await self.get_team_details(team["idTeam"])
        except Exception as e:
            logger.warning(f"Could not enrich team {team.get('strTeam')}: {e}")
            return None

    def to_record(self, team: dict[str, Any], country_code: str) -> Optional[RawRecord]:
        """Convert a TheSportsDB team object; teams without a real stadium are skipped."""
        stadium = team.get("strStadium")
        if not present(stadium) or "unknown" in stadium.lower():
            return None

        populated = sum(1 for key in CONFIDENCE_FIELDS if present(team.get(key)))
        return RawRecord(
            name=team.get("strTeam") or "",
            city=self.extract_city(team.get("strLocation") or team.get("strStadiumLocation"), team.get("strTeam")),
            country=country_code,
            short_name=team.get("strTeamShort") if present(team.get("strTeamShort")) else None,
            founded=team.get("intFormedYear"),
            website=team.get("strWebsite") if present(team.get("strWebsite")) else None,
            league=team.get("strLeague") if present(team.get("strLeague")) else None,
            stadium_name=stadium,
            stadium_capacity=team.get("intStadiumCapacity"),
            colors=[team[key] for key in ("strColour1", "strColour2", "strColour3") if present(team.get(key))],
            achievements=self.extract_achievements(team.get("strDescriptionEN")),
            source=DataSource.THESPORTSDB,
            external_id=str(team["idTeam"]) if present(team.get("idTeam")) else None,
            confidence=completeness_confidence(populated, len(CONFIDENCE_FIELDS)),
        )

    @staticmethod
    def extract_city(location: Optional[str], team_name: Optional[str]) -> str:
        """City from the stadium location ('Buenos Aires, Argentina'), else the first word of a multi-word name."""
        if present(location):
            return location.split(",")[0].strip()
        if team_name:
            words = team_name.split()
            if len(words) > 1:
                return words[0]
        return ""

    @staticmethod
    def extract_achievements(description: Optional[str]) -> list[str]:
        if not present(description):
            return []
        lowered = description.lower()
        achievements = []
        if "champion" in lowered:
            achievements.append("League Champions")
        if "cup" in lowered:
            achievements.append("Cup Winners")
        return achievements

    @staticmethod
    def _league_priority(name: str) -> int:
        if any(word in name for word in PRIMARY_LEAGUE_WORDS):
            return 1
        if any(word in name for word in SECONDARY_LEAGUE_WORDS):
            return 2
        return 3

    async def health_check(self) -> dict[str, Any]:
        """List Spanish soccer leagues."""
        try:
            leagues = await self.get_country_leagues("Spain")
            return {"status": "healthy", "available": True, "leagues": len(leagues)}
        except Exception as e:
            return {"status": "error", "available": False, "error": str(e)}

    def get_statistics(self) -> dict[str, Any]:
        return {**self._stats, "http": self.http.get_statistics()}

    def __repr__(self) -> str:
        return f"TheSportsDBClient(base_url={self.config.base_url!r})"
