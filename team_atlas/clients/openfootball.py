"""
OpenFootball static-file adapter.

Reads league JSON files from the openfootball/football.json repository on
raw.githubusercontent.com. Three file shapes are understood: ``clubs``
lists, ``teams`` lists and ``rounds[].matches[]`` fixtures.
"""

import logging
import re
from typing import Any, Optional

from ..normalizer.schemas import DataSource, RawRecord
from ..orchestrator.country_registry import normalize_country_code
from .base import completeness_confidence, present
from .http import SourceClientConfig, SourceHTTPClient


logger = logging.getLogger(__name__)

# League files per country, relative to the repository root
LEAGUE_FILES: dict[str, list[str]] = {
    # Europe
    "GB": ["england/2023-24/1-premierleague.json", "england/2023-24/2-championship.json"],
    "ES": ["spain/2023-24/1-laliga.json", "spain/2023-24/2-laliga2.json"],
    "DE": ["germany/2023-24/1-bundesliga.json", "germany/2023-24/2-bundesliga2.json"],
    "IT": ["italy/2023-24/1-seriea.json", "italy/2023-24/2-serieb.json"],
    "FR": ["france/2023-24/1-ligue1.json", "france/2023-24/2-ligue2.json"],
    "NL": ["netherlands/2023-24/1-eredivisie.json"],
    "PT": ["portugal/2023-24/1-primeiraliga.json"],
    "BE": ["belgium/2023-24/1-proleague.json"],
    "CH": ["switzerland/2023-24/1-superleague.json"],
    "AT": ["austria/2023-24/1-bundesliga.json"],
    # South America
    "BR": ["brazil/2024/1-seriea.json"],
    "AR": ["argentina/2024/1-primeradivision.json"],
    "CO": ["colombia/2024/1-primeradivision.json"],
    "CL": ["chile/2024/1-primeradivision.json"],
    "UY": ["uruguay/2024/1-primeradivision.json"],
    "PE": ["peru/2024/1-primeradivision.json"],
    "EC": ["ecuador/2024/1-primeradivision.json"],
    "BO": ["bolivia/2024/1-primeradivision.json"],
    "PY": ["paraguay/2024/1-primeradivision.json"],
    "VE": ["venezuela/2024/1-primeradivision.json"],
    # North and Central America
    "US": ["usa/2024/1-mls.json"],
    "MX": ["mexico/2023-24/1-ligamx.json"],
    "CA": ["canada/2024/1-cpl.json"],
    "CR": ["costarica/2024/1-primeradivision.json"],
    "SV": ["elsalvador/2024/1-primeradivision.json"],
    "NI": ["nicaragua/2024/1-primeradivision.json"],
    "JM": ["jamaica/2024/1-primeradivision.json"],
    # Africa
    "NG": ["nigeria/2024/1-proleague.json"],
    "GH": ["ghana/2024/1-proleague.json"],
    "ZA": ["southafrica/2024/1-proleague.json"],
    "EG": ["egypt/2024/1-proleague.json"],
    "MA": ["morocco/2024/1-proleague.json"],
    "TN": ["tunisia/2024/1-proleague.json"],
    "DZ": ["algeria/2024/1-proleague.json"],
    "CM": ["cameroon/2024/1-elite.json"],
    "CI": ["ivorycoast/2024/1-ligue1.json"],
    "SN": ["senegal/2024/1-ligue1.json"],
    # Asia and Oceania
    "JP": ["japan/2024/1-jleague.json"],
    "KR": ["southkorea/2024/1-kleague.json"],
    "CN": ["china/2024/1-superleague.json"],
    "AU": ["australia/2023-24/1-aleague.json"],
    "IN": ["india/2023-24/1-isl.json"],
    "TH": ["thailand/2024/1-t1league.json"],
    "MY": ["malaysia/2024/1-superleague.json"],
    "ID": ["indonesia/2024/1-liga1.json"],
    "VN": ["vietnam/2024/1-vleague.json"],
    "PH": ["philippines/2024/1-pfl.json"],
    "SA": ["saudiarabia/2023-24/1-proleague.json"],
    "AE": ["uae/2023-24/1-uaeleague.json"],
    "QA": ["qatar/2023-24/1-starsleague.json"],
    "IR": ["iran/2023-24/1-proleague.json"],
    "IQ": ["iraq/2023-24/1-proleague.json"],
}

LEAGUE_NAMES = {
    "premierleague": "Premier League",
    "championship": "Championship",
    "laliga": "La Liga",
    "laliga2": "La Liga 2",
    "bundesliga": "Bundesliga",
    "bundesliga2": "2. Bundesliga",
    "seriea": "Serie A",
    "serieb": "Serie B",
    "ligue1": "Ligue 1",
    "ligue2": "Ligue 2",
    "eredivisie": "Eredivisie",
    "primeiraliga": "Primeira Liga",
    "primeradivision": "Primera División",
    "proleague": "Pro League",
    "superleague": "Super League",
    "mls": "Major League Soccer",
    "ligamx": "Liga MX",
    "cpl": "Canadian Premier League",
    "jleague": "J1 League",
    "kleague": "K League 1",
    "aleague": "A-League",
    "isl": "Indian Super League",
}

CITY_STOP_TOKENS = re.compile(
    r"\b(FC|CF|Club|Football|Futbol|United|City|Town|Athletic|Sports|SC|AC|Real|CD|SD|UD|AFC)\b",
    re.IGNORECASE,
)

# Optional fields counted towards record confidence
CONFIDENCE_FIELDS = ("code", "city", "founded", "ground", "capacity", "www")


class OpenFootballClient:
    """Static-file adapter for the openfootball JSON repository.

    Example:
        ```python
        async with OpenFootballClient() as openfootball:
            records = await openfootball.fetch_country_teams("ES")
        ```
    """

    source = DataSource.OPENFOOTBALL

    def __init__(
        self,
        config: Optional[SourceClientConfig] = None,
        http: Optional[SourceHTTPClient] = None,
        league_files: Optional[dict[str, list[str]]] = None,
    ):
        self.config = config or SourceClientConfig.openfootball()
        self.http = http or SourceHTTPClient("openfootball", self.config)
        self.league_files = league_files if league_files is not None else LEAGUE_FILES
        self._stats = {"fetches": 0, "files": 0, "records": 0, "failures": 0}

    async def __aenter__(self) -> "OpenFootballClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.close()

    def league_url(self, league_file: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{league_file.lstrip('/')}"

    async def fetch_country_teams(self, country_key: str) -> list[RawRecord]:
        """
        Teams from every configured league file of a country.

        A failing league file is skipped; the remaining files still count.

        Returns:
            list[RawRecord]: Teams found, or [] when none could be read
        """
        code = normalize_country_code(country_key)
        files = self.league_files.get(code)
        if not files:
            logger.info(f"No OpenFootball league files for {code}")
            return []

        self._stats["fetches"] += 1
        records: list[RawRecord] = []
        for league_file in files:
            try:
                data = await self.http.get_json(self.league_url(league_file))
                records.extend(self.parse_league(data, code, league_file))
                self._stats["files"] += 1
            except Exception as e:
                self._stats["failures"] += 1
                logger.warning(
                    f"OpenFootball file {league_file} failed for {code}: {e}",
                    extra={"country_code": code, "error_type": type(e).__name__},
                )

        self._stats["records"] += len(records)
        logger.info(f"OpenFootball: {len(records)} teams found for {code}")
        return records

    def parse_league(self, data: Any, country_code: str, league_file: str) -> list[RawRecord]:
        """Convert one league file (clubs, teams or rounds shape) to RawRecords."""
        if not isinstance(data, dict):
            return []

        league = self.league_name(league_file)
        if isinstance(data.get("clubs"), list):
            entries = [entry for entry in data["clubs"] if isinstance(entry, dict)]
        elif isinstance(data.get("teams"), list):
            entries = [entry for entry in data["teams"] if isinstance(entry, dict)]
        elif isinstance(data.get("rounds"), list) or isinstance(data.get("matches"), list):
            entries = [{"name": name} for name in self._fixture_team_names(data)]
        else:
            return []

        records = []
        seen = set()
        for entry in entries:
            name = entry.get("name") or entry.get("title") or entry.get("key")
            if not present(name) or name in seen:
                continue
            seen.add(name)
            records.append(self._to_record(entry, name, country_code, league))
        return records

    def _to_record(self, entry: dict[str, Any], name: str, country_code: str, league: str) -> RawRecord:
        city = entry.get("city")
        populated = sum(1 for key in CONFIDENCE_FIELDS if present(entry.get(key)))
        return RawRecord(
            name=name,
            city=city if present(city) else self.city_from_name(name),
            country=country_code,
            short_name=entry.get("code") if present(entry.get("code")) else None,
            founded=entry.get("founded"),
            website=entry.get("www") or entry.get("website"),
            league=league,
            stadium_name=entry.get("ground") if present(entry.get("ground")) else None,
            stadium_capacity=entry.get("capacity"),
            stadium_coordinates=entry.get("coordinates"),
            source=DataSource.OPENFOOTBALL,
            external_id=entry.get("key"),
            confidence=completeness_confidence(populated, len(CONFIDENCE_FIELDS)),
        )

    @staticmethod
    def _fixture_team_names(data: dict[str, Any]) -> list[str]:
        """Distinct team names in fixture order."""
        matches = list(data.get("matches") or [])
        for round_ in data.get("rounds") or []:
            if isinstance(round_, dict):
                matches.extend(round_.get("matches") or [])

        names: dict[str, None] = {}
        for match in matches:
            if not isinstance(match, dict):
                continue
            for side in ("team1", "team2"):
                team = match.get(side)
                # Older files nest the name: {"team1": {"name": ..., "code": ...}}
                if isinstance(team, dict):
                    team = team.get("name")
                if isinstance(team, str) and team.strip():
                    names.setdefault(team.strip(), None)
        return list(names)

    @staticmethod
    def city_from_name(team_name: str) -> str:
        """First significant word of a club name ('Sevilla FC' -> 'Sevilla')."""
        words = CITY_STOP_TOKENS.sub("", team_name).split()
        return words[0] if words else ""

    @staticmethod
    def league_name(league_file: str) -> str:
        """Human league name from a file path ('spain/2023-24/1-laliga.json' -> 'La Liga')."""
        stem = league_file.rsplit("/", 1)[-1]
        stem = re.sub(r"\.json$", "", stem)
        stem = re.sub(r"^\d+-", "", stem)
        return LEAGUE_NAMES.get(stem, stem.replace("-", " ").title())

    async def health_check(self) -> dict[str, Any]:
        """Fetch the Premier League file."""
        try:
            data = await self.http.get_json(self.league_url(LEAGUE_FILES["GB"][0]))
            return {"status": "healthy", "available": True, "shape": sorted(data)[:3] if isinstance(data, dict) else None}
        except Exception as e:
            return {"status": "error", "available": False, "error": str(e)}

    def get_statistics(self) -> dict[str, Any]:
        return {**self._stats, "http": self.http.get_statistics()}

    def __repr__(self) -> str:
        return f"OpenFootballClient(countries={len(self.league_files)})"
