"""
Unit tests for source adapters and their shared transport.

The HTTP layer is replaced with AsyncMock on each adapter's ``http``
instance; no test touches the network.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from team_atlas.clients import (
    OpenFootballClient,
    RateLimiter,
    ServerError,
    SourceAdapter,
    SourceClientConfig,
    SourceHTTPClient,
    TheSportsDBClient,
    WikidataClient,
    completeness_confidence,
)
from team_atlas.clients.base import present
from team_atlas.normalizer.schemas import DataSource
from team_atlas.utils.exceptions import APIError


def _binding(**values):
    """SPARQL result row from plain values."""
    return {key: {"type": "literal", "value": value} for key, value in values.items()}


@pytest.fixture
def wikidata_client():
    client = WikidataClient(config=SourceClientConfig(base_url="https://query.example/sparql"))
    client.http.post_json = AsyncMock()
    return client


@pytest.fixture
def openfootball_client():
    client = OpenFootballClient(
        config=SourceClientConfig(base_url="https://raw.example/football.json/"),
        league_files={"ES": ["spain/2023-24/1-laliga.json", "spain/2023-24/2-laliga2.json"]},
    )
    client.http.get_json = AsyncMock()
    return client


@pytest.fixture
def sportsdb_client():
    client = TheSportsDBClient(config=SourceClientConfig(base_url="https://sportsdb.example/api/v1/json/3"))
    client.http.get_json = AsyncMock()
    return client


class TestConfidence:
    """Test completeness-based confidence helpers."""

    @pytest.mark.parametrize(
        "populated,total,expected",
        [(0, 7, 0.5), (3, 6, 0.75), (7, 7, 1.0), (9, 7, 1.0), (2, 0, 0.5)],
    )
    def test_completeness_confidence(self, populated, total, expected):
        assert completeness_confidence(populated, total) == expected

    def test_monotonic(self):
        scores = [completeness_confidence(n, 7) for n in range(8)]

        assert scores == sorted(scores)
        assert all(0.5 <= score <= 1.0 for score in scores)

    @pytest.mark.parametrize(
        "value,expected",
        [(None, False), ("", False), ("null", False), ("0", False), (0, False), ([], False),
         ("River Plate", True), (1901, True), (["x"], True)],
    )
    def test_present(self, value, expected):
        assert present(value) is expected

    def test_adapters_satisfy_protocol(self, wikidata_client, openfootball_client, sportsdb_client):
        for client in (wikidata_client, openfootball_client, sportsdb_client):
            assert isinstance(client, SourceAdapter)


class TestRateLimiter:
    """Test the minimum-interval gate."""

    @pytest.fixture
    def sleeps(self, clock):
        recorded = []

        async def fake_sleep(seconds):
            recorded.append(seconds)
            clock.advance(seconds)

        return recorded, fake_sleep

    @pytest.mark.asyncio
    async def test_enforces_interval(self, clock, sleeps):
        """Test a request inside the interval suspends for the remainder."""
        recorded, fake_sleep = sleeps
        limiter = RateLimiter(1.0, clock=clock, sleep=fake_sleep)

        assert await limiter.wait() == 0.0
        clock.advance(0.25)
        assert await limiter.wait() == pytest.approx(0.75)
        clock.advance(2)
        assert await limiter.wait() == 0.0

        assert recorded == [pytest.approx(0.75)]
        assert limiter.get_statistics()["requests"] == 3

    @pytest.mark.asyncio
    async def test_concurrent_waiters_serialized(self, clock, sleeps):
        """Test concurrent callers are released one interval apart."""
        recorded, fake_sleep = sleeps
        limiter = RateLimiter(0.5, clock=clock, sleep=fake_sleep)

        await asyncio.gather(*(limiter.wait() for _ in range(3)))

        assert recorded == [pytest.approx(0.5), pytest.approx(0.5)]

    @pytest.mark.asyncio
    async def test_backoff(self, clock, sleeps):
        recorded, fake_sleep = sleeps
        limiter = RateLimiter(0.1, clock=clock, sleep=fake_sleep)

        limiter.backoff(5)

        assert await limiter.wait() == pytest.approx(5)

    def test_negative_interval_clamped(self):
        assert RateLimiter(-1).min_interval == 0.0


class TestSourceHTTPClient:
    """Test retry behavior of the shared transport."""

    @pytest.fixture
    def http(self):
        return SourceHTTPClient("test", SourceClientConfig(base_url="https://api.example", max_retries=2, base_delay=0))

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, http):
        http._make_request = AsyncMock(side_effect=[ServerError("Server error: 503"), {"ok": True}])

        assert await http.get_json("https://api.example/teams") == {"ok": True}
        assert http.get_statistics()["retries"] == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, http):
        http._make_request = AsyncMock(side_effect=ServerError("Server error: 500"))

        with pytest.raises(ServerError):
            await http.get_json("https://api.example/teams")
        assert http._make_request.await_count == 2
        assert http.get_statistics()["errors"] == 1

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self, http):
        http._make_request = AsyncMock(side_effect=APIError("Request failed: 404", status_code=404))

        with pytest.raises(APIError):
            await http.get_json("https://api.example/teams")
        assert http._make_request.await_count == 1

    def test_thesportsdb_config_includes_key(self):
        config = SourceClientConfig.thesportsdb()

        assert config.base_url.endswith("/3")


class TestWikidataClient:
    """Test the SPARQL adapter."""

    @pytest.mark.asyncio
    async def test_fetch_and_dedupe(self, wikidata_client):
        """Test the richest row per club wins and unlabelled entities are skipped."""
        team = "http://www.wikidata.org/entity/Q15799"
        wikidata_client.http.post_json.return_value = {
            "results": {
                "bindings": [
                    _binding(team=team, teamLabel="River Plate", cityLabel="Buenos Aires"),
                    _binding(
                        team=team,
                        teamLabel="River Plate",
                        cityLabel="Buenos Aires",
                        founded="1901-05-25T00:00:00Z",
                        stadiumLabel="Estadio Monumental",
                        capacity="84567",
                        coordinate="Point(-58.4497 -34.5453)",
                        leagueLabel="Liga Profesional",
                    ),
                    _binding(team="http://www.wikidata.org/entity/Q999", teamLabel="Q999"),
                    _binding(
                        team="http://www.wikidata.org/entity/Q170703", teamLabel="Boca Juniors", cityLabel="Q1486"
                    ),
                    _binding(cityLabel="Rosario"),
                ]
            }
        }

        records = await wikidata_client.fetch_country_teams("ar")

        assert [record.name for record in records] == ["River Plate", "Boca Juniors"]
        river = records[0]
        assert river.country == "AR"
        assert river.source == DataSource.WIKIDATA
        assert river.external_id == "Q15799"
        assert river.stadium_name == "Estadio Monumental"
        assert river.confidence == completeness_confidence(5, 7)
        assert records[1].city == ""

        call = wikidata_client.http.post_json.call_args
        assert call.args[0] == "https://query.example/sparql"
        assert "wd:Q414" in call.kwargs["data"]

    @pytest.mark.asyncio
    async def test_unknown_country_skipped(self, wikidata_client):
        assert await wikidata_client.fetch_country_teams("XZ") == []
        wikidata_client.http.post_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_error_yields_empty(self, wikidata_client):
        wikidata_client.http.post_json.side_effect = APIError("HTTP client error: timeout")

        assert await wikidata_client.fetch_country_teams("AR") == []
        assert wikidata_client.get_statistics()["failures"] == 1

    @pytest.mark.asyncio
    async def test_malformed_response_yields_empty(self, wikidata_client):
        wikidata_client.http.post_json.return_value = {"head": {}}

        assert await wikidata_client.fetch_country_teams("AR") == []

    def test_build_query_rejects_bad_id(self, wikidata_client):
        with pytest.raises(ValueError):
            wikidata_client.build_query("414; DROP")

    @pytest.mark.asyncio
    async def test_health_check_error(self, wikidata_client):
        wikidata_client.http.post_json.side_effect = APIError("down")

        result = await wikidata_client.health_check()

        assert result["status"] == "error"
        assert result["available"] is False


class TestOpenFootballClient:
    """Test the static-file adapter."""

    @pytest.mark.asyncio
    async def test_clubs_file_and_failing_file(self, openfootball_client):
        """Test a failing league file is skipped while the others still count."""
        openfootball_client.http.get_json.side_effect = [
            {
                "name": "La Liga",
                "clubs": [
                    {"name": "Sevilla FC", "code": "SEV", "city": "Sevilla"},
                    {"name": "Real Betis"},
                    {"name": "Sevilla FC"},
                ],
            },
            APIError("Request failed: 404", status_code=404),
        ]

        records = await openfootball_client.fetch_country_teams("es")

        assert [record.name for record in records] == ["Sevilla FC", "Real Betis"]
        assert records[0].short_name == "SEV"
        assert records[0].league == "La Liga"
        assert records[0].confidence == completeness_confidence(2, 6)
        assert records[1].city == "Betis"
        assert openfootball_client.get_statistics()["failures"] == 1

        urls = [call.args[0] for call in openfootball_client.http.get_json.call_args_list]
        assert urls[0] == "https://raw.example/football.json/spain/2023-24/1-laliga.json"

    def test_rounds_shape(self, openfootball_client):
        data = {
            "rounds": [
                {
                    "matches": [
                        {"team1": "Athletic Club", "team2": "Real Madrid"},
                        {"team1": {"name": "Girona FC", "code": "GIR"}, "team2": "Athletic Club"},
                    ]
                }
            ]
        }

        records = openfootball_client.parse_league(data, "ES", "spain/2023-24/1-laliga.json")

        assert [record.name for record in records] == ["Athletic Club", "Real Madrid", "Girona FC"]
        assert records[1].city == "Madrid"

    def test_unknown_shape(self, openfootball_client):
        assert openfootball_client.parse_league({"foo": []}, "ES", "x.json") == []
        assert openfootball_client.parse_league(["not", "a", "dict"], "ES", "x.json") == []

    @pytest.mark.asyncio
    async def test_country_without_files(self, openfootball_client):
        assert await openfootball_client.fetch_country_teams("FJ") == []
        openfootball_client.http.get_json.assert_not_awaited()

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("spain/2023-24/1-laliga.json", "La Liga"),
            ("germany/2023-24/2-bundesliga2.json", "2. Bundesliga"),
            ("x/2024/1-super-cup.json", "Super Cup"),
        ],
    )
    def test_league_name(self, path, expected):
        assert OpenFootballClient.league_name(path) == expected

    @pytest.mark.parametrize(
        "name,expected", [("Sevilla FC", "Sevilla"), ("Real Madrid", "Madrid"), ("FC United", "")]
    )
    def test_city_from_name(self, name, expected):
        assert OpenFootballClient.city_from_name(name) == expected


class TestTheSportsDBClient:
    """Test the REST catalog adapter."""

    LEAGUES = {
        "countries": [
            {"strLeague": "Argentinian Copa", "strSport": "Soccer"},
            {"strLeague": "Argentinian Primera Division", "strSport": "Soccer"},
            {"strLeague": "Liga Nacional de Basquet", "strSport": "Basketball"},
        ]
    }

    TEAMS = {
        "teams": [
            {"idTeam": "1", "strTeam": "River Plate", "strStadium": "Estadio Monumental"},
            {"idTeam": "2", "strTeam": "Boca Juniors", "strStadium": "La Bombonera"},
            {"idTeam": "3", "strTeam": "Ghost FC", "strStadium": "Unknown Stadium"},
        ]
    }

    RIVER_DETAILS = {
        "idTeam": "1",
        "strTeam": "River Plate",
        "strTeamShort": "RIV",
        "intFormedYear": "1901",
        "strStadium": "Estadio Monumental",
        "intStadiumCapacity": "84567",
        "strLocation": "Buenos Aires, Argentina",
        "strWebsite": "www.cariverplate.com.ar",
        "strColour1": "#FFFFFF",
        "strColour2": "#FF0000",
        "strLeague": "Argentinian Primera Division",
        "strDescriptionEN": "Record league champions and Copa Libertadores cup holders.",
    }

    def _responses(self, url, params=None, headers=None):
        endpoint = url.rsplit("/", 1)[-1]
        if endpoint == "search_all_leagues.php":
            return self.LEAGUES
        if endpoint == "search_all_teams.php":
            return self.TEAMS
        if endpoint == "lookupteam.php":
            if params["id"] == "1":
                return {"teams": [self.RIVER_DETAILS]}
            if params["id"] == "2":
                raise APIError("Server error: 500", status_code=500)
            return {"teams": None}
        raise AssertionError(f"unexpected endpoint {endpoint}")

    @pytest.mark.asyncio
    async def test_fetch_flow(self, sportsdb_client):
        """Test leagues -> teams -> lookup, with fallbacks to the basic team."""
        sportsdb_client.http.get_json.side_effect = self._responses

        records = await sportsdb_client.fetch_country_teams("AR")

        assert [record.name for record in records] == ["River Plate", "Boca Juniors"]
        river, boca = records
        assert river.city == "Buenos Aires"
        assert river.short_name == "RIV"
        assert river.colors == ["#FFFFFF", "#FF0000"]
        assert river.achievements == ["League Champions", "Cup Winners"]
        assert river.confidence == 1.0
        assert river.external_id == "1"
        assert boca.city == "Boca"
        assert boca.confidence == completeness_confidence(1, 7)

        calls = sportsdb_client.http.get_json.call_args_list
        assert calls[0].args[0] == "https://sportsdb.example/api/v1/json/3/search_all_leagues.php"
        assert calls[0].kwargs["params"] == {"c": "Argentina", "s": "Soccer"}
        assert calls[1].kwargs["params"] == {"l": "Argentinian Primera Division"}
        assert sportsdb_client.get_statistics()["lookups"] == 3

    @pytest.mark.asyncio
    async def test_no_leagues(self, sportsdb_client):
        sportsdb_client.http.get_json.return_value = {"countries": None}

        assert await sportsdb_client.fetch_country_teams("AR") == []
        assert sportsdb_client.http.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_error_yields_empty(self, sportsdb_client):
        sportsdb_client.http.get_json.side_effect = APIError("HTTP client error: reset")

        assert await sportsdb_client.fetch_country_teams("AR") == []
        assert sportsdb_client.get_statistics()["failures"] == 1

    @pytest.mark.asyncio
    async def test_health_check(self, sportsdb_client):
        sportsdb_client.http.get_json.return_value = self.LEAGUES

        result = await sportsdb_client.health_check()

        assert result == {"status": "healthy", "available": True, "leagues": 2}

    @pytest.mark.parametrize("code,expected", [("GB", "England"), ("uk", "England"), ("AR", "Argentina")])
    def test_country_name(self, code, expected):
        assert TheSportsDBClient.country_name(code) == expected

    def test_extract_achievements(self):
        assert TheSportsDBClient.extract_achievements(None) == []
        assert TheSportsDBClient.extract_achievements("Won the FA Cup") == ["Cup Winners"]

    def test_to_record_skips_missing_stadium(self, sportsdb_client):
        assert sportsdb_client.to_record({"strTeam": "Nomads", "strStadium": None}, "AR") is None
