"""
Pytest configuration and shared fixtures for Team Atlas tests.

Provides:
    - Controllable clock
    - Temporary two-tier cache
    - Raw record factories
    - Fake source adapters and a manager wired to them
"""

from typing import Any, Callable, Optional

import pytest

from team_atlas.normalizer.schemas import DataSource, RawRecord
from team_atlas.orchestrator.cache_manager import CacheManager
from team_atlas.orchestrator.data_manager import TeamDataManager


# ========== Clock ==========


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ========== Cache Fixtures ==========


@pytest.fixture
def cache_db(tmp_path):
    """Path of a throwaway SQLite cache database."""
    return tmp_path / "team_cache.db"


@pytest.fixture
def cache(cache_db, clock):
    """
    CacheManager with short TTLs and a tiny fast tier.

    Fast tier: 3 entries, 100s TTL. Durable tier: 1000s TTL, no quota.
    """
    manager = CacheManager(
        db_path=cache_db,
        memory_ttl=100,
        persistent_ttl=1000,
        max_memory_entries=3,
        persistent_max_bytes=0,
        clock=clock,
    )
    yield manager
    manager.close()


# ========== Raw Record Factories ==========


@pytest.fixture
def make_raw() -> Callable[..., RawRecord]:
    """
    Factory for RawRecords; defaults describe River Plate from TheSportsDB.

    Example:
        >>> raw = make_raw(source=DataSource.WIKIDATA, confidence=0.8)
    """
    def _make(**overrides: Any) -> RawRecord:
        data = {
            "name": "River Plate",
            "city": "Buenos Aires",
            "country": "AR",
            "source": DataSource.THESPORTSDB,
            "confidence": 0.6,
        }
        data.update(overrides)
        return RawRecord(**data)

    return _make


@pytest.fixture
def argentine_records(make_raw) -> list[RawRecord]:
    """Six distinct Argentine clubs from TheSportsDB."""
    clubs = [
        ("River Plate", "Buenos Aires"),
        ("Boca Juniors", "Buenos Aires"),
        ("Racing Club", "Avellaneda"),
        ("Independiente", "Avellaneda"),
        ("San Lorenzo", "Buenos Aires"),
        ("Estudiantes", "La Plata"),
    ]
    return [make_raw(name=name, city=city, stadium_name=f"{name} Stadium") for name, city in clubs]


# ========== Fake Adapters ==========


class FakeAdapter:
    """In-memory SourceAdapter returning canned records or raising."""

    def __init__(
        self,
        source: DataSource,
        records: Optional[list[RawRecord]] = None,
        error: Optional[Exception] = None,
    ):
        self.source = source
        self.records = list(records or [])
        self.error = error
        self.calls: list[str] = []
        self.closed = False

    async def fetch_country_teams(self, country_key: str) -> list[RawRecord]:
        self.calls.append(country_key)
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "available": True}

    async def close(self) -> None:
        self.closed = True

    def get_statistics(self) -> dict[str, Any]:
        return {"fetches": len(self.calls)}


@pytest.fixture
def thesportsdb() -> FakeAdapter:
    return FakeAdapter(DataSource.THESPORTSDB)


@pytest.fixture
def wikidata() -> FakeAdapter:
    return FakeAdapter(DataSource.WIKIDATA)


@pytest.fixture
def openfootball() -> FakeAdapter:
    return FakeAdapter(DataSource.OPENFOOTBALL)


@pytest.fixture
def manager(cache, wikidata, openfootball, thesportsdb) -> TeamDataManager:
    """TeamDataManager wired to the temporary cache and fake adapters."""
    return TeamDataManager(
        cache=cache,
        wikidata=wikidata,
        openfootball=openfootball,
        thesportsdb=thesportsdb,
        min_teams_before_supplement=5,
        max_teams=30,
        fallback_confidence=0.3,
    )
