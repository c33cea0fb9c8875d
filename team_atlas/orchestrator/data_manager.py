"""
Country team orchestration.

Tier-aware, cache-aside retrieval of football teams per country: the cache
is checked first, then the sources chosen for the country's tier are called,
their records fused, and the resulting dataset written back to the cache.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional

from pydantic import ValidationError

from ..clients.base import SourceAdapter
from ..clients.openfootball import OpenFootballClient
from ..clients.thesportsdb import TheSportsDBClient
from ..clients.wikidata import WikidataClient
from ..config import OrchestratorConfig
from ..normalizer.schemas import CountryDataset, DataSource, PriorityTier, RawRecord, TeamRecord
from ..normalizer.transformer import TeamTransformer
from ..storage.csv_writer import CSVWriter
from ..storage.json_writer import JSONWriter
from ..utils.exceptions import CacheError
from .cache_manager import CacheManager
from .country_registry import get_country, normalize_country_code

if TYPE_CHECKING:
    from .scheduler import UpdateScheduler

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "country:"


def cache_key(country_code: str) -> str:
    return f"{CACHE_KEY_PREFIX}{normalize_country_code(country_code)}"


class TeamDataManager:
    """
    Tier-aware team retrieval across Wikidata, OpenFootball and TheSportsDB.

    Retrieval Strategy:
        - Tier 1/2: TheSportsDB, supplemented by Wikidata when fewer than
          ``min_teams_before_supplement`` teams come back
        - Tier 3: Wikidata and OpenFootball concurrently
        - Nothing found: one explicitly flagged fallback team

    Every dataset, fallback included, is written to the cache under
    ``country:<CODE>`` before it is returned.

    Example:
        >>> manager = TeamDataManager()
        >>> dataset = await manager.get_country_teams("AR")
        >>> print(f"{dataset.name}: {dataset.team_count} teams")
        >>> await manager.close()
    """

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        wikidata: Optional[SourceAdapter] = None,
        openfootball: Optional[SourceAdapter] = None,
        thesportsdb: Optional[SourceAdapter] = None,
        min_teams_before_supplement: Optional[int] = None,
        max_teams: Optional[int] = None,
        fallback_confidence: Optional[float] = None,
    ):
        """
        Initialize the manager with its cache and source adapters.

        Args:
            cache: Two-tier cache (defaults to a CacheManager from config)
            wikidata: Knowledge-graph adapter
            openfootball: Static-file adapter
            thesportsdb: REST catalog adapter
            min_teams_before_supplement: Tier 1/2 supplement threshold
            max_teams: Cap on teams per country
            fallback_confidence: Confidence of synthetic fallback teams
        """
        self.cache = cache or CacheManager()
        self.wikidata = wikidata or WikidataClient()
        self.openfootball = openfootball or OpenFootballClient()
        self.thesportsdb = thesportsdb or TheSportsDBClient()

        self.min_teams_before_supplement = (
            min_teams_before_supplement
            if min_teams_before_supplement is not None
            else OrchestratorConfig.MIN_TEAMS_BEFORE_SUPPLEMENT
        )
        self.max_teams = max_teams or OrchestratorConfig.MAX_TEAMS
        self.fallback_confidence = (
            fallback_confidence if fallback_confidence is not None else OrchestratorConfig.FALLBACK_CONFIDENCE
        )

        self.scheduler: Optional["UpdateScheduler"] = None

        # Countries cached during this session, in first-load order
        self._loaded_codes: dict[str, None] = {}

        self._request_counts = {
            DataSource.WIKIDATA.value: 0,
            DataSource.OPENFOOTBALL.value: 0,
            DataSource.THESPORTSDB.value: 0,
            "cache_hits": 0,
        }

        logger.info("TeamDataManager initialized with Wikidata, OpenFootball and TheSportsDB")

    @property
    def adapters(self) -> list[SourceAdapter]:
        return [self.thesportsdb, self.wikidata, self.openfootball]

    def attach_scheduler(self, scheduler: "UpdateScheduler") -> None:
        """Register the scheduler that ``force_update`` delegates to."""
        self.scheduler = scheduler

    # ========== Retrieval ==========

    async def get_country_teams(self, country_code: str) -> CountryDataset:
        """
        Teams for a country; never raises.

        Args:
            country_code: ISO code or alias ('AR', 'uk', 'GER')

        Returns:
            CountryDataset: Cached or freshly fused dataset; on an unexpected
            internal error, an uncached fallback dataset
        """
        try:
            return await self.load_country(country_code)
        except Exception as e:
            logger.error(
                f"Failed to load teams for {country_code}: {e}",
                exc_info=True,
                extra={"country_code": country_code, "error_type": type(e).__name__},
            )
            return self._fallback_dataset(normalize_country_code(str(country_code or "")) or "XX")

    async def load_country(self, country_code: str, use_cache: bool = True) -> CountryDataset:
        """
        Cache-aside load of one country; the unit of work for refreshes.

        Args:
            country_code: ISO code or alias
            use_cache: False skips the cache read (the result is still cached)

        Returns:
            CountryDataset: Dataset with at least one team

        Raises:
            Exception: Any failure outside the adapters' own error handling
        """
        code = normalize_country_code(country_code)
        if not code:
            raise ValueError("Country code cannot be empty")
        key = cache_key(code)

        if use_cache:
            cached = await self._read_cache(key)
            if cached is not None:
                self._request_counts["cache_hits"] += 1
                logger.debug(f"Cache hit for {code}")
                return cached

        dataset = await self._fetch_country(code)
        await self.cache.set(key, dataset.to_dict())
        self._loaded_codes.setdefault(code, None)

        logger.info(
            f"Loaded {dataset.team_count} teams for {code}",
            extra={
                "country_code": code,
                "tier": dataset.priority_tier.value,
                "sources": [s.value for s in dataset.data_sources],
                "is_fallback": dataset.is_fallback,
            },
        )
        return dataset

    async def _read_cache(self, key: str) -> Optional[CountryDataset]:
        try:
            cached = await self.cache.get(key)
        except CacheError as e:
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

        if cached is None:
            return None

        try:
            return CountryDataset.from_dict(cached)
        except (ValidationError, TypeError) as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            await self.cache.invalidate(key)
            return None

    async def _fetch_country(self, code: str) -> CountryDataset:
        country = get_country(code)

        if country.tier in (PriorityTier.TIER_1, PriorityTier.TIER_2):
            records = await self._fetch_from(self.thesportsdb, code)
            teams = self._merge(records, code)
            if len(teams) < self.min_teams_before_supplement:
                logger.info(
                    f"Only {len(teams)} teams for {code} from TheSportsDB, supplementing with Wikidata"
                )
                records = records + await self._fetch_from(self.wikidata, code)
                teams = self._merge(records, code)
        else:
            adapters = [self.wikidata, self.openfootball]
            results = await asyncio.gather(
                *(self._fetch_from(adapter, code) for adapter in adapters),
                return_exceptions=True,
            )
            records = []
            for adapter, result in zip(adapters, results):
                if isinstance(result, Exception):
                    logger.warning(f"{adapter.source.value} failed for {code}: {result}")
                    continue
                records.extend(result)
            teams = self._merge(records, code)

        if not teams:
            logger.warning(f"No source data for {code}, using fallback team")
            return self._fallback_dataset(code)

        return CountryDataset(
            country_code=code,
            name=country.name,
            teams=teams,
            data_sources=list(dict.fromkeys(s for team in teams for s in team.sources)),
            priority_tier=country.tier,
        )

    async def _fetch_from(self, adapter: SourceAdapter, code: str) -> list[RawRecord]:
        self._request_counts[adapter.source.value] = self._request_counts.get(adapter.source.value, 0) + 1
        return await adapter.fetch_country_teams(code)

    def _merge(self, records: Iterable[RawRecord], code: str) -> list[TeamRecord]:
        return TeamTransformer.merge_team_sources(records, country_code=code, max_teams=self.max_teams)

    def _fallback_dataset(self, code: str) -> CountryDataset:
        country = get_country(code)
        team = TeamTransformer.create_fallback_team(country.code, country.name, self.fallback_confidence)
        return CountryDataset(
            country_code=country.code,
            name=country.name,
            teams=[team],
            data_sources=[DataSource.FALLBACK],
            priority_tier=country.tier,
            is_fallback=True,
        )

    # ========== Refresh ==========

    async def refresh_country(self, country_code: str) -> CountryDataset:
        """
        Fetch a country again, bypassing the cache.

        The previous dataset stays cached until the new one replaces it.
        """
        return await self.load_country(country_code, use_cache=False)

    def force_update(self, country_codes: Iterable[str], reason: str = "manual_force") -> int:
        """
        Queue immediate, cache-bypassing refreshes on the attached scheduler.

        Returns:
            int: Number of countries newly queued (0 without a scheduler)
        """
        if self.scheduler is None:
            logger.warning("force_update called without an attached scheduler")
            return 0
        return self.scheduler.force_update(country_codes, reason)

    async def bulk_refresh(
        self,
        country_codes: list[str],
        batch_size: int = 5,
        batch_delay: float = 5.0,
    ) -> list[Any]:
        """
        Refresh countries in concurrent batches.

        Returns:
            list: One CountryDataset or exception per country, in input order
        """
        logger.info(f"Bulk refresh for {len(country_codes)} countries")
        results: list[Any] = []
        for start in range(0, len(country_codes), batch_size):
            batch = country_codes[start:start + batch_size]
            results.extend(
                await asyncio.gather(*(self.refresh_country(code) for code in batch), return_exceptions=True)
            )
            if start + batch_size < len(country_codes) and batch_delay > 0:
                await asyncio.sleep(batch_delay)

        succeeded = sum(1 for result in results if isinstance(result, CountryDataset))
        logger.info(
            f"Bulk refresh complete: {succeeded}/{len(results)} successful",
            extra={"successful": succeeded, "total": len(results)},
        )
        return results

    async def clear_cache(self) -> int:
        """Remove every cached country dataset."""
        removed = await self.cache.clear(CACHE_KEY_PREFIX)
        self._loaded_codes.clear()
        logger.info(f"All team cache cleared ({removed} entries)")
        return removed

    # ========== Monitoring ==========

    async def health_check(self) -> dict[str, Any]:
        """Probe every adapter concurrently."""
        results = await asyncio.gather(
            *(adapter.health_check() for adapter in self.adapters), return_exceptions=True
        )
        report: dict[str, Any] = {}
        for adapter, result in zip(self.adapters, results):
            if isinstance(result, Exception):
                result = {"status": "error", "available": False, "error": str(result)}
            report[adapter.source.value] = result

        report["cache"] = self.cache.get_statistics()
        report["timestamp"] = datetime.now(timezone.utc).isoformat()
        return report

    def get_stats(self) -> dict[str, Any]:
        """
        System statistics.

        Returns:
            Dictionary with ``cache``, ``requests`` (per-source calls and cache
            hits), ``scheduler`` and ``queue_length``
        """
        scheduler_stats = self.scheduler.get_statistics() if self.scheduler else None
        return {
            "cache": self.cache.get_statistics(),
            "requests": dict(self._request_counts),
            "scheduler": scheduler_stats,
            "queue_length": scheduler_stats["queue_length"] if scheduler_stats else 0,
        }

    # ========== Export ==========

    async def cached_datasets(self) -> list[CountryDataset]:
        """Datasets still cached for the countries loaded this session."""
        datasets = []
        for code in list(self._loaded_codes):
            dataset = await self._read_cache(cache_key(code))
            if dataset is not None:
                datasets.append(dataset)
        return datasets

    async def export_data(self, format: str = "json", output_dir: Optional[Path] = None) -> str:
        """
        Serialize the cached datasets.

        Args:
            format: ``json`` (document with metadata) or ``csv`` (one row per team)
            output_dir: When given, datasets are also written there as
                partitioned JSONL or CSV files

        Returns:
            str: The exported document

        Raises:
            ValueError: If the format is not supported
        """
        format = format.lower()
        if format not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}")

        datasets = await self.cached_datasets()
        if format == "json":
            writer = JSONWriter(output_dir)
            content = writer.dumps(datasets, metadata={"stats": self.get_stats()})
        else:
            writer = CSVWriter(output_dir)
            content = writer.dumps(datasets)

        if output_dir is not None:
            writer.write_batch(datasets)

        logger.info(f"Exported {len(datasets)} datasets as {format}")
        return content

    async def close(self) -> None:
        """Close adapter sessions and the cache."""
        for adapter in self.adapters:
            await adapter.close()
        self.cache.close()
        logger.info("TeamDataManager closed")

    async def __aenter__(self) -> "TeamDataManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"TeamDataManager(cached_countries={len(self._loaded_codes)}, scheduler={self.scheduler is not None})"
