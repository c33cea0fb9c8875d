"""
Team Atlas - CLI Entry Point.

Command-line interface for looking up, refreshing and exporting football
team reference data, or running the tiered background refresh.

Usage:
    # Teams for one or more countries (cache-aside)
    python -m team_atlas.main AR BR ES

    # Bypass the cache
    python -m team_atlas.main AR --refresh

    # Source health and statistics
    python -m team_atlas.main --health
    python -m team_atlas.main AR --stats

    # Export the loaded countries
    python -m team_atlas.main AR BR --export csv --output data/exports

    # Run the scheduler until Ctrl+C
    python -m team_atlas.main --serve
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import NoReturn

from team_atlas.config import AppConfig
from team_atlas.normalizer.schemas import CountryDataset
from team_atlas.orchestrator.data_manager import TeamDataManager
from team_atlas.orchestrator.scheduler import UpdateScheduler
from team_atlas.utils.logger import get_scheduler_logger, setup_logger

logger = setup_logger(__name__)


class TeamAtlasCLI:
    """
    Command-line interface for Team Atlas.

    Features:
        - Country lookup with cache-aside loading
        - Forced refresh bypassing the cache
        - Health check of every source
        - JSON / CSV export
        - Long-running tiered refresh with graceful shutdown
    """

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()
        self.args = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create and configure argument parser.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="team-atlas",
            description="Multi-source football team reference data per country.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  team-atlas AR BR ES
  team-atlas GB --refresh
  team-atlas --health
  team-atlas AR BR --export json --output data/exports
  team-atlas --serve

Configuration:
  Set environment variables in .env file:
    - DB_PATH: SQLite cache location (default: data/team_cache.db)
    - AUTO_UPDATE_ENABLED: Tiered refresh jobs (default: true)
    - LOG_LEVEL: Log level (default: INFO)
            """,
        )

        parser.add_argument(
            "countries",
            nargs="*",
            help="Country codes or aliases (e.g., AR GB uk GER)",
            metavar="COUNTRY",
        )

        parser.add_argument(
            "--refresh",
            action="store_true",
            help="Skip the cache and fetch fresh data",
        )

        mode_group = parser.add_mutually_exclusive_group()
        mode_group.add_argument(
            "--health",
            action="store_true",
            help="Probe every data source and exit",
        )
        mode_group.add_argument(
            "--serve",
            action="store_true",
            help="Run the tiered refresh scheduler until interrupted",
        )
        mode_group.add_argument(
            "--export",
            choices=["json", "csv"],
            help="Export the requested countries",
        )

        parser.add_argument(
            "--output",
            type=Path,
            metavar="DIR",
            help="Also write partitioned export files under DIR",
        )
        parser.add_argument(
            "--stats",
            action="store_true",
            help="Print system statistics after the command",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Override default log level",
        )
        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {AppConfig.VERSION}",
        )

        return parser

    def _validate_configuration(self) -> None:
        """
        Validate application configuration.

        Raises:
            SystemExit: If configuration is invalid
        """
        is_valid, errors = AppConfig.validate()

        if not is_valid:
            logger.error("Configuration validation failed:")
            for error in errors:
                logger.error(f"  - {error}")
            sys.exit(1)

        logger.info("Configuration validated successfully")

    @staticmethod
    def _display_dataset(dataset: CountryDataset) -> None:
        print("\n" + "=" * 70)
        print(f"  {dataset.name} ({dataset.country_code}) - tier {dataset.priority_tier.value}")
        print("=" * 70)
        if dataset.is_fallback:
            print("  No source data available, showing fallback team")
        for team in dataset.teams:
            stadium = team.stadium.name if team.stadium else "-"
            sources = ",".join(source.value for source in team.sources)
            print(f"  {team.name:32} {team.city:18} {stadium:28} {team.confidence:.2f}  [{sources}]")
        print(f"\n  {dataset.team_count} teams from {', '.join(s.value for s in dataset.data_sources)}\n")

    @staticmethod
    def _display_stats(stats: dict) -> None:
        cache = stats["cache"]
        print("\n" + "=" * 70)
        print("  SYSTEM STATISTICS")
        print("=" * 70)
        print(f"\n  Cache Hit Rate:      {cache['hit_rate'] * 100:.1f}%")
        print(f"  Memory Entries:      {cache['memory_entries']}/{cache['max_memory_entries']}")
        print(f"  Durable Entries:     {cache['durable_entries']} ({cache['durable_bytes'] / 1024:.1f} KB)")
        print("\n  Requests:")
        for source, count in stats["requests"].items():
            print(f"    {source:18} {count}")
        print(f"\n  Queue Length:        {stats['queue_length']}")
        print("\n" + "=" * 70 + "\n")

    async def _run_lookup(self, manager: TeamDataManager) -> None:
        for code in self.args.countries:
            if self.args.refresh:
                dataset = await manager.load_country(code, use_cache=False)
            else:
                dataset = await manager.get_country_teams(code)
            if not self.args.export:
                self._display_dataset(dataset)

        if self.args.export:
            print(await manager.export_data(self.args.export, output_dir=self.args.output))

    async def _run_health(self, manager: TeamDataManager) -> None:
        report = await manager.health_check()
        print("\n" + "=" * 70)
        print("  SOURCE HEALTH")
        print("=" * 70 + "\n")
        for name in ("thesportsdb", "wikidata", "openfootball"):
            result = report[name]
            detail = result.get("error", "")
            print(f"  {name:14} {result['status']:8} {detail}")
        print()

    async def _run_serve(self, manager: TeamDataManager) -> None:
        scheduler_logger = get_scheduler_logger()
        async with UpdateScheduler(manager) as scheduler:
            if self.args.countries:
                scheduler.force_update(self.args.countries, reason="cli")
            scheduler_logger.info(
                f"Scheduler running with {scheduler.queue_length} queued countries - press Ctrl+C to stop"
            )
            try:
                while scheduler.is_running():
                    await asyncio.sleep(60)
                    scheduler_logger.info(f"Queue length: {scheduler.queue_length}")
            except asyncio.CancelledError:
                scheduler_logger.info("Received interrupt signal - shutting down gracefully")

    async def _run(self) -> None:
        async with TeamDataManager() as manager:
            if self.args.health:
                await self._run_health(manager)
            elif self.args.serve:
                await self._run_serve(manager)
            else:
                await self._run_lookup(manager)

            if self.args.stats:
                self._display_stats(manager.get_stats())

    def run(self) -> NoReturn:
        """
        Main entry point for CLI execution.

        Parses arguments, validates configuration, and executes requested command.
        """
        self.args = self.parser.parse_args()

        if self.args.log_level:
            logging.getLogger().setLevel(getattr(logging, self.args.log_level))

        print(f"\n{AppConfig.APP_NAME} v{AppConfig.VERSION}")
        print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

        self._validate_configuration()

        if not (self.args.countries or self.args.health or self.args.serve):
            self.parser.error("No countries provided. Use --help for usage information.")

        try:
            asyncio.run(self._run())
        except KeyboardInterrupt:
            logger.info("Interrupted")

        sys.exit(0)


def main() -> NoReturn:
    """
    Application entry point.

    Creates and runs CLI instance.
    """
    try:
        cli = TeamAtlasCLI()
        cli.run()
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        print(f"\nFatal Error: {e}\n", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
