"""
Configuration management for Team Atlas.

Environment-based configuration using python-dotenv.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class CacheConfig:
    """Two-tier cache and database configuration."""

    # Fast (in-memory) tier TTL in seconds (2 hours default)
    MEMORY_TTL_SECONDS: int = int(os.getenv("CACHE_MEMORY_TTL_SECONDS", "7200"))

    # Durable (SQLite) tier TTL in seconds (24 hours default)
    PERSISTENT_TTL_SECONDS: int = int(os.getenv("CACHE_PERSISTENT_TTL_SECONDS", "86400"))

    # Maximum number of entries held in the fast tier
    MAX_MEMORY_ENTRIES: int = int(os.getenv("CACHE_MAX_MEMORY_ENTRIES", "50"))

    # Durable tier byte quota (5 MiB default, 0 disables the quota)
    PERSISTENT_MAX_BYTES: int = int(os.getenv("CACHE_PERSISTENT_MAX_BYTES", str(5 * 1024 * 1024)))

    # Expired-entry sweep interval in seconds (hourly default)
    SWEEP_INTERVAL_SECONDS: int = int(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "3600"))

    # Base directory for data storage
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", "data"))

    # SQLite database path
    DB_PATH: Path = Path(os.getenv("DB_PATH", str(DATA_DIR / "team_cache.db")))

    # Export directory for dataset dumps
    EXPORT_DIR: Path = Path(os.getenv("EXPORT_DIR", str(DATA_DIR / "exports")))

    @classmethod
    def ensure_directories(cls) -> None:
        """Create necessary directories if they don't exist."""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)


class SourceConfig:
    """External source endpoints and per-adapter rate limits."""

    WIKIDATA_ENDPOINT: str = os.getenv("WIKIDATA_ENDPOINT", "https://query.wikidata.org/sparql")
    OPENFOOTBALL_BASE_URL: str = os.getenv(
        "OPENFOOTBALL_BASE_URL",
        "https://raw.githubusercontent.com/openfootball/football.json/master/",
    )
    THESPORTSDB_BASE_URL: str = os.getenv(
        "THESPORTSDB_BASE_URL", "https://www.thesportsdb.com/api/v1/json"
    )

    # Public TheSportsDB key
    THESPORTSDB_API_KEY: str = os.getenv("THESPORTSDB_API_KEY", "3")

    USER_AGENT: str = os.getenv("USER_AGENT", "TeamAtlas/0.1 (football reference data)")

    # API request timeout in seconds
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))

    # Minimum seconds between two requests from one adapter instance
    WIKIDATA_MIN_INTERVAL: float = float(os.getenv("WIKIDATA_MIN_INTERVAL", "1.0"))
    OPENFOOTBALL_MIN_INTERVAL: float = float(os.getenv("OPENFOOTBALL_MIN_INTERVAL", "0.5"))
    THESPORTSDB_MIN_INTERVAL: float = float(os.getenv("THESPORTSDB_MIN_INTERVAL", "0.75"))


class SchedulerConfig:
    """Refresh scheduling and work-queue configuration."""

    # Tier refresh intervals in seconds (daily / weekly / monthly)
    TIER_1_INTERVAL_SECONDS: int = int(os.getenv("TIER_1_INTERVAL_SECONDS", str(24 * 3600)))
    TIER_2_INTERVAL_SECONDS: int = int(os.getenv("TIER_2_INTERVAL_SECONDS", str(7 * 24 * 3600)))
    TIER_3_INTERVAL_SECONDS: int = int(os.getenv("TIER_3_INTERVAL_SECONDS", str(30 * 24 * 3600)))

    # Enable automatic updates
    AUTO_UPDATE_ENABLED: bool = os.getenv("AUTO_UPDATE_ENABLED", "true").lower() == "true"

    # Countries processed per batch
    BATCH_SIZE: int = int(os.getenv("UPDATE_BATCH_SIZE", "5"))

    # Delay between batches in seconds
    BATCH_DELAY_SECONDS: float = float(os.getenv("UPDATE_BATCH_DELAY_SECONDS", "10"))

    # Maximum concurrent refreshes inside a batch
    MAX_CONCURRENCY: int = int(os.getenv("MAX_CONCURRENCY", "5"))

    # Maximum retry attempts for failed countries
    MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))

    # Delay before a failed country is re-queued, in seconds
    RETRY_DELAY_SECONDS: float = float(os.getenv("RETRY_DELAY_SECONDS", "300"))

    # How long the worker waits on an empty queue before re-checking
    IDLE_POLL_SECONDS: float = float(os.getenv("IDLE_POLL_SECONDS", "5"))


class OrchestratorConfig:
    """Country orchestration thresholds."""

    # Supplement tier 1/2 results below this many teams
    MIN_TEAMS_BEFORE_SUPPLEMENT: int = int(os.getenv("MIN_TEAMS_BEFORE_SUPPLEMENT", "5"))

    # Maximum teams kept per country
    MAX_TEAMS: int = int(os.getenv("MAX_TEAMS", "30"))

    # Confidence assigned to synthetic fallback teams
    FALLBACK_CONFIDENCE: float = float(os.getenv("FALLBACK_CONFIDENCE", "0.3"))


class LoggingConfig:
    """Logging configuration."""

    # Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Log directory
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "logs"))

    # Log file name
    LOG_FILE: str = os.getenv("LOG_FILE", "team_atlas.log")

    # Log format
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Date format
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    # Maximum log file size in bytes (10MB default)
    MAX_LOG_SIZE: int = int(os.getenv("MAX_LOG_SIZE", str(10 * 1024 * 1024)))

    # Number of backup log files to keep
    BACKUP_COUNT: int = int(os.getenv("BACKUP_COUNT", "5"))

    @classmethod
    def ensure_log_directory(cls) -> None:
        """Create log directory if it doesn't exist."""
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)

    @classmethod
    def get_log_file_path(cls) -> Path:
        """Get full path to log file."""
        return cls.LOG_DIR / cls.LOG_FILE


class AppConfig:
    """Main application configuration aggregating all config classes."""

    cache = CacheConfig
    sources = SourceConfig
    scheduler = SchedulerConfig
    orchestrator = OrchestratorConfig
    logging = LoggingConfig

    # Application metadata
    APP_NAME: str = "Team Atlas"
    VERSION: str = "0.1.0"

    @classmethod
    def initialize(cls) -> None:
        """Initialize all configuration settings and create necessary directories."""
        CacheConfig.ensure_directories()
        LoggingConfig.ensure_log_directory()

    @classmethod
    def validate(cls) -> tuple[bool, list[str]]:
        """
        Validate configuration settings.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if CacheConfig.MAX_MEMORY_ENTRIES < 1:
            errors.append("CACHE_MAX_MEMORY_ENTRIES must be at least 1")

        if CacheConfig.MEMORY_TTL_SECONDS > CacheConfig.PERSISTENT_TTL_SECONDS:
            errors.append("CACHE_MEMORY_TTL_SECONDS should not exceed CACHE_PERSISTENT_TTL_SECONDS")

        for name in ("WIKIDATA_MIN_INTERVAL", "OPENFOOTBALL_MIN_INTERVAL", "THESPORTSDB_MIN_INTERVAL"):
            if getattr(SourceConfig, name) < 0:
                errors.append(f"{name} must not be negative")

        if SchedulerConfig.BATCH_SIZE < 1:
            errors.append("UPDATE_BATCH_SIZE must be at least 1")

        if SchedulerConfig.MAX_RETRIES < 0:
            errors.append("MAX_RETRIES must not be negative")

        if not 0 < OrchestratorConfig.FALLBACK_CONFIDENCE < 0.5:
            errors.append("FALLBACK_CONFIDENCE must be between 0 and 0.5")

        return (len(errors) == 0, errors)


# Initialize configuration on module import
AppConfig.initialize()
