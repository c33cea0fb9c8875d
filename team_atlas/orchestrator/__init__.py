"""
Orchestrator Module

Cache-aside country retrieval, caching and scheduled refresh.

Components:
    - CacheManager: Two-tier (memory LRU + SQLite) cache with TTLs
    - CacheTier: Target tier of a cache write
    - TeamDataManager: Tier-aware retrieval, fusion and fallback per country
    - UpdateScheduler: APScheduler-based tiered refresh with a retrying work queue
    - QueueItem: One pending country refresh
"""

__all__ = [
    "CacheManager",
    "CacheTier",
    "TeamDataManager",
    "UpdateScheduler",
    "QueueItem",
]

# Lazy imports to avoid circular dependencies
def __getattr__(name):
    if name in ("CacheManager", "CacheTier"):
        from . import cache_manager
        return getattr(cache_manager, name)
    elif name == "TeamDataManager":
        from .data_manager import TeamDataManager
        return TeamDataManager
    elif name in ("UpdateScheduler", "QueueItem"):
        from . import scheduler
        return getattr(scheduler, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
