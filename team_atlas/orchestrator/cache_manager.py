"""
Two-tier cache for country datasets.

An in-memory LRU (fast tier) sits in front of a SQLite table (durable tier).
Durable hits are promoted into the fast tier; durable writes are best-effort
and never fail the caller.
"""

import asyncio
import logging
import sqlite3
import threading
import time
from collections import OrderedDict
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

import orjson

from ..config import CacheConfig
from ..utils.exceptions import CacheError, CacheQuotaError

logger = logging.getLogger(__name__)

KEY_PREFIX = "team_cache:"


class CacheTier(str, Enum):
    """Where a cache write lands."""

    FAST = "fast"
    DURABLE = "durable"


class CacheManager:
    """
    In-memory LRU backed by SQLite, with per-tier TTLs.

    Features:
    - Bounded fast tier with exact least-recently-used eviction
    - Durable SQLite tier with optional byte quota
    - Promotion of durable hits into the fast tier
    - No entry is ever returned past its TTL
    - Injectable clock for deterministic expiry

    Attributes:
        db_path: SQLite database file (None when the durable tier is disabled)
        memory_ttl: Fast tier TTL in seconds
        persistent_ttl: Durable tier TTL in seconds
        max_memory_entries: Fast tier capacity
        persistent_max_bytes: Durable tier quota in bytes (0 disables it)
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        memory_ttl: Optional[float] = None,
        persistent_ttl: Optional[float] = None,
        max_memory_entries: Optional[int] = None,
        persistent_max_bytes: Optional[int] = None,
        persistent: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache manager.

        Args:
            db_path: Path to SQLite database (defaults to CacheConfig.DB_PATH)
            memory_ttl: Fast tier TTL (defaults to CacheConfig.MEMORY_TTL_SECONDS)
            persistent_ttl: Durable tier TTL (defaults to CacheConfig.PERSISTENT_TTL_SECONDS)
            max_memory_entries: Fast tier capacity (defaults to CacheConfig.MAX_MEMORY_ENTRIES)
            persistent_max_bytes: Durable quota (defaults to CacheConfig.PERSISTENT_MAX_BYTES)
            persistent: False runs the cache with the fast tier only
            clock: Source of timestamps in seconds
        """
        self.memory_ttl = memory_ttl if memory_ttl is not None else CacheConfig.MEMORY_TTL_SECONDS
        self.persistent_ttl = (
            persistent_ttl if persistent_ttl is not None else CacheConfig.PERSISTENT_TTL_SECONDS
        )
        self.max_memory_entries = max_memory_entries or CacheConfig.MAX_MEMORY_ENTRIES
        self.persistent_max_bytes = (
            persistent_max_bytes if persistent_max_bytes is not None else CacheConfig.PERSISTENT_MAX_BYTES
        )
        self.db_path: Optional[Path] = (db_path or CacheConfig.DB_PATH) if persistent else None
        self._clock = clock

        # key -> (value, expires_at)
        self._memory: "OrderedDict[str, tuple[Any, float]]" = OrderedDict()
        self._lock = asyncio.Lock()
        self._db_lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None

        # Bumped under self._lock by every write; a durable read is only
        # promoted when no write happened while it ran
        self._generation = 0

        self._stats = {
            "memory_hits": 0,
            "durable_hits": 0,
            "misses": 0,
            "sets": 0,
            "evictions": 0,
            "durable_write_failures": 0,
        }

        if self.db_path is not None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._initialize_database()

        logger.info(
            f"CacheManager initialized: db={self.db_path}, memory_ttl={self.memory_ttl}s, "
            f"persistent_ttl={self.persistent_ttl}s, max_memory_entries={self.max_memory_entries}"
        )

    @property
    def has_durable_tier(self) -> bool:
        return self.db_path is not None

    # ========== Durable tier (runs in worker threads) ==========

    def _initialize_database(self) -> None:
        """Create database schema if it doesn't exist."""
        try:
            with self._db_lock:
                cursor = self._get_connection().cursor()
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS cache_entries (
                        cache_key TEXT PRIMARY KEY,
                        entry TEXT NOT NULL,
                        timestamp REAL NOT NULL,
                        ttl REAL NOT NULL,
                        size_bytes INTEGER NOT NULL
                    )
                """)
                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_cache_expiry
                    ON cache_entries(timestamp)
                """)
            logger.debug("Cache schema initialized successfully")

        except sqlite3.Error as e:
            raise CacheError(
                f"Failed to initialize database: {e}",
                operation="initialize",
                db_path=str(self.db_path)
            )

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with proper configuration."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None
            )
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def _durable_get(self, key: str, now: float) -> Optional[tuple[Any, float]]:
        """Return (value, expires_at) for a live durable entry; expired rows are deleted."""
        cache_key = KEY_PREFIX + key
        try:
            with self._db_lock:
                cursor = self._get_connection().cursor()
                cursor.execute(
                    "SELECT entry, timestamp, ttl FROM cache_entries WHERE cache_key = ?",
                    (cache_key,)
                )
                row = cursor.fetchone()
                if row is None:
                    return None

                expires_at = row["timestamp"] + row["ttl"]
                if now >= expires_at:
                    cursor.execute("DELETE FROM cache_entries WHERE cache_key = ?", (cache_key,))
                    logger.debug(f"Durable entry expired: {cache_key}")
                    return None

            entry = orjson.loads(row["entry"])
            return entry["data"], expires_at

        except (sqlite3.Error, orjson.JSONDecodeError, KeyError, TypeError) as e:
            raise CacheError(
                f"Failed to read from cache: {e}",
                operation="read",
                cache_key=cache_key
            )

    def _durable_set(self, key: str, value: Any, now: float) -> None:
        cache_key = KEY_PREFIX + key
        try:
            payload = orjson.dumps({"data": value, "timestamp": now})
        except TypeError as e:
            raise CacheError(
                f"Value is not JSON serializable: {e}",
                operation="write",
                cache_key=cache_key
            )

        try:
            with self._db_lock:
                cursor = self._get_connection().cursor()
                if self.persistent_max_bytes > 0:
                    cursor.execute(
                        "SELECT COALESCE(SUM(size_bytes), 0) AS used FROM cache_entries WHERE cache_key != ?",
                        (cache_key,)
                    )
                    used = cursor.fetchone()["used"]
                    if used + len(payload) > self.persistent_max_bytes:
                        raise CacheQuotaError(
                            used_bytes=used,
                            quota_bytes=self.persistent_max_bytes,
                            cache_key=cache_key,
                        )

                cursor.execute("""
                    INSERT OR REPLACE INTO cache_entries (
                        cache_key, entry, timestamp, ttl, size_bytes
                    ) VALUES (?, ?, ?, ?, ?)
                """, (cache_key, payload.decode("utf-8"), now, self.persistent_ttl, len(payload)))

        except sqlite3.Error as e:
            raise CacheError(
                f"Failed to write to cache: {e}",
                operation="write",
                cache_key=cache_key
            )

    def _durable_delete(self, key: str) -> bool:
        try:
            with self._db_lock:
                cursor = self._get_connection().cursor()
                cursor.execute("DELETE FROM cache_entries WHERE cache_key = ?", (KEY_PREFIX + key,))
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise CacheError(
                f"Failed to invalidate cache: {e}",
                operation="delete",
                cache_key=KEY_PREFIX + key
            )

    def _durable_clear(self, prefix: str) -> set[str]:
        """Delete rows whose key starts with ``prefix``; return the unprefixed keys."""
        full_prefix = KEY_PREFIX + prefix
        try:
            with self._db_lock:
                cursor = self._get_connection().cursor()
                cursor.execute(
                    "SELECT cache_key FROM cache_entries WHERE substr(cache_key, 1, ?) = ?",
                    (len(full_prefix), full_prefix)
                )
                keys = {row["cache_key"][len(KEY_PREFIX):] for row in cursor.fetchall()}
                cursor.execute(
                    "DELETE FROM cache_entries WHERE substr(cache_key, 1, ?) = ?",
                    (len(full_prefix), full_prefix)
                )
                return keys
        except sqlite3.Error as e:
            raise CacheError(
                f"Failed to clear cache: {e}",
                operation="clear",
                cache_key=full_prefix
            )

    def _durable_sweep(self, now: float) -> int:
        try:
            with self._db_lock:
                cursor = self._get_connection().cursor()
                cursor.execute("DELETE FROM cache_entries WHERE timestamp + ttl <= ?", (now,))
                return cursor.rowcount
        except sqlite3.Error as e:
            raise CacheError(
                f"Failed to clear expired entries: {e}",
                operation="sweep"
            )

    # ========== Fast tier ==========

    def _memory_put(self, key: str, value: Any, expires_at: float) -> None:
        """Insert or refresh a fast-tier entry; caller holds ``self._lock``."""
        if key in self._memory:
            self._memory.move_to_end(key)
        self._memory[key] = (value, expires_at)
        while len(self._memory) > self.max_memory_entries:
            evicted, _ = self._memory.popitem(last=False)
            self._stats["evictions"] += 1
            logger.debug(f"Evicted least recently used entry: {evicted}")

    # ========== Public API ==========

    async def get(self, key: str) -> Optional[Any]:
        """
        Look up a value, fast tier first.

        Returns:
            The cached value, or None on a miss or expired entry

        Raises:
            CacheError: If the durable read fails
        """
        now = self._clock()
        async with self._lock:
            item = self._memory.get(key)
            if item is not None:
                value, expires_at = item
                if now < expires_at:
                    self._memory.move_to_end(key)
                    self._stats["memory_hits"] += 1
                    logger.debug(f"Cache hit (memory): {key}")
                    return value
                del self._memory[key]
            generation = self._generation

        if self.has_durable_tier:
            found = await asyncio.to_thread(self._durable_get, key, now)
            if found is not None:
                value, durable_expires_at = found
                async with self._lock:
                    if self._generation == generation:
                        self._memory_put(key, value, min(now + self.memory_ttl, durable_expires_at))
                    else:
                        logger.debug(f"Skipped promotion of {key}: cache written during durable read")
                self._stats["durable_hits"] += 1
                logger.debug(f"Cache hit (durable, promoted): {key}")
                return value

        self._stats["misses"] += 1
        logger.debug(f"Cache miss: {key}")
        return None

    async def set(self, key: str, value: Any, tier: CacheTier = CacheTier.DURABLE) -> bool:
        """
        Store a value.

        Args:
            key: Cache key (e.g. ``country:AR``)
            value: JSON-serializable value
            tier: FAST writes memory only and drops any older durable row for
                the key; DURABLE writes memory and SQLite

        Returns:
            bool: False when the durable write (or the FAST drop) failed
        """
        now = self._clock()
        async with self._lock:
            self._generation += 1
            self._memory_put(key, value, now + self.memory_ttl)
        self._stats["sets"] += 1

        if not self.has_durable_tier:
            return True

        if tier is CacheTier.FAST:
            try:
                await asyncio.to_thread(self._durable_delete, key)
                return True
            except CacheError as e:
                self._stats["durable_write_failures"] += 1
                logger.warning(
                    f"Could not drop superseded durable entry for {key}: {e}",
                    extra={"cache_key": key, "error_type": type(e).__name__},
                )
                return False

        try:
            await asyncio.to_thread(self._durable_set, key, value, now)
            return True
        except CacheError as e:
            logger.info(f"Durable write failed for {key}, sweeping expired entries: {e}")

        try:
            await self.sweep_expired()
            await asyncio.to_thread(self._durable_set, key, value, self._clock())
            return True
        except CacheError as e:
            self._stats["durable_write_failures"] += 1
            logger.warning(
                f"Dropped durable cache write for {key}: {e}",
                extra={"cache_key": key, "error_type": type(e).__name__},
            )
            return False

    async def invalidate(self, key: str) -> bool:
        """Remove one key from both tiers. Returns True if anything was removed."""
        async with self._lock:
            self._generation += 1
            removed = self._memory.pop(key, None) is not None
        if self.has_durable_tier:
            removed = await asyncio.to_thread(self._durable_delete, key) or removed
        if removed:
            logger.info(f"Invalidated cache: {key}")
        return removed

    async def clear(self, prefix: Optional[str] = None) -> int:
        """
        Remove every key starting with ``prefix`` (all keys when None).

        Returns:
            Number of distinct keys removed
        """
        prefix = prefix or ""
        async with self._lock:
            self._generation += 1
            keys = {key for key in self._memory if key.startswith(prefix)}
            for key in keys:
                del self._memory[key]
        if self.has_durable_tier:
            keys |= await asyncio.to_thread(self._durable_clear, prefix)

        logger.info(f"Cleared {len(keys)} cache entries (prefix={prefix!r})")
        return len(keys)

    async def sweep_expired(self) -> int:
        """
        Remove TTL-expired entries from both tiers.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        async with self._lock:
            expired = [key for key, (_, expires_at) in self._memory.items() if now >= expires_at]
            for key in expired:
                del self._memory[key]
        removed = len(expired)
        if self.has_durable_tier:
            removed += await asyncio.to_thread(self._durable_sweep, now)

        if removed:
            logger.info(f"Swept {removed} expired cache entries")
        else:
            logger.debug("No expired cache entries to sweep")
        return removed

    def get_statistics(self) -> dict[str, Any]:
        """
        Cache counters and tier sizes.

        Returns:
            Dictionary containing hit/miss counters, fast tier occupancy,
            durable row count and bytes, and the configured TTLs
        """
        hits = self._stats["memory_hits"] + self._stats["durable_hits"]
        lookups = hits + self._stats["misses"]
        stats = {
            **self._stats,
            "memory_entries": len(self._memory),
            "max_memory_entries": self.max_memory_entries,
            "hit_rate": round(hits / lookups, 3) if lookups else 0.0,
            "memory_ttl": self.memory_ttl,
            "persistent_ttl": self.persistent_ttl,
            "durable_entries": 0,
            "durable_bytes": 0,
            "db_path": str(self.db_path) if self.db_path else None,
        }

        if self.has_durable_tier:
            try:
                with self._db_lock:
                    cursor = self._get_connection().cursor()
                    cursor.execute(
                        "SELECT COUNT(*) AS count, COALESCE(SUM(size_bytes), 0) AS used FROM cache_entries"
                    )
                    row = cursor.fetchone()
                stats["durable_entries"] = row["count"]
                stats["durable_bytes"] = row["used"]
            except sqlite3.Error as e:
                raise CacheError(
                    f"Failed to retrieve statistics: {e}",
                    operation="statistics"
                )

        return stats

    def close(self) -> None:
        """Close database connection gracefully."""
        with self._db_lock:
            if self._connection:
                try:
                    self._connection.close()
                    logger.debug("Cache database connection closed")
                except sqlite3.Error as e:
                    logger.error(f"Error closing database connection: {e}")
                finally:
                    self._connection = None

    def __repr__(self) -> str:
        """String representation of cache manager."""
        return (
            f"CacheManager(db_path={self.db_path}, memory_entries={len(self._memory)}/"
            f"{self.max_memory_entries})"
        )
