"""Quality cache manager.

Stores accepted translations in a SQLite database with WAL mode. Only results that pass purity
validation are ever written, and stored entries are re-validated periodically so that a stricter
validator or a user report removes them again.
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from core.exceptions import CacheInitializationError
from models.cache_models import CacheEntry, CacheKey, CacheStatistics
from models.cleaning_models import CleaningResult
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from core.purity.validator import PurityValidator
    from models.config_models import Config
    from models.purity_models import PurityReport

__all__: list[str] = ["QualityCache"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class QualityCache:
    """Persistent cache of validated translations.

    Entries are keyed by the NFC-normalized source text and the language pair. An entry expires
    TTL_HOURS after its creation; hits do not extend its life. When the cache is full, the entry
    with the lowest purity score is evicted first, then the lowest quality score, then the least
    recently accessed.

    Args:
        config (Config): Application configuration. Only the CACHE section is read.
        validator (PurityValidator): Validator used to re-check every insertion and stored entry.
        clock (Callable[[], float]): Epoch seconds provider.
        db_path (str | Path | None): Database file. CACHE.DB_PATH is used when None.

    Attributes:
        DB_SCHEMA_VERSION (ClassVar[int]): Cache database schema version.
    """

    DB_SCHEMA_VERSION: ClassVar[int] = 1

    def __init__(
        self,
        config: Config,
        validator: PurityValidator,
        *,
        clock: Callable[[], float] = time.time,
        db_path: str | Path | None = None,
    ) -> None:
        self.config: Config = config
        self.validator: PurityValidator = validator
        self._clock: Callable[[], float] = clock
        self._db_path: Path = Path(db_path if db_path is not None else config.CACHE.DB_PATH)
        self._db_conn: sqlite3.Connection | None = None
        self._is_initialized: bool = False
        self._lock: asyncio.Lock = asyncio.Lock()
        self._hits: int = 0
        self._misses: int = 0
        self._rejected: int = 0
        self._evictions: int = 0
        self._expired: int = 0
        self._invalidations: dict[str, int] = {}
        logger.debug("QualityCache instance created")

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def ttl_seconds(self) -> float:
        return self.config.CACHE.TTL_HOURS * 3600.0

    async def component_load(self) -> None:
        """Open the database and prepare the tables.

        Does nothing when the cache is disabled in the configuration.

        Raises:
            CacheInitializationError: If the database cannot be opened or prepared.
        """
        if not self.config.CACHE.ENABLED:
            logger.info("QualityCache disabled by configuration")
            return
        logger.info("QualityCache initialization started")
        async with self._lock:
            self._initialize_database()
            self._is_initialized = True
        logger.info("QualityCache initialized successfully: %s", self._db_path)

    async def component_teardown(self) -> None:
        """Close the database connection."""
        logger.info("QualityCache shutdown started")
        async with self._lock:
            if self._db_conn is not None:
                try:
                    self._db_conn.close()
                    logger.info("Database connection closed")
                except sqlite3.Error as err:
                    logger.error("Error closing database connection: %s", err)
                self._db_conn = None
            self._is_initialized = False
        logger.info("QualityCache shutdown completed")

    def _initialize_database(self) -> None:
        """Initialize SQLite database with WAL mode and create tables."""
        try:
            if self._db_path.parent != Path():
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db_conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._db_conn.execute("PRAGMA journal_mode=WAL")

            self._db_conn.execute(
                """
                CREATE TABLE IF NOT EXISTS quality_cache (
                    cache_key TEXT PRIMARY KEY,
                    source_hash TEXT NOT NULL,
                    from_lang TEXT NOT NULL,
                    to_lang TEXT NOT NULL,
                    cleaned_text TEXT NOT NULL,
                    result_json TEXT NOT NULL,
                    purity_score REAL NOT NULL,
                    quality_score REAL NOT NULL,
                    created_at REAL NOT NULL,
                    last_accessed_at REAL NOT NULL,
                    last_validated_at REAL NOT NULL,
                    access_count INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            self._db_conn.execute("CREATE INDEX IF NOT EXISTS idx_created ON quality_cache(created_at)")
            self._db_conn.execute("CREATE INDEX IF NOT EXISTS idx_validated ON quality_cache(last_validated_at)")
            self._db_conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_eviction ON quality_cache(purity_score, quality_score, last_accessed_at)"
            )

            self._db_conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache_metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            self._db_conn.execute(
                "INSERT OR IGNORE INTO cache_metadata (key, value) VALUES (?, ?)",
                ("schema_version", str(self.DB_SCHEMA_VERSION)),
            )
            cursor: sqlite3.Cursor = self._db_conn.execute(
                "SELECT value FROM cache_metadata WHERE key = ?",
                ("schema_version",),
            )
            row = cursor.fetchone()
            if row is not None and row[0] != str(self.DB_SCHEMA_VERSION):
                logger.warning(
                    "Cache DB schema version mismatch (db: %s, expected: %s), clearing stored entries",
                    row[0],
                    self.DB_SCHEMA_VERSION,
                )
                self._db_conn.execute("DELETE FROM quality_cache")
                self._db_conn.execute(
                    "UPDATE cache_metadata SET value = ? WHERE key = ?",
                    (str(self.DB_SCHEMA_VERSION), "schema_version"),
                )

            self._db_conn.commit()
            logger.info("Database initialized with WAL mode")
        except sqlite3.Error as err:
            msg: str = f"Quality cache initialization failed for '{self._db_path}': {err}"
            logger.critical(msg)
            raise CacheInitializationError(msg) from err

    def _epoch_to_datetime(self, value: float) -> datetime:
        return datetime.fromtimestamp(float(value), tz=UTC).astimezone()

    def _count_invalidation(self, reason: str, count: int = 1) -> None:
        self._invalidations[reason] = self._invalidations.get(reason, 0) + count

    async def get(self, key: CacheKey) -> CleaningResult | None:
        """Look up a cached translation.

        An expired entry is deleted and reported as a miss. A hit updates the access time and
        count of the entry.

        Args:
            key (CacheKey): Cache key of the request.

        Returns:
            CleaningResult | None: The stored cleaning result, or None on a miss.
        """
        if not self._is_initialized:
            return None

        async with self._lock:
            if self._db_conn is None:
                return None
            try:
                row = self._db_conn.execute(
                    "SELECT result_json, created_at, access_count FROM quality_cache WHERE cache_key = ?",
                    (key.digest,),
                ).fetchone()

                if row is None:
                    self._misses += 1
                    logger.debug("Cache miss for key: %s", key.source_hash[:16])
                    return None

                now: float = self._clock()
                if now - row[1] >= self.ttl_seconds:
                    self._db_conn.execute("DELETE FROM quality_cache WHERE cache_key = ?", (key.digest,))
                    self._db_conn.commit()
                    self._expired += 1
                    self._misses += 1
                    logger.debug("Cache entry expired for key: %s", key.source_hash[:16])
                    return None

                result: CleaningResult = CleaningResult.from_json(row[0])
                self._db_conn.execute(
                    "UPDATE quality_cache SET last_accessed_at = ?, access_count = access_count + 1 WHERE cache_key = ?",
                    (now, key.digest),
                )
                self._db_conn.commit()
                self._hits += 1
                logger.debug("Cache hit for key: %s (access_count: %d)", key.source_hash[:16], row[2] + 1)

            except (sqlite3.Error, ValueError, KeyError) as err:
                logger.error("Error reading quality cache: %s", err)
                return None
            else:
                return result

    async def peek(self, key: CacheKey) -> CacheEntry | None:
        """Return the stored entry without touching its access statistics or TTL handling."""
        if not self._is_initialized:
            return None

        async with self._lock:
            if self._db_conn is None:
                return None
            try:
                row = self._db_conn.execute(
                    """
                    SELECT cleaned_text, purity_score, quality_score, created_at,
                           last_accessed_at, last_validated_at, access_count
                    FROM quality_cache
                    WHERE cache_key = ?
                    """,
                    (key.digest,),
                ).fetchone()
            except sqlite3.Error as err:
                logger.error("Error reading quality cache: %s", err)
                return None

        if row is None:
            return None
        return CacheEntry(
            key=key,
            cleaned_text=row[0],
            purity_score=row[1],
            quality_score=row[2],
            created_at=self._epoch_to_datetime(row[3]),
            last_accessed_at=self._epoch_to_datetime(row[4]),
            last_validated_at=self._epoch_to_datetime(row[5]),
            access_count=row[6],
        )

    async def put(
        self,
        key: CacheKey,
        result: CleaningResult,
        report: PurityReport,
        quality_score: float | None = None,
    ) -> bool:
        """Store an accepted translation.

        The cleaned text is validated again before insertion; nothing that fails purity is ever
        stored, whatever the caller passes as report.

        Args:
            key (CacheKey): Cache key of the request.
            result (CleaningResult): Cleaning result of the accepted oracle output.
            report (PurityReport): Report the caller accepted the result with.
            quality_score (float | None): Composite quality. Defaults to confidence x purity.

        Returns:
            bool: True if the entry was stored and survived the capacity limit.
        """
        if not self._is_initialized:
            return False

        if not report.passed or report.target_lang != key.to_lang:
            self._rejected += 1
            logger.warning(
                "Refused to cache a result that did not pass for '%s': %s", key.to_lang, report.reason
            )
            return False

        recheck: PurityReport = self.validator.validate(result.cleaned_text, key.to_lang)
        if not recheck.passed:
            self._rejected += 1
            logger.warning("Refused to cache a result that fails re-validation: %s", recheck.reason)
            return False

        quality: float = quality_score if quality_score is not None else result.confidence * recheck.purity_score

        async with self._lock:
            if self._db_conn is None:
                return False
            try:
                now: float = self._clock()
                self._db_conn.execute(
                    """
                    INSERT OR REPLACE INTO quality_cache
                    (cache_key, source_hash, from_lang, to_lang, cleaned_text, result_json,
                     purity_score, quality_score, created_at, last_accessed_at, last_validated_at,
                     access_count)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
                    """,
                    (
                        key.digest,
                        key.source_hash,
                        key.from_lang,
                        key.to_lang,
                        result.cleaned_text,
                        result.to_json(),
                        recheck.purity_score,
                        quality,
                        now,
                        now,
                        now,
                    ),
                )
                self._enforce_capacity_limit()
                stored: bool = (
                    self._db_conn.execute("SELECT 1 FROM quality_cache WHERE cache_key = ?", (key.digest,)).fetchone()
                    is not None
                )
                self._db_conn.commit()
            except sqlite3.Error as err:
                logger.error("Error writing quality cache: %s", err)
                return False

        if not stored:
            logger.info("New entry for %s was evicted immediately by the capacity limit", key.source_hash[:16])
            return False
        logger.debug("Result cached for key: %s (purity %.3f)", key.source_hash[:16], recheck.purity_score)
        return True

    def _enforce_capacity_limit(self) -> None:
        """Evict the lowest-ranked entries beyond MAX_ENTRIES. Caller holds the lock."""
        if self._db_conn is None:
            return

        count: int = self._db_conn.execute("SELECT COUNT(*) FROM quality_cache").fetchone()[0]
        to_delete: int = count - self.config.CACHE.MAX_ENTRIES
        if to_delete <= 0:
            return

        self._db_conn.execute(
            """
            DELETE FROM quality_cache
            WHERE cache_key IN (
                SELECT cache_key FROM quality_cache
                ORDER BY purity_score ASC, quality_score ASC, last_accessed_at ASC, access_count ASC
                LIMIT ?
            )
            """,
            (to_delete,),
        )
        self._evictions += to_delete
        logger.info("Evicted %d low-quality cache entries", to_delete)

    async def invalidate(self, key: CacheKey, reason: str = "manual") -> bool:
        """Remove one entry.

        Args:
            key (CacheKey): Cache key of the entry.
            reason (str): Reason counted in the statistics.

        Returns:
            bool: True if an entry was removed.
        """
        if not self._is_initialized:
            return False

        async with self._lock:
            if self._db_conn is None:
                return False
            try:
                cursor: sqlite3.Cursor = self._db_conn.execute(
                    "DELETE FROM quality_cache WHERE cache_key = ?", (key.digest,)
                )
                self._db_conn.commit()
            except sqlite3.Error as err:
                logger.error("Error invalidating cache entry: %s", err)
                return False

        removed: bool = cursor.rowcount > 0
        if removed:
            self._count_invalidation(reason)
            logger.info("Invalidated cache entry %s (%s)", key.source_hash[:16], reason)
        return removed

    async def report_feedback(self, key: CacheKey, reason: str = "") -> bool:
        """Handle a user report that a displayed translation is contaminated.

        The entry is removed immediately so that the next request goes back to the oracle.
        """
        logger.warning(
            "Contamination reported for %s -> %s: %s", key.from_lang, key.to_lang, reason or "(no details)"
        )
        entry: CacheEntry | None = await self.peek(key)
        if entry is not None:
            logger.info(
                "Reported entry: purity %.3f, text '%s'",
                entry.purity_score,
                StringUtils.preview(entry.cleaned_text),
            )
        return await self.invalidate(key, reason="feedback")

    async def revalidate(self, sample_size: int | None = None) -> int:
        """Re-validate the least recently validated entries and evict those that fail.

        Args:
            sample_size (int | None): Entries to check. CACHE.REVALIDATION_SAMPLE when None.

        Returns:
            int: Number of evicted entries.
        """
        if not self._is_initialized:
            return 0

        limit: int = sample_size if sample_size is not None else self.config.CACHE.REVALIDATION_SAMPLE
        async with self._lock:
            if self._db_conn is None:
                return 0
            try:
                rows = self._db_conn.execute(
                    "SELECT cache_key, to_lang, cleaned_text FROM quality_cache ORDER BY last_validated_at ASC LIMIT ?",
                    (limit,),
                ).fetchall()

                now: float = self._clock()
                failed: list[str] = []
                for cache_key, to_lang, cleaned_text in rows:
                    report: PurityReport = self.validator.validate(cleaned_text, to_lang)
                    if report.passed:
                        self._db_conn.execute(
                            "UPDATE quality_cache SET last_validated_at = ?, purity_score = ? WHERE cache_key = ?",
                            (now, report.purity_score, cache_key),
                        )
                    else:
                        logger.warning("Cached entry failed re-validation: %s", report.reason)
                        failed.append(cache_key)

                self._db_conn.executemany("DELETE FROM quality_cache WHERE cache_key = ?", [(k,) for k in failed])
                self._db_conn.commit()
            except sqlite3.Error as err:
                logger.error("Error during cache re-validation: %s", err)
                return 0

        if failed:
            self._count_invalidation("revalidation", len(failed))
        logger.info("Re-validated %d cache entries, evicted %d", len(rows), len(failed))
        return len(failed)

    async def cleanup_expired_entries(self) -> int:
        """Remove entries older than the TTL.

        Returns:
            int: Number of removed entries.
        """
        if not self._is_initialized:
            return 0

        async with self._lock:
            if self._db_conn is None:
                return 0
            try:
                cursor: sqlite3.Cursor = self._db_conn.execute(
                    "DELETE FROM quality_cache WHERE created_at <= ?", (self._clock() - self.ttl_seconds,)
                )
                self._db_conn.commit()
            except sqlite3.Error as err:
                logger.error("Error during cache cleanup: %s", err)
                return 0

        deleted: int = cursor.rowcount
        self._expired += deleted
        logger.info("Deleted %d expired quality cache entries", deleted)
        return deleted

    async def get_statistics(self) -> CacheStatistics:
        """Get cache statistics.

        Returns:
            CacheStatistics: Counters since startup plus the current database content.
        """
        statistics = CacheStatistics(
            hits=self._hits,
            misses=self._misses,
            rejected=self._rejected,
            evictions=self._evictions,
            expired=self._expired,
            invalidations=dict(self._invalidations),
        )
        if not self._is_initialized:
            return statistics

        async with self._lock:
            if self._db_conn is None:
                return statistics
            try:
                row = self._db_conn.execute(
                    "SELECT COUNT(*), AVG(purity_score), MIN(created_at), MAX(created_at) FROM quality_cache"
                ).fetchone()
            except sqlite3.Error as err:
                logger.error("Error getting cache statistics: %s", err)
                return statistics

        statistics.total_entries = row[0] or 0
        statistics.average_purity = row[1] or 0.0
        statistics.oldest_entry = self._epoch_to_datetime(row[2]) if row[2] is not None else None
        statistics.newest_entry = self._epoch_to_datetime(row[3]) if row[3] is not None else None
        return statistics
