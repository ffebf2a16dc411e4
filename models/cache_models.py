"""Models for the quality cache.

Defines the cache key, stored entries and usage statistics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from utils.string_utils import StringUtils

if TYPE_CHECKING:
    from datetime import datetime

__all__: list[str] = [
    "CacheEntry",
    "CacheKey",
    "CacheStatistics",
]


@dataclass(frozen=True)
class CacheKey:
    """Identity of a cached translation.

    Attributes:
        source_hash (str): SHA-256 of the NFC-normalized source text.
        from_lang (str): Source language code.
        to_lang (str): Target language code.
    """

    source_hash: str
    from_lang: str
    to_lang: str

    @classmethod
    def from_request(cls, source_text: str, from_lang: str, to_lang: str) -> CacheKey:
        """Build the key for a translation request.

        Args:
            source_text (str): Source text as received from the UI layer.
            from_lang (str): Source language code.
            to_lang (str): Target language code.

        Returns:
            CacheKey: The cache key.
        """
        normalized: str = StringUtils.normalize_text(StringUtils.ensure_str(source_text))
        return cls(
            source_hash=StringUtils.generate_hash_key(normalized),
            from_lang=from_lang,
            to_lang=to_lang,
        )

    @property
    def digest(self) -> str:
        """Single string form used as database primary key and in-flight key."""
        return f"{self.source_hash}|{self.from_lang}|{self.to_lang}"


@dataclass
class CacheEntry:
    """A stored translation.

    Attributes:
        key (CacheKey): Cache key.
        cleaned_text (str): Accepted cleaned text.
        purity_score (float): Target script ratio at insertion or last re-validation.
        quality_score (float): Composite quality at insertion.
        created_at (datetime): Entry creation timestamp.
        last_accessed_at (datetime): Last hit timestamp.
        last_validated_at (datetime): Last successful validation timestamp.
        access_count (int): Number of cache hits.
    """

    key: CacheKey
    cleaned_text: str
    purity_score: float
    quality_score: float
    created_at: datetime
    last_accessed_at: datetime
    last_validated_at: datetime
    access_count: int = 0


@dataclass
class CacheStatistics:
    """Cache usage statistics.

    Attributes:
        total_entries (int): Entries currently stored.
        hits (int): Lookups answered from the cache.
        misses (int): Lookups not answered, expired entries included.
        rejected (int): Insertions refused because the result was not pure.
        evictions (int): Entries removed by the capacity limit.
        expired (int): Entries removed because they outlived the TTL.
        invalidations (dict[str, int]): Explicit removals by reason (feedback, revalidation, manual).
        average_purity (float): Mean purity score of stored entries.
        oldest_entry (datetime | None): Creation time of the oldest entry.
        newest_entry (datetime | None): Creation time of the newest entry.
    """

    total_entries: int = 0
    hits: int = 0
    misses: int = 0
    rejected: int = 0
    evictions: int = 0
    expired: int = 0
    invalidations: dict[str, int] = field(default_factory=dict)
    average_purity: float = 0.0
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None

    @property
    def hit_rate(self) -> float:
        lookups: int = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0
