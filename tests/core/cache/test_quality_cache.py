"""Tests for QualityCache.

Covers insertion guards, hits and misses, TTL, capacity eviction, feedback and re-validation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from core.cache import manager as cache_module
from core.cache.manager import QualityCache
from core.purity.validator import PurityValidator
from models.cache_models import CacheKey
from models.cleaning_models import CleaningResult
from models.config_models import Config
from models.purity_models import PurityReport

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from models.cache_models import CacheEntry, CacheStatistics

PURE_ARABIC = "يعتبر العقد صحيحا بين الطرفين وفقا للقانون المدني"
# 42 Arabic letters and one Latin letter: passes, with a purity score below 1.0.
NEARLY_PURE_ARABIC = PURE_ARABIC + " a"
PURE_FRENCH = "Le contrat est valide entre les parties selon le Code civil."


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now: float = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def validator(config: Config) -> PurityValidator:
    return PurityValidator(config)


@pytest.fixture
async def cache(
    config: Config, validator: PurityValidator, clock: FakeClock, tmp_path: Path
) -> AsyncGenerator[QualityCache]:
    manager = QualityCache(config, validator, clock=clock, db_path=tmp_path / "quality_cache.db")
    await manager.component_load()
    yield manager
    await manager.component_teardown()


def _accepted(validator: PurityValidator, text: str, lang: str) -> tuple[CleaningResult, PurityReport]:
    return CleaningResult(original_text=text, cleaned_text=text), validator.validate(text, lang)


async def _store(
    cache: QualityCache, validator: PurityValidator, source: str, text: str, quality: float | None = None
) -> CacheKey:
    key: CacheKey = CacheKey.from_request(source, "fr", "ar")
    result, report = _accepted(validator, text, "ar")
    assert await cache.put(key, result, report, quality_score=quality) is True
    return key


def test_cache_key_normalizes_source_text() -> None:
    composed: CacheKey = CacheKey.from_request("Le délit", "fr", "ar")
    decomposed: CacheKey = CacheKey.from_request("Le de\u0301lit", "fr", "ar")

    assert composed == decomposed
    assert composed.digest.endswith("|fr|ar")
    assert composed != CacheKey.from_request("Le délit", "fr", "fr")


@pytest.mark.asyncio
async def test_cache_initialization(cache: QualityCache) -> None:
    assert cache.is_initialized is True
    assert cache._db_conn is not None  # noqa: SLF001


@pytest.mark.asyncio
async def test_miss_returns_none(cache: QualityCache) -> None:
    result: CleaningResult | None = await cache.get(CacheKey.from_request("Bonjour", "fr", "ar"))
    statistics: CacheStatistics = await cache.get_statistics()

    assert result is None
    assert statistics.misses == 1


@pytest.mark.asyncio
async def test_put_then_get_returns_stored_result(cache: QualityCache, validator: PurityValidator) -> None:
    key: CacheKey = await _store(cache, validator, "Le contrat est valide", PURE_ARABIC)

    result: CleaningResult | None = await cache.get(key)
    entry: CacheEntry | None = await cache.peek(key)

    assert result is not None
    assert result.cleaned_text == PURE_ARABIC
    assert entry is not None
    assert entry.access_count == 1
    assert entry.purity_score == pytest.approx(1.0)
    assert entry.quality_score == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_failing_report_is_rejected(cache: QualityCache, validator: PurityValidator) -> None:
    key: CacheKey = CacheKey.from_request("Le contrat", "fr", "ar")
    result, report = _accepted(validator, PURE_FRENCH, "ar")

    assert report.passed is False
    assert await cache.put(key, result, report) is False
    assert await cache.get(key) is None
    assert (await cache.get_statistics()).rejected == 1


@pytest.mark.asyncio
async def test_passing_report_for_impure_text_is_rejected(cache: QualityCache) -> None:
    key: CacheKey = CacheKey.from_request("Le contrat", "fr", "ar")
    forged = PurityReport(target_lang="ar", script_ratios={}, passed=True, threshold=0.95, ceiling=0.05)

    stored: bool = await cache.put(key, CleaningResult(original_text="x", cleaned_text=PURE_FRENCH), forged)

    assert stored is False
    assert await cache.peek(key) is None


@pytest.mark.asyncio
async def test_report_for_other_language_is_rejected(cache: QualityCache, validator: PurityValidator) -> None:
    key: CacheKey = CacheKey.from_request("عقد", "ar", "fr")
    result, report = _accepted(validator, PURE_ARABIC, "ar")

    assert await cache.put(key, result, report) is False


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(cache: QualityCache, validator: PurityValidator, clock: FakeClock) -> None:
    key: CacheKey = await _store(cache, validator, "Le contrat est valide", PURE_ARABIC)

    clock.advance(cache.ttl_seconds - 1)
    assert await cache.get(key) is not None

    clock.advance(1)
    assert await cache.get(key) is None
    statistics: CacheStatistics = await cache.get_statistics()
    assert statistics.expired == 1
    assert statistics.total_entries == 0


@pytest.mark.asyncio
async def test_hits_do_not_extend_ttl(cache: QualityCache, validator: PurityValidator, clock: FakeClock) -> None:
    key: CacheKey = await _store(cache, validator, "Le contrat est valide", PURE_ARABIC)

    for _ in range(3):
        clock.advance(cache.ttl_seconds / 4)
        assert await cache.get(key) is not None

    clock.advance(cache.ttl_seconds / 4)
    assert await cache.get(key) is None


@pytest.mark.asyncio
async def test_capacity_evicts_lowest_purity_first(
    cache: QualityCache, validator: PurityValidator, config: Config
) -> None:
    config.CACHE.MAX_ENTRIES = 2
    nearly: CacheKey = await _store(cache, validator, "source one", NEARLY_PURE_ARABIC, quality=1.0)
    low_quality: CacheKey = await _store(cache, validator, "source two", PURE_ARABIC, quality=0.1)
    high_quality: CacheKey = await _store(cache, validator, "source three", PURE_ARABIC, quality=0.9)

    assert await cache.peek(nearly) is None
    assert await cache.peek(low_quality) is not None
    assert await cache.peek(high_quality) is not None
    assert (await cache.get_statistics()).evictions == 1


@pytest.mark.asyncio
async def test_capacity_evicts_lowest_quality_on_equal_purity(
    cache: QualityCache, validator: PurityValidator, config: Config
) -> None:
    config.CACHE.MAX_ENTRIES = 2
    first: CacheKey = await _store(cache, validator, "source one", PURE_ARABIC, quality=0.9)
    second: CacheKey = await _store(cache, validator, "source two", PURE_ARABIC, quality=0.5)
    third: CacheKey = await _store(cache, validator, "source three", PURE_ARABIC, quality=0.7)

    assert await cache.peek(second) is None
    assert await cache.peek(first) is not None
    assert await cache.peek(third) is not None


@pytest.mark.asyncio
async def test_put_reports_entry_evicted_by_capacity_limit(
    cache: QualityCache, validator: PurityValidator, config: Config
) -> None:
    config.CACHE.MAX_ENTRIES = 1
    kept: CacheKey = await _store(cache, validator, "source one", PURE_ARABIC)
    key: CacheKey = CacheKey.from_request("source two", "fr", "ar")
    result, report = _accepted(validator, NEARLY_PURE_ARABIC, "ar")

    assert await cache.put(key, result, report) is False
    assert await cache.get(key) is None
    assert await cache.peek(kept) is not None
    assert (await cache.get_statistics()).evictions == 1


@pytest.mark.asyncio
async def test_feedback_logs_reported_entry(
    cache: QualityCache, validator: PurityValidator, caplog: pytest.LogCaptureFixture
) -> None:
    key: CacheKey = await _store(cache, validator, "Le contrat est valide", PURE_ARABIC)

    with caplog.at_level(logging.INFO, logger=cache_module.logger.name):
        await cache.report_feedback(key, "latin words in the output")

    assert "Reported entry: purity 1.000" in caplog.text


@pytest.mark.asyncio
async def test_feedback_invalidates_entry(cache: QualityCache, validator: PurityValidator) -> None:
    key: CacheKey = await _store(cache, validator, "Le contrat est valide", PURE_ARABIC)

    assert await cache.report_feedback(key, "latin words in the output") is True
    assert await cache.get(key) is None
    assert await cache.report_feedback(key) is False
    assert (await cache.get_statistics()).invalidations == {"feedback": 1}


@pytest.mark.asyncio
async def test_revalidation_evicts_entries_failing_stricter_rules(
    cache: QualityCache, validator: PurityValidator, config: Config
) -> None:
    nearly: CacheKey = await _store(cache, validator, "source one", NEARLY_PURE_ARABIC)
    pure: CacheKey = await _store(cache, validator, "source two", PURE_ARABIC)

    validator.threshold = 0.99
    evicted: int = await cache.revalidate()

    assert evicted == 1
    assert await cache.peek(nearly) is None
    assert await cache.peek(pure) is not None
    assert (await cache.get_statistics()).invalidations == {"revalidation": 1}


@pytest.mark.asyncio
async def test_revalidation_keeps_passing_entries(
    cache: QualityCache, validator: PurityValidator, clock: FakeClock
) -> None:
    key: CacheKey = await _store(cache, validator, "source", PURE_ARABIC)
    clock.advance(60)

    assert await cache.revalidate(sample_size=10) == 0
    entry: CacheEntry | None = await cache.peek(key)
    assert entry is not None
    assert entry.last_validated_at > entry.created_at


@pytest.mark.asyncio
async def test_cleanup_expired_entries(cache: QualityCache, validator: PurityValidator, clock: FakeClock) -> None:
    await _store(cache, validator, "old", PURE_ARABIC)
    clock.advance(cache.ttl_seconds)
    fresh: CacheKey = await _store(cache, validator, "fresh", PURE_ARABIC)

    assert await cache.cleanup_expired_entries() == 1
    assert await cache.peek(fresh) is not None


@pytest.mark.asyncio
async def test_statistics_report_hit_rate(cache: QualityCache, validator: PurityValidator) -> None:
    key: CacheKey = await _store(cache, validator, "source", PURE_ARABIC)
    await cache.get(key)
    await cache.get(CacheKey.from_request("other", "fr", "ar"))

    statistics: CacheStatistics = await cache.get_statistics()

    assert statistics.total_entries == 1
    assert statistics.hits == 1
    assert statistics.misses == 1
    assert statistics.hit_rate == pytest.approx(0.5)
    assert statistics.average_purity == pytest.approx(1.0)
    assert statistics.oldest_entry is not None


@pytest.mark.asyncio
async def test_entries_survive_reopening(
    config: Config, validator: PurityValidator, clock: FakeClock, tmp_path: Path
) -> None:
    db_path: Path = tmp_path / "persistent.db"
    first = QualityCache(config, validator, clock=clock, db_path=db_path)
    await first.component_load()
    key: CacheKey = await _store(first, validator, "source", PURE_ARABIC)
    await first.component_teardown()

    second = QualityCache(config, validator, clock=clock, db_path=db_path)
    await second.component_load()
    try:
        result: CleaningResult | None = await second.get(key)
    finally:
        await second.component_teardown()

    assert result is not None
    assert result.cleaned_text == PURE_ARABIC


@pytest.mark.asyncio
async def test_disabled_cache_stores_nothing(config: Config, validator: PurityValidator, tmp_path: Path) -> None:
    config.CACHE.ENABLED = False
    manager = QualityCache(config, validator, db_path=tmp_path / "disabled.db")
    await manager.component_load()

    key: CacheKey = CacheKey.from_request("source", "fr", "ar")
    result, report = _accepted(validator, PURE_ARABIC, "ar")

    assert manager.is_initialized is False
    assert await manager.put(key, result, report) is False
    assert await manager.get(key) is None
    assert not (tmp_path / "disabled.db").exists()
