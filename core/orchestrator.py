# ruff: noqa: BLE001
"""Translation orchestrator.

Runs every translation request through an explicit state machine:

    REQUESTED -> ORACLE_CALLED -> CLEANED -> VALIDATED -> ACCEPTED | RETRY | FALLBACK

An oracle failure or timeout goes straight to RETRY. Once the retry budget is spent the request
ends in FALLBACK with pre-authored content, so the caller always receives displayable text in the
target language.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import TYPE_CHECKING

from core.cache.inflight_manager import InFlightManager
from core.cache.manager import QualityCache
from core.cleaning.cleaner import ContentCleaner
from core.cleaning.patterns import PatternLibrary
from core.exceptions import NotSupportedLanguageError, OracleUnavailableError, ValidationFailedError
from core.fallback import FallbackProvider
from core.oracle.manager import OracleManager
from core.purity.validator import PurityValidator
from core.script.classifier import ScriptClassifier
from models.cache_models import CacheKey
from models.translation_models import (
    SUPPORTED_LANGUAGES,
    OrchestratorStatistics,
    TranslationOutcome,
    TranslationState,
)
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from core.fallback import FallbackText
    from core.oracle.interface import OracleInterface
    from models.cleaning_models import CleaningResult
    from models.config_models import Config
    from models.purity_models import PurityReport

__all__: list[str] = ["TranslationOrchestrator"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class TranslationOrchestrator:
    """Entry point of the UI layer for translations.

    Collaborators that are not passed in are built from the configuration, except the quality
    cache: without one nothing is cached. ``create`` builds a fully wired instance.

    Args:
        config (Config): Application configuration.
        oracle (OracleManager | OracleInterface): Text-generation oracle.
        classifier (ScriptClassifier | None): Shared script classifier.
        library (PatternLibrary | None): Contamination pattern library.
        cleaner (ContentCleaner | None): Content cleaner.
        validator (PurityValidator | None): Purity validator.
        cache (QualityCache | None): Quality cache.
        inflight_manager (InFlightManager | None): Collapses concurrent identical requests.
        fallback (FallbackProvider | None): Fallback content provider.
    """

    def __init__(
        self,
        config: Config,
        *,
        oracle: OracleManager | OracleInterface,
        classifier: ScriptClassifier | None = None,
        library: PatternLibrary | None = None,
        cleaner: ContentCleaner | None = None,
        validator: PurityValidator | None = None,
        cache: QualityCache | None = None,
        inflight_manager: InFlightManager | None = None,
        fallback: FallbackProvider | None = None,
    ) -> None:
        self.config: Config = config
        self.oracle: OracleManager | OracleInterface = oracle
        self.classifier: ScriptClassifier = classifier or ScriptClassifier()
        if library is None:
            library = cleaner.library if cleaner is not None else PatternLibrary.load(config.CLEANING.PATTERN_FILE)
        self.library: PatternLibrary = library
        self.cleaner: ContentCleaner = cleaner or ContentCleaner.from_config(config, self.library, self.classifier)
        self.validator: PurityValidator = validator or PurityValidator(config, self.classifier)
        self.cache: QualityCache | None = cache
        # A waiter may have to sit through the producer's whole retry budget.
        self.inflight_manager: InFlightManager = inflight_manager or InFlightManager(
            timeout=config.ORACLE.TIMEOUT * (config.ORACLE.RETRY_BUDGET + 1)
        )
        self.fallback: FallbackProvider = fallback or FallbackProvider(config)
        self.statistics: OrchestratorStatistics = OrchestratorStatistics()

    @classmethod
    async def create(cls, config: Config) -> TranslationOrchestrator:
        """Build and initialize an orchestrator with every collaborator taken from the configuration.

        Raises:
            PatternLibraryError: If the pattern library cannot be loaded.
            CacheInitializationError: If the quality cache cannot be opened.
        """
        library: PatternLibrary = PatternLibrary.load(config.CLEANING.PATTERN_FILE)
        classifier = ScriptClassifier()
        validator = PurityValidator(config, classifier)
        oracle = OracleManager(config)
        await oracle.initialize()
        orchestrator = cls(
            config,
            oracle=oracle,
            classifier=classifier,
            library=library,
            validator=validator,
            cache=QualityCache(config, validator) if config.CACHE.ENABLED else None,
        )
        await orchestrator.initialize()
        return orchestrator

    async def initialize(self) -> None:
        await self.inflight_manager.component_load()
        if self.cache is not None and not self.cache.is_initialized:
            await self.cache.component_load()
        logger.info("TranslationOrchestrator initialized")

    async def close(self) -> None:
        await self.inflight_manager.component_teardown()
        if self.cache is not None:
            stats = await self.cache.get_statistics()
            logger.info("Cache closing with %d entries, hit rate %.1f%%", stats.total_entries, stats.hit_rate * 100)
            await self.cache.component_teardown()
        if isinstance(self.oracle, OracleManager):
            await self.oracle.shutdown_engines()
        else:
            await self.oracle.close()
        logger.info("TranslationOrchestrator closed")

    @staticmethod
    def normalize_language(code: str) -> str:
        """Reduce a language tag such as ``fr-DZ`` to a supported code.

        Raises:
            NotSupportedLanguageError: If the language is neither Arabic nor French.
        """
        base: str = StringUtils.ensure_str(code).strip().lower().replace("_", "-").split("-")[0]
        if base not in SUPPORTED_LANGUAGES:
            msg = f"Unsupported language code: '{code}'"
            raise NotSupportedLanguageError(msg)
        return base

    async def translate(self, text: str, from_lang: str, to_lang: str) -> TranslationOutcome:
        """Translate a text between Arabic and French.

        Per-request failures never propagate: they end in a fallback outcome. This guarantee
        covers Arabic and French only; any other language code is rejected before processing.

        Args:
            text (str): Original source text. Callers toggling languages pass the original text,
                never a previous output.
            from_lang (str): Source language code.
            to_lang (str): Target language code.

        Returns:
            TranslationOutcome: Accepted translation, cached translation, identity or fallback.

        Raises:
            NotSupportedLanguageError: If either language is not supported.
        """
        text = StringUtils.ensure_str(text)
        src_lang: str = self.normalize_language(from_lang)
        tgt_lang: str = self.normalize_language(to_lang)
        self.statistics.requests += 1
        transitions: list[TranslationState] = [TranslationState.REQUESTED]

        if src_lang == tgt_lang:
            self.statistics.identity += 1
            transitions.append(TranslationState.ACCEPTED)
            return TranslationOutcome(
                text=text,
                was_translated=False,
                purity_score=self.validator.validate(text, tgt_lang).purity_score,
                final_state=TranslationState.ACCEPTED,
                transitions=transitions,
            )

        if self.config.CLEANING.PRECLEAN_SOURCE:
            precleaned: CleaningResult = self.cleaner.clean(text)
            if precleaned.was_modified:
                logger.debug("Source text pre-cleaned: %s", ", ".join(precleaned.pattern_ids) or "spacing")
            source: str = precleaned.cleaned_text
        else:
            source = text.strip()
        if not source.strip():
            logger.warning("Empty source text after pre-cleaning, using fallback content")
            return self._fallback(text, tgt_lang, transitions, oracle_calls=0)

        key: CacheKey = CacheKey.from_request(text, src_lang, tgt_lang)
        cached: TranslationOutcome | None = await self._lookup_cache(key, transitions)
        if cached is not None:
            return cached

        is_producer: bool = True
        try:
            shared: TranslationOutcome | None = await self.inflight_manager.mark_inflight_start(key.digest)
        except TimeoutError as err:
            logger.warning("Proceeding without the in-flight result: %s", err)
            shared, is_producer = None, False
        except Exception as err:
            logger.warning("In-flight producer failed, proceeding independently: %s", err)
            shared, is_producer = None, False

        if shared is not None:
            self.statistics.collapsed += 1
            return replace(shared, oracle_calls=0, transitions=[*transitions, shared.final_state])

        try:
            outcome: TranslationOutcome = await self._run_pipeline(source, text, src_lang, tgt_lang, key, transitions)
        except asyncio.CancelledError:
            if is_producer:
                await self.inflight_manager.store_inflight_exception(
                    key.digest, OracleUnavailableError("The translation request was cancelled")
                )
            raise
        except Exception:
            logger.exception("Translation pipeline failed unexpectedly, using fallback content")
            outcome = self._fallback(
                text, tgt_lang, transitions, oracle_calls=transitions.count(TranslationState.ORACLE_CALLED)
            )
        if is_producer:
            await self.inflight_manager.store_inflight_result(key.digest, outcome)
        return outcome

    async def _lookup_cache(self, key: CacheKey, transitions: list[TranslationState]) -> TranslationOutcome | None:
        if self.cache is None:
            return None
        result: CleaningResult | None = await self.cache.get(key)
        if result is None:
            return None

        try:
            report: PurityReport = self._accept(result, key.to_lang)
        except ValidationFailedError as err:
            # Stored under an older, looser configuration or before a pattern was added.
            logger.info("Discarding cached translation: %s", err)
            await self.cache.invalidate(key, reason="stale")
            return None

        self.statistics.cache_hits += 1
        logger.debug("Cache hit for key: %s", key.source_hash[:16])
        return TranslationOutcome(
            text=result.cleaned_text,
            was_translated=True,
            purity_score=report.purity_score,
            from_cache=True,
            final_state=TranslationState.ACCEPTED,
            transitions=[*transitions, TranslationState.ACCEPTED],
        )

    def _accept(self, result: CleaningResult, tgt_lang: str) -> PurityReport:
        """Validate cleaned oracle output.

        Raises:
            ValidationFailedError: If the text is not pure or still holds a known contamination token.
        """
        report: PurityReport = self.validator.require_pure(result.cleaned_text, tgt_lang)
        residue: list[tuple[str, str]] = self.library.find_tokens(result.cleaned_text)
        if residue:
            msg = f"Contamination tokens survived cleaning: {', '.join(pattern_id for pattern_id, _ in residue)}"
            raise ValidationFailedError(msg, report)
        return report

    async def _run_pipeline(  # noqa: PLR0913
        self,
        source: str,
        original: str,
        src_lang: str,
        tgt_lang: str,
        key: CacheKey,
        transitions: list[TranslationState],
    ) -> TranslationOutcome:
        attempts: int = 1 + self.config.ORACLE.RETRY_BUDGET
        oracle_calls: int = 0

        for attempt in range(attempts):
            if attempt > 0:
                transitions.append(TranslationState.RETRY)
                self.statistics.retries += 1
            transitions.append(TranslationState.ORACLE_CALLED)
            oracle_calls += 1
            self.statistics.oracle_calls += 1
            result: CleaningResult | None = None

            try:
                raw: str = await asyncio.wait_for(
                    self.oracle.translate(source, src_lang, tgt_lang, strict=attempt > 0),
                    timeout=self.config.ORACLE.TIMEOUT,
                )
                result = self.cleaner.clean(raw, tgt_lang)
                transitions.append(TranslationState.CLEANED)
                transitions.append(TranslationState.VALIDATED)
                report: PurityReport = self._accept(result, tgt_lang)
            except TimeoutError:
                self.statistics.oracle_failures += 1
                logger.warning(
                    "Oracle timed out after %.1f sec (attempt %d/%d)", self.config.ORACLE.TIMEOUT, attempt + 1, attempts
                )
            except OracleUnavailableError as err:
                self.statistics.oracle_failures += 1
                logger.warning("Oracle unavailable (attempt %d/%d): %s", attempt + 1, attempts, err)
            except ValidationFailedError as err:
                self.statistics.validation_failures += 1
                logger.warning(
                    "Validation failed (attempt %d/%d): %s; ratios: %s; patterns: %s",
                    attempt + 1,
                    attempts,
                    err,
                    err.report.describe_ratios(),
                    ", ".join(result.pattern_ids) if result is not None else "none",
                )
            except Exception:
                self.statistics.oracle_failures += 1
                logger.exception("Unexpected failure while translating (attempt %d/%d)", attempt + 1, attempts)
            else:
                transitions.append(TranslationState.ACCEPTED)
                self.statistics.accepted += 1
                if self.cache is not None:
                    try:
                        await self.cache.put(key, result, report)
                    except Exception:
                        logger.exception("Failed to cache the accepted translation")
                return TranslationOutcome(
                    text=result.cleaned_text,
                    was_translated=True,
                    purity_score=report.purity_score,
                    final_state=TranslationState.ACCEPTED,
                    oracle_calls=oracle_calls,
                    transitions=transitions,
                )

        return self._fallback(original, tgt_lang, transitions, oracle_calls=oracle_calls)

    def _fallback(
        self, original: str, tgt_lang: str, transitions: list[TranslationState], *, oracle_calls: int
    ) -> TranslationOutcome:
        choice: FallbackText = self.fallback.select(original, tgt_lang)
        transitions.append(TranslationState.FALLBACK)
        self.statistics.fallbacks += 1
        logger.warning(
            "Using %s fallback content for '%s' after %d oracle calls", choice.topic or "generic", tgt_lang, oracle_calls
        )
        return TranslationOutcome(
            text=choice.text,
            was_translated=False,
            purity_score=self.validator.validate(choice.text, tgt_lang).purity_score,
            is_fallback=True,
            final_state=TranslationState.FALLBACK,
            oracle_calls=oracle_calls,
            transitions=transitions,
            fallback_topic=choice.topic,
        )

    async def submit_feedback(self, text: str, from_lang: str, to_lang: str, reason: str = "") -> bool:
        """Report that the translation shown for a request was contaminated.

        Returns:
            bool: True if a cached entry was invalidated.
        """
        if self.cache is None:
            return False
        key: CacheKey = CacheKey.from_request(text, self.normalize_language(from_lang), self.normalize_language(to_lang))
        return await self.cache.report_feedback(key, reason)
